from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .models import Head, HeadType, SalesChannel

CHANNEL_SUBHEADS: Tuple[str, ...] = tuple(channel.value for channel in SalesChannel)

# Cost of Goods subheads
RAW_MATERIALS = "Raw Materials & Inventory"
MANUFACTURING_WAGES = "Manufacturing Wages"
CONTRACT_WAGES = "Contract Wages (Mfg)"
INBOUND_TRANSPORT = "Inbound Transport"
FACTORY_RENT = "Factory Rent"
FACTORY_ELECTRICITY = "Factory Electricity"
FACTORY_MAINTENANCE = "Factory Maintenance"
JOB_WORK = "Job Work"
CONSUMABLES = "Consumables"
QUALITY_TESTING = "Quality Testing"
OTHER_DIRECT_EXPENSES = "Other Direct Expenses"

# Non-Operating subheads
INTEREST_EXPENSE = "Interest Expense"
DEPRECIATION = "Depreciation"
AMORTIZATION = "Amortization"
INCOME_TAX = "Income Tax"

OTHER_OPERATING_EXPENSES = "Other Operating Expenses"


@dataclass(frozen=True)
class HeadConfig:
    code: str
    head_type: HeadType
    pl_line: str
    subheads: Tuple[str, ...]


HEADS_CONFIG: Dict[Head, HeadConfig] = {
    Head.REVENUE: HeadConfig("A", HeadType.REVENUE, "Gross Revenue", CHANNEL_SUBHEADS),
    Head.RETURNS: HeadConfig("B", HeadType.EXPENSE, "Returns", CHANNEL_SUBHEADS),
    Head.DISCOUNTS: HeadConfig("C", HeadType.EXPENSE, "Discounts", CHANNEL_SUBHEADS),
    Head.TAXES: HeadConfig("D", HeadType.EXPENSE, "Taxes on Revenue", CHANNEL_SUBHEADS),
    Head.COST_OF_GOODS: HeadConfig(
        "E",
        HeadType.EXPENSE,
        "COGS",
        (
            RAW_MATERIALS,
            MANUFACTURING_WAGES,
            CONTRACT_WAGES,
            INBOUND_TRANSPORT,
            FACTORY_RENT,
            FACTORY_ELECTRICITY,
            FACTORY_MAINTENANCE,
            JOB_WORK,
            CONSUMABLES,
            QUALITY_TESTING,
            OTHER_DIRECT_EXPENSES,
        ),
    ),
    Head.CHANNEL_FULFILLMENT: HeadConfig(
        "F",
        HeadType.EXPENSE,
        "Channel Costs",
        ("Amazon Fees", "Blinkit Fees", "D2C Fees"),
    ),
    Head.SALES_MARKETING: HeadConfig(
        "G",
        HeadType.EXPENSE,
        "Marketing",
        (
            "Facebook Ads",
            "Google Ads",
            "Amazon Ads",
            "Blinkit Ads",
            "Agency Fees",
            "Advertising & Marketing",
            "Social Media Ads",
        ),
    ),
    Head.PLATFORM_COSTS: HeadConfig(
        "H",
        HeadType.EXPENSE,
        "Platform Costs",
        (
            "Shopify Subscription",
            "Wati Subscription",
            "Shopflo Subscription",
            "Website Development",
        ),
    ),
    Head.OPERATING_EXPENSES: HeadConfig(
        "I",
        HeadType.EXPENSE,
        "Operating Expenses",
        (
            "Salaries (Admin, Mgmt)",
            "Salaries (Directors)",
            "Staff Welfare & Events",
            "Miscellaneous (Travel, insurance)",
            "Legal & CA expenses",
            "Banks & Finance Charges",
            "Platform Costs (CRM, inventory softwares)",
            "Administrative Expenses",
            "Write-offs",
            OTHER_OPERATING_EXPENSES,
        ),
    ),
    Head.NON_OPERATING: HeadConfig(
        "J",
        HeadType.EXPENSE,
        "Non-Operating",
        (INTEREST_EXPENSE, DEPRECIATION, AMORTIZATION, INCOME_TAX),
    ),
    Head.EXCLUDED: HeadConfig(
        "X",
        HeadType.IGNORE,
        "Excluded",
        ("Personal Expenses", "Owner Withdrawals"),
    ),
    Head.IGNORED: HeadConfig(
        "Z",
        HeadType.IGNORE,
        "Ignored",
        (
            "GST Input/Output",
            "GST/TDS",
            "TDS",
            "Bank Transfers",
            "Inter-company",
            "Prior Period Adjustment",
        ),
    ),
}


def head_type(head: Head) -> HeadType:
    return HEADS_CONFIG[head].head_type


def get_subheads_for_head(head: Head) -> List[str]:
    config = HEADS_CONFIG.get(head)
    return list(config.subheads) if config else []


def is_valid_subhead(head: Head, subhead: str) -> bool:
    return subhead in HEADS_CONFIG[head].subheads


def head_options() -> List[Tuple[Head, List[str]]]:
    return [(head, list(config.subheads)) for head, config in HEADS_CONFIG.items()]


def head_display_name(head: Head) -> str:
    return f"{HEADS_CONFIG[head].code}. {head.value}"

from __future__ import annotations

from typing import List, Tuple

from . import taxonomy as tx
from .models import (
    DEFAULT_PRIORITY_BY_SOURCE,
    ClassificationRule,
    Head,
    MatchType,
    RuleSource,
)

# (rule id, regex, head, subhead); evaluated in this order among system rules.
_SYSTEM_PATTERNS: Tuple[Tuple[str, str, Head, str], ...] = (
    ("SYS-REV-WEBSITE", r"SHIPROCKET.*CASH SALE", Head.REVENUE, "Website"),
    ("SYS-REV-AMAZON", r"AMAZON SALE.*CASH SALE", Head.REVENUE, "Amazon"),
    ("SYS-REV-BLINKIT", r"BLINKIT|BLINK COMMERCE", Head.REVENUE, "Blinkit"),
    ("SYS-CF-AMAZON-LOGISTICS", r"AMAZON.*LOGISTICS", Head.CHANNEL_FULFILLMENT, "Amazon Fees"),
    (
        "SYS-CF-AMAZON-FEES",
        r"Storage Fee|SHIPPING FEE|Return Fee|Commission Income|AMAZON SELLER SERVICES",
        Head.CHANNEL_FULFILLMENT,
        "Amazon Fees",
    ),
    ("SYS-CF-D2C", r"SHIPROCKET PRIVATE LIMITED|EASEBUZZ|RAZORPAY", Head.CHANNEL_FULFILLMENT, "D2C Fees"),
    ("SYS-SM-FACEBOOK", r"FACEBOOK|\bMETA\b", Head.SALES_MARKETING, "Facebook Ads"),
    ("SYS-SM-GOOGLE", r"GOOGLE INDIA|GOOGLE ADS", Head.SALES_MARKETING, "Google Ads"),
    ("SYS-SM-AMAZON-ADS", r"Advertisement.*Publicity|AMAZON ADS", Head.SALES_MARKETING, "Amazon Ads"),
    ("SYS-SM-AGENCY", r"SOCIAL MEDIA MARKETING|Branding.*Packaging", Head.SALES_MARKETING, "Agency Fees"),
    ("SYS-COGS-JOB-WORK", r"JOB WORK", Head.COST_OF_GOODS, tx.JOB_WORK),
    ("SYS-COGS-FREIGHT", r"FREIGHT|CARTAGE", Head.COST_OF_GOODS, tx.INBOUND_TRANSPORT),
    ("SYS-COGS-RENT", r"FACTORY RENT|GODOWN RENT", Head.COST_OF_GOODS, tx.FACTORY_RENT),
    ("SYS-COGS-ELECTRICITY", r"Electricity|POWER BACKUP", Head.COST_OF_GOODS, tx.FACTORY_ELECTRICITY),
    ("SYS-COGS-MAINTENANCE", r"MAINTENANCE", Head.COST_OF_GOODS, tx.FACTORY_MAINTENANCE),
    ("SYS-COGS-CONSUMABLES", r"CONSUMABLE", Head.COST_OF_GOODS, tx.CONSUMABLES),
    ("SYS-OPEX-SALARY", r"Salary|ESI.*EMPLOYER|PF.*EMPLOYER", Head.OPERATING_EXPENSES, "Salaries (Admin, Mgmt)"),
    (
        "SYS-OPEX-MISC",
        r"Travelling|Miscellaneous|Insurance",
        Head.OPERATING_EXPENSES,
        "Miscellaneous (Travel, insurance)",
    ),
    ("SYS-OPEX-WELFARE", r"STAFF WELFARE", Head.OPERATING_EXPENSES, "Staff Welfare & Events"),
    (
        "SYS-OPEX-LEGAL",
        r"LEGAL.*PROFESSIONAL|ACCOUNTING.*RETURN|AUDIT FEE",
        Head.OPERATING_EXPENSES,
        "Legal & CA expenses",
    ),
    ("SYS-OPEX-BANK", r"Bank Charge", Head.OPERATING_EXPENSES, "Banks & Finance Charges"),
    (
        "SYS-OPEX-ADMIN",
        r"OFFICE EXPENSE|OFFICE RENT|Printing.*Stationery|COMMUNICATION|COURIER",
        Head.OPERATING_EXPENSES,
        "Administrative Expenses",
    ),
    ("SYS-PLAT-SHOPIFY", r"SHOPIFY", Head.PLATFORM_COSTS, "Shopify Subscription"),
    ("SYS-PLAT-WATI", r"WATI", Head.PLATFORM_COSTS, "Wati Subscription"),
    ("SYS-PLAT-SHOPFLO", r"SHOPFLO", Head.PLATFORM_COSTS, "Shopflo Subscription"),
    ("SYS-NONOP-INTEREST", r"INTEREST (PAID|ON LOAN|EXPENSE)", Head.NON_OPERATING, tx.INTEREST_EXPENSE),
    ("SYS-NONOP-DEPRECIATION", r"DEPRECIATION", Head.NON_OPERATING, tx.DEPRECIATION),
    ("SYS-IGN-GST", r"GST.*INPUT|GST.*OUTPUT|CGST|SGST|IGST|TCS|DEFERRED", Head.IGNORED, "GST Input/Output"),
    ("SYS-IGN-TDS", r"\bTDS\b", Head.IGNORED, "TDS"),
    ("SYS-IGN-BANK", r"CENTRAL BANK|HDFC BANK|AXIS BANK|^Cash$", Head.IGNORED, "Bank Transfers"),
    ("SYS-IGN-INTERCO", r"DIRECTOR LOAN", Head.IGNORED, "Inter-company"),
    ("SYS-EXC-PERSONAL", r"PERSONAL EXP", Head.EXCLUDED, "Personal Expenses"),
    ("SYS-EXC-DRAWINGS", r"DRAWINGS", Head.EXCLUDED, "Owner Withdrawals"),
)


def system_rules() -> List[ClassificationRule]:
    """Fresh copies of the built-in rules (regex, system provenance)."""
    return [
        ClassificationRule(
            id=rule_id,
            pattern=pattern,
            match_type=MatchType.REGEX,
            head=head,
            subhead=subhead,
            priority=DEFAULT_PRIORITY_BY_SOURCE[RuleSource.SYSTEM],
            source=RuleSource.SYSTEM,
        )
        for rule_id, pattern, head, subhead in _SYSTEM_PATTERNS
    ]

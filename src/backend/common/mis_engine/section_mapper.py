"""Keyword mapping for ledger lines that arrive scoped to a ledger section.

- Direct (trading account) lines always land in Cost of Goods; keywords only pick
  the subhead, falling back to "Other Direct Expenses".
- General (P&L account) lines get head and subhead from keywords, falling back to
  "Other Operating Expenses". Nothing in either section is left unclassified.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import BaseModel

from . import taxonomy as tx
from .models import (
    ClassificationDecision,
    ConfidenceTier,
    Head,
    HeadType,
    LedgerSection,
    Transaction,
)


@dataclass(frozen=True)
class KeywordRule:
    pattern: str
    head: Head
    subhead: str

    def matches(self, account_name: str) -> bool:
        return re.search(self.pattern, account_name, re.IGNORECASE) is not None


class SectionMapping(BaseModel):
    head: Head
    subhead: str
    mapping_type: HeadType
    pl_line: str
    matched_keyword: Optional[str] = None


def _cogs(pattern: str, subhead: str) -> KeywordRule:
    return KeywordRule(pattern, Head.COST_OF_GOODS, subhead)


DIRECT_SECTION_RULES: Tuple[KeywordRule, ...] = (
    _cogs(r"job\s*work", tx.JOB_WORK),
    _cogs(r"consumable", tx.CONSUMABLES),
    _cogs(r"contract.*(wages|labou?r)", tx.CONTRACT_WAGES),
    _cogs(r"labou?r|wages", tx.MANUFACTURING_WAGES),
    _cogs(r"freight|transport|transpotation|cartage", tx.INBOUND_TRANSPORT),
    _cogs(r"factory.*rent|godown.*rent|\brent\b", tx.FACTORY_RENT),
    _cogs(r"electric|power|water", tx.FACTORY_ELECTRICITY),
    _cogs(r"maintenance|maitenance|repair", tx.FACTORY_MAINTENANCE),
    _cogs(r"\blab\b|testing|calibration|quality", tx.QUALITY_TESTING),
    _cogs(r"purchase|raw\s*material|stencil|stancil|sample|modification", tx.RAW_MATERIALS),
)

GENERAL_SECTION_RULES: Tuple[KeywordRule, ...] = (
    # Statutory pass-through items.
    KeywordRule(r"^(cgst|sgst|igst|gst)|\btds\b", Head.IGNORED, "GST/TDS"),
    KeywordRule(r"duties\s*&\s*taxes", Head.IGNORED, "GST Input/Output"),
    KeywordRule(r"prior\s*period", Head.IGNORED, "Prior Period Adjustment"),
    KeywordRule(r"provision.*tax|income\s*tax", Head.NON_OPERATING, tx.INCOME_TAX),
    KeywordRule(r"personal", Head.EXCLUDED, "Personal Expenses"),
    KeywordRule(r"drawings?|owner.*withdraw", Head.EXCLUDED, "Owner Withdrawals"),
    KeywordRule(r"interest", Head.NON_OPERATING, tx.INTEREST_EXPENSE),
    KeywordRule(r"depreciation", Head.NON_OPERATING, tx.DEPRECIATION),
    KeywordRule(r"amorti[sz]ation", Head.NON_OPERATING, tx.AMORTIZATION),
    KeywordRule(r"written\s*off|write.*off", Head.OPERATING_EXPENSES, "Write-offs"),
    # Channel & fulfillment.
    KeywordRule(r"amazon", Head.CHANNEL_FULFILLMENT, "Amazon Fees"),
    KeywordRule(r"blinkit", Head.CHANNEL_FULFILLMENT, "Blinkit Fees"),
    KeywordRule(
        r"logist|courier|postage|shiprocket|delhivery|porter|freight|loading.*unloading",
        Head.CHANNEL_FULFILLMENT,
        "D2C Fees",
    ),
    KeywordRule(r"storage\s*fee|shipping\s*fee|commission\s*fee", Head.CHANNEL_FULFILLMENT, "Amazon Fees"),
    KeywordRule(r"selling.*distribution|installation.*service", Head.CHANNEL_FULFILLMENT, "D2C Fees"),
    # Marketing.
    KeywordRule(r"social\s*media", Head.SALES_MARKETING, "Social Media Ads"),
    KeywordRule(
        r"advertis|publicity|marketing|promotion|branding|design\s*exp",
        Head.SALES_MARKETING,
        "Advertising & Marketing",
    ),
    # Platform subscriptions.
    KeywordRule(r"platform\s*fee|shopify", Head.PLATFORM_COSTS, "Shopify Subscription"),
    KeywordRule(r"software.*updat|wati", Head.PLATFORM_COSTS, "Wati Subscription"),
    KeywordRule(r"shopflo", Head.PLATFORM_COSTS, "Shopflo Subscription"),
    KeywordRule(r"website.*develop", Head.PLATFORM_COSTS, "Website Development"),
    # Operating expenses.
    KeywordRule(
        r"director.*(salary|remuneration)|(salary|remuneration).*director",
        Head.OPERATING_EXPENSES,
        "Salaries (Directors)",
    ),
    KeywordRule(
        r"salary|salaries|esi\s*employer|pf\s*employer|gratuity",
        Head.OPERATING_EXPENSES,
        "Salaries (Admin, Mgmt)",
    ),
    KeywordRule(
        r"staff.*welfare|diwali|bonus|picnic|entertainment|uniform",
        Head.OPERATING_EXPENSES,
        "Staff Welfare & Events",
    ),
    KeywordRule(
        r"legal|professional.*exp|accounti|consultancy|government\s*fee|registration|licen[cs]e|barcode",
        Head.OPERATING_EXPENSES,
        "Legal & CA expenses",
    ),
    KeywordRule(
        r"bank\s*charg|processing\s*fee|penalty|service\s*charge",
        Head.OPERATING_EXPENSES,
        "Banks & Finance Charges",
    ),
    KeywordRule(
        r"travel|tour|hotel|conveyance|vehicle|insurance|miscellaneous",
        Head.OPERATING_EXPENSES,
        "Miscellaneous (Travel, insurance)",
    ),
    KeywordRule(
        r"\bcrm\b|inventory\s*software|tally|zoho",
        Head.OPERATING_EXPENSES,
        "Platform Costs (CRM, inventory softwares)",
    ),
    KeywordRule(
        r"office|\brent\b|printing|stationery|communication|telephone|internet|house\s*keep|repair|maintenance",
        Head.OPERATING_EXPENSES,
        "Administrative Expenses",
    ),
)

_SPECIAL_ACCOUNTS = re.compile(
    r"opening stock|closing stock|gross (profit|loss)|nett? (profit|loss)|\b(grand )?total\b"
    r"|expenses (direct|indirect)|\b(to|by) expenses\b"
)


def normalize_account_name(name: str) -> str:
    out = (name or "").lower()
    out = re.sub(r"@\d+(\.\d+)?%?", "", out)
    out = re.sub(r"[()]", "", out)
    out = re.sub(r"\s*&\s*", " & ", out)
    return re.sub(r"\s+", " ", out).strip()


def is_special_account(account_name: str) -> bool:
    """Stock, profit and total lines feed calculations but are never mapped."""
    return _SPECIAL_ACCOUNTS.search(normalize_account_name(account_name)) is not None


def is_raw_material_item(account_name: str) -> bool:
    normalized = normalize_account_name(account_name)
    return any(key in normalized for key in ("opening stock", "closing stock", "purchase"))


def _mapping(head: Head, subhead: str, keyword: Optional[str]) -> SectionMapping:
    config = tx.HEADS_CONFIG[head]
    return SectionMapping(
        head=head,
        subhead=subhead,
        mapping_type=config.head_type,
        pl_line=config.pl_line,
        matched_keyword=keyword,
    )


def _first_match(rules: Tuple[KeywordRule, ...], account_name: str) -> Optional[KeywordRule]:
    normalized = normalize_account_name(account_name)
    return next((rule for rule in rules if rule.matches(normalized)), None)


def map_account_by_section(account_name: str, section: LedgerSection) -> SectionMapping:
    if section == LedgerSection.DIRECT:
        rule = _first_match(DIRECT_SECTION_RULES, account_name)
        if rule is None:
            return _mapping(Head.COST_OF_GOODS, tx.OTHER_DIRECT_EXPENSES, None)
        return _mapping(Head.COST_OF_GOODS, rule.subhead, rule.pattern)

    rule = _first_match(GENERAL_SECTION_RULES, account_name)
    if rule is None:
        return _mapping(Head.OPERATING_EXPENSES, tx.OTHER_OPERATING_EXPENSES, None)
    return _mapping(rule.head, rule.subhead, rule.pattern)


def map_transaction_by_section(transaction: Transaction) -> ClassificationDecision:
    if transaction.section is None:
        raise ValueError(f"Transaction {transaction.id} carries no ledger section")
    mapping = map_account_by_section(transaction.account, transaction.section)
    return ClassificationDecision(
        head=mapping.head,
        subhead=mapping.subhead,
        confidence=ConfidenceTier.MEDIUM if mapping.matched_keyword else ConfidenceTier.LOW,
        matched_pattern=mapping.matched_keyword,
    )

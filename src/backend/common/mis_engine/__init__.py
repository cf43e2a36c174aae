"""MIS / P&L engine.

This package contains only domain logic:
- Inputs are per-state ledger lines, sales summaries and balance-sheet figures.
- Rules are read from a repository snapshot; the engine never edits them.
- No file parsing, storage backends, or rendering live here.
"""

from .classifier import classify_transaction, classify_transactions, snapshot_rules
from .config import MISEngineConfig, load_engine_config
from .errors import DuplicateRuleError, RuleNotFoundError, TransactionNotFoundError
from .models import (
    ClassificationRule,
    ClassifiedTransaction,
    Head,
    HeadAggregation,
    MatchType,
    Period,
    RuleSource,
    StateBalanceSheet,
    StatePeriodData,
    StateSalesSummary,
    Transaction,
)
from .records import PeriodRecord, RangeRecord
from .reclassify import ClassificationApplied, reclassify_transaction
from .repository import InMemoryRuleRepository, StateDataRepository
from .runner import MISRunner

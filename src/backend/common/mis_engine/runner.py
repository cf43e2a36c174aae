from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .classifier import RuleSnapshot, snapshot_rules
from .config import MISEngineConfig
from .logging_setup import get_logger
from .models import ClassificationRule, Period, StatePeriodData, period_range
from .period import build_period_record
from .records import PeriodRecord, RangeRecord
from .repository import RuleRepository, StateDataRepository
from .scope import aggregate_range
from .system_rules import system_rules

logger = get_logger(__name__)


class MISRunner:
    """Runs periods and ranges against one frozen rule snapshot."""

    def __init__(
        self,
        rules: Optional[Iterable[ClassificationRule]] = None,
        *,
        config: Optional[MISEngineConfig] = None,
    ):
        self._rules: RuleSnapshot = snapshot_rules(rules if rules is not None else system_rules())
        self._config = config or MISEngineConfig()
        logger.debug("Runner holds %d active rules", len(self._rules))

    @classmethod
    def from_repository(
        cls,
        repository: RuleRepository,
        *,
        config: Optional[MISEngineConfig] = None,
    ) -> "MISRunner":
        return cls(repository.list_active(), config=config)

    @property
    def rules(self) -> RuleSnapshot:
        return self._rules

    @property
    def config(self) -> MISEngineConfig:
        return self._config

    def run_period(self, period: Period, entries: Sequence[StatePeriodData]) -> PeriodRecord:
        return build_period_record(period, entries, self._rules, self._config)

    def run_stored_period(self, states: StateDataRepository, period: Period) -> Optional[PeriodRecord]:
        if not states.has_data(period):
            return None
        return self.run_period(period, states.for_period(period))

    def run_periods(self, states: StateDataRepository, start: Period, end: Period) -> List[PeriodRecord]:
        records: List[PeriodRecord] = []
        for period in period_range(start, end):
            record = self.run_stored_period(states, period)
            if record is not None:
                records.append(record)
        return records

    def run_range(self, states: StateDataRepository, start: Period, end: Period) -> Optional[RangeRecord]:
        records = self.run_periods(states, start, end)
        return aggregate_range(records, start, end, config=self._config)

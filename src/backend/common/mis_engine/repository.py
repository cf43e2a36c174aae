from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from .errors import DuplicateRuleError, RuleNotFoundError
from .models import ClassificationRule, Period, StatePeriodData


class RuleRepository(Protocol):
    def list_active(self) -> List[ClassificationRule]:
        """Active rules in insertion order."""
        ...

    def add(self, rule: ClassificationRule) -> None:
        ...

    def update(self, rule: ClassificationRule) -> None:
        ...

    def delete(self, rule_id: str) -> None:
        ...


class InMemoryRuleRepository:
    def __init__(self, rules: Optional[Iterable[ClassificationRule]] = None):
        self._rules: Dict[str, ClassificationRule] = {}
        for rule in rules or ():
            self.add(rule)

    def add(self, rule: ClassificationRule) -> None:
        if rule.id in self._rules:
            raise DuplicateRuleError(f"Duplicate rule id: {rule.id}")
        self._rules[rule.id] = rule.model_copy(deep=True)

    def update(self, rule: ClassificationRule) -> None:
        if rule.id not in self._rules:
            raise RuleNotFoundError(rule.id)
        # Dict keeps the original insertion slot, so tie-breaks do not move.
        self._rules[rule.id] = rule.model_copy(deep=True)

    def delete(self, rule_id: str) -> None:
        if rule_id not in self._rules:
            raise RuleNotFoundError(rule_id)
        del self._rules[rule_id]

    def get(self, rule_id: str) -> ClassificationRule:
        try:
            return self._rules[rule_id].model_copy(deep=True)
        except KeyError:
            raise RuleNotFoundError(rule_id) from None

    def list_all(self) -> List[ClassificationRule]:
        return [rule.model_copy(deep=True) for rule in self._rules.values()]

    def list_active(self) -> List[ClassificationRule]:
        return [rule.model_copy(deep=True) for rule in self._rules.values() if rule.active]

    def ids(self) -> Iterable[str]:
        return self._rules.keys()


StateKey = Tuple[str, str]


class StateDataRepository:
    """Per-state period inputs keyed by (period key, state)."""

    def __init__(self, entries: Optional[Iterable[StatePeriodData]] = None):
        self._entries: Dict[StateKey, StatePeriodData] = {}
        for entry in entries or ():
            self.put(entry)

    def put(self, entry: StatePeriodData) -> None:
        self._entries[(entry.period.key, entry.state)] = entry

    def get(self, period: Period, state: str) -> Optional[StatePeriodData]:
        return self._entries.get((period.key, state))

    def remove(self, period: Period, state: str) -> None:
        self._entries.pop((period.key, state), None)

    def for_period(self, period: Period) -> List[StatePeriodData]:
        return [entry for (key, _), entry in sorted(self._entries.items()) if key == period.key]

    def states(self, period: Optional[Period] = None) -> List[str]:
        return sorted({state for (key, state) in self._entries if period is None or key == period.key})

    def periods(self) -> List[Period]:
        return [Period.from_key(key) for key in sorted({key for key, _ in self._entries})]

    def has_data(self, period: Period) -> bool:
        return any(entry.has_data for entry in self.for_period(period))

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from adapters.ledger.rule_file import load_rules
from adapters.ledger.state_fixtures import state_period_data_from_payload
from common.mis_engine.models import ClassificationRule, Period, period_range
from common.mis_engine.repository import StateDataRepository
from common.mis_engine.system_rules import system_rules

from .snapshots import SnapshotStore


@dataclass(frozen=True)
class MISInputs:
    start: Period
    end: Period
    rules: tuple[ClassificationRule, ...]
    states: StateDataRepository = field(default_factory=StateDataRepository)


class DataSource(Protocol):
    def build_mis_inputs(self, *, start: Period, end: Period) -> MISInputs:
        """Return rules and per-state period inputs for the runner."""
        ...

    def save_snapshot(self, *, scope: str, name: str, payload: dict[str, Any]) -> None:
        """Persist computed records for auditability."""
        ...


def get_data_source(
    name: str,
    *,
    fixtures_root: Path | None = None,
    snapshot_store: SnapshotStore | None = None,
) -> DataSource:
    """Resolve a data source implementation by name (fixtures)."""
    source = (name or "").strip().lower()
    if source in ("fixtures", ""):
        return FixturesDataSource(fixtures_root=fixtures_root, snapshot_store=snapshot_store)
    raise ValueError(f"Unknown data source '{name}' (expected 'fixtures').")


def _load_json(path: Path):
    with path.open() as handle:
        return json.load(handle)


def load_fixture_rules(fixtures_root: Path) -> list[ClassificationRule]:
    """System rules followed by any rules in `<root>/rules.yaml`."""
    rules = system_rules()
    rules_path = fixtures_root / "rules.yaml"
    if rules_path.exists():
        rules += load_rules(rules_path)
    return rules


def load_fixture_states(fixtures_root: Path, *, start: Period, end: Period) -> StateDataRepository:
    """Read `<root>/<YYYY-MM>/<STATE>.json` for every month in range; missing months are skipped."""
    states = StateDataRepository()
    for period in period_range(start, end):
        period_dir = fixtures_root / period.key
        if not period_dir.is_dir():
            continue
        for path in sorted(period_dir.glob("*.json")):
            states.put(
                state_period_data_from_payload(
                    _load_json(path),
                    state=path.stem,
                    period=period,
                )
            )
    return states


class FixturesDataSource:
    def __init__(
        self,
        *,
        fixtures_root: Path | None = None,
        snapshot_store: SnapshotStore | None = None,
    ) -> None:
        self._fixtures_root = fixtures_root or _default_fixtures_root()
        self._snapshot_store = snapshot_store

    def build_mis_inputs(self, *, start: Period, end: Period) -> MISInputs:
        return MISInputs(
            start=start,
            end=end,
            rules=tuple(load_fixture_rules(self._fixtures_root)),
            states=load_fixture_states(self._fixtures_root, start=start, end=end),
        )

    def save_snapshot(self, *, scope: str, name: str, payload: dict[str, Any]) -> None:
        if self._snapshot_store is None:
            return None
        self._snapshot_store.save_json(scope=scope, name=name, payload=payload)


def _default_fixtures_root() -> Path:
    return Path(__file__).resolve().parents[1] / "tests" / "mis_engine" / "fixtures" / "sample_company"

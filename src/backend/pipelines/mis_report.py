from __future__ import annotations

from dataclasses import dataclass

from common.mis_engine.config import MISEngineConfig
from common.mis_engine.logging_setup import get_logger
from common.mis_engine.models import Period
from common.mis_engine.records import PeriodRecord, RangeRecord
from common.mis_engine.runner import MISRunner
from common.mis_engine.scope import aggregate_range

from .data_source import DataSource

logger = get_logger(__name__)


@dataclass(frozen=True)
class MISReport:
    start: Period
    end: Period
    periods: tuple[PeriodRecord, ...]
    range_record: RangeRecord | None = None


def range_scope(start: Period, end: Period) -> str:
    return f"{start.key}_{end.key}"


def run_mis_report(
    source: DataSource,
    *,
    start: Period,
    end: Period,
    config: MISEngineConfig | None = None,
) -> MISReport:
    """Build every period record in start..end, plus a range record when more than one month is asked for."""
    inputs = source.build_mis_inputs(start=start, end=end)
    runner = MISRunner(inputs.rules, config=config)

    periods = runner.run_periods(inputs.states, start, end)
    range_record = None
    if start != end:
        range_record = aggregate_range(periods, start, end, config=runner.config)

    for record in periods:
        source.save_snapshot(
            scope=record.period_key,
            name="mis_record",
            payload=record.model_dump(mode="json"),
        )
    if range_record is not None:
        source.save_snapshot(
            scope=range_scope(start, end),
            name="mis_range",
            payload=range_record.model_dump(mode="json"),
        )

    logger.info(
        "MIS report %s..%s: %d period(s) with data, range=%s",
        start.key,
        end.key,
        len(periods),
        "yes" if range_record is not None else "no",
    )
    return MISReport(start=start, end=end, periods=tuple(periods), range_record=range_record)

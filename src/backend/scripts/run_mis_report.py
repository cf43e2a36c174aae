from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def _ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


_WATERFALL_ROWS = (
    ("gross_margin", "Gross Margin"),
    ("cm1", "CM1"),
    ("cm2", "CM2"),
    ("cm3", "CM3"),
    ("ebitda", "EBITDA"),
    ("ebt", "EBT"),
    ("net_income", "Net Income"),
)


def _waterfall_lines(title: str, record) -> list[str]:
    lines = [
        f"## {title}",
        "",
        f"- States: {', '.join(record.states) or '-'}",
        f"- Unclassified transactions: {record.unclassified_count}",
        "",
        "| Line | Amount | % of revenue |",
        "| --- | ---: | ---: |",
        f"| Net Revenue | {record.waterfall.net_revenue} | 100 |",
        f"| Total COGM | {record.cogm.total} | |",
    ]
    for key, label in _WATERFALL_ROWS:
        figure = getattr(record.waterfall, key)
        lines.append(f"| {label} | {figure.amount} | {figure.percent} |")

    rec = record.reconciliation
    lines.append("")
    if rec is None:
        lines.append("Reconciliation: not available (no balance sheet).")
    else:
        lines.append(f"- Revenue variance: {rec.revenue_variance}")
        lines.append(f"- Profit variance: {rec.profit_variance}")
    lines.append("")
    return lines


def _write_markdown(report, out_path: Path) -> None:
    lines = [f"# MIS Report {report.start.key} .. {report.end.key}", ""]
    for record in report.periods:
        lines += _waterfall_lines(f"{record.period.label} ({record.fy_label})", record)
    if report.range_record is not None:
        lines += _waterfall_lines(
            f"Range {report.start.label} - {report.end.label}",
            report.range_record,
        )
    out_path.write_text("\n".join(lines))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Build MIS period (and range) records from a fixtures directory and write JSON/MD outputs."
    )
    parser.add_argument(
        "--fixtures-dir",
        default=None,
        help="Fixtures root holding <YYYY-MM>/<STATE>.json files and an optional rules.yaml.",
    )
    parser.add_argument("--start", required=True, help="First period (YYYY-MM).")
    parser.add_argument("--end", default=None, help="Last period (YYYY-MM); defaults to --start.")
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Output directory (defaults to the current directory).",
    )
    parser.add_argument(
        "--snapshots-dir",
        action="append",
        default=None,
        help="Also save per-period and range snapshots under this directory (repeatable).",
    )
    parser.add_argument("--config", default=None, help="Optional engine config YAML.")
    parser.add_argument("--log-level", default=None, help="Overrides MIS_LOG_LEVEL.")
    args = parser.parse_args(argv)

    _ensure_backend_on_path()
    from common.mis_engine.config import load_engine_config
    from common.mis_engine.logging_setup import configure_logging
    from common.mis_engine.models import Period
    from pipelines.data_source import get_data_source
    from pipelines.mis_report import range_scope, run_mis_report
    from pipelines.snapshots import LocalSnapshotStore, MultiSnapshotStore

    configure_logging(args.log_level)

    try:
        start = Period.from_key(args.start)
        end = Period.from_key(args.end) if args.end else start
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    if end < start:
        raise SystemExit("--end must not be before --start.")

    fixtures_root = Path(args.fixtures_dir).resolve() if args.fixtures_dir else None
    output_dir = Path(args.output_dir).resolve() if args.output_dir else Path(".").resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    config = load_engine_config(Path(args.config) if args.config else None)
    snapshot_store = None
    if args.snapshots_dir:
        snapshot_store = MultiSnapshotStore(
            tuple(LocalSnapshotStore(root_dir=Path(d).resolve()) for d in args.snapshots_dir)
        )
    source = get_data_source("fixtures", fixtures_root=fixtures_root, snapshot_store=snapshot_store)
    report = run_mis_report(source, start=start, end=end, config=config)

    written: list[Path] = []
    for record in report.periods:
        out_json = output_dir / f"mis_{record.period_key}.json"
        out_json.write_text(json.dumps(record.model_dump(mode="json"), indent=2))
        written.append(out_json)
    if report.range_record is not None:
        out_range = output_dir / f"mis_range_{range_scope(start, end)}.json"
        out_range.write_text(json.dumps(report.range_record.model_dump(mode="json"), indent=2))
        written.append(out_range)

    out_md = output_dir / f"mis_report_{range_scope(start, end)}.md"
    _write_markdown(report, out_md)
    written.append(out_md)

    if not report.periods:
        print(f"No period data between {start.key} and {end.key}.")
    for path in written:
        print(f"Wrote {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

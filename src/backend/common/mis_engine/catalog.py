from __future__ import annotations

import argparse
import json
from typing import Any, List

import yaml
from pydantic import BaseModel, Field

from .models import Head
from .system_rules import system_rules
from .taxonomy import HEADS_CONFIG


class HeadCatalogEntry(BaseModel):
    code: str
    head: Head
    head_type: str
    pl_line: str
    subheads: List[str] = Field(default_factory=list)
    system_rule_ids: List[str] = Field(default_factory=list)


def build_catalog() -> List[HeadCatalogEntry]:
    rules = system_rules()
    entries: List[HeadCatalogEntry] = []
    for head, config in HEADS_CONFIG.items():
        entries.append(
            HeadCatalogEntry(
                code=config.code,
                head=head,
                head_type=config.head_type.value,
                pl_line=config.pl_line,
                subheads=list(config.subheads),
                system_rule_ids=[rule.id for rule in rules if rule.head == head],
            )
        )
    entries.sort(key=lambda e: e.code)
    return entries


def _dump_json(catalog: list[dict[str, Any]]) -> str:
    return json.dumps(catalog, indent=2)


def _dump_yaml(catalog: list[dict[str, Any]]) -> str:
    return yaml.safe_dump(catalog, sort_keys=False)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Print the head/subhead taxonomy.")
    parser.add_argument(
        "--format",
        choices=("yaml", "json"),
        default="yaml",
        help="Output format (default: yaml).",
    )
    args = parser.parse_args(argv)

    catalog = [e.model_dump(mode="json") for e in build_catalog()]
    if args.format == "json":
        print(_dump_json(catalog))
    else:
        print(_dump_yaml(catalog))


if __name__ == "__main__":
    main()

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List

import yaml
from pydantic import ValidationError

from common.mis_engine.models import ClassificationRule


class RuleFileError(ValueError):
    pass


def _rule_items(raw: Any, path: Path) -> List[Any]:
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = raw.get("rules", [])
    if not isinstance(raw, list):
        raise RuleFileError(f"{path}: expected a list of rules or a mapping with a 'rules' list")
    return raw


def parse_rules(raw: Any, *, path: Path | str = "<memory>") -> List[ClassificationRule]:
    rules: List[ClassificationRule] = []
    seen: set[str] = set()
    for idx, item in enumerate(_rule_items(raw, Path(path))):
        if not isinstance(item, dict):
            raise RuleFileError(f"{path}: rule #{idx} is not a mapping")
        try:
            rule = ClassificationRule.model_validate(item)
        except ValidationError as exc:
            raise RuleFileError(f"{path}: rule #{idx} is invalid: {exc}") from exc
        if rule.id in seen:
            raise RuleFileError(f"{path}: duplicate rule id {rule.id!r}")
        seen.add(rule.id)
        rules.append(rule)
    return rules


def load_rules(path: Path) -> List[ClassificationRule]:
    """Read classification rules from YAML, keeping file order."""
    try:
        with Path(path).open() as handle:
            raw = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise RuleFileError(f"{path}: not valid YAML: {exc}") from exc
    return parse_rules(raw, path=path)


def dump_rules(rules: Iterable[ClassificationRule], path: Path) -> None:
    payload = {
        "rules": [
            rule.model_dump(mode="json", exclude_none=True)
            for rule in rules
        ]
    }
    Path(path).write_text(yaml.safe_dump(payload, sort_keys=False))

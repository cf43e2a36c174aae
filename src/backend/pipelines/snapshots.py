from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol


class SnapshotStore(Protocol):
    def save_json(self, *, scope: str, name: str, payload: dict[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class LocalSnapshotStore:
    root_dir: Path

    def save_json(self, *, scope: str, name: str, payload: dict[str, Any]) -> None:
        out_dir = self.root_dir / scope
        out_dir.mkdir(parents=True, exist_ok=True)
        out_path = out_dir / f"{name}.json"
        out_path.write_text(json.dumps(payload, indent=2))



@dataclass(frozen=True)
class MultiSnapshotStore:
    stores: tuple[SnapshotStore, ...]

    def save_json(self, *, scope: str, name: str, payload: dict[str, Any]) -> None:
        for store in self.stores:
            store.save_json(scope=scope, name=name, payload=payload)

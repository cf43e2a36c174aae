from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator


class MISEngineConfig(BaseModel):
    """Engine-wide settings shared by every period run."""

    # Opening/closing stock are read from this state only.
    primary_state: str = "UP"
    high_confidence_threshold: Decimal = Field(default=Decimal("0.8"), ge=0, le=1)
    medium_confidence_threshold: Decimal = Field(default=Decimal("0.5"), ge=0, le=1)
    # Optional quantization for reported figures (e.g. Decimal("0.01")). Intermediate sums stay exact.
    amount_quantize: Optional[Decimal] = None

    @model_validator(mode="after")
    def _thresholds_ordered(self) -> "MISEngineConfig":
        if self.medium_confidence_threshold > self.high_confidence_threshold:
            raise ValueError("medium_confidence_threshold must not exceed high_confidence_threshold")
        return self


def load_engine_config(path: Path | None = None) -> MISEngineConfig:
    """
    Load engine configuration.

    Order: model defaults, then the optional YAML file, then environment:
      MIS_PRIMARY_STATE, MIS_AMOUNT_QUANTIZE
    """
    load_dotenv()

    raw: Dict[str, Any] = {}
    if path is not None:
        with Path(path).open() as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Engine config {path} must contain a mapping.")
        raw.update(loaded)

    primary_state = os.getenv("MIS_PRIMARY_STATE", "").strip()
    if primary_state:
        raw["primary_state"] = primary_state
    quantize = os.getenv("MIS_AMOUNT_QUANTIZE", "").strip()
    if quantize:
        raw["amount_quantize"] = quantize

    return MISEngineConfig.model_validate(raw)

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError

from common.mis_engine import logging_setup
from common.mis_engine.config import MISEngineConfig, load_engine_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("MIS_PRIMARY_STATE", "MIS_AMOUNT_QUANTIZE", "MIS_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    # Keep a stray .env in the working directory out of these tests.
    monkeypatch.setattr("common.mis_engine.config.load_dotenv", lambda *a, **k: False)


def test_defaults():
    cfg = load_engine_config()
    assert cfg.primary_state == "UP"
    assert cfg.high_confidence_threshold == Decimal("0.8")
    assert cfg.medium_confidence_threshold == Decimal("0.5")
    assert cfg.amount_quantize is None


def test_yaml_then_env_override(tmp_path, monkeypatch):
    path = tmp_path / "engine.yaml"
    path.write_text("primary_state: MH\namount_quantize: '0.01'\nhigh_confidence_threshold: 0.9\n")

    cfg = load_engine_config(path)
    assert cfg.primary_state == "MH"
    assert cfg.amount_quantize == Decimal("0.01")
    assert cfg.high_confidence_threshold == Decimal("0.9")

    monkeypatch.setenv("MIS_PRIMARY_STATE", "HR")
    assert load_engine_config(path).primary_state == "HR"


def test_yaml_must_be_a_mapping(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_engine_config(path)


def test_thresholds_must_be_ordered():
    with pytest.raises(ValidationError):
        MISEngineConfig(high_confidence_threshold=Decimal("0.4"), medium_confidence_threshold=Decimal("0.6"))


def test_log_level_parsing(monkeypatch):
    assert logging_setup._parse_level("debug") == logging.DEBUG
    assert logging_setup._parse_level(30) == logging.WARNING
    monkeypatch.setenv("MIS_LOG_LEVEL", "error")
    assert logging_setup._parse_level(None) == logging.ERROR
    monkeypatch.setenv("MIS_LOG_LEVEL", "not-a-level")
    assert logging_setup._parse_level("also-bad") == logging.INFO


def test_library_loggers_live_under_package_logger():
    logger = logging_setup.get_logger("common.mis_engine.classifier")
    assert logger.name.startswith("common.mis_engine")
    assert logging.getLogger("common.mis_engine").handlers

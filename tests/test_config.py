"""Tests for settings loading."""
import logging

import pytest

from labelcheck.config import (
    DEFAULT_RULES_PATH,
    ComplianceConfig,
    config_from_dict,
    load_config,
)
from labelcheck.models import Severity


def test_default_settings_file():
    cfg = load_config()
    assert cfg.base_score == 100
    assert cfg.penalties == {Severity.CRITICAL: 15, Severity.WARNING: 7, Severity.RECOMMENDATION: 2}
    assert (cfg.low_risk_min, cfg.medium_risk_min) == (80, 60)
    assert cfg.fuzzy_threshold == 85
    assert cfg.rules_path == DEFAULT_RULES_PATH.resolve()
    assert cfg.default_product_name == "Unknown Product"


def test_missing_settings_file_uses_defaults(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="labelcheck.config"):
        cfg = load_config(tmp_path / "nope.yaml")
    assert cfg == ComplianceConfig()
    assert "not found" in caplog.text


def test_partial_penalties_keep_defaults():
    cfg = config_from_dict({"scoring": {"penalties": {"Warning": 5}}})
    assert cfg.penalties[Severity.WARNING] == 5
    assert cfg.penalties[Severity.CRITICAL] == 15


def test_unknown_severity_key():
    with pytest.raises(ValueError):
        config_from_dict({"scoring": {"penalties": {"Fatal": 50}}})


def test_negative_penalty():
    with pytest.raises(ValueError):
        config_from_dict({"scoring": {"penalties": {"Critical": -1}}})


def test_risk_bands_must_be_ordered():
    with pytest.raises(ValueError):
        config_from_dict({"risk_levels": {"low": 50, "medium": 60}})


def test_relative_rules_path_resolves_against_settings_dir(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text("catalog:\n  path: my_rules.yaml\nmatching:\n  fuzzy_threshold: 0\n", encoding="utf-8")
    cfg = load_config(settings)
    assert cfg.rules_path == tmp_path.resolve() / "my_rules.yaml"
    assert cfg.fuzzy_threshold == 0

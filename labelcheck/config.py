"""
Load settings.yaml into an immutable ComplianceConfig. The config object is passed
explicitly to the catalog and engine; nothing here is mutated after load.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .models import Severity

_logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_SETTINGS_PATH = CONFIG_DIR / "settings.yaml"
DEFAULT_RULES_PATH = CONFIG_DIR / "rules.yaml"

# Score penalty per distinct failed rule.
DEFAULT_PENALTIES: dict[Severity, float] = {
    Severity.CRITICAL: 15,
    Severity.WARNING: 7,
    Severity.RECOMMENDATION: 2,
}


@dataclass(frozen=True)
class ComplianceConfig:
    rules_path: Path = DEFAULT_RULES_PATH
    base_score: int = 100
    penalties: dict[Severity, float] = field(default_factory=lambda: dict(DEFAULT_PENALTIES))
    low_risk_min: int = 80
    medium_risk_min: int = 60
    fuzzy_threshold: float = 85.0
    fuzzy_min_token_length: int = 5
    default_product_name: str = "Unknown Product"


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _parse_penalties(raw: dict[str, Any] | None) -> dict[Severity, float]:
    penalties = dict(DEFAULT_PENALTIES)
    for key, value in (raw or {}).items():
        sev = Severity(key)
        amount = float(value)
        if amount < 0:
            raise ValueError(f"Penalty for {sev.value} must not be negative: {value}")
        penalties[sev] = amount
    return penalties


def config_from_dict(data: dict[str, Any], base_dir: Path | None = None) -> ComplianceConfig:
    """Build a config from the parsed settings mapping. Relative rule paths resolve against base_dir."""
    scoring = data.get("scoring", {}) or {}
    risk = data.get("risk_levels", {}) or {}
    matching = data.get("matching", {}) or {}
    report = data.get("report", {}) or {}
    catalog = data.get("catalog", {}) or {}

    rules_path = DEFAULT_RULES_PATH
    if catalog.get("path"):
        rules_path = Path(catalog["path"])
        if not rules_path.is_absolute():
            rules_path = (base_dir or CONFIG_DIR) / rules_path

    low_min = int(risk.get("low", 80))
    medium_min = int(risk.get("medium", 60))
    if medium_min > low_min:
        raise ValueError(f"risk_levels.medium ({medium_min}) must not exceed risk_levels.low ({low_min})")

    return ComplianceConfig(
        rules_path=rules_path,
        base_score=int(scoring.get("base", 100)),
        penalties=_parse_penalties(scoring.get("penalties")),
        low_risk_min=low_min,
        medium_risk_min=medium_min,
        fuzzy_threshold=float(matching.get("fuzzy_threshold", 85)),
        fuzzy_min_token_length=int(matching.get("fuzzy_min_token_length", 5)),
        default_product_name=str(report.get("default_product_name", "Unknown Product")),
    )


def load_config(path: str | Path | None = None) -> ComplianceConfig:
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    if not settings_path.exists():
        _logger.warning("Settings file not found at %s; using defaults.", settings_path)
        return ComplianceConfig()
    return config_from_dict(_read_yaml(settings_path), base_dir=settings_path.resolve().parent)

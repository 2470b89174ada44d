"""
Rule catalog: loads config/rules.yaml once into immutable Rule objects and answers
"which rules apply to (category, jurisdiction)" in catalog order.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from ..config import ComplianceConfig, load_config
from ..models import (
    CatalogError,
    CertificationPresence,
    Condition,
    ConditionalRule,
    Detection,
    NumericFieldPresence,
    PhraseAbsence,
    PhrasePresence,
    Rule,
    Severity,
    UnknownCategory,
    UnknownJurisdiction,
)

_logger = logging.getLogger(__name__)


def _load_rules_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise CatalogError(f"Rules file not found at {path}")
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CatalogError(f"Rules file {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise CatalogError(f"Rules file {path} must contain a mapping at the top level")
    return data


def _str_tuple(value: Any, what: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    out = tuple(str(v).strip() for v in value if str(v).strip())
    if not out:
        raise CatalogError(f"{what} must not be empty")
    return out


def _alias_index(section: dict[str, Any], what: str) -> tuple[list[str], dict[str, str]]:
    if not section:
        raise CatalogError(f"No {what} registered in rules file")
    names: list[str] = []
    index: dict[str, str] = {}
    for name, aliases in section.items():
        name = str(name)
        names.append(name)
        for key in [name, *(aliases or [])]:
            index[str(key).strip().lower()] = name
    return names, index


class RuleCatalog:
    """
    Read-only after construction. Safe to share between threads.
    Rules apply to every registered category/jurisdiction unless they list their own scope.
    """

    def __init__(self, config: ComplianceConfig | None = None, rules_path: Path | None = None):
        self._config = config or load_config()
        self._path = Path(rules_path) if rules_path else self._config.rules_path
        data = _load_rules_file(self._path)

        self._version = str(data.get("version", ""))
        self._categories, self._category_index = _alias_index(data.get("categories") or {}, "categories")
        self._jurisdictions, self._jurisdiction_index = _alias_index(data.get("jurisdictions") or {}, "jurisdictions")
        vocab = data.get("vocabulary") or {}
        self._marks = tuple(str(m) for m in vocab.get("certification_marks") or ())

        self._rules: list[Rule] = []
        self._by_id: dict[str, Rule] = {}
        for item in data.get("rules") or []:
            rule = self._build_rule(item)
            if rule.id in self._by_id:
                raise CatalogError(f"Duplicate rule id '{rule.id}'")
            self._rules.append(rule)
            self._by_id[rule.id] = rule

        self._by_pair: dict[tuple[str, str], tuple[Rule, ...]] = {}
        for cat in self._categories:
            for jur in self._jurisdictions:
                rules = tuple(r for r in self._rules if r.applies_to(cat, jur))
                if not rules:
                    raise CatalogError(f"No rules registered for ({cat}, {jur})")
                self._by_pair[(cat, jur)] = rules

        _logger.info("Loaded %d rules (version %s) from %s", len(self._rules), self._version or "-", self._path)

    # -- construction -------------------------------------------------------

    def _scope(self, raw: Any, names: list[str], index: dict[str, str], what: str, rule_id: str) -> tuple[str, ...]:
        if raw in (None, "*", "all"):
            return tuple(names)
        resolved = []
        for value in _str_tuple(raw, f"{rule_id}.{what}"):
            name = index.get(value.lower())
            if name is None:
                raise CatalogError(f"Rule '{rule_id}' is scoped to unregistered {what[:-1]} '{value}'")
            if name not in resolved:
                resolved.append(name)
        return tuple(resolved)

    def _build_condition(self, raw: dict[str, Any], rule_id: str) -> Condition:
        cats = self._scope(raw["categories"], self._categories, self._category_index, "categories", rule_id) \
            if raw.get("categories") else ()
        jurs = self._scope(raw["jurisdictions"], self._jurisdictions, self._jurisdiction_index, "jurisdictions", rule_id) \
            if raw.get("jurisdictions") else ()
        text = _str_tuple(raw.get("text_contains"), f"{rule_id}.when.text_contains") if raw.get("text_contains") else ()
        if not (cats or jurs or text):
            raise CatalogError(f"Rule '{rule_id}' has a condition with no clauses")
        return Condition(categories=cats, jurisdictions=jurs, text_contains=text)

    def _build_detection(self, raw: dict[str, Any], rule_id: str) -> Detection:
        if not isinstance(raw, dict):
            raise CatalogError(f"Rule '{rule_id}' has no detection mapping")
        kind = raw.get("type")
        if kind == "phrase_presence":
            return PhrasePresence(_str_tuple(raw.get("phrases"), f"{rule_id}.phrases"))
        if kind == "phrase_absence":
            return PhraseAbsence(_str_tuple(raw.get("phrases"), f"{rule_id}.phrases"))
        if kind == "certification_presence":
            return CertificationPresence(_str_tuple(raw.get("marks"), f"{rule_id}.marks"))
        if kind == "numeric_field_presence":
            try:
                return NumericFieldPresence(str(raw.get("field")))
            except ValueError as e:
                raise CatalogError(f"Rule '{rule_id}': {e}") from e
        if kind == "conditional":
            when = raw.get("when")
            then = raw.get("then")
            if not isinstance(when, dict) or not isinstance(then, dict):
                raise CatalogError(f"Rule '{rule_id}': conditional detection needs 'when' and 'then'")
            return ConditionalRule(when=self._build_condition(when, rule_id), then=self._build_detection(then, rule_id))
        raise CatalogError(f"Rule '{rule_id}' has unknown detection type '{kind}'")

    def _build_rule(self, item: dict[str, Any]) -> Rule:
        rule_id = str(item.get("id") or "").strip()
        if not rule_id:
            raise CatalogError(f"Rule without id: {item!r}")
        try:
            severity = Severity(item.get("severity"))
        except ValueError as e:
            raise CatalogError(f"Rule '{rule_id}' has unknown severity '{item.get('severity')}'") from e
        description = str(item.get("description") or "").strip()
        recommendation = str(item.get("recommendation") or "").strip()
        if not description or not recommendation:
            raise CatalogError(f"Rule '{rule_id}' needs a description and a recommendation")
        return Rule(
            id=rule_id,
            categories=self._scope(item.get("categories"), self._categories, self._category_index, "categories", rule_id),
            jurisdictions=self._scope(item.get("jurisdictions"), self._jurisdictions, self._jurisdiction_index, "jurisdictions", rule_id),
            severity=severity,
            description=description,
            detection=self._build_detection(item.get("detection"), rule_id),
            recommendation=recommendation,
            details=_norm_ws(item.get("details")),
            location=_norm_ws(item.get("location")),
        )

    # -- queries ------------------------------------------------------------

    @property
    def version(self) -> str:
        return self._version

    @property
    def config(self) -> ComplianceConfig:
        return self._config

    def resolve_category(self, category: str) -> str:
        name = self._category_index.get((category or "").strip().lower())
        if name is None:
            raise UnknownCategory(
                f"Unknown category '{category}'. Must be one of: {', '.join(self._categories)}"
            )
        return name

    def resolve_jurisdiction(self, jurisdiction: str) -> str:
        name = self._jurisdiction_index.get((jurisdiction or "").strip().lower())
        if name is None:
            raise UnknownJurisdiction(
                f"Unknown jurisdiction '{jurisdiction}'. Must be one of: {', '.join(self._jurisdictions)}"
            )
        return name

    def rules_for(self, category: str, jurisdiction: str) -> tuple[Rule, ...]:
        cat = self.resolve_category(category)
        jur = self.resolve_jurisdiction(jurisdiction)
        return self._by_pair[(cat, jur)]

    def get(self, rule_id: str) -> Rule | None:
        return self._by_id.get(rule_id)

    def all_rules(self) -> tuple[Rule, ...]:
        return tuple(self._rules)

    def categories(self) -> list[str]:
        return list(self._categories)

    def jurisdictions(self) -> list[str]:
        return list(self._jurisdictions)

    def certification_marks(self) -> tuple[str, ...]:
        return self._marks

    def available_options(self) -> dict[str, Any]:
        return {
            "categories": self.categories(),
            "jurisdictions": self.jurisdictions(),
            "supportedMarkets": {
                jur: [cat for cat in self._categories if (cat, jur) in self._by_pair]
                for jur in self._jurisdictions
            },
            "version": self._version,
        }


def _norm_ws(s: Any) -> str:
    return " ".join(str(s or "").split())

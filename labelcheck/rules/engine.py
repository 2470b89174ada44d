"""
Run the catalog rules for a category across one or more jurisdictions and build the report:
score, issues bucketed by severity, recommendations, extracted label fields.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Iterable

from ..config import ComplianceConfig
from ..extraction import extract_info
from ..matching import normalize_text
from ..models import (
    SEVERITY_ORDER,
    ComplianceCheckRequest,
    ComplianceReport,
    ComplianceRequestError,
    ExtractedInfo,
    Rule,
    Verdict,
)
from ..scoring import compute_score
from .catalog import RuleCatalog
from .evaluator import EvaluationContext, evaluate_rule

_logger = logging.getLogger(__name__)


class ComplianceEngine:
    """
    Stateless apart from the catalog and config it was built with; every check is
    independent and repeated calls with the same input give the same report.
    """

    def __init__(self, catalog: RuleCatalog | None = None, config: ComplianceConfig | None = None):
        self._catalog = catalog or RuleCatalog(config=config)
        self._config = config or self._catalog.config

    @property
    def catalog(self) -> RuleCatalog:
        return self._catalog

    @property
    def config(self) -> ComplianceConfig:
        return self._config

    def available_options(self) -> dict[str, Any]:
        return self._catalog.available_options()

    # -- request resolution ---------------------------------------------------

    def _resolve(self, category: str, jurisdictions: Iterable[str] | str) -> tuple[str, tuple[str, ...]]:
        cat = self._catalog.resolve_category(category)
        if isinstance(jurisdictions, str):
            jurisdictions = [jurisdictions]
        resolved: list[str] = []
        for j in jurisdictions or ():
            name = self._catalog.resolve_jurisdiction(j)
            if name not in resolved:
                resolved.append(name)
        if not resolved:
            raise ComplianceRequestError("At least one jurisdiction is required")
        return cat, tuple(resolved)

    def _collect_rules(self, category: str, jurisdictions: tuple[str, ...]) -> list[Rule]:
        """Jurisdictions in request order, rules in catalog order; a rule shared by several runs once."""
        seen: set[str] = set()
        rules: list[Rule] = []
        for jur in jurisdictions:
            for rule in self._catalog.rules_for(category, jur):
                if rule.id not in seen:
                    seen.add(rule.id)
                    rules.append(rule)
        return rules

    # -- checking ---------------------------------------------------------------

    def perform_compliance_check(
        self,
        text: str,
        category: str,
        jurisdictions: Iterable[str] | str,
        info: ExtractedInfo | None = None,
    ) -> tuple[list[Verdict], int]:
        """
        Evaluate every applicable rule once and score the result.
        Raises UnknownCategory / UnknownJurisdiction before any rule runs.
        Empty or whitespace-only text scores 0 with every rule failed as Critical.
        """
        cat, jurs = self._resolve(category, jurisdictions)
        s = normalize_text(text)
        if info is None:
            info = extract_info(s, self._catalog.certification_marks())

        ctx = EvaluationContext(
            category=cat,
            jurisdictions=jurs,
            fuzzy_threshold=self._config.fuzzy_threshold,
            fuzzy_min_token_length=self._config.fuzzy_min_token_length,
        )
        verdicts = [evaluate_rule(rule, s, info, ctx) for rule in self._collect_rules(cat, jurs)]

        if not s:
            score = 0
        else:
            score = compute_score(verdicts, self._config.penalties, base=self._config.base_score)

        _logger.debug(
            "Checked %s for %s: %d rules, %d failed, score %d",
            cat, ", ".join(jurs), len(verdicts), sum(1 for v in verdicts if not v.passed), score,
        )
        return verdicts, score

    def generate_report(
        self,
        verdicts: list[Verdict],
        score: int,
        info: ExtractedInfo | None = None,
        category: str = "",
        jurisdictions: Iterable[str] = (),
    ) -> ComplianceReport:
        info = info or ExtractedInfo()
        buckets: dict[str, list[str]] = {s.value: [] for s in SEVERITY_ORDER}
        recommendations: list[str] = []
        passed = 0
        for v in verdicts:
            if v.passed:
                passed += 1
                continue
            buckets[v.severity.value].append(v.issue_text)
            if v.recommendation and v.recommendation not in recommendations:
                recommendations.append(v.recommendation)

        return ComplianceReport(
            product_name=info.product_name or self._config.default_product_name,
            compliance_score=score,
            issues={k: tuple(v) for k, v in buckets.items()},
            recommendations=tuple(recommendations),
            extracted_info=info,
            category=category,
            jurisdictions=tuple(jurisdictions),
            total_rules=len(verdicts),
            passed_rules=passed,
            failed_rules=len(verdicts) - passed,
            catalog_version=self._catalog.version,
        )

    def check(self, text: str, category: str, jurisdictions: Iterable[str] | str) -> ComplianceReport:
        """Extract once, evaluate, report."""
        cat, jurs = self._resolve(category, jurisdictions)
        info = extract_info(text, self._catalog.certification_marks())
        verdicts, score = self.perform_compliance_check(text, cat, jurs, info=info)
        return self.generate_report(verdicts, score, info, category=cat, jurisdictions=jurs)

    def check_request(self, request: ComplianceCheckRequest) -> ComplianceReport:
        return self.check(request.text, request.category, request.jurisdictions)


@lru_cache(maxsize=1)
def get_default_engine() -> ComplianceEngine:
    """Process-wide engine over the default settings and catalog. Built on first use."""
    return ComplianceEngine()

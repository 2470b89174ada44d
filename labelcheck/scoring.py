"""
Map verdicts to a 0-100 score, a risk level, and an overall status:
compliant / warning / non-compliant.
"""
from __future__ import annotations

import math
from typing import Iterable, Mapping

from .models import SEVERITY_ORDER, ComplianceReport, Severity, Verdict


def compute_score(
    verdicts: Iterable[Verdict],
    penalties: Mapping[Severity, float],
    base: int = 100,
) -> int:
    """Subtract one penalty per distinct failed rule, then floor and clamp to [0, 100]."""
    seen: set[str] = set()
    score = float(base)
    for v in verdicts:
        if v.passed or v.rule_id in seen:
            continue
        seen.add(v.rule_id)
        score -= penalties.get(v.severity, 0)
    return max(0, min(100, math.floor(score)))


def risk_level(score: int, low_min: int = 80, medium_min: int = 60) -> str:
    if score >= low_min:
        return "low"
    if score >= medium_min:
        return "medium"
    return "high"


def compute_overall_status(report: ComplianceReport) -> tuple[str, dict[str, int]]:
    counts = {s.value: len(report.issues_for(s)) for s in SEVERITY_ORDER}
    counts["pass"] = report.passed_rules

    if counts[Severity.CRITICAL.value] > 0:
        overall = "non-compliant"
    elif counts[Severity.WARNING.value] > 0 or counts[Severity.RECOMMENDATION.value] > 0:
        overall = "warning"
    else:
        overall = "compliant"

    return overall, counts

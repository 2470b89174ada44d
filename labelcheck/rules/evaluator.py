"""
Evaluate a single Rule against label text. One branch per detection strategy;
every call returns a Verdict, whatever the text looks like.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..matching import contains_certification_mark, find_phrase
from ..models import (
    CertificationPresence,
    Condition,
    ConditionalRule,
    Detection,
    ExtractedInfo,
    NumericFieldPresence,
    PhraseAbsence,
    PhrasePresence,
    Rule,
    Severity,
    Verdict,
)

INSUFFICIENT_TEXT_MESSAGE = "Insufficient label text to evaluate this requirement."
NOT_APPLICABLE_MESSAGE = "Not applicable to this label."

_FIELD_LABELS = {
    "weight": "net quantity",
    "batch_number": "batch/lot number",
    "age_grading": "age grading",
}


@dataclass(frozen=True)
class EvaluationContext:
    category: str
    jurisdictions: tuple[str, ...]
    fuzzy_threshold: float = 0
    fuzzy_min_token_length: int = 5


def _preview(phrases: tuple[str, ...], limit: int = 3) -> str:
    shown = ", ".join(f"'{p}'" for p in phrases[:limit])
    return shown + (", ..." if len(phrases) > limit else "")


def _condition_holds(cond: Condition, text: str, ctx: EvaluationContext) -> bool:
    if cond.categories and ctx.category not in cond.categories:
        return False
    if cond.jurisdictions and not any(j in cond.jurisdictions for j in ctx.jurisdictions):
        return False
    if cond.text_contains and find_phrase(text, cond.text_contains) is None:
        return False
    return True


def _detect(detection: Detection, text: str, info: ExtractedInfo, ctx: EvaluationContext) -> tuple[bool, str | None, str]:
    """Return (passed, evidence, message)."""
    if isinstance(detection, PhrasePresence):
        hit = find_phrase(text, detection.phrases, ctx.fuzzy_threshold, ctx.fuzzy_min_token_length)
        if hit is not None:
            return True, hit, f"Found '{hit}'."
        return False, None, f"Required statement not found (expected e.g. {_preview(detection.phrases)})."

    if isinstance(detection, PhraseAbsence):
        # Exact match only: OCR noise must never produce a prohibited claim.
        hit = find_phrase(text, detection.phrases)
        if hit is not None:
            return False, hit, f"Prohibited wording found: '{hit}'."
        return True, None, "No prohibited wording found."

    if isinstance(detection, CertificationPresence):
        mark = contains_certification_mark(text, detection.marks)
        if mark is not None:
            return True, mark, f"Certification mark '{mark}' found."
        return False, None, f"No accepted certification mark found (expected one of: {', '.join(detection.marks)})."

    if isinstance(detection, NumericFieldPresence):
        label = _FIELD_LABELS.get(detection.field, detection.field)
        value = info.field_value(detection.field)
        if value:
            return True, str(value), f"{label.capitalize()} found: {value}."
        return False, None, f"No {label} found on label."

    if isinstance(detection, ConditionalRule):
        if not _condition_holds(detection.when, text, ctx):
            return True, None, NOT_APPLICABLE_MESSAGE
        return _detect(detection.then, text, info, ctx)

    raise TypeError(f"Unsupported detection type: {type(detection).__name__}")


def evaluate_rule(rule: Rule, text: str, info: ExtractedInfo, ctx: EvaluationContext) -> Verdict:
    if not text or not text.strip():
        return Verdict(
            rule_id=rule.id,
            passed=False,
            severity=Severity.CRITICAL,
            message=INSUFFICIENT_TEXT_MESSAGE,
            description=rule.description,
            evidence_snippet=None,
            recommendation=rule.recommendation,
            details=rule.details,
            location=rule.location,
        )

    passed, evidence, message = _detect(rule.detection, text, info, ctx)
    return Verdict(
        rule_id=rule.id,
        passed=passed,
        severity=rule.severity,
        message=message,
        description=rule.description,
        evidence_snippet=evidence,
        recommendation=None if passed else rule.recommendation,
        details=rule.details,
        location=rule.location,
    )

"""
Typed records shared by the catalog, evaluator and engine:
Rule (with its detection strategy), Verdict, ExtractedInfo, ComplianceReport.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ComplianceRequestError(ValueError):
    """The caller asked for something the catalog cannot check."""


class UnknownCategory(ComplianceRequestError):
    """Category is not registered in the rule catalog."""


class UnknownJurisdiction(ComplianceRequestError):
    """Jurisdiction is not registered in the rule catalog."""


class CatalogError(Exception):
    """Rule file is missing or malformed."""


class Severity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"
    RECOMMENDATION = "Recommendation"


SEVERITY_ORDER: tuple[Severity, ...] = (Severity.CRITICAL, Severity.WARNING, Severity.RECOMMENDATION)

NUMERIC_FIELDS = ("weight", "batch_number", "age_grading")


# ---------------------------------------------------------------------------
# Detection strategies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PhrasePresence:
    phrases: tuple[str, ...]
    kind: str = field(default="phrase_presence", init=False)


@dataclass(frozen=True)
class PhraseAbsence:
    phrases: tuple[str, ...]
    kind: str = field(default="phrase_absence", init=False)


@dataclass(frozen=True)
class CertificationPresence:
    marks: tuple[str, ...]
    kind: str = field(default="certification_presence", init=False)


@dataclass(frozen=True)
class NumericFieldPresence:
    field: str
    kind: str = field(default="numeric_field_presence", init=False)

    def __post_init__(self) -> None:
        if self.field not in NUMERIC_FIELDS:
            raise ValueError(f"Unknown numeric field '{self.field}' (expected one of {', '.join(NUMERIC_FIELDS)})")


@dataclass(frozen=True)
class Condition:
    """All given clauses must hold. Empty clauses are ignored."""
    categories: tuple[str, ...] = ()
    jurisdictions: tuple[str, ...] = ()
    text_contains: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConditionalRule:
    when: Condition
    then: "Detection"
    kind: str = field(default="conditional", init=False)


Detection = Union[PhrasePresence, PhraseAbsence, CertificationPresence, NumericFieldPresence, ConditionalRule]


# ---------------------------------------------------------------------------
# Rules and verdicts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rule:
    id: str
    categories: tuple[str, ...]
    jurisdictions: tuple[str, ...]
    severity: Severity
    description: str
    detection: Detection
    recommendation: str
    details: str = ""
    location: str = ""

    def applies_to(self, category: str, jurisdiction: str) -> bool:
        return category in self.categories and jurisdiction in self.jurisdictions


@dataclass(frozen=True)
class Verdict:
    rule_id: str
    passed: bool
    severity: Severity
    message: str
    description: str = ""
    evidence_snippet: str | None = None
    recommendation: str | None = None
    details: str = ""
    location: str = ""

    @property
    def issue_text(self) -> str:
        return f"{self.description} - {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "passed": self.passed,
            "severity": self.severity.value,
            "description": self.description,
            "message": self.message,
            "evidenceSnippet": self.evidence_snippet,
            "recommendation": self.recommendation,
            "details": self.details,
            "location": self.location,
        }


# ---------------------------------------------------------------------------
# Extracted label fields
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Weight:
    value: float
    unit: str

    def __str__(self) -> str:
        return f"{self.value:g} {self.unit}"

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "unit": self.unit}


@dataclass(frozen=True)
class ExtractedInfo:
    ingredients: tuple[str, ...] | None = None
    warnings: tuple[str, ...] | None = None
    certifications: tuple[str, ...] | None = None
    batch_number: str | None = None
    weight: Weight | None = None
    manufacturer: str | None = None
    age_grading: str | None = None
    product_name: str | None = None

    def field_value(self, name: str) -> Any:
        return getattr(self, name, None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ingredients": list(self.ingredients) if self.ingredients is not None else None,
            "warnings": list(self.warnings) if self.warnings is not None else None,
            "certifications": list(self.certifications) if self.certifications is not None else None,
            "batchNumber": self.batch_number,
            "weight": self.weight.to_dict() if self.weight else None,
            "manufacturer": self.manufacturer,
            "ageGrading": self.age_grading,
        }


# ---------------------------------------------------------------------------
# Request and report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ComplianceCheckRequest:
    text: str
    category: str
    jurisdictions: tuple[str, ...]

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ComplianceCheckRequest":
        jurisdictions = d.get("jurisdictions") or d.get("marketplaces") or ()
        if isinstance(jurisdictions, str):
            jurisdictions = (jurisdictions,)
        return cls(
            text=d.get("text") or "",
            category=d.get("category") or "",
            jurisdictions=tuple(jurisdictions),
        )


@dataclass(frozen=True)
class ComplianceReport:
    product_name: str
    compliance_score: int
    issues: dict[str, tuple[str, ...]]
    recommendations: tuple[str, ...]
    extracted_info: ExtractedInfo
    category: str = ""
    jurisdictions: tuple[str, ...] = ()
    total_rules: int = 0
    passed_rules: int = 0
    failed_rules: int = 0
    catalog_version: str = ""

    def issues_for(self, severity: Severity) -> tuple[str, ...]:
        return self.issues.get(severity.value, ())

    def to_dict(self) -> dict[str, Any]:
        return {
            "productName": self.product_name,
            "complianceScore": self.compliance_score,
            "issues": {s.value: list(self.issues.get(s.value, ())) for s in SEVERITY_ORDER},
            "recommendations": list(self.recommendations),
            "extractedInfo": self.extracted_info.to_dict(),
            "category": self.category,
            "jurisdictions": list(self.jurisdictions),
            "totalRules": self.total_rules,
            "passedRules": self.passed_rules,
            "failedRules": self.failed_rules,
            "catalogVersion": self.catalog_version,
        }

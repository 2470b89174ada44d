"""
Single pipeline: OCR result + category + jurisdictions -> text -> compliance check -> scoring.
"""
from __future__ import annotations

from typing import Any

from .models import ComplianceRequestError
from .rules.engine import ComplianceEngine, get_default_engine
from .scoring import compute_overall_status, risk_level


def _block_sort_key(b: dict) -> tuple[int, int]:
    box = b.get("bbox") or [0, 0, 0, 0]
    return box[1], box[0]


def _mean_confidence(items: list[dict]) -> float | None:
    values = [float(b["confidence"]) for b in items if b.get("confidence") is not None]
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def ocr_to_text(ocr_input: Any) -> tuple[str, float | None]:
    """
    Flatten an OCR result to label text. Returns (text, mean confidence or None).

    ocr_input: plain str; a mapping with "text" (or "lines" / "words" lists of str or
               {"text", "confidence"}); or a list of blocks {"text", "bbox", "confidence"}
               which are read top to bottom, left to right.
    """
    if ocr_input is None:
        return "", None
    if isinstance(ocr_input, str):
        return ocr_input, None

    if isinstance(ocr_input, dict):
        confidence = ocr_input.get("confidence")
        if ocr_input.get("text"):
            return str(ocr_input["text"]), float(confidence) if confidence is not None else None
        for key, sep in (("lines", "\n"), ("words", " ")):
            items = ocr_input.get(key)
            if items:
                parts = [i if isinstance(i, str) else str(i.get("text", "")) for i in items]
                if confidence is None:
                    confidence = _mean_confidence([i for i in items if isinstance(i, dict)])
                return sep.join(p for p in parts if p.strip()), float(confidence) if confidence is not None else None
        return "", float(confidence) if confidence is not None else None

    if isinstance(ocr_input, (list, tuple)):
        blocks = [b if isinstance(b, dict) else {"text": str(b)} for b in ocr_input]
        if any(b.get("bbox") for b in blocks):
            blocks = sorted(blocks, key=_block_sort_key)
        text = "\n".join(str(b.get("text", "")) for b in blocks if str(b.get("text", "")).strip())
        return text, _mean_confidence(blocks)

    raise TypeError(f"Unsupported OCR input type: {type(ocr_input).__name__}")


def run_pipeline(
    ocr_input: Any,
    category: str,
    jurisdictions: Any,
    engine: ComplianceEngine | None = None,
) -> dict[str, Any]:
    """
    Returns: {
        "text": flattened label text,
        "report": ComplianceReport.to_dict(),
        "overall_status": "compliant" | "warning" | "non-compliant",
        "risk_level": "low" | "medium" | "high",
        "counts": {"Critical": N, "Warning": N, "Recommendation": N, "pass": N},
        "ocr_confidence": float | None,
    }
    An unknown category or jurisdiction is returned as "error" with overall_status "rejected".
    """
    engine = engine or get_default_engine()
    text, confidence = ocr_to_text(ocr_input)

    try:
        report = engine.check(text, category, jurisdictions)
    except ComplianceRequestError as e:
        return {
            "text": text,
            "report": None,
            "overall_status": "rejected",
            "risk_level": None,
            "counts": {},
            "ocr_confidence": confidence,
            "error": str(e),
        }

    overall, counts = compute_overall_status(report)
    cfg = engine.config
    return {
        "text": text,
        "report": report.to_dict(),
        "overall_status": overall,
        "risk_level": risk_level(report.compliance_score, cfg.low_risk_min, cfg.medium_risk_min),
        "counts": counts,
        "ocr_confidence": confidence,
    }

"""
Best-effort field extraction from label text.
Returns ExtractedInfo; a field that cannot be found is None, never an error.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Iterable

from .matching import (
    extract_age_grading,
    extract_batch_number,
    extract_weight,
    find_certification_marks,
    normalize_text,
)
from .models import ExtractedInfo

_logger = logging.getLogger(__name__)


def _norm(s: str | None) -> str:
    return " ".join((s or "").split()).strip()


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            out.append(item)
    return out


# ---------------------------------------------------------------------------
# Ingredients
# ---------------------------------------------------------------------------

_INGREDIENTS_HEADERS = r"(?:ingredients?(?:\slist)?|inci|inhaltsstoffe|bestandteile|ingr[ée]dients|composition)"
# At a line start the separator is optional; mid-line ("Face Cream Ingredients: ...") it must be a colon.
_INGREDIENTS_HEADER_RE = re.compile(
    r"(?:^[ \t]*" + _INGREDIENTS_HEADERS + r"\b\s?[:\-]?|\b" + _INGREDIENTS_HEADERS + r"\s?:)\s?([^\n]*)",
    re.I | re.M,
)
_SENTENCE_END_RE = re.compile(r"\.\s")


def extract_ingredients(text: str) -> tuple[str, ...] | None:
    """
    'Ingredients: Aqua, Glycerin; Parfum.' -> ('Aqua', 'Glycerin', 'Parfum').
    The list ends at the line end or the first '. '; an empty header line continues on the next line.
    """
    m = _INGREDIENTS_HEADER_RE.search(text)
    if not m:
        return None
    body = m.group(1).strip()
    if not body:
        rest = text[m.end():].lstrip("\n")
        body = rest.split("\n", 1)[0]
    body = _SENTENCE_END_RE.split(body, maxsplit=1)[0]
    parts = [p.strip(" .*") for p in re.split(r"[,;]", body)]
    items = _dedupe(p for p in parts if len(p) >= 2)
    return tuple(items) or None


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------

_WARNING_RE = re.compile(
    r"\b(?:warning|caution|danger|achtung|warnhinweis|vorsicht)\b\s?[:!\-]?\s?[^\n]*",
    re.I,
)
_HAZARD_LINE_RE = re.compile(
    r"^[^\n]*\b(?:choking hazard|keep out of reach|not for children under|not suitable for children|"
    r"erstickungsgefahr|außer reichweite)[^\n]*$",
    re.I | re.M,
)


def extract_warnings(text: str) -> tuple[str, ...] | None:
    statements = [_norm(m.group(0)) for m in _WARNING_RE.finditer(text)]
    for m in _HAZARD_LINE_RE.finditer(text):
        line = _norm(m.group(0))
        if not any(line in s or s in line for s in statements):
            statements.append(line)
    items = _dedupe(s.rstrip(" .") for s in statements if len(s) > 3)
    return tuple(items) or None


# ---------------------------------------------------------------------------
# Manufacturer
# ---------------------------------------------------------------------------

_MANUFACTURER_LABEL_RE = re.compile(
    r"\b(?:manufactured by|made by|produced by|distributed by|imported by|manufacturer|"
    r"hergestellt von|hersteller)\b\s?[:\-]?\s?([^\n]+)",
    re.I,
)
_COMPANY_SUFFIX_RE = re.compile(r"\b(?:inc|ltd|llc|gmbh|corp|corporation|limited|plc)\b\.?", re.I)


def extract_manufacturer(text: str) -> str | None:
    """Labelled line ('Manufactured by: ToyCo Ltd, Leeds') wins; else first line with a company suffix."""
    for m in _MANUFACTURER_LABEL_RE.finditer(text):
        value = _norm(m.group(1)).strip(" ,.;")
        if len(value) > 2:
            return value
    for line in text.split("\n"):
        m = _COMPANY_SUFFIX_RE.search(line)
        if m:
            value = _norm(line[:m.end()])
            if len(value) > len(m.group(0)):
                return value
    return None


# ---------------------------------------------------------------------------
# Product name
# ---------------------------------------------------------------------------

_FIELD_LABELS = (
    r"(?:ingredients?|inci|inhaltsstoffe|warning|caution|achtung|warnhinweis|vorsicht|danger|"
    r"batch|lot|charge|net\b|nettogewicht|inhalt|manufactured|made\s(?:by|in)|produced|distributed|"
    r"imported|hersteller|hergestellt|ages?\b|www\.|https?:)"
)
_LABEL_LINE_RE = re.compile(r"^" + _FIELD_LABELS, re.I)
# A field label later on the line ("Face Cream Ingredients: Aqua") ends the name.
_INLINE_LABEL_RE = re.compile(r"\s" + _FIELD_LABELS + r"\b[^\n:]{0,12}:", re.I)


def extract_product_name(text: str) -> str | None:
    """First line longer than three characters among the first five that is not a labelled field."""
    lines = [_norm(line) for line in text.split("\n")][:5]
    for line in lines:
        if _LABEL_LINE_RE.match(line):
            continue
        m = _INLINE_LABEL_RE.search(line)
        if m:
            line = line[:m.start()].rstrip(" ,;-")
        if len(line) > 3:
            return line
    return None


# ---------------------------------------------------------------------------
# Top-level
# ---------------------------------------------------------------------------

def _safe(name: str, fn: Callable[[], object]) -> object:
    try:
        return fn()
    except Exception as e:
        _logger.warning("Extraction of %s failed: %s", name, e)
        return None


def extract_info(text: str, marks: Iterable[str] = ()) -> ExtractedInfo:
    """Run every field extractor independently; one failing field does not affect the others."""
    s = normalize_text(text)
    if not s:
        return ExtractedInfo()
    marks = tuple(marks)

    def _certs() -> tuple[str, ...] | None:
        found = find_certification_marks(s, marks)
        return tuple(found) or None

    return ExtractedInfo(
        ingredients=_safe("ingredients", lambda: extract_ingredients(s)),
        warnings=_safe("warnings", lambda: extract_warnings(s)),
        certifications=_safe("certifications", _certs),
        batch_number=_safe("batch_number", lambda: extract_batch_number(s)),
        weight=_safe("weight", lambda: extract_weight(s)),
        manufacturer=_safe("manufacturer", lambda: extract_manufacturer(s)),
        age_grading=_safe("age_grading", lambda: extract_age_grading(s)),
        product_name=_safe("product_name", lambda: extract_product_name(s)),
    )

"""
Text predicates and field patterns over label text.
All functions are pure; patterns are compiled once and contain no nested quantifiers.
"""
from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from typing import Iterable

from rapidfuzz import fuzz

from .models import Weight


def _norm(s: str | None) -> str:
    return " ".join((s or "").split()).strip()


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

_DASHES_RE = re.compile(r"[‐‑‒–—―−]")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def normalize_text(text: str | None) -> str:
    """NFKC, unify dash variants to '-', trim each line. Line structure is kept for field extraction."""
    if not text:
        return ""
    s = unicodedata.normalize("NFKC", text)
    s = _DASHES_RE.sub("-", s)
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    lines = [" ".join(line.split()) for line in s.split("\n")]
    s = "\n".join(lines).strip()
    return _BLANK_LINES_RE.sub("\n\n", s)


# ---------------------------------------------------------------------------
# Phrase matching
# ---------------------------------------------------------------------------

_WORD_RE = re.compile(r"\w+")


@lru_cache(maxsize=1024)
def _phrase_pattern(phrase: str) -> re.Pattern | None:
    """'choking hazard' -> words separated by any run of non-word chars (space, -, —, :)."""
    words = _WORD_RE.findall(phrase)
    if not words:
        return None
    body = r"[\W_]+".join(re.escape(w) for w in words)
    return re.compile(rf"(?<!\w){body}(?!\w)", re.I)


def _fuzzy_token_match(phrase_tok: str, text_tok: str, threshold: float, min_len: int) -> bool:
    if phrase_tok == text_tok:
        return True
    if len(phrase_tok) < min_len or len(text_tok) < min_len:
        return False
    return fuzz.ratio(phrase_tok, text_tok) >= threshold


def _fuzzy_find(text: str, phrase: str, threshold: float, min_len: int) -> str | None:
    """Sliding window over word tokens; every phrase token must match its text token."""
    phrase_toks = [w.lower() for w in _WORD_RE.findall(phrase)]
    if not phrase_toks:
        return None
    spans = [(m.group(0).lower(), m.start(), m.end()) for m in _WORD_RE.finditer(text)]
    n = len(phrase_toks)
    for i in range(len(spans) - n + 1):
        window = spans[i:i + n]
        if all(_fuzzy_token_match(p, w[0], threshold, min_len) for p, w in zip(phrase_toks, window)):
            return text[window[0][1]:window[-1][2]]
    return None


def find_phrase(
    text: str,
    phrases: Iterable[str],
    fuzzy_threshold: float = 0,
    min_token_length: int = 5,
) -> str | None:
    """
    Return the first label substring matching any phrase (phrases tried in order), else None.
    Case-insensitive; hyphens, dashes and punctuation between words are interchangeable.
    With fuzzy_threshold > 0, fall back to OCR-tolerant token comparison.
    """
    if not text:
        return None
    phrases = [p for p in phrases if p and p.strip()]
    for phrase in phrases:
        pattern = _phrase_pattern(phrase)
        if pattern is None:
            continue
        m = pattern.search(text)
        if m:
            return m.group(0)
    if fuzzy_threshold > 0:
        for phrase in phrases:
            # Single words are too close to unrelated words (warning / warming).
            if len(_WORD_RE.findall(phrase)) < 2:
                continue
            hit = _fuzzy_find(text, phrase, fuzzy_threshold, min_token_length)
            if hit:
                return hit
    return None


def contains_any(
    text: str,
    phrases: Iterable[str],
    fuzzy_threshold: float = 0,
    min_token_length: int = 5,
) -> bool:
    return find_phrase(text, phrases, fuzzy_threshold, min_token_length) is not None


# ---------------------------------------------------------------------------
# Certification marks
# ---------------------------------------------------------------------------

@lru_cache(maxsize=256)
def _mark_pattern(mark: str) -> re.Pattern | None:
    words = _WORD_RE.findall(mark)
    if not words:
        return None
    body = r"[\W_]*".join(re.escape(w) for w in words) if len(words) > 1 else re.escape(words[0])
    # Short marks like "CE" only count in capitals; "ce" in running text is not a mark.
    flags = 0 if len(mark.replace(" ", "")) <= 3 else re.I
    return re.compile(rf"(?<![^\W_]){body}(?![^\W_])", flags)


def find_certification_marks(text: str, marks: Iterable[str]) -> list[str]:
    """All marks (as listed) found in text, in the given order."""
    if not text:
        return []
    found = []
    for mark in marks:
        pattern = _mark_pattern(mark)
        if pattern is not None and pattern.search(text) and mark not in found:
            found.append(mark)
    return found


def contains_certification_mark(text: str, marks: Iterable[str]) -> str | None:
    """First mark (in the given order) present as a whole token, else None."""
    if not text:
        return None
    for mark in marks:
        pattern = _mark_pattern(mark)
        if pattern is not None and pattern.search(text):
            return mark
    return None


# ---------------------------------------------------------------------------
# Weight / quantity
# ---------------------------------------------------------------------------

_UNIT_ALIASES: dict[str, str] = {
    "kg": "kg", "kgs": "kg", "kilo": "kg", "kilos": "kg", "kilogram": "kg", "kilograms": "kg",
    "kilogramm": "kg",
    "g": "g", "gr": "g", "gram": "g", "grams": "g", "gramm": "g",
    "ml": "ml", "milliliter": "ml", "milliliters": "ml", "millilitre": "ml", "millilitres": "ml",
    "l": "l", "liter": "l", "liters": "l", "litre": "l", "litres": "l",
    "oz": "oz", "ounce": "oz", "ounces": "oz", "floz": "oz", "fl.oz": "oz",
    "lb": "lb", "lbs": "lb", "pound": "lb", "pounds": "lb",
}

_UNIT_PATTERN = (
    r"(kilogramm|kilograms?|kilos?|kgs?|grams?|gramm|gr|g"
    r"|millilit(?:er|re)s?|ml|lit(?:er|re)s?|l"
    r"|fl\.?\s?oz|ounces?|oz|pounds?|lbs?)"
)
_NUMBER_PATTERN = r"(\d{1,6}(?:[.,]\d{1,3})?)"

_LABELLED_WEIGHT_RE = re.compile(
    r"\b(?:net\s?(?:weight|wt|contents?|quantity|qty)|nettogewicht|nettof[üu]llmenge|inhalt|poids\s?net)"
    r"\.?\s?[:.]?\s?" + _NUMBER_PATTERN + r"\s?" + _UNIT_PATTERN + r"(?!\w)",
    re.I,
)
_BARE_WEIGHT_RE = re.compile(r"(?<![\w.,])" + _NUMBER_PATTERN + r"\s?" + _UNIT_PATTERN + r"(?!\w)", re.I)


def _parse_number(s: str) -> float | None:
    s = s.strip()
    if "," in s:
        whole, _, frac = s.partition(",")
        # "1,000" is a thousands separator, "2,5" a decimal comma.
        s = whole + frac if len(frac) == 3 else f"{whole}.{frac}"
    try:
        value = float(s)
    except ValueError:
        return None
    return int(value) if value.is_integer() else value


def _canonical_unit(raw: str) -> str | None:
    key = re.sub(r"\s", "", raw.lower())
    return _UNIT_ALIASES.get(key)


def _weight_from_match(m: re.Match) -> Weight | None:
    value = _parse_number(m.group(1))
    unit = _canonical_unit(m.group(2))
    if value is None or unit is None:
        return None
    return Weight(value=value, unit=unit)


def extract_weight(text: str) -> Weight | None:
    """
    Labelled quantity ('Net Weight: 250g') wins; else first bare number+unit ('max 15kg').
    Bare numbers inside a batch/lot code ('Lot: 2024L') are not quantities.
    """
    if not text:
        return None
    code_spans = _batch_code_spans(text)
    for regex in (_LABELLED_WEIGHT_RE, _BARE_WEIGHT_RE):
        for m in regex.finditer(text):
            if regex is _BARE_WEIGHT_RE and any(s <= m.start() < e for s, e in code_spans):
                continue
            w = _weight_from_match(m)
            if w is not None:
                return w
    return None


# ---------------------------------------------------------------------------
# Batch / lot
# ---------------------------------------------------------------------------

_BATCH_RE = re.compile(
    r"\b(?:batch|lot|charge|ch\.?-?b\.?)\s?(?:no\.?|nr\.?|number|code|#)?\s?[:#.]?\s?"
    r"([A-Za-z0-9][A-Za-z0-9\-/]{0,31})",
    re.I,
)


def _looks_like_code(token: str) -> bool:
    if any(c.isdigit() for c in token):
        return True
    return len(token) >= 3 and token.isupper()


def _batch_code_spans(text: str) -> list[tuple[int, int]]:
    return [m.span(1) for m in _BATCH_RE.finditer(text) if _looks_like_code(m.group(1).rstrip("-/"))]


def extract_batch_number(text: str) -> str | None:
    """Code following a Batch/Lot/Charge label. Ordinary words ('a lot of fun') are skipped."""
    if not text:
        return None
    for m in _BATCH_RE.finditer(text):
        token = m.group(1).rstrip("-/")
        if token and _looks_like_code(token):
            return token
    return None


# ---------------------------------------------------------------------------
# Age grading
# ---------------------------------------------------------------------------

_AGE_UNIT = r"(?:months?|mos?|years?|yrs?|jahren?|monaten?)"
_AGE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\bages?\s?\d{1,2}\s?(?:\+|-\s?\d{1,2}|and\s(?:up|over))", re.I),
    re.compile(r"\b\d{1,2}\s?(?:-|to|bis)\s?\d{1,2}\s?" + _AGE_UNIT + r"(?!\w)", re.I),
    re.compile(r"\b\d{1,2}\s?\+\s?" + _AGE_UNIT + r"?", re.I),
    re.compile(r"\b(?:from|ab|under|unter)\s\d{1,2}\s?" + _AGE_UNIT + r"(?!\w)", re.I),
    re.compile(r"\bnot\s(?:suitable\s)?for\schildren\sunder\s\d{1,2}", re.I),
)


def extract_age_grading(text: str) -> str | None:
    """Earliest age statement on the label ('Ages 3+', '0-36 months', 'ab 3 Jahren')."""
    if not text:
        return None
    best: re.Match | None = None
    for pattern in _AGE_PATTERNS:
        m = pattern.search(text)
        if m and (best is None or m.start() < best.start()):
            best = m
    return _norm(best.group(0)) if best else None

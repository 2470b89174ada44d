"""Tests for text normalization, phrase/mark matching and field patterns."""
import pytest

from labelcheck.matching import (
    contains_any,
    contains_certification_mark,
    extract_age_grading,
    extract_batch_number,
    extract_weight,
    find_certification_marks,
    find_phrase,
    normalize_text,
)
from labelcheck.models import Weight


# ---------------------------------------------------------------------------
# normalize_text
# ---------------------------------------------------------------------------

def test_normalize_unifies_dashes():
    assert normalize_text("CHOKING HAZARD — Small parts") == "CHOKING HAZARD - Small parts"


def test_normalize_keeps_lines_and_collapses_blank_runs():
    assert normalize_text("  x   y  \r\n\r\n\r\n\r\nz ") == "x y\n\nz"


def test_normalize_empty():
    assert normalize_text("") == ""
    assert normalize_text(None) == ""


# ---------------------------------------------------------------------------
# find_phrase
# ---------------------------------------------------------------------------

def test_find_phrase_case_insensitive():
    assert find_phrase("warning: Choking Hazard", ["choking hazard"]) == "Choking Hazard"


@pytest.mark.parametrize("text", [
    "CHOKING-HAZARD",
    "CHOKING – HAZARD",
    "choking:hazard",
    "choking\nhazard",
])
def test_find_phrase_separator_tolerant(text):
    assert find_phrase(text, ["choking hazard"]) is not None


def test_find_phrase_whole_words_only():
    assert find_phrase("Expensive toy", ["exp"]) is None
    assert find_phrase("EXP 12/2026", ["exp"]) == "EXP"


def test_find_phrase_returns_first_listed_phrase_hit():
    assert find_phrase("Caution. Warning.", ["warning", "caution"]) == "Warning"


def test_find_phrase_fuzzy_only_with_threshold():
    text = "WARNING: CHOKING HAZZARD - small parts"
    assert find_phrase(text, ["choking hazard"]) is None
    assert find_phrase(text, ["choking hazard"], fuzzy_threshold=85) == "CHOKING HAZZARD"


def test_fuzzy_short_tokens_must_match_exactly():
    # "lot" and "let" are too short for fuzzy comparison
    assert find_phrase("let number", ["lot number"], fuzzy_threshold=50) is None


def test_fuzzy_skips_single_word_phrases():
    # "warming" is within one edit of "warning"
    assert find_phrase("Warming Body Lotion", ["warning"], fuzzy_threshold=85) is None
    assert find_phrase("Warming Body Lotion", ["warning", "keep away"], fuzzy_threshold=85) is None


def test_contains_any():
    assert contains_any("Made in Germany", ["assembled in", "made in"])
    assert not contains_any("", ["made in"])


# ---------------------------------------------------------------------------
# Certification marks
# ---------------------------------------------------------------------------

def test_short_mark_is_case_sensitive():
    assert contains_certification_mark("CE marking applied", ["CE"]) == "CE"
    assert contains_certification_mark("once upon a time", ["CE"]) is None
    assert contains_certification_mark("ce", ["CE"]) is None


def test_mark_must_be_whole_token():
    assert contains_certification_mark("Made in FRANCE", ["CE"]) is None
    assert contains_certification_mark("(CE)", ["CE"]) == "CE"


def test_multiword_mark_spacing_tolerant():
    assert contains_certification_mark("Tested to EN71-1", ["EN 71"]) == "EN 71"
    assert contains_certification_mark("astm-f963 compliant", ["ASTM F963"]) == "ASTM F963"


def test_find_certification_marks_in_listed_order():
    text = "UKCA  CE  EN 71"
    assert find_certification_marks(text, ["CE", "EN 71", "UKCA", "CPC"]) == ["CE", "EN 71", "UKCA"]


# ---------------------------------------------------------------------------
# Weight
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text,expected", [
    ("Net Wt. 8.5 oz", Weight(8.5, "oz")),
    ("Inhalt: 250 ml", Weight(250, "ml")),
    ("Nettogewicht 2,5 kg", Weight(2.5, "kg")),
    ("Net Weight: 1,000 g", Weight(1000, "g")),
    ("12 fl oz", Weight(12, "oz")),
    ("max 30 lbs", Weight(30, "lb")),
    ("500 Grams", Weight(500, "g")),
])
def test_extract_weight(text, expected):
    assert extract_weight(text) == expected


def test_labelled_weight_wins_over_bare():
    assert extract_weight("max 15kg\nNet Contents: 100 ml") == Weight(100, "ml")


def test_lot_code_is_not_a_weight():
    assert extract_weight("Lot: 2024L") is None
    assert extract_weight("Batch 250G-7") is None
    assert extract_weight("Lot: 2024L\nNet Wt. 50 ml") == Weight(50, "ml")
    assert extract_weight("Lot: 2024L max 15kg") == Weight(15, "kg")


def test_no_weight():
    assert extract_weight("Ages 3+ / 36 months") is None
    assert extract_weight("") is None


def test_weight_str():
    assert str(Weight(15, "kg")) == "15 kg"


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text,expected", [
    ("Batch: TC2024-118", "TC2024-118"),
    ("LOT# A12B", "A12B"),
    ("Lot No. 4471", "4471"),
    ("Charge: 2024/11", "2024/11"),
    ("batch XKZ", "XKZ"),
])
def test_extract_batch_number(text, expected):
    assert extract_batch_number(text) == expected


def test_ordinary_words_are_not_batch_numbers():
    assert extract_batch_number("a lot of fun for everyone") is None


# ---------------------------------------------------------------------------
# Age grading
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text,expected", [
    ("Ages 3+", "Ages 3+"),
    ("Suitable for 0-36 months", "0-36 months"),
    ("ab 3 Jahren", "ab 3 Jahren"),
    ("Recommended for 8+ years", "8+ years"),
])
def test_extract_age_grading(text, expected):
    assert extract_age_grading(text) == expected


def test_age_grading_earliest_statement_wins():
    got = extract_age_grading("Not suitable for children under 36 months. Ages 3+")
    assert got.startswith("Not suitable for children under 36")


def test_no_age_grading():
    assert extract_age_grading("Manufactured by ToyCo Inc.") is None

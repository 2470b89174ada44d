"""Pytest fixtures: label texts per category/market, engine, catalog."""
import sys
from pathlib import Path

import pytest

_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from labelcheck.rules.catalog import RuleCatalog
from labelcheck.rules.engine import ComplianceEngine


@pytest.fixture(scope="session")
def catalog():
    return RuleCatalog()


@pytest.fixture(scope="session")
def engine(catalog):
    return ComplianceEngine(catalog=catalog)


# ---------------------------------------------------------------------------
# Toys / USA: fully labelled building set
# ---------------------------------------------------------------------------

@pytest.fixture
def toy_label_usa():
    return (
        "Magic Builder Blocks\n"
        "Ages 3+\n"
        "WARNING: CHOKING HAZARD - Small parts. Not for children under 3 yrs.\n"
        "Conforms to the safety requirements of ASTM F963. Children's Product Certificate available.\n"
        "Manufactured by: ToyCo Inc., 12 Main Street, Dayton, OH 45402\n"
        "Made in China\n"
        "Batch: TC2024-118\n"
        "UPC 012345678905\n"
        "California Proposition 65 WARNING: see www.P65Warnings.ca.gov\n"
    )


@pytest.fixture
def toy_label_usa_missing_safety():
    """Same set without the choking hazard statement and without any certification reference."""
    return (
        "Magic Builder Blocks\n"
        "Ages 3+\n"
        "Manufactured by: ToyCo Inc., Dayton, OH\n"
        "Made in China\n"
        "Batch: TC2024-118\n"
        "UPC 012345678905\n"
        "Proposition 65 WARNING: see www.P65Warnings.ca.gov\n"
    )


# ---------------------------------------------------------------------------
# Cosmetics / Germany: sparse back label
# ---------------------------------------------------------------------------

@pytest.fixture
def cosmetic_label_de():
    return (
        "Rose Face Cream\n"
        "Ingredients: Aqua, Parfum\n"
        "Responsible Person: Beauty GmbH, Hauptstraße 1, 10115 Berlin\n"
    )


# ---------------------------------------------------------------------------
# Baby products / UK: carrier swing tag
# ---------------------------------------------------------------------------

@pytest.fixture
def baby_label_uk():
    return (
        "Comfy Baby Carrier\n"
        "Suitable from 0-36 months, max 15kg\n"
        "UKCA Marking\n"
    )


# ---------------------------------------------------------------------------
# OCR-style inputs
# ---------------------------------------------------------------------------

@pytest.fixture
def ocr_blocks_toy():
    """Blocks out of reading order, as an OCR engine may return them."""
    return [
        {"text": "Made in China", "bbox": [10, 200, 150, 220], "confidence": 80},
        {"text": "Magic Builder Blocks", "bbox": [10, 10, 300, 50], "confidence": 95},
        {"text": "Ages 3+", "bbox": [10, 60, 90, 80], "confidence": 90},
        {"text": "WARNING: CHOKING HAZARD - Small parts.", "bbox": [10, 100, 400, 120], "confidence": 85},
    ]

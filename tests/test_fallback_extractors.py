"""
Tests for the proximity and fuzzy fallback tiers
"""

import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from extractor import ExtractorFactory
from extractor.fallback_extractors import (
    FuzzyFallbackExtractor,
    ProximityFallbackExtractor,
    find_price,
)


def as_pairs(items):
    return [(i.name, i.price) for i in items]


@pytest.fixture
def proximity():
    return ProximityFallbackExtractor()


@pytest.fixture
def fuzzy():
    return FuzzyFallbackExtractor()


def test_find_price_uses_rightmost_number():
    price, span = find_price("Table for 2 Latte $4.50", Decimal("0.50"), Decimal("999.99"))
    assert price == Decimal("4.50")
    assert "Table for 2 Latte $4.50"[span[0]:span[1]] == "$4.50"


def test_find_price_out_of_range():
    assert find_price("Gum 0.25", Decimal("0.50"), Decimal("999.99")) is None
    assert find_price("Wedding Cake 1500.00", Decimal("0.50"), Decimal("999.99")) is None
    assert find_price("no digits here", Decimal("0.50"), Decimal("999.99")) is None


# ─── Proximity ────────────────────────────────────────────────────────────────

def test_proximity_same_line(proximity):
    items = proximity.extract(["Fish Tacos 11.25 T"])
    assert as_pairs(items) == [("Fish Tacos T", Decimal("11.25"))]


def test_proximity_name_from_previous_line(proximity):
    items = proximity.extract(["Margherita Pizza", "14.50 T"])
    assert as_pairs(items) == [("Margherita Pizza", Decimal("14.50"))]


def test_proximity_skips_candidates_with_prices(proximity):
    items = proximity.extract(["Soup of the Day", "Bread 2.00", "3.50"])
    assert as_pairs(items) == [
        ("Bread", Decimal("2.00")),
        ("Soup of the Day", Decimal("3.50")),
    ]


def test_proximity_window_is_limited(proximity):
    lines = ["Garlic Bread", "....", "....", "....", "6.50"]
    assert proximity.extract(lines) == []

    wide = ProximityFallbackExtractor(window=4)
    assert as_pairs(wide.extract(lines)) == [("Garlic Bread", Decimal("6.50"))]


def test_proximity_window_counts_blank_lines(proximity):
    assert proximity.extract(["Garlic Bread", "", "", "", "6.50"]) == []
    assert as_pairs(proximity.extract(["Garlic Bread", "", "6.50"])) == [
        ("Garlic Bread", Decimal("6.50")),
    ]


def test_proximity_name_line_used_once(proximity):
    items = proximity.extract(["Pasta Special", "12.00", "12.00"])
    assert as_pairs(items) == [("Pasta Special", Decimal("12.00"))]


def test_proximity_ignores_noise_names(proximity):
    assert proximity.extract(["Thank you", "8.00"]) == []


def test_proximity_out_of_range_price_dropped(proximity):
    assert proximity.extract(["Gum 0.25", "Wedding Cake 1500.00"]) == []


def test_proximity_never_extracts_subtotal(proximity):
    assert proximity.extract(["Nachos", "SUBTOTAL $45.20"]) == []
    assert proximity.extract(["SUBTOTAL $45.20"]) == []


# ─── Fuzzy ────────────────────────────────────────────────────────────────────

def test_fuzzy_pairs_number_with_rest_of_line(fuzzy):
    items = fuzzy.extract(["Mystery item 45", "no digits here", "Ab 5"])
    assert as_pairs(items) == [("Mystery item", Decimal("45"))]


def test_fuzzy_range_is_narrower(fuzzy):
    assert fuzzy.extract(["Big Platter 150.00", "Mint 0.75"]) == []


def test_fuzzy_never_extracts_subtotal(fuzzy):
    assert fuzzy.extract(["SUBTOTAL $45.20"]) == []


# ─── Factory ──────────────────────────────────────────────────────────────────

def test_factory_builds_tiers_from_config():
    factory = ExtractorFactory({"proximity_window": 5, "fuzzy_price_max": 50})
    assert factory.get_extractor("proximity").window == 5
    assert factory.get_extractor("fuzzy").price_max == Decimal("50")
    assert factory.get_extractor("cascade") is factory.get_extractor("cascade")


def test_factory_tiers_share_one_classifier():
    factory = ExtractorFactory()
    classifier = factory.get_extractor("cascade").classifier
    assert factory.get_extractor("proximity").classifier is classifier
    assert factory.get_extractor("fuzzy").classifier is classifier


def test_factory_unknown_tier():
    with pytest.raises(ValueError):
        ExtractorFactory().get_extractor("llm")

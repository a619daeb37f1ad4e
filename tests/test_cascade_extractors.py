"""
Tests for the pattern cascade and its per-line strategies
"""

import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from extractor.base_extractor import clean_name, parse_price, price_only
from extractor.cascade_extractors import (
    NameThenPriceStrategy,
    ParenthesizedQtyStrategy,
    PatternCascadeExtractor,
    QuantityStrategy,
    SimpleItemStrategy,
)


def as_tuples(items):
    return [(i.name, i.price, i.quantity) for i in items]


@pytest.fixture
def cascade():
    return PatternCascadeExtractor()


# ─── Price / name parsing ─────────────────────────────────────────────────────

@pytest.mark.parametrize("text, expected", [
    ("12.99", Decimal("12.99")),
    ("$12.99", Decimal("12.99")),
    ("$ 4.5", Decimal("4.5")),
    ("1,250.00", Decimal("1250.00")),
    ("7", Decimal("7")),
])
def test_parse_price(text, expected):
    assert parse_price(text) == expected


@pytest.mark.parametrize("text", ["0.00", "0", "3.999", "abc", "", "1,25.00"])
def test_parse_price_rejects(text):
    assert parse_price(text) is None


def test_price_only():
    assert price_only("  $9.50 ") == Decimal("9.50")
    assert price_only("Burger 9.50") is None
    assert price_only("9.50 T") is None


def test_clean_name_trims_separators():
    assert clean_name("  Fish   Tacos ... ") == "Fish Tacos"
    assert clean_name("Burger -") == "Burger"


# ─── Individual strategies ────────────────────────────────────────────────────

def test_simple_item():
    item = SimpleItemStrategy().try_extract("Burger 12.99")
    assert (item.name, item.price, item.quantity) == ("Burger", Decimal("12.99"), 1)


def test_simple_item_dollar_sign_without_space():
    item = SimpleItemStrategy().try_extract("Burger$12.99")
    assert item.name == "Burger"
    assert item.price == Decimal("12.99")


def test_simple_item_leaves_quantity_lines_alone():
    strategy = SimpleItemStrategy()
    assert strategy.try_extract("2 x Soda @ 2.99") is None
    assert strategy.try_extract("2 x Soda 5.98") is None
    assert strategy.try_extract("Wings (2) 12.00") is None


def test_simple_item_rejects_short_name_and_zero_price():
    strategy = SimpleItemStrategy()
    assert strategy.try_extract("Ab 5.00") is None
    assert strategy.try_extract("Coupon 0.00") is None
    assert strategy.try_extract("Espresso 3.999") is None


def test_name_then_price():
    strategy = NameThenPriceStrategy()
    item = strategy.try_extract("Caesar Salad", "9.50")
    assert (item.name, item.price) == ("Caesar Salad", Decimal("9.50"))
    assert strategy.lines_consumed == 2


def test_name_then_price_needs_price_only_next_line():
    strategy = NameThenPriceStrategy()
    assert strategy.try_extract("Caesar Salad", "Iced Tea 2.75") is None
    assert strategy.try_extract("Caesar Salad", None) is None
    assert strategy.try_extract("Burger 12.99", "4.99") is None


def test_quantity_at_unit_price():
    item = QuantityStrategy().try_extract("2 x Soda @ 2.99")
    assert (item.name, item.price, item.quantity) == ("Soda", Decimal("2.99"), 2)
    assert item.line_total == Decimal("5.98")


def test_quantity_without_x_before_at():
    item = QuantityStrategy().try_extract("3 Tacos @ 3.50")
    assert (item.name, item.price, item.quantity) == ("Tacos", Decimal("3.50"), 3)


def test_quantity_x_price_is_unit_price():
    item = QuantityStrategy().try_extract("2 x Soda 2.99")
    assert (item.name, item.price, item.quantity) == ("Soda", Decimal("2.99"), 2)
    assert item.line_total == Decimal("5.98")


def test_quantity_compact_x():
    item = QuantityStrategy().try_extract("3x Beer 4.00")
    assert (item.name, item.price, item.quantity) == ("Beer", Decimal("4.00"), 3)
    assert item.line_total == Decimal("12.00")


def test_quantity_zero_is_rejected():
    assert QuantityStrategy().try_extract("0 x Soda @ 2.99") is None


def test_parenthesized_quantity():
    item = ParenthesizedQtyStrategy().try_extract("Wings (2) 12.00")
    assert (item.name, item.price, item.quantity) == ("Wings", Decimal("6"), 2)
    assert item.line_total == Decimal("12.00")


def test_parenthesized_quantity_keeps_printed_total():
    item = ParenthesizedQtyStrategy().try_extract("Wings (3) 10.00")
    assert item.quantity == 3
    assert item.line_total == Decimal("10.00")
    assert item.price * 3 != Decimal("10.00")


def test_parenthesized_quantity_zero_is_rejected():
    assert ParenthesizedQtyStrategy().try_extract("Wings (0) 12.00") is None


# ─── Cascade ──────────────────────────────────────────────────────────────────

def test_cascade_scenario_a(cascade):
    items = cascade.extract(["Burger 12.99", "Fries 4.99", "SUBTOTAL 17.98"])
    assert as_tuples(items) == [
        ("Burger", Decimal("12.99"), 1),
        ("Fries", Decimal("4.99"), 1),
    ]
    assert sum(i.line_total for i in items) == Decimal("17.98")


def test_cascade_first_match_wins(cascade):
    match = cascade.match_line("2 x Soda @ 2.99")
    assert match.strategy == "quantity_name_price"
    match = cascade.match_line("Burger 12.99", "4.99")
    assert match.strategy == "name_price"
    assert match.lines_consumed == 1


def test_cascade_skips_consumed_price_line(cascade):
    items = cascade.extract(["Caesar Salad", "9.50", "Iced Tea 2.75"])
    assert as_tuples(items) == [
        ("Caesar Salad", Decimal("9.50"), 1),
        ("Iced Tea", Decimal("2.75"), 1),
    ]


def test_cascade_mixed_receipt(cascade):
    text = [
        "JOE'S DINER",
        "05/12/2024 7:45 PM",
        "",
        "Burger 12.99",
        "2 x Soda @ 2.99",
        "Wings (2) 12.00",
        "Caesar Salad",
        "$9.50",
        "SUBTOTAL 45.46",
        "TAX 3.64",
        "VISA ****1234",
    ]
    assert as_tuples(cascade.extract(text)) == [
        ("Burger", Decimal("12.99"), 1),
        ("Soda", Decimal("2.99"), 2),
        ("Wings", Decimal("6"), 2),
        ("Caesar Salad", Decimal("9.50"), 1),
    ]


def test_cascade_never_extracts_subtotal(cascade):
    assert cascade.extract(["SUBTOTAL $45.20"]) == []


def test_cascade_is_idempotent(cascade):
    lines = ["Burger 12.99", "2 x Soda 5.98", "Wings (2) 12.00", "Total 30.97"]
    assert as_tuples(cascade.extract(lines)) == as_tuples(cascade.extract(lines))


def test_unmatched_lines_are_silent(cascade):
    assert cascade.extract(["Welcome!", "*** ***", "Espresso 3.999"]) == []

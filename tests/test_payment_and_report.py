"""
Tests for payment links and the shareable split summary
"""

import pytest
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from allocation import RoundingMode, allocate
from ledger import Bill, Item, Participant, Shared, Single
from payment_links import PaymentService
from split_report import format_split_summary


# ─── Payment links ────────────────────────────────────────────────────────────

@pytest.mark.parametrize("service, expected", [
    (PaymentService.VENMO,    "venmo://paycharge?txn=pay&recipients=alice-w&amount=15.98"),
    (PaymentService.CASH_APP, "https://cash.app/alice-w/15.98"),
    (PaymentService.PAYPAL,   "https://paypal.me/alice-w/15.98"),
])
def test_payment_urls(service, expected):
    assert service.payment_url("alice-w", Decimal("15.9777")) == expected


def test_payment_username_is_encoded():
    url = PaymentService.PAYPAL.payment_url("alice w&co", "5")
    assert url == "https://paypal.me/alice%20w%26co/5.00"


def test_payment_rejects_bad_input():
    with pytest.raises(ValueError):
        PaymentService.VENMO.payment_url("  ", "5")
    with pytest.raises(ValueError):
        PaymentService.VENMO.payment_url("alice", "-1")


def test_display_names():
    assert PaymentService("cash_app").display_name == "Cash App"


# ─── Split summary ────────────────────────────────────────────────────────────

def test_split_summary():
    alice, bob = Participant("Alice"), Participant("Bob", "green")
    bill = Bill(
        items=[
            Item("Burger", Decimal("12.99"), owner=Single(alice.id)),
            Item("Fries", Decimal("4.99"), owner=Single(bob.id)),
            Item("Soda", Decimal("2.00"), 2, owner=Shared(frozenset({alice.id, bob.id}))),
        ],
        participants=[alice, bob],
        tax_percent=Decimal("8"),
        tip_percent=Decimal("15.0"),
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )
    summary = format_split_summary(bill, allocate(bill, RoundingMode.NEAREST))
    lines = summary.splitlines()

    assert lines[0] == "Bill split · 2024-05-01"
    assert any(l.startswith("Subtotal") and l.endswith("$21.98") for l in lines)
    assert any(l.startswith("Tax (8%)") for l in lines)
    assert any(l.startswith("Tip (15%)") for l in lines)
    assert any(l.startswith("Alice") and l.endswith("$18.44") for l in lines)
    assert any(l.strip().startswith("2 x Soda (1/2)") and l.endswith("$2.00") for l in lines)

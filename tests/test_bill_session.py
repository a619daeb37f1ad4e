"""
Tests for the scan / split workflow around one bill
"""

import threading
import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from allocation import UNASSIGNED_ITEMS, RoundingMode
from app_settings import AppSettings, DefaultParticipant
from bill_repository import InMemoryBillRepository
from bill_session import BillSession
from errors import CollaboratorFailure, ExtractionCancelled


SCENARIO_A = "Burger 12.99\nFries 4.99\nSUBTOTAL 17.98"


class BrokenRecognizer:
    def recognize(self, source):
        raise IOError("camera disconnected")


class StubRecognizer:
    def recognize(self, source):
        return SCENARIO_A


@pytest.fixture
def settings():
    return AppSettings(
        default_tax_percent=Decimal("8"),
        default_tip_percent=Decimal("15"),
        rounding_mode=RoundingMode.NEAREST,
        default_participants=[DefaultParticipant("Alice"), DefaultParticipant("Bob", "green")],
    )


@pytest.fixture
def session(settings):
    return BillSession(settings=settings, repository=InMemoryBillRepository())


def test_new_session_uses_settings(session):
    assert [p.name for p in session.bill.participants] == ["Alice", "Bob"]
    assert session.bill.tax_percent == Decimal("8")
    assert session.bill.items == []


def test_scan_text_merges_items(session):
    run = session.scan_text(SCENARIO_A)
    assert [i.name for i in session.bill.items] == ["Burger", "Fries"]
    assert session.bill.subtotal == Decimal("17.98")
    assert session.last_run is run


def test_scan_with_recognizer(session):
    session.scan("receipt.png", StubRecognizer())
    assert len(session.bill.items) == 2


def test_failed_scan_leaves_bill_untouched(session):
    session.add_item("Dessert", "6.50")
    version = session.bill.version
    with pytest.raises(CollaboratorFailure):
        session.scan("receipt.png", BrokenRecognizer())
    assert [i.name for i in session.bill.items] == ["Dessert"]
    assert session.bill.version == version


def test_cancelled_scan_leaves_bill_untouched(session):
    event = threading.Event()
    event.set()
    with pytest.raises(ExtractionCancelled):
        session.scan_text(SCENARIO_A, cancel_event=event)
    assert session.bill.items == []


def test_split_error_is_kept_then_cleared(session):
    session.scan_text(SCENARIO_A)
    alice, bob = session.bill.participants
    burger, fries = session.bill.items

    session.set_owners(burger.id, [alice.id])
    assert session.split() is None
    assert session.split_error == UNASSIGNED_ITEMS

    session.set_owners(fries.id, [bob.id])
    allocation = session.split()
    assert session.split_error is None
    assert allocation.share_for(alice.id).amount_due == Decimal("15.98")
    assert allocation.share_for(bob.id).amount_due == Decimal("6.14")


def test_split_rounding_override(session):
    session.scan_text(SCENARIO_A)
    alice, bob = session.bill.participants
    for item in session.bill.items:
        session.set_owners(item.id, [alice.id, bob.id])
    allocation = session.split(RoundingMode.DOWN)
    assert allocation.rounding is RoundingMode.DOWN
    assert all(s.amount_due == Decimal("11.05") for s in allocation.shares)


def test_set_owners_empty_unassigns(session):
    session.scan_text(SCENARIO_A)
    alice = session.bill.participants[0]
    item = session.bill.items[0]
    session.set_owners(item.id, [alice.id])
    session.set_owners(item.id, [])
    assert not item.is_assigned


def test_add_participant_picks_next_colour(session):
    carol = session.add_participant("Carol")
    assert carol.color_tag == "red"


def test_set_charges(session):
    session.set_charges(tip_percent=Decimal("20"))
    assert session.bill.tip_percent == Decimal("20")
    assert session.bill.tax_percent == Decimal("8")


def test_save_history_delete(session):
    session.scan_text(SCENARIO_A)
    assert session.save() is True
    assert [b.id for b in session.history()] == [session.bill.id]
    session.delete_saved(session.bill.id)
    assert session.history() == []


def test_save_disabled(settings):
    settings.save_history = False
    session = BillSession(settings=settings)
    assert session.save() is False
    assert session.history() == []


def test_reset_starts_fresh_bill(session):
    session.scan_text(SCENARIO_A)
    old_id = session.bill.id
    session.split()
    bill = session.reset()
    assert bill.id != old_id
    assert bill.items == []
    assert [p.name for p in bill.participants] == ["Alice", "Bob"]
    assert session.split_error is None

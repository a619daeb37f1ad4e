"""
Bill codec
==========
Serialised shape of a bill, shared by every persistence backend:

    {
      "id": "...",
      "items": [{"id", "name", "price", "quantity", "assignedTo", "manuallyAdded",
                 "lineTotal"}],
      "participants": [{"id", "name", "colorTag"}],
      "taxAmount": "8",        # percentage, not currency
      "tipAmount": "15",       # percentage
      "date": "2024-05-01T19:30:00+00:00"
    }

Prices and percentages are written as decimal strings so that a bill
survives encode → decode unchanged.  `assignedTo` is null, one id, or a
list of ids for a shared item.  `lineTotal` is only set when the receipt
printed a total that the unit price was derived from.  Absent fields
decode to their defaults.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledger import Bill, Item, Participant, Shared, Single, UNASSIGNED, ownership_of


class ItemRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    name: str
    price: Decimal
    quantity: int = 1
    assigned_to: Optional[Union[UUID, List[UUID]]] = Field(None, alias="assignedTo")
    manually_added: bool = Field(False, alias="manuallyAdded")
    printed_total: Optional[Decimal] = Field(None, alias="lineTotal")


class ParticipantRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    name: str
    color_tag: str = Field("blue", alias="colorTag")


class BillRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    items: List[ItemRecord] = Field(default_factory=list)
    participants: List[ParticipantRecord] = Field(default_factory=list)
    tax_amount: Decimal = Field(Decimal("0"), alias="taxAmount")
    tip_amount: Decimal = Field(Decimal("0"), alias="tipAmount")
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ─── Bill ↔ record ────────────────────────────────────────────────────────────

def _encode_owner(item: Item) -> Optional[Union[UUID, List[UUID]]]:
    if isinstance(item.owner, Single):
        return item.owner.participant_id
    if isinstance(item.owner, Shared):
        return sorted(item.owner.participant_ids, key=str)
    return None


def _decode_owner(value):
    if value is None:
        return UNASSIGNED
    if isinstance(value, list):
        return ownership_of(value)
    return Single(value)


def to_record(bill: Bill) -> BillRecord:
    return BillRecord(
        id=bill.id,
        items=[
            ItemRecord(
                id=i.id,
                name=i.name,
                price=i.price,
                quantity=i.quantity,
                assigned_to=_encode_owner(i),
                manually_added=i.manually_added,
                printed_total=i.printed_total,
            )
            for i in bill.items
        ],
        participants=[
            ParticipantRecord(id=p.id, name=p.name, color_tag=p.color_tag)
            for p in bill.participants
        ],
        tax_amount=bill.tax_percent,
        tip_amount=bill.tip_percent,
        date=bill.created_at,
    )


def from_record(record: BillRecord) -> Bill:
    return Bill(
        id=record.id,
        items=[
            Item(
                id=r.id,
                name=r.name,
                price=r.price,
                quantity=r.quantity,
                owner=_decode_owner(r.assigned_to),
                manually_added=r.manually_added,
                printed_total=r.printed_total,
            )
            for r in record.items
        ],
        participants=[
            Participant(id=r.id, name=r.name, color_tag=r.color_tag)
            for r in record.participants
        ],
        tax_percent=record.tax_amount,
        tip_percent=record.tip_amount,
        created_at=record.date,
    )


def encode_bill(bill: Bill) -> dict:
    """JSON-ready dict using the persisted field names."""
    data = to_record(bill).model_dump(mode="json", by_alias=True)
    for item in data["items"]:
        if item["lineTotal"] is None:
            del item["lineTotal"]
    return data


def decode_bill(data: dict) -> Bill:
    return from_record(BillRecord.model_validate(data))


def dumps(bills: List[Bill], indent: int = 2) -> str:
    return json.dumps([encode_bill(b) for b in bills], indent=indent, ensure_ascii=False)


def loads(text: str) -> List[Bill]:
    data = json.loads(text) if text.strip() else []
    return [decode_bill(entry) for entry in data]

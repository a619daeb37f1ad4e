"""
Ledger Model
============
Items, participants and the bill they belong to.

  Item         one receipt line: name, unit price, quantity, owner(s)
  Participant  a person taking part in the split
  Bill         ordered items + participants + tax/tip percentages

Ownership is a small tagged choice so that both the single-owner and the
shared-owner behaviours are representable:

  Unassigned          nobody owns the item yet
  Single(pid)         one participant pays for the whole line
  Shared({pid, ...})  the line is split evenly between the owners

Derived amounts (subtotal, tax, tip, final total) are always recomputed
from the items and never stored.  Every mutation bumps `Bill.version`
and notifies subscribed callbacks.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Union
from uuid import UUID, uuid4

from loguru import logger

from errors import UnknownEntity


HUNDRED = Decimal("100")
ZERO = Decimal("0")

COLOR_PALETTE = (
    "blue", "green", "red", "orange", "purple", "pink", "teal", "indigo",
)


def to_decimal(value: Union[Decimal, float, int, str]) -> Decimal:
    """Convert a price-like value to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e


# ─── Ownership ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Unassigned:
    """No owner."""

    @property
    def owners(self) -> FrozenSet[UUID]:
        return frozenset()


@dataclass(frozen=True)
class Single:
    """Owned by exactly one participant."""
    participant_id: UUID

    @property
    def owners(self) -> FrozenSet[UUID]:
        return frozenset({self.participant_id})


@dataclass(frozen=True)
class Shared:
    """Split evenly between two or more participants."""
    participant_ids: FrozenSet[UUID]

    @property
    def owners(self) -> FrozenSet[UUID]:
        return self.participant_ids


Ownership = Union[Unassigned, Single, Shared]

UNASSIGNED = Unassigned()


def ownership_of(participant_ids: Iterable[UUID]) -> Ownership:
    """Normalise a set of owner ids into the narrowest ownership tag."""
    ids = frozenset(participant_ids)
    if not ids:
        return UNASSIGNED
    if len(ids) == 1:
        return Single(next(iter(ids)))
    return Shared(ids)


# ─── Entities ─────────────────────────────────────────────────────────────────

@dataclass
class Item:
    """
    One structured receipt line.  `price` is the unit price.

    `printed_total` holds the line total exactly as the receipt printed it
    when the price was derived from it ("Wings (3) 10.00"); the line total
    then comes from it rather than from price x quantity.
    """
    name: str
    price: Decimal
    quantity: int = 1
    owner: Ownership = UNASSIGNED
    manually_added: bool = False
    printed_total: Optional[Decimal] = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValueError("Item name must not be empty")
        self.price = to_decimal(self.price)
        if self.price < 0:
            raise ValueError(f"Item price must not be negative: {self.price}")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Item quantity must be an integer: {self.quantity!r}")
        if self.quantity < 1:
            raise ValueError(f"Item quantity must be at least 1: {self.quantity}")
        if self.printed_total is not None:
            self.printed_total = to_decimal(self.printed_total)
            if self.printed_total < 0:
                raise ValueError(f"Item line total must not be negative: {self.printed_total}")

    @property
    def line_total(self) -> Decimal:
        if self.printed_total is not None:
            return self.printed_total
        return self.price * self.quantity

    @property
    def is_assigned(self) -> bool:
        return not isinstance(self.owner, Unassigned)

    @property
    def per_person_price(self) -> Decimal:
        if isinstance(self.owner, Single):
            return self.price
        if isinstance(self.owner, Shared):
            return self.price / len(self.owner.participant_ids)
        return ZERO

    def share_for(self, participant_id: UUID) -> Decimal:
        """Portion of this line's total owed by one participant (before tax/tip)."""
        owners = self.owner.owners
        if participant_id not in owners:
            return ZERO
        if len(owners) == 1:
            return self.line_total
        return self.line_total / len(owners)


@dataclass
class Participant:
    name: str
    color_tag: str = "blue"
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValueError("Participant name must not be empty")
        if self.color_tag not in COLOR_PALETTE:
            raise ValueError(
                f"Unknown color tag '{self.color_tag}'. Allowed: {', '.join(COLOR_PALETTE)}"
            )


BillListener = Callable[["Bill"], None]


@dataclass
class Bill:
    """
    A receipt being split.

    `tax_percent` and `tip_percent` are percentages of the subtotal, not
    currency amounts.  `version` increases by one on every mutation.
    """
    items: List[Item] = field(default_factory=list)
    participants: List[Participant] = field(default_factory=list)
    tax_percent: Decimal = ZERO
    tip_percent: Decimal = ZERO
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: UUID = field(default_factory=uuid4)
    version: int = field(default=0, compare=False)
    _listeners: List[BillListener] = field(default_factory=list, repr=False, compare=False)

    def __post_init__(self):
        self.tax_percent = self._checked_percent(self.tax_percent, "Tax")
        self.tip_percent = self._checked_percent(self.tip_percent, "Tip")
        seen = set()
        for p in self.participants:
            if p.id in seen:
                raise ValueError(f"Duplicate participant id: {p.id}")
            seen.add(p.id)

    @classmethod
    def from_settings(cls, settings) -> "Bill":
        """New empty bill carrying the configured tax/tip and default participants."""
        participants = [
            Participant(name=p.name, color_tag=p.color_tag)
            for p in settings.default_participants
        ]
        return cls(
            participants=participants,
            tax_percent=settings.default_tax_percent,
            tip_percent=settings.default_tip_percent,
        )

    # ── Derived amounts ───────────────────────────────────────────────────────

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), ZERO)

    @property
    def tax_total(self) -> Decimal:
        return self.subtotal * self.tax_percent / HUNDRED

    @property
    def tip_total(self) -> Decimal:
        return self.subtotal * self.tip_percent / HUNDRED

    @property
    def final_total(self) -> Decimal:
        return self.subtotal + self.tax_total + self.tip_total

    @property
    def unassigned_items(self) -> List[Item]:
        return [item for item in self.items if not item.is_assigned]

    # ── Lookup ────────────────────────────────────────────────────────────────

    def item(self, item_id: UUID) -> Item:
        for item in self.items:
            if item.id == item_id:
                return item
        raise UnknownEntity(f"No item {item_id} on bill {self.id}")

    def participant(self, participant_id: UUID) -> Participant:
        for p in self.participants:
            if p.id == participant_id:
                return p
        raise UnknownEntity(f"No participant {participant_id} on bill {self.id}")

    def items_for(self, participant_id: UUID) -> List[Item]:
        return [item for item in self.items if participant_id in item.owner.owners]

    # ── Change notification ───────────────────────────────────────────────────

    def subscribe(self, listener: BillListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: BillListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _changed(self) -> None:
        self.version += 1
        for listener in list(self._listeners):
            listener(self)

    # ── Item mutations ────────────────────────────────────────────────────────

    def add_item(self, item: Item) -> Item:
        self.items.append(item)
        self._changed()
        return item

    def add_manual_item(self, name: str, price, quantity: int = 1) -> Item:
        return self.add_item(Item(name=name, price=price, quantity=quantity, manually_added=True))

    def merge_items(self, items: Iterable[Item]) -> int:
        """Append extracted items in order; returns how many were added."""
        new_items = list(items)
        if not new_items:
            return 0
        self.items.extend(new_items)
        self._changed()
        return len(new_items)

    def remove_item(self, item_id: UUID) -> Item:
        item = self.item(item_id)
        self.items.remove(item)
        self._changed()
        return item

    def assign_item(self, item_id: UUID, participant_id: Optional[UUID]) -> Item:
        """Give an item to one participant, or unassign it with None."""
        item = self.item(item_id)
        if participant_id is None:
            item.owner = UNASSIGNED
        else:
            self.participant(participant_id)
            item.owner = Single(participant_id)
        self._changed()
        return item

    def share_item(self, item_id: UUID, participant_ids: Iterable[UUID]) -> Item:
        """Split an item evenly between the given participants."""
        item = self.item(item_id)
        ids = frozenset(participant_ids)
        for pid in ids:
            self.participant(pid)
        item.owner = ownership_of(ids)
        self._changed()
        return item

    def unassign_item(self, item_id: UUID) -> Item:
        return self.assign_item(item_id, None)

    # ── Participant mutations ─────────────────────────────────────────────────

    def add_participant(self, participant: Participant) -> Participant:
        if any(p.id == participant.id for p in self.participants):
            raise ValueError(f"Participant {participant.id} is already on the bill")
        self.participants.append(participant)
        self._changed()
        return participant

    def remove_participant(self, participant_id: UUID) -> Participant:
        """
        Remove a participant.  Their items stay on the bill: solely owned
        items become unassigned, shared items lose them as an owner.
        """
        participant = self.participant(participant_id)
        released = 0
        for item in self.items:
            owners = item.owner.owners
            if participant_id in owners:
                item.owner = ownership_of(owners - {participant_id})
                released += 1
        self.participants.remove(participant)
        logger.debug(f"[Bill] removed {participant.name!r}, released {released} item(s)")
        self._changed()
        return participant

    # ── Charges ───────────────────────────────────────────────────────────────

    def set_tax_percent(self, value) -> None:
        self.tax_percent = self._checked_percent(value, "Tax")
        self._changed()

    def set_tip_percent(self, value) -> None:
        self.tip_percent = self._checked_percent(value, "Tip")
        self._changed()

    @staticmethod
    def _checked_percent(value, label: str) -> Decimal:
        pct = to_decimal(value)
        if pct < 0 or pct > HUNDRED:
            raise ValueError(f"{label} percentage must be between 0 and 100, got {pct}")
        return pct

    def participant_names(self) -> Dict[UUID, str]:
        return {p.id: p.name for p in self.participants}

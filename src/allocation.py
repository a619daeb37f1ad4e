"""
Allocation Engine
=================
Pure functions that turn a Bill into what each participant owes.

    share(p) = raw(p) + raw(p)/subtotal * tax_total + raw(p)/subtotal * tip_total

raw(p) is the sum of the item lines p owns (a shared line contributes
line_total / number_of_owners).  Rounding is applied to each participant's
final share only, so the rounded shares may drift from the bill's final
total by at most one cent per participant.

Nothing here mutates the bill.
"""

from dataclasses import dataclass, field
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

from loguru import logger

from ledger import ZERO, Bill, Item, Participant


CENT = Decimal("0.01")

NO_ITEMS = "No items to split"
NO_PARTICIPANTS = "No participants to split between"
UNASSIGNED_ITEMS = "Some items are not assigned to anyone"


class RoundingMode(str, Enum):
    NONE = "none"
    UP = "up"
    DOWN = "down"
    NEAREST = "nearest"


_DECIMAL_ROUNDING = {
    RoundingMode.UP:      ROUND_CEILING,
    RoundingMode.DOWN:    ROUND_FLOOR,
    RoundingMode.NEAREST: ROUND_HALF_UP,
}


def apply_rounding(amount: Decimal, mode: RoundingMode) -> Decimal:
    """Round an amount to whole cents according to `mode` (NONE leaves it as is)."""
    if mode is RoundingMode.NONE:
        return amount
    return amount.quantize(CENT, rounding=_DECIMAL_ROUNDING[mode])


@dataclass
class ParticipantShare:
    participant: Participant
    items: List[Item]
    raw_share: Decimal
    tax_share: Decimal
    tip_share: Decimal
    total: Decimal              # unrounded
    amount_due: Decimal         # after rounding policy


@dataclass
class Allocation:
    subtotal: Decimal
    tax_total: Decimal
    tip_total: Decimal
    final_total: Decimal
    rounding: RoundingMode
    shares: List[ParticipantShare] = field(default_factory=list)

    @property
    def rounded_sum(self) -> Decimal:
        return sum((s.amount_due for s in self.shares), ZERO)

    @property
    def rounding_drift(self) -> Decimal:
        """Rounded shares minus the bill's final total (a few cents at most)."""
        return self.rounded_sum - self.final_total

    def share_for(self, participant_id: UUID) -> Optional[ParticipantShare]:
        for s in self.shares:
            if s.participant.id == participant_id:
                return s
        return None


@dataclass
class SplitResult:
    """Outcome of a split attempt: either an error message or an allocation."""
    error: Optional[str] = None
    allocation: Optional[Allocation] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def raw_share(bill: Bill, participant_id: UUID) -> Decimal:
    """Sum of the item lines owned (solely or fractionally) by one participant."""
    return sum((item.share_for(participant_id) for item in bill.items), ZERO)


def proportion_of(bill: Bill, participant_id: UUID) -> Optional[Decimal]:
    """raw_share / subtotal, or None when the subtotal is zero."""
    subtotal = bill.subtotal
    if subtotal == 0:
        return None
    return raw_share(bill, participant_id) / subtotal


def share_of(
    bill: Bill,
    participant_id: UUID,
    rounding: RoundingMode = RoundingMode.NONE,
) -> Decimal:
    """Raw share plus the proportional part of tax and tip."""
    raw = raw_share(bill, participant_id)
    proportion = proportion_of(bill, participant_id)
    if proportion is None:
        return apply_rounding(raw, rounding)
    total = raw + proportion * bill.tax_total + proportion * bill.tip_total
    return apply_rounding(total, rounding)


def allocate(bill: Bill, rounding: RoundingMode = RoundingMode.NONE) -> Allocation:
    """Compute every participant's share.  Does not validate the bill."""
    subtotal = bill.subtotal
    tax_total = bill.tax_total
    tip_total = bill.tip_total

    shares: List[ParticipantShare] = []
    for participant in bill.participants:
        raw = raw_share(bill, participant.id)
        if subtotal == 0:
            tax_share = tip_share = ZERO
        else:
            proportion = raw / subtotal
            tax_share = proportion * tax_total
            tip_share = proportion * tip_total
        total = raw + tax_share + tip_share
        shares.append(ParticipantShare(
            participant=participant,
            items=bill.items_for(participant.id),
            raw_share=raw,
            tax_share=tax_share,
            tip_share=tip_share,
            total=total,
            amount_due=apply_rounding(total, rounding),
        ))

    return Allocation(
        subtotal=subtotal,
        tax_total=tax_total,
        tip_total=tip_total,
        final_total=subtotal + tax_total + tip_total,
        rounding=rounding,
        shares=shares,
    )


def validate_split(bill: Bill) -> Optional[str]:
    """
    Check that a bill is ready to be split.

    Returns None when it is, otherwise a user-facing message.
    Participants without items are allowed; they simply owe nothing.
    """
    if not bill.items:
        return NO_ITEMS
    if not bill.participants:
        return NO_PARTICIPANTS
    if bill.unassigned_items:
        return UNASSIGNED_ITEMS
    return None


def split_bill(bill: Bill, rounding: RoundingMode = RoundingMode.NONE) -> SplitResult:
    """Validate, then allocate.  No totals are computed for an invalid bill."""
    error = validate_split(bill)
    if error:
        logger.info(f"[Allocation] bill {bill.id} not ready to split: {error}")
        return SplitResult(error=error)

    allocation = allocate(bill, rounding)
    logger.debug(
        f"[Allocation] bill {bill.id} split between {len(allocation.shares)} "
        f"participant(s), drift={allocation.rounding_drift}"
    )
    return SplitResult(allocation=allocation)

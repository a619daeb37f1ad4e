"""
Plain-text split summary, suitable for sharing in a message.

    Bill split · 2024-05-01
    ----------------------------------------
    Subtotal                        $17.98
    Tax (8%)                         $1.44
    Tip (15%)                        $2.70
    Total                           $22.12
    ----------------------------------------
    Alice                           $15.98
      Burger                        $12.99
    Bob                              $6.02
      Fries                          $4.99
"""

from typing import List

from allocation import Allocation
from ledger import Bill
from utils import format_money


WIDTH = 40


def _row(label: str, value: str, indent: int = 0) -> str:
    label = " " * indent + label
    gap = max(1, WIDTH - len(label) - len(value))
    return f"{label}{' ' * gap}{value}"


def _pct(value) -> str:
    # 8.000 → "8", 7.50 → "7.5"
    return format(value.normalize(), "f")


def format_split_summary(bill: Bill, allocation: Allocation, currency: str = "USD") -> str:
    rule = "-" * WIDTH
    lines: List[str] = [
        f"Bill split · {bill.created_at:%Y-%m-%d}",
        rule,
        _row("Subtotal", format_money(allocation.subtotal, currency)),
        _row(f"Tax ({_pct(bill.tax_percent)}%)", format_money(allocation.tax_total, currency)),
        _row(f"Tip ({_pct(bill.tip_percent)}%)", format_money(allocation.tip_total, currency)),
        _row("Total", format_money(allocation.final_total, currency)),
        rule,
    ]

    for share in allocation.shares:
        lines.append(_row(share.participant.name, format_money(share.amount_due, currency)))
        for item in share.items:
            label = item.name if item.quantity == 1 else f"{item.quantity} x {item.name}"
            owners = len(item.owner.owners)
            if owners > 1:
                label += f" (1/{owners})"
            lines.append(_row(label, format_money(item.share_for(share.participant.id), currency), indent=2))

    return "\n".join(lines)

"""
Payment request links for settling a split.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from urllib.parse import quote

from ledger import to_decimal


class PaymentService(str, Enum):
    VENMO = "venmo"
    CASH_APP = "cash_app"
    PAYPAL = "paypal"

    @property
    def display_name(self) -> str:
        return {
            PaymentService.VENMO: "Venmo",
            PaymentService.CASH_APP: "Cash App",
            PaymentService.PAYPAL: "PayPal",
        }[self]

    def payment_url(self, username: str, amount) -> str:
        """URL that opens a payment request for `amount` to `username`."""
        user = quote((username or "").strip(), safe="")
        if not user:
            raise ValueError("Payment username must not be empty")
        value = to_decimal(amount)
        if value < 0:
            raise ValueError(f"Payment amount must not be negative: {value}")
        amount_text = f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"

        if self is PaymentService.VENMO:
            return f"venmo://paycharge?txn=pay&recipients={user}&amount={amount_text}"
        if self is PaymentService.CASH_APP:
            return f"https://cash.app/{user}/{amount_text}"
        return f"https://paypal.me/{user}/{amount_text}"

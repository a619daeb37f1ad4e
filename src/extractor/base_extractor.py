"""
Base Extractor
==============
Shared price/name parsing and the common shape of every per-line
extraction strategy.

A strategy looks at one line (and, for multi-line rows, the line right
after it) and either returns an Item or None.  A line that does not match
is never an error: the cascade simply moves on to the next strategy or
the next line.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from ledger import Item


# Price token: optional "$", digits with optional thousands separators,
# at most two decimal digits.
PRICE = r'(?P<price>\$?\s?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{0,2})?)'

_PRICE_TEXT = re.compile(r'^(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{0,2})?$')
_PRICE_ONLY = re.compile(r'^\s*' + PRICE + r'\s*$')

# Any number anywhere in a line (used by the fallback tiers)
NUMBER_TOKEN = re.compile(r'\$?\s?(\d+(?:,\d{3})*(?:\.\d{1,2})?)')

MIN_NAME_LENGTH = 3


def parse_price(text: str) -> Optional[Decimal]:
    """
    Parse a price token.  Returns None for anything unparseable, for more
    than two decimal digits, and for values of zero or less.
    """
    if text is None:
        return None
    s = text.strip()
    if s.startswith('$'):
        s = s[1:].strip()
    if not _PRICE_TEXT.match(s):
        return None
    try:
        value = Decimal(s.replace(',', ''))
    except InvalidOperation:
        return None
    if value <= 0:
        return None
    return value


def price_only(line: str) -> Optional[Decimal]:
    """Price of a line that holds nothing but a price, else None."""
    m = _PRICE_ONLY.match(line or "")
    if not m:
        return None
    return parse_price(m.group('price'))


def clean_name(name: str) -> str:
    """Collapse whitespace and drop trailing separators left by OCR."""
    s = ' '.join((name or "").split())
    return s.strip(' -:.*').strip()


def valid_name(name: str) -> bool:
    return len(name) >= MIN_NAME_LENGTH


class BaseExtractor:
    """
    One structural pattern of the cascade.

    Subclasses implement _match(line, next_line) and set `lines_consumed`
    to 2 when a match also uses the following line.
    """

    name = "base"
    lines_consumed = 1

    def try_extract(self, line: str, next_line: Optional[str] = None) -> Optional[Item]:
        s = (line or "").strip()
        if not s:
            return None
        nxt = next_line.strip() if next_line else None
        return self._match(s, nxt)

    def _match(self, line: str, next_line: Optional[str]) -> Optional[Item]:
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement _match()"
        )

    def _build_item(
        self,
        name: str,
        price: Decimal,
        quantity: int = 1,
        printed_total: Optional[Decimal] = None,
    ) -> Optional[Item]:
        """Standardised Item, or None if the name is too short."""
        clean = clean_name(name)
        if not valid_name(clean) or price is None or price <= 0 or quantity < 1:
            return None
        return Item(name=clean, price=price, quantity=quantity, printed_total=printed_total)

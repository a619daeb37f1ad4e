"""
Pattern Cascade
===============
Ordered structural matchers applied to every line that survives the
LineClassifier.  The first strategy that matches wins; the rest are
skipped for that line.

  1  SimpleItemStrategy           "Burger 12.99"          name, trailing price
  2  NameThenPriceStrategy        "Burger" / "12.99"      name line + price-only line
  3  QuantityStrategy             "2 x Soda @ 2.99"       unit price
                                  "2 x Soda 2.99"         unit price
  4  ParenthesizedQtyStrategy     "Wings (2) 12.00"       printed line total

Quantity forms are told apart by their literal separators ("x", "@",
parentheses).  Strategy 1 refuses lines that carry any of them so the
quantity strategies get to see them.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from loguru import logger

from extractor.base_extractor import PRICE, BaseExtractor, parse_price, price_only
from extractor.line_classifier import LineClassifier
from ledger import Item


_SIMPLE = re.compile(r'^(?P<name>.+?)(?:\s+|\s*(?=\$))' + PRICE + r'\s*$')

_QTY_PREFIX = re.compile(r'^\d{1,3}\s*[xX×]\s+')
_PAREN_QTY_SUFFIX = re.compile(r'\(\s*\d{1,3}\s*\)\s*$')

_QTY_AT_UNIT = re.compile(
    r'^(?P<qty>\d{1,3})(?:\s*[xX×]\s+|\s+)(?P<name>.+?)\s*@\s*' + PRICE + r'\s*$'
)
_QTY_X_UNIT = re.compile(
    r'^(?P<qty>\d{1,3})\s*[xX×]\s+(?P<name>.+?)(?:\s+|\s*(?=\$))' + PRICE + r'\s*$'
)
_PAREN_QTY = re.compile(
    r'^(?P<name>.+?)\s*\(\s*(?P<qty>\d{1,3})\s*\)\s*' + PRICE + r'\s*$'
)


class SimpleItemStrategy(BaseExtractor):
    """Name followed by a trailing price on the same line."""

    name = "name_price"

    def _match(self, line: str, next_line: Optional[str]) -> Optional[Item]:
        m = _SIMPLE.match(line)
        if not m:
            return None
        name = m.group('name')
        if '@' in name or _QTY_PREFIX.match(name) or _PAREN_QTY_SUFFIX.search(name):
            return None
        return self._build_item(name, parse_price(m.group('price')))


class NameThenPriceStrategy(BaseExtractor):
    """A name-only line immediately followed by a price-only line."""

    name = "name_then_price"
    lines_consumed = 2

    def _match(self, line: str, next_line: Optional[str]) -> Optional[Item]:
        if not next_line:
            return None
        if price_only(line) is not None or _SIMPLE.match(line):
            return None
        price = price_only(next_line)
        if price is None:
            return None
        return self._build_item(line, price)


class QuantityStrategy(BaseExtractor):
    """"2 x Soda @ 2.99" and "2 x Soda 2.99" both store 2.99 as the unit price."""

    name = "quantity_name_price"

    def _match(self, line: str, next_line: Optional[str]) -> Optional[Item]:
        m = _QTY_AT_UNIT.match(line) or _QTY_X_UNIT.match(line)
        if not m:
            return None
        qty = int(m.group('qty'))
        return self._build_item(m.group('name'), parse_price(m.group('price')), qty)


class ParenthesizedQtyStrategy(BaseExtractor):
    """"Wings (2) 12.00": the price is the printed line total for all the wings."""

    name = "name_paren_qty_price"

    def _match(self, line: str, next_line: Optional[str]) -> Optional[Item]:
        m = _PAREN_QTY.match(line)
        if not m:
            return None
        qty = int(m.group('qty'))
        total = parse_price(m.group('price'))
        if qty < 1 or total is None:
            return None
        return self._build_item(m.group('name'), total / qty, qty, printed_total=total)


DEFAULT_STRATEGIES = (
    SimpleItemStrategy,
    NameThenPriceStrategy,
    QuantityStrategy,
    ParenthesizedQtyStrategy,
)


@dataclass
class CascadeMatch:
    item: Item
    strategy: str
    lines_consumed: int


class PatternCascadeExtractor:
    """Runs the classifier and the ordered strategies over a block of text lines."""

    def __init__(
        self,
        classifier: Optional[LineClassifier] = None,
        strategies: Optional[Sequence[BaseExtractor]] = None,
    ):
        self.classifier = classifier or LineClassifier()
        self.strategies: List[BaseExtractor] = (
            list(strategies) if strategies is not None
            else [cls() for cls in DEFAULT_STRATEGIES]
        )

    def match_line(self, line: str, next_line: Optional[str] = None) -> Optional[CascadeMatch]:
        """First strategy that matches this line wins."""
        for strategy in self.strategies:
            item = strategy.try_extract(line, next_line)
            if item is not None:
                return CascadeMatch(item, strategy.name, strategy.lines_consumed)
        return None

    def extract(self, lines: Sequence[str]) -> List[Item]:
        cleaned = [l.strip() for l in lines if l and l.strip()]
        items: List[Item] = []
        n = len(cleaned)
        i = 0
        while i < n:
            line = cleaned[i]
            if self.classifier.should_discard(line):
                i += 1
                continue
            next_line = cleaned[i + 1] if i + 1 < n else None
            match = self.match_line(line, next_line)
            if match is None:
                i += 1
                continue
            items.append(match.item)
            logger.debug(
                f"[PatternCascade] {match.strategy}: {match.item.name!r} "
                f"{match.item.quantity}x{match.item.price}"
            )
            i += match.lines_consumed

        logger.debug(f"[PatternCascade] {len(items)} items found")
        return items

"""
Fallback Extractors
===================
Used only when the pattern cascade under-produces.

Proximity
---------
Finds a price anywhere in a line (rightmost number inside the configured
price range) and pairs it with a name: first the same line with the price
removed, otherwise the nearest of the preceding lines that is not noise,
is long enough and carries no price of its own.  The look-back window
counts raw lines, blank ones included.  A name line is used at most once.

Fuzzy
-----
Last resort.  Narrower price range and no look-back: the name is the line
with the matched number removed.  Never produces an item from a line that
contains no number.

Both tiers read the same LineClassifier as the cascade, so a totals or
payment line can never become an item here either.
"""

from decimal import Decimal
from typing import List, Optional, Sequence, Set, Tuple

from loguru import logger

from extractor.base_extractor import NUMBER_TOKEN, clean_name, parse_price, valid_name
from extractor.line_classifier import LineClassifier
from ledger import Item


def find_price(line: str, low: Decimal, high: Decimal) -> Optional[Tuple[Decimal, Tuple[int, int]]]:
    """
    (price, span) of the rightmost number in the line when it lies inside
    [low, high], else None.  The span covers an optional leading "$".
    """
    matches = list(NUMBER_TOKEN.finditer(line))
    if not matches:
        return None
    m = matches[-1]
    value = parse_price(m.group(1))
    if value is None or value < low or value > high:
        return None
    return value, m.span()


def strip_span(line: str, span: Tuple[int, int]) -> str:
    start, end = span
    return clean_name(line[:start] + ' ' + line[end:])


class ProximityFallbackExtractor:
    """Price anywhere in a line, name from the same line or a nearby one."""

    name = "proximity"

    def __init__(
        self,
        classifier: Optional[LineClassifier] = None,
        price_min: Decimal = Decimal("0.50"),
        price_max: Decimal = Decimal("999.99"),
        window: int = 3,
    ):
        self.classifier = classifier or LineClassifier()
        self.price_min = Decimal(str(price_min))
        self.price_max = Decimal(str(price_max))
        self.window = window

    def extract(self, lines: Sequence[str]) -> List[Item]:
        text_lines = [(l or "").strip() for l in lines]
        items: List[Item] = []
        used_names: Set[int] = set()

        for idx, line in enumerate(text_lines):
            if self.classifier.should_discard(line):
                continue
            found = find_price(line, self.price_min, self.price_max)
            if found is None:
                continue
            price, span = found

            name = strip_span(line, span)
            if not (valid_name(name) and not self.classifier.is_noise(name)):
                name = self._name_above(text_lines, idx, used_names)
            if name is None:
                logger.debug(f"[ProximityFallback] no name near {line!r}, price dropped")
                continue

            items.append(Item(name=name, price=price))
            logger.debug(f"[ProximityFallback] {name!r} {price}")

        logger.debug(f"[ProximityFallback] {len(items)} items found")
        return items

    def _name_above(self, lines: List[str], idx: int, used: Set[int]) -> Optional[str]:
        """Nearest preceding line (within the window) that can serve as a name."""
        for j in range(idx - 1, max(-1, idx - 1 - self.window), -1):
            if j in used:
                continue
            candidate = clean_name(lines[j])
            if not valid_name(candidate):
                continue
            if self.classifier.is_noise(candidate):
                continue
            if find_price(candidate, self.price_min, self.price_max) is not None:
                continue
            used.add(j)
            return candidate
        return None


class FuzzyFallbackExtractor:
    """Any in-range number, name = the rest of the line."""

    name = "fuzzy"

    def __init__(
        self,
        classifier: Optional[LineClassifier] = None,
        price_min: Decimal = Decimal("1.00"),
        price_max: Decimal = Decimal("100.00"),
    ):
        self.classifier = classifier or LineClassifier()
        self.price_min = Decimal(str(price_min))
        self.price_max = Decimal(str(price_max))

    def extract(self, lines: Sequence[str]) -> List[Item]:
        items: List[Item] = []
        for _, line in self.classifier.surviving_lines(list(lines)):
            found = find_price(line, self.price_min, self.price_max)
            if found is None:
                continue
            price, span = found
            name = strip_span(line, span)
            if not valid_name(name):
                continue
            items.append(Item(name=name, price=price))
            logger.debug(f"[FuzzyFallback] {name!r} {price}")

        logger.debug(f"[FuzzyFallback] {len(items)} items found")
        return items

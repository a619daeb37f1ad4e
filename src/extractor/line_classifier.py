"""
Line Classifier
===============
Decides whether an OCR line is noise: totals, tax/tip rows, payment
method, dates and times, addresses.  Noise lines are dropped before any
extraction tier looks at them and are never re-examined.

Keywords are matched on word boundaries only.  A non-item line that slips
through simply fails the price match later; a real item line must never
be classified as noise.
"""

import re
from typing import List, Tuple

from loguru import logger


MIN_LINE_LENGTH = 3

# ─── Noise patterns ───────────────────────────────────────────────────────────

_TOTALS = re.compile(
    r'\b(sub[\s\-]?total|total|tax(?:es)?|tips?|gratuity|receipt|thank\s*you|'
    r'server|table|check|bill)\b',
    re.IGNORECASE,
)

_PAYMENT = re.compile(
    r'\b(cash|card|credit|debit|visa|master\s*card|amex|change|balance|due|paid)\b',
    re.IGNORECASE,
)

_DATE_TIME = re.compile(
    r'\b(date|time)\b'
    r'|\b\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b'
    r'|\b\d{1,2}:\d{2}(?::\d{2})?\s*(?:[ap]\.?m\.?)?\b',
    re.IGNORECASE,
)

_ADDRESS = re.compile(
    r'\b(phone|tel|address|street|city|state|zip)\b',
    re.IGNORECASE,
)

_NOISE_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("totals",    _TOTALS),
    ("payment",   _PAYMENT),
    ("date_time", _DATE_TIME),
    ("address",   _ADDRESS),
]


class LineClassifier:
    """Stateless noise filter shared by every extraction tier."""

    def is_noise(self, line: str) -> bool:
        """True if the line carries a totals, payment, date/time or address marker."""
        return self.noise_kind(line) is not None

    def noise_kind(self, line: str):
        """Name of the first noise group that matches, or None."""
        for kind, pattern in _NOISE_PATTERNS:
            if pattern.search(line):
                return kind
        return None

    def should_discard(self, line: str) -> bool:
        """Empty, too short, or noise."""
        s = (line or "").strip()
        if len(s) < MIN_LINE_LENGTH:
            return True
        return self.is_noise(s)

    def surviving_lines(self, lines: List[str]) -> List[Tuple[int, str]]:
        """(index, stripped line) for every line that may hold an item."""
        survivors = []
        for idx, line in enumerate(lines):
            s = line.strip()
            if self.should_discard(s):
                if s:
                    logger.debug(f"[LineClassifier] drop {s!r}")
                continue
            survivors.append((idx, s))
        return survivors

"""
Extractor Factory
=================
Builds the extraction tiers from the `extraction` config section.

Usage
-----
    factory   = ExtractorFactory(config["extraction"])
    cascade   = factory.get_extractor("cascade")
    items     = cascade.extract(lines)
"""

from decimal import Decimal
from typing import Optional

from loguru import logger

from extractor.cascade_extractors import PatternCascadeExtractor
from extractor.fallback_extractors import FuzzyFallbackExtractor, ProximityFallbackExtractor
from extractor.line_classifier import LineClassifier


class ExtractorFactory:
    """
    Returns the extractor for one tier: 'cascade', 'proximity' or 'fuzzy'.

    All tiers share one LineClassifier so the noise rules are identical
    at every stage.
    """

    TIERS = ("cascade", "proximity", "fuzzy")

    def __init__(self, config: Optional[dict] = None):
        self.config = config or {}
        self.classifier = LineClassifier()
        self._extractors: dict = {}   # lazy-initialised per tier

    def get_extractor(self, tier: str):
        """
        Return a (cached) extractor for the given tier.

        Raises
        ------
        ValueError
            Unknown tier name.
        """
        if tier not in self.TIERS:
            raise ValueError(f"Unknown extraction tier '{tier}'. Expected one of {self.TIERS}")

        if tier not in self._extractors:
            self._extractors[tier] = self._build(tier)
            logger.debug(
                f"[ExtractorFactory] Initialised {type(self._extractors[tier]).__name__}"
            )
        return self._extractors[tier]

    def _build(self, tier: str):
        cfg = self.config
        if tier == "cascade":
            return PatternCascadeExtractor(classifier=self.classifier)
        if tier == "proximity":
            return ProximityFallbackExtractor(
                classifier=self.classifier,
                price_min=Decimal(str(cfg.get("proximity_price_min", "0.50"))),
                price_max=Decimal(str(cfg.get("proximity_price_max", "999.99"))),
                window=int(cfg.get("proximity_window", 3)),
            )
        return FuzzyFallbackExtractor(
            classifier=self.classifier,
            price_min=Decimal(str(cfg.get("fuzzy_price_min", "1.00"))),
            price_max=Decimal(str(cfg.get("fuzzy_price_max", "100.00"))),
        )

    @property
    def supported_tiers(self) -> list:
        return list(self.TIERS)

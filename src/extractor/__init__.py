"""
Extractor package - line-item extraction tiers for receipt OCR text.

  LineClassifier            noise filter shared by every tier
  PatternCascadeExtractor   ordered structural patterns, first match wins
  ProximityFallback         price anywhere, name from the same or a nearby line
  FuzzyFallback             last resort number/name pairing

Usage (via factory)
-------------------
from extractor import ExtractorFactory
factory = ExtractorFactory()
items   = factory.get_extractor("cascade").extract(lines)
"""

from extractor.factory import ExtractorFactory
from extractor.line_classifier import LineClassifier

__all__ = ["ExtractorFactory", "LineClassifier"]

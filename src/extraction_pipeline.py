"""
Extraction Pipeline
===================
Sequences the extraction tiers over recognised receipt text.

    PREPROCESSING → TEXT_DETECTION → ITEM_EXTRACTION → (AI_FALLBACK) → COMPLETED
         0.1              0.3               0.6               0.8           1.0

Preprocessing and text detection belong to the OCR collaborator; when a
recogniser is passed to `scan()` it is called during TEXT_DETECTION,
otherwise both steps are pass-through.  AI_FALLBACK is entered only when
the cascade found fewer than `min_cascade_items` items; it runs the
proximity tier and, if that still finds nothing, the fuzzy tier.

Results can only be read once the run is COMPLETED.  A cancelled run or a
failed recogniser leaves the run FAILED with no items.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from loguru import logger

from errors import CollaboratorFailure, ExtractionCancelled, ResultsNotReady
from extractor import ExtractorFactory
from ledger import Item
from utils import format_processing_time, split_lines


class ProcessingStep(str, Enum):
    PREPROCESSING = "preprocessing"
    TEXT_DETECTION = "text_detection"
    ITEM_EXTRACTION = "item_extraction"
    AI_FALLBACK = "ai_fallback"
    COMPLETED = "completed"
    FAILED = "failed"


STEP_PROGRESS = {
    ProcessingStep.PREPROCESSING:   0.1,
    ProcessingStep.TEXT_DETECTION:  0.3,
    ProcessingStep.ITEM_EXTRACTION: 0.6,
    ProcessingStep.AI_FALLBACK:     0.8,
    ProcessingStep.COMPLETED:       1.0,
}

METHOD_CONFIDENCE = {
    "Pattern Matching":   0.8,
    "Proximity Fallback": 0.5,
    "Fuzzy Fallback":     0.3,
}


class TextRecognizer(Protocol):
    """OCR collaborator: turns an image source into newline-separated text."""

    def recognize(self, source: Any) -> str:
        ...


ProgressCallback = Callable[[ProcessingStep, float], None]


@dataclass
class ProcessingStats:
    lines_processed: int = 0
    items_extracted: int = 0
    processing_time_ms: int = 0
    method_used: str = "Pattern Matching"
    confidence: float = 0.0

    def to_dict(self) -> Dict:
        return {
            'lines_processed': self.lines_processed,
            'items_extracted': self.items_extracted,
            'processing_time_ms': self.processing_time_ms,
            'method_used': self.method_used,
            'confidence': self.confidence,
        }


@dataclass
class ExtractionRun:
    """State of one pipeline execution."""
    step: ProcessingStep = ProcessingStep.PREPROCESSING
    progress: float = 0.0
    checkpoints: List[Tuple[ProcessingStep, float]] = field(default_factory=list)
    stats: ProcessingStats = field(default_factory=ProcessingStats)
    escalated: bool = False
    error: Optional[str] = None
    _items: List[Item] = field(default_factory=list, repr=False)

    @property
    def completed(self) -> bool:
        return self.step is ProcessingStep.COMPLETED

    @property
    def items(self) -> List[Item]:
        if not self.completed:
            raise ResultsNotReady(f"Extraction run is {self.step.value}, not completed")
        return list(self._items)


class ExtractionPipeline:
    """
    One pipeline instance can serve many runs; each run has its own
    ExtractionRun state and item accumulator.
    """

    def __init__(
        self,
        factory: Optional[ExtractorFactory] = None,
        min_cascade_items: int = 2,
    ):
        self.factory = factory or ExtractorFactory()
        self.min_cascade_items = min_cascade_items

    @classmethod
    def from_config(cls, config: Dict) -> "ExtractionPipeline":
        section = config.get('extraction', {})
        return cls(
            factory=ExtractorFactory(section),
            min_cascade_items=int(section.get('min_cascade_items', 2)),
        )

    # ── Public API ────────────────────────────────────────────────────────────

    def extract(
        self,
        text: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExtractionRun:
        """Run the pipeline on text that has already been recognised."""
        return self._run(lambda: text, on_progress, cancel_event)

    def scan(
        self,
        source: Any,
        recognizer: TextRecognizer,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExtractionRun:
        """
        Recognise `source` with the OCR collaborator, then extract.

        Raises
        ------
        CollaboratorFailure
            The recogniser raised; no items are produced.
        ExtractionCancelled
            `cancel_event` was set between two steps.
        """
        return self._run(lambda: recognizer.recognize(source), on_progress, cancel_event)

    # ── State machine ─────────────────────────────────────────────────────────

    def _run(
        self,
        recognize: Callable[[], str],
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> ExtractionRun:
        run = ExtractionRun()
        start = time.time()

        try:
            self._enter(run, ProcessingStep.PREPROCESSING, on_progress, cancel_event)

            self._enter(run, ProcessingStep.TEXT_DETECTION, on_progress, cancel_event)
            try:
                text = recognize()
            except Exception as e:
                logger.error(f"[ExtractionPipeline] text recognition failed: {e}")
                raise CollaboratorFailure(f"Text recognition failed: {e}") from e

            lines = split_lines(text or "")
            run.stats.lines_processed = sum(1 for l in lines if l.strip())

            self._enter(run, ProcessingStep.ITEM_EXTRACTION, on_progress, cancel_event)
            items = self.factory.get_extractor("cascade").extract(lines)
            method = "Pattern Matching"
            logger.info(f"[ExtractionPipeline] cascade found {len(items)} item(s)")

            if len(items) < self.min_cascade_items:
                run.escalated = True
                self._enter(run, ProcessingStep.AI_FALLBACK, on_progress, cancel_event)
                items, method = self._fallback(lines, cancel_event)

            run._items = items
            run.stats.items_extracted = len(items)
            run.stats.method_used = method
            run.stats.confidence = METHOD_CONFIDENCE[method] if items else 0.0
            run.stats.processing_time_ms = int((time.time() - start) * 1000)
            self._enter(run, ProcessingStep.COMPLETED, on_progress, cancel_event)

        except (CollaboratorFailure, ExtractionCancelled) as e:
            run._items = []
            run.step = ProcessingStep.FAILED
            run.error = str(e)
            run.stats.processing_time_ms = int((time.time() - start) * 1000)
            raise

        logger.info(
            f"[ExtractionPipeline] completed: {run.stats.items_extracted} item(s) via "
            f"{run.stats.method_used} in {format_processing_time(run.stats.processing_time_ms)}"
        )
        return run

    def _fallback(
        self,
        lines: List[str],
        cancel_event: Optional[threading.Event],
    ) -> Tuple[List[Item], str]:
        items = self.factory.get_extractor("proximity").extract(lines)
        logger.info(f"[ExtractionPipeline] proximity fallback found {len(items)} item(s)")
        if items:
            return items, "Proximity Fallback"

        self._check_cancel(cancel_event)
        items = self.factory.get_extractor("fuzzy").extract(lines)
        logger.info(f"[ExtractionPipeline] fuzzy fallback found {len(items)} item(s)")
        return items, "Fuzzy Fallback"

    def _enter(
        self,
        run: ExtractionRun,
        step: ProcessingStep,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> None:
        self._check_cancel(cancel_event)
        run.step = step
        run.progress = STEP_PROGRESS[step]
        run.checkpoints.append((step, run.progress))
        logger.debug(f"[ExtractionPipeline] {step.value} ({run.progress:.0%})")
        if on_progress is not None:
            on_progress(step, run.progress)

    @staticmethod
    def _check_cancel(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("[ExtractionPipeline] run cancelled, discarding partial results")
            raise ExtractionCancelled("Extraction was cancelled")

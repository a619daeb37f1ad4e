"""
Bill Session
============
Owns one live bill and serialises everything that touches it: extraction
runs merge into the bill only after they complete, and edits wait while a
run is in flight.
"""

import threading
from typing import Any, Iterable, List, Optional
from uuid import UUID

from loguru import logger

from allocation import Allocation, RoundingMode, split_bill
from app_settings import AppSettings
from bill_repository import BillRepository, InMemoryBillRepository
from extraction_pipeline import ExtractionPipeline, ExtractionRun, ProgressCallback, TextRecognizer
from ledger import COLOR_PALETTE, Bill, Item, Participant


class BillSession:

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        pipeline: Optional[ExtractionPipeline] = None,
        repository: Optional[BillRepository] = None,
        bill: Optional[Bill] = None,
    ):
        self.settings = settings or AppSettings()
        self.pipeline = pipeline or ExtractionPipeline()
        self.repository = repository or InMemoryBillRepository()
        self.bill = bill or Bill.from_settings(self.settings)
        self.split_error: Optional[str] = None
        self.last_run: Optional[ExtractionRun] = None
        self._lock = threading.RLock()

    @property
    def id(self) -> UUID:
        return self.bill.id

    # ── Scanning ──────────────────────────────────────────────────────────────

    def scan_text(
        self,
        text: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExtractionRun:
        """Extract items from recognised text and append them to the bill."""
        with self._lock:
            run = self.pipeline.extract(text, on_progress=on_progress, cancel_event=cancel_event)
            return self._merge(run)

    def scan(
        self,
        source: Any,
        recognizer: TextRecognizer,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExtractionRun:
        """Recognise and extract; a failed or cancelled run leaves the bill untouched."""
        with self._lock:
            run = self.pipeline.scan(
                source, recognizer, on_progress=on_progress, cancel_event=cancel_event
            )
            return self._merge(run)

    def _merge(self, run: ExtractionRun) -> ExtractionRun:
        self.last_run = run
        added = self.bill.merge_items(run.items)
        logger.info(f"[BillSession] merged {added} item(s) into bill {self.bill.id}")
        return run

    # ── Edits ─────────────────────────────────────────────────────────────────

    def add_item(self, name: str, price, quantity: int = 1) -> Item:
        with self._lock:
            return self.bill.add_manual_item(name, price, quantity)

    def remove_item(self, item_id: UUID) -> Item:
        with self._lock:
            return self.bill.remove_item(item_id)

    def set_owners(self, item_id: UUID, participant_ids: Iterable[UUID]) -> Item:
        """No ids unassigns, one id assigns, several ids share the item."""
        with self._lock:
            return self.bill.share_item(item_id, participant_ids)

    def add_participant(self, name: str, color_tag: Optional[str] = None) -> Participant:
        with self._lock:
            if color_tag is None:
                color_tag = self._next_color()
            return self.bill.add_participant(Participant(name=name, color_tag=color_tag))

    def remove_participant(self, participant_id: UUID) -> Participant:
        with self._lock:
            return self.bill.remove_participant(participant_id)

    def set_charges(self, tax_percent=None, tip_percent=None) -> Bill:
        with self._lock:
            if tax_percent is not None:
                self.bill.set_tax_percent(tax_percent)
            if tip_percent is not None:
                self.bill.set_tip_percent(tip_percent)
            return self.bill

    def _next_color(self) -> str:
        return COLOR_PALETTE[len(self.bill.participants) % len(COLOR_PALETTE)]

    # ── Split ─────────────────────────────────────────────────────────────────

    def split(self, rounding: Optional[RoundingMode] = None) -> Optional[Allocation]:
        """
        Validate and allocate.  On failure the message is kept in
        `split_error` and None is returned; the next attempt clears it.
        """
        with self._lock:
            self.split_error = None
            result = split_bill(self.bill, rounding or self.settings.rounding_mode)
            if not result.ok:
                self.split_error = result.error
                return None
            return result.allocation

    # ── History ───────────────────────────────────────────────────────────────

    def save(self) -> bool:
        """Save the bill to history. Returns False when history is disabled."""
        with self._lock:
            if not self.settings.save_history:
                logger.info("[BillSession] history disabled, bill not saved")
                return False
            self.repository.save(self.bill)
            return True

    def history(self) -> List[Bill]:
        return self.repository.load_all()

    def delete_saved(self, bill_id: UUID) -> None:
        self.repository.delete(bill_id)

    def reset(self) -> Bill:
        """Start over with a fresh bill carrying the settings defaults."""
        with self._lock:
            self.bill = Bill.from_settings(self.settings)
            self.split_error = None
            self.last_run = None
            return self.bill

"""
Bill repositories
=================
Saved-bill storage behind one small interface so the session never
touches a global store.

  InMemoryBillRepository   process-local, used by tests and the API default
  JsonFileBillRepository   one JSON array of serialised bills on disk
"""

import os
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List
from uuid import UUID

from loguru import logger

import bill_codec
from errors import UnknownEntity
from ledger import Bill
from utils import ensure_directory


class BillRepository(ABC):
    """save / load_all / delete / get over saved bills."""

    @abstractmethod
    def save(self, bill: Bill) -> None:
        """Store a bill; an existing bill with the same id is replaced."""

    @abstractmethod
    def load_all(self) -> List[Bill]:
        """Every saved bill, most recently created first."""

    @abstractmethod
    def delete(self, bill_id: UUID) -> None:
        """Remove a saved bill. Raises UnknownEntity if it is not there."""

    def get(self, bill_id: UUID) -> Bill:
        for bill in self.load_all():
            if bill.id == bill_id:
                return bill
        raise UnknownEntity(f"No saved bill {bill_id}")


def _newest_first(bills: List[Bill]) -> List[Bill]:
    return sorted(bills, key=lambda b: b.created_at, reverse=True)


class InMemoryBillRepository(BillRepository):

    def __init__(self):
        self._bills: "OrderedDict[UUID, dict]" = OrderedDict()
        self._lock = threading.Lock()

    def save(self, bill: Bill) -> None:
        # Stored encoded so later edits to the live bill do not leak in
        with self._lock:
            self._bills[bill.id] = bill_codec.encode_bill(bill)

    def load_all(self) -> List[Bill]:
        with self._lock:
            records = list(self._bills.values())
        return _newest_first([bill_codec.decode_bill(r) for r in records])

    def delete(self, bill_id: UUID) -> None:
        with self._lock:
            if bill_id not in self._bills:
                raise UnknownEntity(f"No saved bill {bill_id}")
            del self._bills[bill_id]


class JsonFileBillRepository(BillRepository):
    """All saved bills in one JSON file, rewritten on every change."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()
        ensure_directory(str(self.path.parent))

    def _read(self) -> List[Bill]:
        if not self.path.exists():
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            return bill_codec.loads(f.read())

    def _write(self, bills: List[Bill]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, 'w', encoding='utf-8') as f:
            f.write(bill_codec.dumps(bills))
        os.replace(tmp, self.path)

    def save(self, bill: Bill) -> None:
        with self._lock:
            bills = [b for b in self._read() if b.id != bill.id]
            bills.append(bill)
            self._write(bills)
        logger.info(f"[JsonFileBillRepository] saved bill {bill.id} ({len(bills)} total)")

    def load_all(self) -> List[Bill]:
        with self._lock:
            return _newest_first(self._read())

    def delete(self, bill_id: UUID) -> None:
        with self._lock:
            bills = self._read()
            remaining = [b for b in bills if b.id != bill_id]
            if len(remaining) == len(bills):
                raise UnknownEntity(f"No saved bill {bill_id}")
            self._write(remaining)
        logger.info(f"[JsonFileBillRepository] deleted bill {bill_id}")


def build_repository(config: Dict) -> BillRepository:
    """Repository from the `storage` config section ('json' or 'memory')."""
    storage = config.get('storage', {})
    backend = storage.get('backend', 'json')
    if backend == 'memory':
        return InMemoryBillRepository()
    if backend == 'json':
        return JsonFileBillRepository(storage.get('path', 'data/bills.json'))
    raise ValueError(f"Unknown storage backend '{backend}'. Expected 'json' or 'memory'")

from __future__ import annotations

import threading
from typing import Optional

from recipe_ledger.app.domain.models import LedgerSnapshot
from recipe_ledger.app.infra.db.base import LedgerSnapshotRepository


class InMemorySnapshotRepository(LedgerSnapshotRepository):
    def __init__(self, snapshot: Optional[LedgerSnapshot] = None):
        self._snapshot = snapshot.copy() if snapshot is not None else None
        self._lock = threading.Lock()
        self.save_count = 0

    def load_snapshot(self) -> Optional[LedgerSnapshot]:
        with self._lock:
            return self._snapshot.copy() if self._snapshot is not None else None

    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot.copy()
            self.save_count += 1

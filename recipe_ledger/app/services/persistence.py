# recipe_ledger/app/services/persistence.py
from __future__ import annotations

import logging
import threading

from recipe_ledger.app.domain.models import RecipeEvent
from recipe_ledger.app.infra.db.base import LedgerSnapshotRepository
from recipe_ledger.app.services.recipe_store import RecipeStore

logger = logging.getLogger(__name__)


class SnapshotPersister:
    """
    Event handler that saves the whole store after each committed mutation.

    Saves are serialized and a snapshot is only written if it is newer than
    the last one saved, so a slow save never overwrites a later state.
    """

    def __init__(
        self,
        store: RecipeStore,
        repository: LedgerSnapshotRepository,
        saved_sequence: int = 0,
    ):
        self._store = store
        self._repository = repository
        self._lock = threading.Lock()
        self._saved_sequence = saved_sequence

    @property
    def saved_sequence(self) -> int:
        return self._saved_sequence

    def __call__(self, event: RecipeEvent) -> None:
        with self._lock:
            snapshot = self._store.snapshot()
            if snapshot.sequence <= self._saved_sequence:
                logger.debug(
                    "Ledger snapshot already saved for %s: sequence=%d",
                    event.event_type.value,
                    snapshot.sequence,
                )
                return
            self._repository.save_snapshot(snapshot)
            self._saved_sequence = snapshot.sequence
        logger.debug(
            "Ledger snapshot saved after %s: recipes=%d, sequence=%d",
            event.event_type.value,
            len(snapshot.recipes),
            snapshot.sequence,
        )

    def attach(self) -> None:
        self._store.events.subscribe(self)


def load_store(repository: LedgerSnapshotRepository, **store_kwargs) -> RecipeStore:
    """
    Build a store from the repository's last snapshot and keep it persisted.

    Args:
        repository: Where the state lives
        store_kwargs: Extra RecipeStore arguments (event_bus, clock)

    Returns:
        A store whose mutations are written back to the repository
    """
    snapshot = repository.load_snapshot()
    store = RecipeStore(snapshot=snapshot, **store_kwargs)
    SnapshotPersister(store, repository, saved_sequence=store.snapshot().sequence).attach()
    if snapshot is None:
        logger.info("No ledger snapshot found, starting empty")
    return store

# recipe_ledger/app/infra/db/base.py
"""
Abstract base class for ledger snapshot storage.
This interface allows easy swapping between different persistence backends.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from recipe_ledger.app.domain.models import LedgerSnapshot


class LedgerSnapshotRepository(ABC):
    """
    Abstract interface for persisting the recipe store state.

    Implementations:
    - InMemorySnapshotRepository: process-local copy, lost on restart
    - SupabaseLedgerRepository: Postgres tables via Supabase
    """

    @abstractmethod
    def load_snapshot(self) -> Optional[LedgerSnapshot]:
        """
        Load the last saved state.

        Returns:
            The snapshot, or None if nothing was saved yet
        """
        pass

    @abstractmethod
    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        """
        Persist a full copy of the store state, replacing the previous one.

        Args:
            snapshot: State as returned by RecipeStore.snapshot()
        """
        pass

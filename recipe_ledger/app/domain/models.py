# recipe_ledger/app/domain/models.py
"""
Domain models for the recipe ledger.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Union


class RecipeEventType(str, Enum):
    """Names of the notifications emitted by the store."""
    CREATED = "RecipeCreated"
    UPDATED = "RecipeUpdated"
    VISIBILITY_CHANGED = "VisibilityChanged"


@dataclass(frozen=True)
class Recipe:
    """
    A recipe record as held by the store.
    Instances are immutable; the store swaps in a new instance on update.
    """
    id: int
    name: str
    body: str
    instructions: str
    category: str
    owner: str
    created_at: datetime
    is_public: bool = False

    def is_visible_to(self, caller: str | None) -> bool:
        """Public records are visible to everyone, private ones only to the owner."""
        return self.is_public or (caller is not None and caller == self.owner)


@dataclass(frozen=True)
class RecipeCreated:
    event_type: ClassVar[RecipeEventType] = RecipeEventType.CREATED
    recipe_id: int
    name: str
    owner: str
    category: str
    is_public: bool


@dataclass(frozen=True)
class RecipeUpdated:
    event_type: ClassVar[RecipeEventType] = RecipeEventType.UPDATED
    recipe_id: int
    name: str
    owner: str


@dataclass(frozen=True)
class VisibilityChanged:
    event_type: ClassVar[RecipeEventType] = RecipeEventType.VISIBILITY_CHANGED
    recipe_id: int
    is_public: bool
    owner: str


RecipeEvent = Union[RecipeCreated, RecipeUpdated, VisibilityChanged]


@dataclass(frozen=True)
class LedgerStats:
    """Global counters of the store."""
    total_recipes: int
    recipe_counter: int


@dataclass
class LedgerSnapshot:
    """
    Full copy of the store state.
    Index lists keep their exact order, including order disturbed by
    swap-removal from category buckets.
    """
    recipes: dict[int, Recipe] = field(default_factory=dict)
    by_owner: dict[str, list[int]] = field(default_factory=dict)
    by_category: dict[str, list[int]] = field(default_factory=dict)
    recipe_counter: int = 0
    total_recipes: int = 0
    # Number of committed mutations, including updates and toggles.
    sequence: int = 0

    def copy(self) -> LedgerSnapshot:
        # Recipes are frozen, only the containers need copying.
        return LedgerSnapshot(
            recipes=dict(self.recipes),
            by_owner=copy.deepcopy(self.by_owner),
            by_category=copy.deepcopy(self.by_category),
            recipe_counter=self.recipe_counter,
            total_recipes=self.total_recipes,
            sequence=self.sequence,
        )

# recipe_ledger/app/services/recipe_store.py
"""
Ownership-indexed recipe store.
Keeps recipes keyed by a monotonically increasing id plus two secondary
indices (owner -> ids, category -> ids).
"""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from recipe_ledger.app.domain.errors import (
    LedgerIntegrityError,
    RecipeNotFoundError,
    RecipePermissionError,
    RecipeValidationError,
)
from recipe_ledger.app.domain.models import (
    LedgerSnapshot,
    LedgerStats,
    Recipe,
    RecipeCreated,
    RecipeUpdated,
    VisibilityChanged,
)
from recipe_ledger.app.services.events import RecipeEventBus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _require_text(**fields: str) -> None:
    for field_name, value in fields.items():
        if not value:
            raise RecipeValidationError(field_name)


class RecipeStore:
    """
    Single owner of the recipe ledger state.

    Responsibilities:
    - Assign ids and keep both indices consistent with live records
    - Reject non-owner mutations and non-owner reads of private recipes
    - Publish a notification after every committed mutation

    All state is guarded by one lock. Guard clauses run before any write,
    so a failed call leaves no trace.
    """

    def __init__(
        self,
        event_bus: Optional[RecipeEventBus] = None,
        clock: Optional[Clock] = None,
        snapshot: Optional[LedgerSnapshot] = None,
    ):
        self._lock = threading.RLock()
        self._recipes: dict[int, Recipe] = {}
        self._by_owner: dict[str, list[int]] = {}
        self._by_category: dict[str, list[int]] = {}
        self._recipe_counter = 0
        self._total_recipes = 0
        self._sequence = 0
        self._events = event_bus or RecipeEventBus()
        self._clock = clock or _now_utc
        if snapshot is not None:
            self._restore(snapshot)

    @property
    def events(self) -> RecipeEventBus:
        return self._events

    # ── Mutations ──────────────────────────────────────────────

    def create_recipe(
        self,
        *,
        name: str,
        body: str,
        instructions: str,
        category: str,
        is_public: bool,
        caller: str,
    ) -> int:
        """
        Store a new recipe owned by the caller.

        Args:
            name: Recipe title
            body: Ingredient list
            instructions: Preparation steps
            category: Index key, may be empty
            is_public: Initial visibility
            caller: Identity of the submitting principal

        Returns:
            The new recipe id

        Raises:
            RecipeValidationError: If name, body or instructions is empty
        """
        _require_text(name=name, body=body, instructions=instructions)

        with self._lock:
            self._recipe_counter += 1
            self._total_recipes += 1
            self._sequence += 1
            recipe_id = self._recipe_counter
            self._recipes[recipe_id] = Recipe(
                id=recipe_id,
                name=name,
                body=body,
                instructions=instructions,
                category=category,
                owner=caller,
                created_at=self._clock(),
                is_public=is_public,
            )
            self._by_owner.setdefault(caller, []).append(recipe_id)
            self._by_category.setdefault(category, []).append(recipe_id)

        logger.info("Recipe created: id=%d, owner=%s, category=%r", recipe_id, caller, category)
        self._events.publish(
            RecipeCreated(
                recipe_id=recipe_id,
                name=name,
                owner=caller,
                category=category,
                is_public=is_public,
            )
        )
        return recipe_id

    def update_recipe(
        self,
        recipe_id: int,
        *,
        name: str,
        body: str,
        instructions: str,
        category: str,
        caller: str,
    ) -> None:
        """
        Overwrite the text fields of a recipe owned by the caller.

        A category change moves the id from the old bucket (swap-with-last
        and pop, so the old bucket's order is not preserved) to the end of
        the new bucket.

        Raises:
            RecipeNotFoundError: If the recipe does not exist
            RecipePermissionError: If the caller is not the owner
            RecipeValidationError: If name, body or instructions is empty
        """
        with self._lock:
            recipe = self._require_owned(recipe_id, caller)
            _require_text(name=name, body=body, instructions=instructions)

            if category != recipe.category:
                self._remove_from_category(recipe.category, recipe_id)
                self._by_category.setdefault(category, []).append(recipe_id)

            self._sequence += 1
            self._recipes[recipe_id] = replace(
                recipe,
                name=name,
                body=body,
                instructions=instructions,
                category=category,
            )

        logger.info("Recipe updated: id=%d, owner=%s", recipe_id, caller)
        self._events.publish(RecipeUpdated(recipe_id=recipe_id, name=name, owner=caller))

    def toggle_visibility(self, recipe_id: int, *, caller: str) -> bool:
        """
        Flip the public flag of a recipe owned by the caller.

        Returns:
            The new visibility

        Raises:
            RecipeNotFoundError: If the recipe does not exist
            RecipePermissionError: If the caller is not the owner
        """
        with self._lock:
            recipe = self._require_owned(recipe_id, caller)
            is_public = not recipe.is_public
            self._recipes[recipe_id] = replace(recipe, is_public=is_public)
            self._sequence += 1

        logger.info("Recipe visibility changed: id=%d, public=%s", recipe_id, is_public)
        self._events.publish(
            VisibilityChanged(recipe_id=recipe_id, is_public=is_public, owner=caller)
        )
        return is_public

    # ── Reads ──────────────────────────────────────────────────

    def get_recipe(self, recipe_id: int, caller: Optional[str] = None) -> Recipe:
        """
        Return a recipe if the caller may see it.

        Args:
            recipe_id: The recipe
            caller: Requesting identity, None for anonymous callers

        Raises:
            RecipeNotFoundError: If the recipe does not exist
            RecipePermissionError: If the recipe is private and caller is not the owner
        """
        with self._lock:
            recipe = self._require_existing(recipe_id)
        if not recipe.is_visible_to(caller):
            logger.warning("Private recipe read rejected: id=%d, caller=%s", recipe_id, caller)
            raise RecipePermissionError(recipe_id, caller, "private, not owner")
        return recipe

    def list_by_owner(self, owner: str) -> list[int]:
        """Ids created by owner in creation order, private ones included."""
        with self._lock:
            return list(self._by_owner.get(owner, ()))

    def list_public_by_category(self, category: str) -> list[int]:
        """Ids in the category bucket whose recipe is currently public, in bucket order."""
        with self._lock:
            return [
                recipe_id
                for recipe_id in self._by_category.get(category, ())
                if self._recipes[recipe_id].is_public
            ]

    def stats(self) -> LedgerStats:
        with self._lock:
            return LedgerStats(
                total_recipes=self._total_recipes,
                recipe_counter=self._recipe_counter,
            )

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                recipes=self._recipes,
                by_owner=self._by_owner,
                by_category=self._by_category,
                recipe_counter=self._recipe_counter,
                total_recipes=self._total_recipes,
                sequence=self._sequence,
            ).copy()

    # ── Guards & index maintenance ─────────────────────────────

    def _require_existing(self, recipe_id: int) -> Recipe:
        recipe = self._recipes.get(recipe_id) if recipe_id != 0 else None
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        return recipe

    def _require_owned(self, recipe_id: int, caller: str) -> Recipe:
        recipe = self._require_existing(recipe_id)
        if recipe.owner != caller:
            logger.warning("Non-owner mutation rejected: id=%d, caller=%s", recipe_id, caller)
            raise RecipePermissionError(recipe_id, caller)
        return recipe

    def _remove_from_category(self, category: str, recipe_id: int) -> None:
        bucket = self._by_category.get(category, [])
        for index, candidate in enumerate(bucket):
            if candidate == recipe_id:
                bucket[index] = bucket[-1]
                bucket.pop()
                return

    def _restore(self, snapshot: LedgerSnapshot) -> None:
        state = snapshot.copy()
        if state.recipe_counter != state.total_recipes:
            raise LedgerIntegrityError(
                f"counter {state.recipe_counter} != total {state.total_recipes}"
            )
        if sorted(state.recipes) != list(range(1, state.recipe_counter + 1)):
            raise LedgerIntegrityError("recipe ids are not 1..recipe_counter")

        for recipe_id, recipe in state.recipes.items():
            if recipe.id != recipe_id:
                raise LedgerIntegrityError(f"recipe keyed {recipe_id} carries id {recipe.id}")

        indices = (("owner", state.by_owner), ("category", state.by_category))
        for attribute, index in indices:
            seen: list[int] = []
            for key, recipe_ids in index.items():
                for recipe_id in recipe_ids:
                    recipe = state.recipes.get(recipe_id)
                    if recipe is None or getattr(recipe, attribute) != key:
                        raise LedgerIntegrityError(
                            f"{attribute} index {key!r} references recipe {recipe_id}"
                        )
                seen.extend(recipe_ids)
            if sorted(seen) != sorted(state.recipes):
                raise LedgerIntegrityError(f"{attribute} index does not cover every recipe once")

        self._recipes = state.recipes
        self._by_owner = state.by_owner
        self._by_category = state.by_category
        self._recipe_counter = state.recipe_counter
        self._total_recipes = state.total_recipes
        self._sequence = max(state.sequence, state.recipe_counter)
        logger.info("Recipe store restored: recipes=%d", len(self._recipes))

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client

from recipe_ledger.app.domain.errors import SnapshotRepositoryError
from recipe_ledger.app.domain.models import LedgerSnapshot, Recipe
from recipe_ledger.app.infra.db.base import LedgerSnapshotRepository

logger = logging.getLogger(__name__)

INDEX_KIND_OWNER = "owner"
INDEX_KIND_CATEGORY = "category"
STATE_ROW_ID = 1


def _parse_datetime(value: str | datetime | None) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return datetime.fromtimestamp(0, timezone.utc)
    normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
    return datetime.fromisoformat(normalized)


def _row_to_recipe(row: dict[str, Any]) -> Recipe:
    return Recipe(
        id=int(row["recipe_id"]),
        name=str(row["name"]),
        body=str(row["body"]),
        instructions=str(row["instructions"]),
        category=str(row.get("category") or ""),
        owner=str(row["owner"]),
        created_at=_parse_datetime(row.get("created_at")),
        is_public=bool(row.get("is_public")),
    )


def _recipe_to_row(recipe: Recipe) -> dict[str, Any]:
    return {
        "recipe_id": recipe.id,
        "name": recipe.name,
        "body": recipe.body,
        "instructions": recipe.instructions,
        "category": recipe.category,
        "owner": recipe.owner,
        "created_at": recipe.created_at.isoformat(),
        "is_public": recipe.is_public,
    }


def _index_rows(kind: str, index: dict[str, list[int]]) -> list[dict[str, Any]]:
    return [{"kind": kind, "key": key, "recipe_ids": list(ids)} for key, ids in index.items()]


def _snapshot_to_row(snapshot: LedgerSnapshot) -> dict[str, Any]:
    return {
        "id": STATE_ROW_ID,
        "recipe_counter": snapshot.recipe_counter,
        "total_recipes": snapshot.total_recipes,
        "sequence": snapshot.sequence,
        "recipes": [_recipe_to_row(recipe) for recipe in snapshot.recipes.values()],
        "indexes": _index_rows(INDEX_KIND_OWNER, snapshot.by_owner)
        + _index_rows(INDEX_KIND_CATEGORY, snapshot.by_category),
    }


def _row_to_snapshot(row: dict[str, Any]) -> LedgerSnapshot:
    snapshot = LedgerSnapshot(
        recipe_counter=int(row["recipe_counter"]),
        total_recipes=int(row["total_recipes"]),
        sequence=int(row.get("sequence") or 0),
    )
    for recipe_row in row.get("recipes") or []:
        recipe = _row_to_recipe(recipe_row)
        snapshot.recipes[recipe.id] = recipe
    for index_row in row.get("indexes") or []:
        ids = [int(value) for value in index_row.get("recipe_ids") or []]
        if index_row["kind"] == INDEX_KIND_OWNER:
            snapshot.by_owner[str(index_row["key"])] = ids
        elif index_row["kind"] == INDEX_KIND_CATEGORY:
            snapshot.by_category[str(index_row["key"])] = ids
        else:
            logger.warning("Ignoring unknown ledger index kind: %s", index_row["kind"])
    return snapshot


class SupabaseLedgerRepository(LedgerSnapshotRepository):
    """
    Keeps the whole ledger in a single `ledger_state` row.

    Recipes and indexes are JSON columns next to the counters, so every save
    is one upsert statement and a failed save leaves the previous state intact.
    """

    TABLE_NAME = "ledger_state"

    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseLedgerRepository initialized")

    def load_snapshot(self) -> Optional[LedgerSnapshot]:
        try:
            result = self._client.table(self.TABLE_NAME).select("*").eq("id", STATE_ROW_ID).execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error loading ledger snapshot: %s", error)
            raise SnapshotRepositoryError("load", str(error)) from error

        if not result.data:
            return None
        snapshot = _row_to_snapshot(result.data[0])
        logger.info(
            "Loaded ledger snapshot: recipes=%d, sequence=%d",
            len(snapshot.recipes),
            snapshot.sequence,
        )
        return snapshot

    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        row = _snapshot_to_row(snapshot)

        try:
            self._client.table(self.TABLE_NAME).upsert(row, on_conflict="id").execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error saving ledger snapshot: %s", error)
            raise SnapshotRepositoryError("save", str(error)) from error

        logger.debug(
            "Saved ledger snapshot: recipes=%d, sequence=%d",
            len(row["recipes"]),
            snapshot.sequence,
        )

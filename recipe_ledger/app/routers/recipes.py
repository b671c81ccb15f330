# recipe_ledger/app/routers/recipes.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from recipe_ledger.app.deps import (
    CurrentUser,
    get_current_user,
    get_event_log,
    get_optional_user,
    get_recipe_store,
)
from recipe_ledger.app.domain.errors import (
    RecipeNotFoundError,
    RecipePermissionError,
    RecipeValidationError,
)
from recipe_ledger.app.schemas.recipes import (
    LedgerStatsResponse,
    RecipeCreate,
    RecipeCreatedResponse,
    RecipeEventResponse,
    RecipeIdList,
    RecipeResponse,
    RecipeUpdate,
)
from recipe_ledger.app.services.events import RecentEventLog
from recipe_ledger.app.services.recipe_store import RecipeStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.post("/", response_model=RecipeCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    payload: RecipeCreate,
    user: CurrentUser = Depends(get_current_user),
    store: RecipeStore = Depends(get_recipe_store),
) -> RecipeCreatedResponse:
    try:
        recipe_id = store.create_recipe(
            name=payload.name,
            body=payload.body,
            instructions=payload.instructions,
            category=payload.category,
            is_public=payload.isPublic,
            caller=user.id,
        )
    except RecipeValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return RecipeCreatedResponse(id=recipe_id)


@router.get("/stats", response_model=LedgerStatsResponse)
async def get_stats(store: RecipeStore = Depends(get_recipe_store)) -> LedgerStatsResponse:
    stats = store.stats()
    return LedgerStatsResponse(totalRecipes=stats.total_recipes, recipeCounter=stats.recipe_counter)


@router.get("/events", response_model=list[RecipeEventResponse])
async def list_events(
    limit: int = Query(default=50, ge=1, le=500),
    event_log: RecentEventLog = Depends(get_event_log),
) -> list[RecipeEventResponse]:
    return [RecipeEventResponse.from_event(event) for event in event_log.recent(limit)]


@router.get("/by-owner/{owner}", response_model=RecipeIdList)
async def list_by_owner(
    owner: str,
    store: RecipeStore = Depends(get_recipe_store),
) -> RecipeIdList:
    return RecipeIdList(ids=store.list_by_owner(owner))


@router.get("/by-category", response_model=RecipeIdList)
async def list_by_category(
    category: str = Query(default=""),
    store: RecipeStore = Depends(get_recipe_store),
) -> RecipeIdList:
    return RecipeIdList(ids=store.list_public_by_category(category))


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(
    recipe_id: int,
    user: CurrentUser | None = Depends(get_optional_user),
    store: RecipeStore = Depends(get_recipe_store),
) -> RecipeResponse:
    try:
        recipe = store.get_recipe(recipe_id, user.id if user else None)
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RecipePermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    return RecipeResponse.from_recipe(recipe)


@router.put("/{recipe_id}", response_model=RecipeResponse)
async def update_recipe(
    recipe_id: int,
    payload: RecipeUpdate,
    user: CurrentUser = Depends(get_current_user),
    store: RecipeStore = Depends(get_recipe_store),
) -> RecipeResponse:
    try:
        store.update_recipe(
            recipe_id,
            name=payload.name,
            body=payload.body,
            instructions=payload.instructions,
            category=payload.category,
            caller=user.id,
        )
        recipe = store.get_recipe(recipe_id, user.id)
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RecipePermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    except RecipeValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return RecipeResponse.from_recipe(recipe)


@router.post("/{recipe_id}/visibility", response_model=RecipeResponse)
async def toggle_visibility(
    recipe_id: int,
    user: CurrentUser = Depends(get_current_user),
    store: RecipeStore = Depends(get_recipe_store),
) -> RecipeResponse:
    try:
        store.toggle_visibility(recipe_id, caller=user.id)
        recipe = store.get_recipe(recipe_id, user.id)
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RecipePermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    return RecipeResponse.from_recipe(recipe)

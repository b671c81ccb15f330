# recipe_ledger/app/schemas/recipes.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from recipe_ledger.app.domain.models import (
    Recipe,
    RecipeCreated,
    RecipeEvent,
    RecipeUpdated,
    VisibilityChanged,
)


class RecipeCreate(BaseModel):
    name: str
    body: str
    instructions: str
    category: str = ""
    isPublic: bool = False


class RecipeUpdate(BaseModel):
    name: str
    body: str
    instructions: str
    category: str = ""


class RecipeCreatedResponse(BaseModel):
    id: int


class RecipeResponse(BaseModel):
    id: int
    name: str
    body: str
    instructions: str
    category: str
    owner: str
    createdAt: str
    isPublic: bool

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> RecipeResponse:
        return cls(
            id=recipe.id,
            name=recipe.name,
            body=recipe.body,
            instructions=recipe.instructions,
            category=recipe.category,
            owner=recipe.owner,
            createdAt=recipe.created_at.isoformat(),
            isPublic=recipe.is_public,
        )


class RecipeIdList(BaseModel):
    ids: list[int] = Field(default_factory=list)


class LedgerStatsResponse(BaseModel):
    totalRecipes: int
    recipeCounter: int


class RecipeEventResponse(BaseModel):
    type: str
    recipeId: int
    owner: str
    name: Optional[str] = None
    category: Optional[str] = None
    isPublic: Optional[bool] = None

    @classmethod
    def from_event(cls, event: RecipeEvent) -> RecipeEventResponse:
        extra: dict[str, object] = {}
        if isinstance(event, RecipeCreated):
            extra = {"name": event.name, "category": event.category, "isPublic": event.is_public}
        elif isinstance(event, RecipeUpdated):
            extra = {"name": event.name}
        elif isinstance(event, VisibilityChanged):
            extra = {"isPublic": event.is_public}
        return cls(type=event.event_type.value, recipeId=event.recipe_id, owner=event.owner, **extra)

"""API routes for a user's pantry."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, Field

from recipepantry.logging_config import get_logger
from recipepantry.pantry import PantryReconciler
from recipepantry.routers.dependencies import get_reconciler, get_user_id
from recipepantry.schemas import (
    BulkAddResult,
    IngredientInput,
    IngredientPatch,
    IngredientRecord,
    Pantry,
    PantryStats,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/pantry", tags=["pantry"])

UserId = Annotated[str, Depends(get_user_id)]
Reconciler = Annotated[PantryReconciler, Depends(get_reconciler)]


# =============================================================================
# Request/Response Schemas
# =============================================================================


class PantryResponse(BaseModel):
    success: bool = True
    data: Pantry


class IngredientResponse(BaseModel):
    success: bool = True
    message: str
    data: IngredientRecord


class BulkAddRequest(BaseModel):
    """Several loosely typed ingredients; invalid entries are reported, not fatal."""

    ingredients: list[dict[str, Any]] = Field(min_length=1)


class BulkAddResponse(BaseModel):
    success: bool = True
    message: str
    data: BulkAddResult


class RemoveResponse(BaseModel):
    success: bool = True
    message: str
    removed: int


class SearchResponse(BaseModel):
    success: bool = True
    data: list[IngredientRecord]
    count: int


class StatsResponse(BaseModel):
    success: bool = True
    data: PantryStats


# =============================================================================
# Pantry Endpoints
# =============================================================================


@router.get("", response_model=PantryResponse)
async def get_pantry(user_id: UserId, reconciler: Reconciler) -> PantryResponse:
    """Get the user's pantry, creating an empty one on first access."""
    pantry = await reconciler.get_pantry(user_id)
    return PantryResponse(data=pantry)


@router.delete("", response_model=PantryResponse)
async def clear_pantry(user_id: UserId, reconciler: Reconciler) -> PantryResponse:
    """Remove every ingredient from the pantry."""
    pantry = await reconciler.clear(user_id)
    return PantryResponse(data=pantry)


@router.get("/search", response_model=SearchResponse)
async def search_pantry(
    user_id: UserId,
    reconciler: Reconciler,
    query: Annotated[str | None, Query(description="Substring of the ingredient name")] = None,
) -> SearchResponse:
    """Case-insensitive search by ingredient name."""
    results = await reconciler.search(user_id, query)
    return SearchResponse(data=results, count=len(results))


@router.get("/stats", response_model=StatsResponse)
async def pantry_stats(user_id: UserId, reconciler: Reconciler) -> StatsResponse:
    """Category counts and items expiring within a week or already expired."""
    return StatsResponse(data=await reconciler.stats(user_id))


# =============================================================================
# Ingredient Endpoints
# =============================================================================


@router.post(
    "/ingredients", response_model=IngredientResponse, status_code=status.HTTP_201_CREATED
)
async def add_ingredient(
    payload: IngredientInput, user_id: UserId, reconciler: Reconciler
) -> IngredientResponse:
    """
    Add an ingredient.

    An ingredient with the same name, category and unit already in the
    pantry has its quantity increased instead.
    """
    stored = await reconciler.add_or_merge(user_id, payload)
    return IngredientResponse(message="Ingredient added successfully", data=stored)


@router.post(
    "/ingredients/bulk", response_model=BulkAddResponse, status_code=status.HTTP_201_CREATED
)
async def add_ingredients_bulk(
    payload: BulkAddRequest, user_id: UserId, reconciler: Reconciler
) -> BulkAddResponse:
    """Add several ingredients at once."""
    result = await reconciler.add_many(user_id, payload.ingredients)
    message = f"Added {len(result.added_ingredients)} ingredients"
    if result.errors:
        message += f", {len(result.errors)} skipped"
    return BulkAddResponse(message=message, data=result)


@router.put("/ingredients/{name}", response_model=IngredientResponse)
async def update_ingredient(
    name: str,
    patch: Annotated[IngredientPatch, Body()],
    user_id: UserId,
    reconciler: Reconciler,
) -> IngredientResponse:
    """Partially update the first ingredient with this name."""
    updated = await reconciler.update(user_id, name, patch)
    return IngredientResponse(message="Ingredient updated successfully", data=updated)


@router.delete("/ingredients/{name}", response_model=RemoveResponse)
async def remove_ingredient(
    name: str, user_id: UserId, reconciler: Reconciler
) -> RemoveResponse:
    """Remove every ingredient with this name."""
    removed = await reconciler.remove(user_id, name)
    return RemoveResponse(message="Ingredient removed successfully", removed=removed)

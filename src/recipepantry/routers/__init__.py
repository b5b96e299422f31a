"""API routers for the recipepantry application."""

from recipepantry.routers.pantry import router as pantry_router
from recipepantry.routers.recipes import router as recipes_router

__all__ = [
    "pantry_router",
    "recipes_router",
]

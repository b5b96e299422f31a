"""Request-scoped dependencies shared by the API routers."""

from typing import Annotated

from fastapi import Header, Query, Request

from recipepantry.logging_config import set_context
from recipepantry.pantry import PantryReconciler
from recipepantry.services import RecipeAnalyzer

DEFAULT_USER_ID = "default-user"


def get_reconciler(request: Request) -> PantryReconciler:
    """Reconciler built during application startup."""
    return request.app.state.reconciler


def get_analyzer(request: Request) -> RecipeAnalyzer:
    """Recipe analyzer built during application startup."""
    return request.app.state.analyzer


async def get_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
    user_id: Annotated[str | None, Query(description="User identifier")] = None,
) -> str:
    """Resolve the caller: X-User-Id header, then user_id query parameter, then a default."""
    resolved = next(
        (value.strip() for value in (x_user_id, user_id) if value and value.strip()),
        DEFAULT_USER_ID,
    )
    set_context(user_id=resolved)
    return resolved

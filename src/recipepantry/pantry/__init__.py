"""Pantry state: storage, reconciliation and matching."""

from recipepantry.pantry.matching import MatchEngine
from recipepantry.pantry.reconciler import EXPIRING_WINDOW_DAYS, PantryReconciler
from recipepantry.pantry.store import InMemoryPantryStore, PantryStore, SqlPantryStore

__all__ = [
    "EXPIRING_WINDOW_DAYS",
    "InMemoryPantryStore",
    "MatchEngine",
    "PantryReconciler",
    "PantryStore",
    "SqlPantryStore",
]

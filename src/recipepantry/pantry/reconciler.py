"""Pantry reconciliation: merging ingredient observations into pantry state."""

import asyncio
import weakref
from collections import Counter
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from recipepantry.errors import NotFoundError, ValidationError
from recipepantry.logging_config import get_logger
from recipepantry.pantry.store import PantryStore
from recipepantry.schemas import (
    BulkAddResult,
    IngredientInput,
    IngredientPatch,
    IngredientRecord,
    Pantry,
    PantryStats,
    utcnow,
)

logger = get_logger(__name__)

# Days are counted from the clock's date. The default clock is UTC, so for
# users far from UTC the window shifts by one day around local midnight.
EXPIRING_WINDOW_DAYS = 7


class PantryReconciler:
    """
    Owns pantry mutations for every user.

    Records are identified by ``(name, category, unit)``: adding a record
    whose key already exists sums the quantities instead of storing a
    duplicate. Mutations read, modify and write the whole collection, so
    they are serialized per user with one lock per user id. A lock lives
    only while some call holds or waits on it.
    """

    def __init__(self, store: PantryStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        async with lock:
            yield

    async def _load_or_create(self, user_id: str) -> Pantry:
        pantry = await self.store.load_by_user(user_id)
        if pantry is None:
            pantry = await self.store.create(user_id)
        return pantry

    async def _load_existing(self, user_id: str) -> Pantry:
        pantry = await self.store.load_by_user(user_id)
        if pantry is None:
            raise NotFoundError("Pantry not found", resource="pantry")
        return pantry

    async def _save(self, pantry: Pantry) -> Pantry:
        pantry.touch(self._clock())
        return await self.store.save(pantry)

    @staticmethod
    def _absorb(existing: IngredientRecord, incoming: IngredientRecord) -> IngredientRecord:
        """Fold ``incoming`` into ``existing``, which must share its key."""
        existing.quantity += incoming.quantity
        # Keep the soonest known expiry
        if incoming.expiry_date is not None and (
            existing.expiry_date is None or incoming.expiry_date < existing.expiry_date
        ):
            existing.expiry_date = incoming.expiry_date
        return existing

    @classmethod
    def _merge_into(cls, pantry: Pantry, incoming: IngredientRecord) -> IngredientRecord:
        """Merge one record into the collection by key. Returns the stored record."""
        for existing in pantry.ingredients:
            if existing.key == incoming.key:
                return cls._absorb(existing, incoming)
        pantry.ingredients.append(incoming)
        return incoming

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_pantry(self, user_id: str) -> Pantry:
        """Get a user's pantry, creating an empty one on first access."""
        async with self._user_lock(user_id):
            return await self._load_or_create(user_id)

    async def snapshot(self, user_id: str) -> Pantry:
        """
        Read a user's pantry without locking or creating it.

        A user with no stored pantry gets an empty, unsaved one.
        """
        pantry = await self.store.load_by_user(user_id)
        return pantry if pantry is not None else Pantry(user_id=user_id)

    async def search(self, user_id: str, query: str | None) -> list[IngredientRecord]:
        """
        Case-insensitive substring search on ingredient names.

        Raises:
            ValidationError: If the query is empty.
        """
        if query is None or not query.strip():
            raise ValidationError("Search query is required", field="query")

        pantry = await self.store.load_by_user(user_id)
        if pantry is None:
            return []

        needle = query.strip().lower()
        return [item for item in pantry.ingredients if needle in item.name]

    async def stats(self, user_id: str) -> PantryStats:
        """
        Category counts plus expiring and expired items.

        An item is expiring when it expires between today and
        ``EXPIRING_WINDOW_DAYS`` days from now, both ends inclusive.
        """
        pantry = await self.store.load_by_user(user_id)
        if pantry is None:
            return PantryStats()

        today = self._clock().date()
        expiring: list[IngredientRecord] = []
        expired: list[IngredientRecord] = []
        for item in pantry.ingredients:
            days = item.days_until_expiry(today)
            if days is None:
                continue
            if days < 0:
                expired.append(item)
            elif days <= EXPIRING_WINDOW_DAYS:
                expiring.append(item)

        categories = Counter(item.category.value for item in pantry.ingredients)
        return PantryStats(
            total_items=pantry.total_items,
            categories=dict(categories),
            expiring_items=expiring,
            expired_items=expired,
            last_updated=pantry.last_updated,
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    async def add_or_merge(
        self, user_id: str, incoming: IngredientRecord | IngredientInput
    ) -> IngredientRecord:
        """
        Add an ingredient, merging it into an existing record with the same key.

        Returns:
            The stored record after the merge.
        """
        if isinstance(incoming, IngredientInput):
            incoming = incoming.to_record()
        if not incoming.name:
            raise ValidationError("Ingredient name is required", field="name")

        async with self._user_lock(user_id):
            pantry = await self._load_or_create(user_id)
            record = incoming.model_copy(update={"added_date": self._clock()})
            stored = self._merge_into(pantry, record)
            await self._save(pantry)

        logger.info(f"Added ingredient {stored.name} ({stored.quantity} {stored.unit.value})")
        return stored

    async def add_many(self, user_id: str, payloads: Iterable[dict[str, Any]]) -> BulkAddResult:
        """
        Add several ingredients in one write.

        Invalid entries are reported in ``errors`` and skipped; valid ones
        are merged exactly as ``add_or_merge`` would.
        """
        records: list[IngredientRecord] = []
        errors: list[str] = []
        for payload in payloads:
            try:
                records.append(IngredientInput.model_validate(payload).to_record())
            except ValidationError as e:
                errors.append(f"{e.message}: {payload}")
            except PydanticValidationError as e:
                errors.append(f"Invalid ingredient {payload}: {e.error_count()} error(s)")

        async with self._user_lock(user_id):
            pantry = await self._load_or_create(user_id)
            now = self._clock()
            added = [
                self._merge_into(pantry, record.model_copy(update={"added_date": now}))
                for record in records
            ]
            if added:
                await self._save(pantry)

        logger.info(f"Bulk added {len(added)} ingredients, {len(errors)} errors")
        return BulkAddResult(
            added_ingredients=added,
            errors=errors,
            total_items=pantry.total_items,
        )

    async def update(
        self, user_id: str, name: str, patch: IngredientPatch | dict[str, Any]
    ) -> IngredientRecord:
        """
        Apply a partial update to the first record named ``name``.

        If the change gives the record the key of another record, the two
        are merged.

        Raises:
            NotFoundError: If no such ingredient exists. The pantry is left untouched.
        """
        if isinstance(patch, dict):
            patch = IngredientPatch.model_validate(patch)
        changes = patch.changes()

        async with self._user_lock(user_id):
            pantry = await self._load_existing(user_id)
            matches = pantry.find(name)
            if not matches:
                raise NotFoundError(f"Ingredient {name!r} not found in pantry")

            target = matches[0]
            updated = target.model_copy(update=changes)
            # Re-run field validation on the merged values
            updated = IngredientRecord.model_validate(updated.model_dump())

            index = pantry.ingredients.index(target)
            collision = next(
                (
                    item
                    for i, item in enumerate(pantry.ingredients)
                    if i != index and item.key == updated.key
                ),
                None,
            )
            if collision is not None:
                del pantry.ingredients[index]
                result = self._absorb(collision, updated)
            else:
                pantry.ingredients[index] = updated
                result = updated

            await self._save(pantry)

        logger.info(f"Updated ingredient: {name}")
        return result

    async def remove(self, user_id: str, name: str) -> int:
        """
        Remove every record named ``name``. Removing an absent name is a no-op.

        Returns:
            Number of records removed.

        Raises:
            NotFoundError: If the user has no pantry.
        """
        wanted = name.strip().lower()
        async with self._user_lock(user_id):
            pantry = await self._load_existing(user_id)
            before = len(pantry.ingredients)
            pantry.ingredients = [item for item in pantry.ingredients if item.name != wanted]
            removed = before - len(pantry.ingredients)
            await self._save(pantry)

        logger.info(f"Removed {removed} record(s) named {wanted}")
        return removed

    async def clear(self, user_id: str) -> Pantry:
        """
        Empty the pantry. Clearing an empty pantry is allowed.

        Raises:
            NotFoundError: If the user has no pantry.
        """
        async with self._user_lock(user_id):
            pantry = await self._load_existing(user_id)
            pantry.ingredients = []
            await self._save(pantry)

        logger.info(f"Cleared pantry for user: {user_id}")
        return pantry

"""Pantry persistence boundary and its implementations."""

from abc import ABC, abstractmethod

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from recipepantry.errors import NotFoundError
from recipepantry.logging_config import get_logger
from recipepantry.models import PantryIngredientRow, PantryRow
from recipepantry.schemas import Category, IngredientRecord, Pantry, Unit

logger = get_logger(__name__)


class PantryStore(ABC):
    """Storage for pantries. Must give read-your-writes consistency per user."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return store name for logging and health reporting."""
        pass

    @abstractmethod
    async def load_by_user(self, user_id: str) -> Pantry | None:
        """
        Load a user's pantry.

        Returns:
            The pantry, or None if the user has none yet.
        """
        pass

    @abstractmethod
    async def create(self, user_id: str) -> Pantry:
        """Create an empty pantry for a user."""
        pass

    @abstractmethod
    async def save(self, pantry: Pantry) -> Pantry:
        """
        Persist the full state of a pantry.

        Raises:
            NotFoundError: If the pantry was never created.
        """
        pass

    async def health_check(self) -> bool:
        """Check that the store can serve reads."""
        return True


class InMemoryPantryStore(PantryStore):
    """Process-local store, used for tests and single-process development."""

    def __init__(self) -> None:
        self._pantries: dict[str, Pantry] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def load_by_user(self, user_id: str) -> Pantry | None:
        pantry = self._pantries.get(user_id)
        # Hand out copies so callers mutate nothing until they save
        return pantry.model_copy(deep=True) if pantry else None

    async def create(self, user_id: str) -> Pantry:
        pantry = self._pantries.get(user_id)
        if pantry is None:
            pantry = Pantry(user_id=user_id)
            self._pantries[user_id] = pantry
        return pantry.model_copy(deep=True)

    async def save(self, pantry: Pantry) -> Pantry:
        if pantry.user_id not in self._pantries:
            raise NotFoundError(f"Pantry for user {pantry.user_id} not found", resource="pantry")
        self._pantries[pantry.user_id] = pantry.model_copy(deep=True)
        return pantry


class SqlPantryStore(PantryStore):
    """SQLAlchemy-backed store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @property
    def name(self) -> str:
        return "sql"

    @staticmethod
    def _to_record(row: PantryIngredientRow) -> IngredientRecord:
        return IngredientRecord(
            name=row.name,
            category=Category(row.category),
            quantity=row.quantity,
            unit=Unit(row.unit),
            expiry_date=row.expiry_date,
            added_date=row.added_date,
        )

    @classmethod
    def _to_pantry(cls, row: PantryRow) -> Pantry:
        return Pantry(
            user_id=row.user_id,
            ingredients=[cls._to_record(item) for item in row.ingredients],
            total_items=row.total_items,
            last_updated=row.last_updated,
            created_at=row.created_at,
        )

    async def load_by_user(self, user_id: str) -> Pantry | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PantryRow)
                .options(selectinload(PantryRow.ingredients))
                .where(PantryRow.user_id == user_id)
            )
            row = result.scalar_one_or_none()
            return self._to_pantry(row) if row else None

    async def create(self, user_id: str) -> Pantry:
        pantry = Pantry(user_id=user_id)
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    PantryRow(
                        user_id=user_id,
                        total_items=0,
                        last_updated=pantry.last_updated,
                        created_at=pantry.created_at,
                    )
                )
        logger.info(f"Created new pantry for user: {user_id}")
        return pantry

    async def save(self, pantry: Pantry) -> Pantry:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(PantryRow).where(PantryRow.user_id == pantry.user_id)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    raise NotFoundError(
                        f"Pantry for user {pantry.user_id} not found", resource="pantry"
                    )

                # Replace the whole collection; deletes must run before the
                # inserts so the unique key constraint never sees both.
                await session.execute(
                    delete(PantryIngredientRow).where(PantryIngredientRow.pantry_id == row.id)
                )
                session.add_all(
                    [
                        PantryIngredientRow(
                            pantry_id=row.id,
                            position=position,
                            name=item.name,
                            category=item.category.value,
                            quantity=item.quantity,
                            unit=item.unit.value,
                            expiry_date=item.expiry_date,
                            added_date=item.added_date,
                        )
                        for position, item in enumerate(pantry.ingredients)
                    ]
                )
                row.total_items = pantry.total_items
                row.last_updated = pantry.last_updated
        return pantry

    async def health_check(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(select(PantryRow.id).limit(1))
            return True
        except Exception as e:
            logger.warning(f"Pantry store health check failed: {e}")
            return False

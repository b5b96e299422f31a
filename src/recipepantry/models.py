"""SQLAlchemy database models."""

from datetime import date, datetime, timezone

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recipepantry.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PantryRow(Base):
    """A user's pantry. One row per user."""

    __tablename__ = "pantries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    ingredients: Mapped[list["PantryIngredientRow"]] = relationship(
        "PantryIngredientRow",
        back_populates="pantry",
        order_by="PantryIngredientRow.position",
        cascade="all, delete-orphan",
    )


class PantryIngredientRow(Base):
    """One ingredient record stored in a pantry."""

    __tablename__ = "pantry_ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pantry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pantries.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)  # Category enum value
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)  # Unit enum value
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    added_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    pantry: Mapped["PantryRow"] = relationship("PantryRow", back_populates="ingredients")

    __table_args__ = (
        UniqueConstraint("pantry_id", "name", "category", "unit", name="uq_pantry_ingredient_key"),
        Index("idx_pantry_ingredients_pantry_id", "pantry_id"),
        Index("idx_pantry_ingredients_name", "name"),
    )

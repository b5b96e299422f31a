"""Domain data schemas shared across the pantry, recipe and analysis layers."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from recipepantry.errors import ValidationError
from recipepantry.normalize.units import canonical_unit, coerce_quantity


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class Category(str, Enum):
    """Pantry ingredient category."""

    DAIRY = "dairy"
    MEAT = "meat"
    VEGETABLE = "vegetable"
    FRUIT = "fruit"
    GRAIN = "grain"
    SPICE = "spice"
    CONDIMENT = "condiment"
    OTHER = "other"


class Unit(str, Enum):
    """Pantry measurement unit."""

    PIECE = "piece"
    CUP = "cup"
    TBSP = "tbsp"
    TSP = "tsp"
    LB = "lb"
    OZ = "oz"
    KG = "kg"
    G = "g"
    ML = "ml"
    L = "l"
    OTHER = "other"


# =============================================================================
# Pantry
# =============================================================================


class IngredientRecord(BaseModel):
    """One ingredient occurrence in a pantry."""

    name: str
    category: Category = Category.OTHER
    quantity: float = Field(default=1.0, gt=0)
    unit: Unit = Unit.PIECE
    expiry_date: date | None = None
    added_date: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def key(self) -> tuple[str, Category, Unit]:
        """Identity within a pantry: records sharing a key are merged."""
        return (self.name, self.category, self.unit)

    def days_until_expiry(self, today: date) -> int | None:
        """Whole days from ``today`` to the expiry date, or None if untracked."""
        if self.expiry_date is None:
            return None
        return (self.expiry_date - today).days


def _coerce_name(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Ingredient name is required", field="name")
    return str(value).strip().lower()


def _coerce_category(value: Any) -> Category:
    if value is None or value == "":
        return Category.OTHER
    try:
        return Category(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(c.value for c in Category)
        raise ValidationError(
            f"Invalid category {value!r}; expected one of: {allowed}", field="category"
        ) from None


def _coerce_unit(value: Any) -> Unit:
    if value is None or value == "":
        return Unit.PIECE
    canonical = canonical_unit(str(value))
    if canonical is None:
        raise ValidationError(f"Unknown unit {value!r}", field="unit")
    return Unit(canonical)


def _coerce_quantity(value: Any) -> float | None:
    try:
        quantity = coerce_quantity(value)
    except ValueError as e:
        raise ValidationError(str(e), field="quantity") from e
    if quantity is not None and quantity <= 0:
        raise ValidationError("Quantity must be greater than zero", field="quantity")
    return quantity


def _coerce_expiry(value: date | datetime | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    return value


class IngredientInput(BaseModel):
    """Loosely typed ingredient payload as received from a client."""

    name: str | None = None
    category: str | None = None
    quantity: float | str | None = None
    unit: str | None = None
    expiry_date: datetime | date | None = None

    def to_record(self) -> IngredientRecord:
        """Validate and coerce into a canonical record."""
        quantity = _coerce_quantity(self.quantity)
        return IngredientRecord(
            name=_coerce_name(self.name),
            category=_coerce_category(self.category),
            quantity=quantity if quantity is not None else 1.0,
            unit=_coerce_unit(self.unit),
            expiry_date=_coerce_expiry(self.expiry_date),
        )


class IngredientPatch(BaseModel):
    """Partial update of an ingredient record. Unset fields are preserved."""

    name: str | None = None
    category: str | None = None
    quantity: float | str | None = None
    unit: str | None = None
    expiry_date: datetime | date | None = None

    def changes(self) -> dict[str, Any]:
        """Coerced field values the caller actually supplied."""
        provided = self.model_fields_set
        changes: dict[str, Any] = {}
        if "name" in provided and self.name is not None:
            changes["name"] = _coerce_name(self.name)
        if "category" in provided and self.category is not None:
            changes["category"] = _coerce_category(self.category)
        if "quantity" in provided and self.quantity is not None:
            quantity = _coerce_quantity(self.quantity)
            if quantity is not None:
                changes["quantity"] = quantity
        if "unit" in provided and self.unit is not None:
            changes["unit"] = _coerce_unit(self.unit)
        if "expiry_date" in provided:
            # Explicit null clears the tracked expiry
            changes["expiry_date"] = _coerce_expiry(self.expiry_date)
        return changes


class Pantry(BaseModel):
    """A user's ingredient inventory."""

    user_id: str
    ingredients: list[IngredientRecord] = Field(default_factory=list)
    total_items: int = 0
    last_updated: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)

    def touch(self, now: datetime | None = None) -> None:
        """Re-stamp derived fields after a mutation."""
        self.total_items = len(self.ingredients)
        self.last_updated = now or utcnow()

    def find(self, name: str) -> list[IngredientRecord]:
        """Records whose name equals ``name`` case-insensitively."""
        wanted = name.strip().lower()
        return [item for item in self.ingredients if item.name == wanted]


class PantryStats(BaseModel):
    """Aggregate view of a pantry."""

    total_items: int = 0
    categories: dict[str, int] = Field(default_factory=dict)
    expiring_items: list[IngredientRecord] = Field(default_factory=list)
    expired_items: list[IngredientRecord] = Field(default_factory=list)
    last_updated: datetime | None = None


class BulkAddResult(BaseModel):
    """Outcome of adding many ingredients in one request."""

    added_ingredients: list[IngredientRecord] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    total_items: int = 0


# =============================================================================
# Recipe
# =============================================================================


class RecipeStructure(BaseModel):
    """Structured view of recipe text. Built per request, never stored."""

    title: str = ""
    servings: int | None = None
    cook_time: str | None = None
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)


class IngredientMatch(BaseModel):
    """Recipe ingredient names split by pantry availability."""

    available: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)


class OCRResult(BaseModel):
    """Text extracted from an image."""

    text: str
    confidence: float = Field(ge=0, le=100)
    word_count: int = Field(ge=0)


# =============================================================================
# Feasibility analysis
# =============================================================================


class ExtractedIngredient(BaseModel):
    """Ingredient as read from recipe text by the AI scorer."""

    name: str
    quantity: str = ""
    unit: str = ""
    essential: bool = True


class MissingIngredient(ExtractedIngredient):
    """Ingredient the pantry lacks, with possible replacements."""

    substitutes: list[str] = Field(default_factory=list)


class Substitution(BaseModel):
    original: str = ""
    substitute: str = ""
    ratio: str = ""
    notes: str = ""


class Suggestions(BaseModel):
    substitutions: list[Substitution] = Field(default_factory=list)
    modifications: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)


class NutritionalInfo(BaseModel):
    estimated_calories: str = "Unknown"
    difficulty: str = "medium"
    cooking_time: str = "Unknown"
    servings: str = "Unknown"


class FeasibilityAnalysis(BaseModel):
    """Structured feasibility judgment returned by the AI scorer."""

    feasibility_score: int = Field(default=50, ge=0, le=100)
    recipe_title: str = "Unknown Recipe"
    extracted_ingredients: list[ExtractedIngredient] = Field(default_factory=list)
    required_tools: list[str] = Field(default_factory=list)
    available_ingredients: list[str] = Field(default_factory=list)
    missing_ingredients: list[MissingIngredient] = Field(default_factory=list)
    suggestions: Suggestions = Field(default_factory=Suggestions)
    nutritional_info: NutritionalInfo = Field(default_factory=NutritionalInfo)
    warnings_and_notes: list[str] = Field(default_factory=list)
    is_fallback: bool = False
    raw_response: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class PantrySummary(BaseModel):
    """How the pantry lines up against an analysed recipe."""

    total_pantry_items: int
    available_ingredients: list[str] = Field(default_factory=list)
    missing_ingredients: list[MissingIngredient] = Field(default_factory=list)
    match_percentage: int = 0
    local_match: IngredientMatch = Field(default_factory=IngredientMatch)


class RecipeAnalysis(BaseModel):
    """Combined result of one recipe analysis request."""

    feasibility_score: int
    recipe_title: str
    structure: RecipeStructure
    feasibility: FeasibilityAnalysis
    pantry: PantrySummary
    ocr: OCRResult | None = None
    processing_time_ms: int = 0


class TextExtraction(BaseModel):
    """OCR output with its segmentation, no scoring."""

    extracted_text: str
    confidence: float
    word_count: int
    structure: RecipeStructure
    timestamp: datetime = Field(default_factory=utcnow)


class IngredientExtraction(BaseModel):
    """Ingredients found by the AI scorer next to those the segmenter found."""

    ingredients: list[ExtractedIngredient] = Field(default_factory=list)
    detected_ingredients: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)

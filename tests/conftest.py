"""Pytest configuration and shared fixtures."""

import os
import tempfile

# The engine is created at import time; keep tests off the real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("UPLOAD_PATH", os.path.join(tempfile.gettempdir(), "recipepantry-test-uploads"))

from collections.abc import Sequence  # noqa: E402
from datetime import date, datetime, timedelta, timezone  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402

from recipepantry.pantry import InMemoryPantryStore, PantryReconciler  # noqa: E402
from recipepantry.schemas import (  # noqa: E402
    Category,
    ExtractedIngredient,
    FeasibilityAnalysis,
    IngredientRecord,
    OCRResult,
    Unit,
)
from recipepantry.services.base import FeasibilityScorer, TextExtractor  # noqa: E402

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()

CLEAN_RECIPE = (
    "Pancakes\n"
    "Serves 4\n"
    "Ingredients:\n"
    "2 cups flour\n"
    "1 tsp salt\n"
    "Instructions:\n"
    "1. Mix ingredients.\n"
    "2. Heat pan and cook."
)


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow running")


# =============================================================================
# Fake Collaborators
# =============================================================================


class FakeTextExtractor(TextExtractor):
    """Text extractor returning canned OCR output."""

    def __init__(self, text: str = CLEAN_RECIPE, confidence: float = 91.5):
        self.text = text
        self.confidence = confidence
        self.calls: list[Path] = []
        self._ready = False

    @property
    def name(self) -> str:
        return "ocr"

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        self._ready = True

    async def close(self) -> None:
        self._ready = False

    async def extract_text(self, image_path: Path) -> OCRResult:
        self.calls.append(Path(image_path))
        return OCRResult(
            text=self.text, confidence=self.confidence, word_count=len(self.text.split())
        )


class FakeScorer(FeasibilityScorer):
    """Scorer returning a canned analysis and recording what it was given."""

    def __init__(self, analysis: FeasibilityAnalysis | None = None):
        self.analysis = analysis or FeasibilityAnalysis(
            feasibility_score=75,
            recipe_title="Pancakes",
            extracted_ingredients=[
                ExtractedIngredient(name="flour", quantity="2", unit="cup"),
                ExtractedIngredient(name="salt", quantity="1", unit="tsp"),
            ],
            available_ingredients=["flour"],
        )
        self.ingredients = [ExtractedIngredient(name="flour", quantity="2", unit="cup")]
        self.received_text: list[str] = []
        self.received_pantry: list[Sequence[IngredientRecord]] = []
        self._ready = False

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        self._ready = True

    async def close(self) -> None:
        self._ready = False

    async def analyze_feasibility(
        self, recipe_text: str, pantry_ingredients: Sequence[IngredientRecord]
    ) -> FeasibilityAnalysis:
        self.received_text.append(recipe_text)
        self.received_pantry.append(list(pantry_ingredients))
        return self.analysis.model_copy(deep=True)

    async def extract_ingredients(self, recipe_text: str) -> list[ExtractedIngredient]:
        self.received_text.append(recipe_text)
        return list(self.ingredients)


# =============================================================================
# Pantry Fixtures
# =============================================================================


@pytest.fixture
def fixed_clock():
    """Clock pinned to a known instant."""
    return lambda: FIXED_NOW


@pytest.fixture
def memory_store():
    return InMemoryPantryStore()


@pytest.fixture
def reconciler(memory_store, fixed_clock):
    """Reconciler over an in-memory store with a pinned clock."""
    return PantryReconciler(memory_store, clock=fixed_clock)


@pytest.fixture
def sample_records():
    """A few pantry records covering several categories and expiry states."""
    return [
        IngredientRecord(name="flour", category=Category.GRAIN, quantity=2, unit=Unit.CUP),
        IngredientRecord(
            name="milk",
            category=Category.DAIRY,
            quantity=1,
            unit=Unit.L,
            expiry_date=TODAY + timedelta(days=3),
        ),
        IngredientRecord(
            name="egg",
            category=Category.OTHER,
            quantity=6,
            unit=Unit.PIECE,
            expiry_date=date(2024, 6, 20),
        ),
    ]


@pytest.fixture
def fake_extractor():
    return FakeTextExtractor()


@pytest.fixture
def fake_scorer():
    return FakeScorer()


@pytest.fixture
def clean_recipe():
    """Well-formed recipe text with headers, servings and numbered steps."""
    return CLEAN_RECIPE

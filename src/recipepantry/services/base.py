"""Interfaces for the OCR and feasibility-scoring collaborators."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from recipepantry.schemas import (
    ExtractedIngredient,
    FeasibilityAnalysis,
    IngredientRecord,
    OCRResult,
)


class ExternalService(ABC):
    """Lifecycle shared by external collaborators: initialize, ready-check, close."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return service name for logging and error reporting."""
        pass

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """True once ``initialize`` has succeeded and ``close`` has not run."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the service for use. Safe to call repeatedly.

        Raises:
            UpstreamServiceError: If the service cannot be made ready.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release held resources."""
        pass


class TextExtractor(ExternalService):
    """Reads text out of an image."""

    @abstractmethod
    async def extract_text(self, image_path: Path) -> OCRResult:
        """
        Extract raw text from an image file.

        Args:
            image_path: Path to a readable image.

        Returns:
            OCRResult with raw (uncleaned) text.
        """
        pass


class FeasibilityScorer(ExternalService):
    """Judges how feasible a recipe is with a given pantry."""

    @abstractmethod
    async def analyze_feasibility(
        self,
        recipe_text: str,
        pantry_ingredients: Sequence[IngredientRecord],
    ) -> FeasibilityAnalysis:
        """
        Score a recipe against pantry contents.

        A malformed answer from the model yields a fallback analysis;
        unavailability raises UpstreamServiceError.
        """
        pass

    @abstractmethod
    async def extract_ingredients(self, recipe_text: str) -> list[ExtractedIngredient]:
        """List the ingredients the recipe text calls for."""
        pass

"""Recipe analysis: OCR, normalization, segmentation, matching and scoring."""

import asyncio
import time
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

from recipepantry.config import get_settings
from recipepantry.errors import TextExtractionEmptyError, UpstreamServiceError, ValidationError
from recipepantry.logging_config import get_logger
from recipepantry.normalize import normalize
from recipepantry.pantry import MatchEngine, PantryReconciler
from recipepantry.recipe import RecipeSegmenter
from recipepantry.schemas import (
    FeasibilityAnalysis,
    IngredientExtraction,
    OCRResult,
    PantrySummary,
    RecipeAnalysis,
    RecipeStructure,
    TextExtraction,
)
from recipepantry.services.base import ExternalService, FeasibilityScorer, TextExtractor

logger = get_logger(__name__)

T = TypeVar("T")


def match_percentage(available: int, extracted: int) -> int:
    """Share of extracted recipe ingredients the pantry holds, as 0-100."""
    if extracted <= 0 or available <= 0:
        return 0
    return min(100, round(available / extracted * 100))


class RecipeAnalyzer:
    """
    Runs recipe images and text through the analysis pipeline.

    Analyses never take pantry locks: the pantry is read once as a
    snapshot. The number of analyses in flight is bounded by a semaphore,
    and every OCR or scorer call is bounded by a timeout.
    """

    def __init__(
        self,
        reconciler: PantryReconciler,
        extractor: TextExtractor,
        scorer: FeasibilityScorer,
        segmenter: RecipeSegmenter | None = None,
        match_engine: MatchEngine | None = None,
        ocr_timeout: float | None = None,
        ai_timeout: float | None = None,
        max_concurrency: int | None = None,
    ):
        settings = get_settings()
        self.reconciler = reconciler
        self.extractor = extractor
        self.scorer = scorer
        self.segmenter = segmenter or RecipeSegmenter()
        self.match_engine = match_engine or MatchEngine()
        self.ocr_timeout = ocr_timeout or settings.ocr_timeout
        self.ai_timeout = ai_timeout or settings.ai_timeout
        self._semaphore = asyncio.Semaphore(max_concurrency or settings.analysis_max_concurrency)

    async def _bounded(self, service: ExternalService, call: Awaitable[T], timeout: float) -> T:
        """Await a collaborator call, turning a timeout into UpstreamServiceError."""
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"{service.name} call timed out after {timeout}s")
            raise UpstreamServiceError(
                f"{service.name} service timed out after {timeout:g} seconds",
                service=service.name,
            ) from e

    async def _ocr(self, image_path: Path) -> OCRResult:
        result = await self._bounded(
            self.extractor, self.extractor.extract_text(image_path), self.ocr_timeout
        )
        if not result.text or not result.text.strip():
            raise TextExtractionEmptyError()
        return result

    async def _score(self, user_id: str, text: str, ocr: OCRResult | None) -> RecipeAnalysis:
        started = time.perf_counter()
        structure = self.segmenter.segment(text)
        pantry = await self.reconciler.snapshot(user_id)

        local_match = self.match_engine.match_lines(structure.ingredients, pantry.ingredients)
        feasibility: FeasibilityAnalysis = await self._bounded(
            self.scorer,
            self.scorer.analyze_feasibility(text, pantry.ingredients),
            self.ai_timeout,
        )

        percentage = 0
        if pantry.ingredients:
            percentage = match_percentage(
                len(feasibility.available_ingredients),
                len(feasibility.extracted_ingredients),
            )

        return RecipeAnalysis(
            feasibility_score=feasibility.feasibility_score,
            recipe_title=feasibility.recipe_title,
            structure=structure,
            feasibility=feasibility,
            pantry=PantrySummary(
                total_pantry_items=pantry.total_items,
                available_ingredients=feasibility.available_ingredients,
                missing_ingredients=feasibility.missing_ingredients,
                match_percentage=percentage,
                local_match=local_match,
            ),
            ocr=ocr,
            processing_time_ms=round((time.perf_counter() - started) * 1000),
        )

    async def analyze_image(self, user_id: str, image_path: Path) -> RecipeAnalysis:
        """
        Full analysis of a recipe photo against the user's pantry.

        Raises:
            TextExtractionEmptyError: If OCR finds no text.
            UpstreamServiceError: If OCR or the scorer fails or times out.
        """
        started = time.perf_counter()
        async with self._semaphore:
            ocr = await self._ocr(image_path)
            text = normalize(ocr.text)
            if not text:
                raise TextExtractionEmptyError()
            analysis = await self._score(user_id, text, ocr)

        analysis.processing_time_ms = round((time.perf_counter() - started) * 1000)
        logger.info(
            f"Recipe analysis completed for {user_id}: {analysis.feasibility_score}% feasible "
            f"in {analysis.processing_time_ms}ms"
        )
        return analysis

    async def analyze_text(self, user_id: str, recipe_text: str | None) -> RecipeAnalysis:
        """Analyze typed or pasted recipe text, skipping OCR."""
        text = normalize(recipe_text or "")
        if not text:
            raise ValidationError("Recipe text is required", field="recipe_text")

        async with self._semaphore:
            analysis = await self._score(user_id, text, None)

        logger.info(
            f"Text analysis completed for {user_id}: {analysis.feasibility_score}% feasible"
        )
        return analysis

    async def extract_text(self, image_path: Path) -> TextExtraction:
        """OCR and segment an image without scoring it."""
        async with self._semaphore:
            ocr = await self._ocr(image_path)

        text = normalize(ocr.text)
        return TextExtraction(
            extracted_text=text,
            confidence=ocr.confidence,
            word_count=ocr.word_count,
            structure=self.segmenter.segment(text),
        )

    async def extract_ingredients(self, recipe_text: str | None) -> IngredientExtraction:
        """Ingredients named by the scorer next to the lines the segmenter classified."""
        text = normalize(recipe_text or "")
        if not text:
            raise ValidationError("Recipe text is required", field="recipe_text")

        structure: RecipeStructure = self.segmenter.segment(text)
        async with self._semaphore:
            ingredients = await self._bounded(
                self.scorer, self.scorer.extract_ingredients(text), self.ai_timeout
            )

        return IngredientExtraction(
            ingredients=ingredients,
            detected_ingredients=structure.ingredients,
        )

    async def service_status(self) -> dict[str, bool]:
        """Ready-state of each collaborator plus pantry storage health."""
        return {
            self.extractor.name: self.extractor.is_ready,
            self.scorer.name: self.scorer.is_ready,
            "pantry_store": await self.reconciler.store.health_check(),
        }

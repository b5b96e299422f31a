"""API routes for recipe analysis."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, Field

from recipepantry.config import get_settings
from recipepantry.logging_config import get_logger
from recipepantry.routers.dependencies import get_analyzer, get_user_id
from recipepantry.schemas import IngredientExtraction, RecipeAnalysis, TextExtraction
from recipepantry.services import RecipeAnalyzer, saved_upload

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/recipe", tags=["recipes"])

UserId = Annotated[str, Depends(get_user_id)]
Analyzer = Annotated[RecipeAnalyzer, Depends(get_analyzer)]


# =============================================================================
# Request/Response Schemas
# =============================================================================


class RecipeTextRequest(BaseModel):
    """Recipe supplied as text rather than a photo."""

    recipe_text: str = Field(description="Recipe text as typed or pasted")


class AnalysisResponse(BaseModel):
    success: bool = True
    message: str = "Recipe analysis completed successfully"
    data: RecipeAnalysis


class TextExtractionResponse(BaseModel):
    success: bool = True
    message: str = "Text extracted successfully"
    data: TextExtraction


class IngredientExtractionResponse(BaseModel):
    success: bool = True
    message: str = "Ingredients extracted successfully"
    data: IngredientExtraction


class ServiceStatusResponse(BaseModel):
    success: bool = True
    services: dict[str, bool]
    all_ready: bool


# =============================================================================
# Recipe Endpoints
# =============================================================================


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_recipe_image(
    user_id: UserId,
    analyzer: Analyzer,
    image: Annotated[UploadFile, File(description="Recipe photo (JPEG, PNG, GIF or WebP)")],
) -> AnalysisResponse:
    """
    Analyze a recipe photo against the user's pantry.

    The photo is read with OCR, cleaned, segmented, matched against the
    pantry and scored for feasibility. The uploaded file is discarded
    afterwards.
    """
    settings = get_settings()
    logger.info(f"Analyzing recipe image {image.filename} for user {user_id}")
    async with saved_upload(image, settings.upload_path, settings.max_upload_size) as path:
        analysis = await analyzer.analyze_image(user_id, path)
    return AnalysisResponse(data=analysis)


@router.post("/extract-text", response_model=TextExtractionResponse)
async def extract_recipe_text(
    analyzer: Analyzer,
    image: Annotated[UploadFile, File(description="Recipe photo (JPEG, PNG, GIF or WebP)")],
) -> TextExtractionResponse:
    """Read and segment the text of a recipe photo without scoring it."""
    settings = get_settings()
    async with saved_upload(image, settings.upload_path, settings.max_upload_size) as path:
        extraction = await analyzer.extract_text(path)
    return TextExtractionResponse(data=extraction)


@router.post("/analyze-text", response_model=AnalysisResponse)
async def analyze_recipe_text(
    payload: RecipeTextRequest, user_id: UserId, analyzer: Analyzer
) -> AnalysisResponse:
    """Analyze recipe text against the user's pantry, skipping OCR."""
    analysis = await analyzer.analyze_text(user_id, payload.recipe_text)
    return AnalysisResponse(data=analysis)


@router.post("/extract-ingredients", response_model=IngredientExtractionResponse)
async def extract_recipe_ingredients(
    payload: RecipeTextRequest, analyzer: Analyzer
) -> IngredientExtractionResponse:
    """List the ingredients a recipe text calls for."""
    extraction = await analyzer.extract_ingredients(payload.recipe_text)
    return IngredientExtractionResponse(data=extraction)


@router.get("/services", response_model=ServiceStatusResponse)
async def service_status(analyzer: Analyzer) -> ServiceStatusResponse:
    """Ready-state of the OCR engine, AI scorer and pantry storage."""
    services = await analyzer.service_status()
    return ServiceStatusResponse(services=services, all_ready=all(services.values()))

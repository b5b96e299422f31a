"""External collaborators and the recipe analysis pipeline."""

from recipepantry.services.analysis import RecipeAnalyzer, match_percentage
from recipepantry.services.base import ExternalService, FeasibilityScorer, TextExtractor
from recipepantry.services.gemini import GeminiFeasibilityScorer
from recipepantry.services.ocr import TesseractTextExtractor
from recipepantry.services.uploads import saved_upload, validate_image_upload

__all__ = [
    "ExternalService",
    "FeasibilityScorer",
    "GeminiFeasibilityScorer",
    "RecipeAnalyzer",
    "TesseractTextExtractor",
    "TextExtractor",
    "match_percentage",
    "saved_upload",
    "validate_image_upload",
]

"""Recipe text segmentation."""

from recipepantry.recipe.rules import LineKind, LineRule, Section, classify_line
from recipepantry.recipe.segmenter import RecipeSegmenter, segment

__all__ = [
    "LineKind",
    "LineRule",
    "RecipeSegmenter",
    "Section",
    "classify_line",
    "segment",
]

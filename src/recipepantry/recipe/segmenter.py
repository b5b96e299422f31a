"""Segmentation of cleaned recipe text into a RecipeStructure."""

from recipepantry.logging_config import get_logger
from recipepantry.recipe.rules import (
    LineKind,
    Section,
    classify_line,
    extract_cook_time,
    extract_servings,
    is_title_candidate,
    match_header,
)
from recipepantry.schemas import RecipeStructure

logger = get_logger(__name__)


class RecipeSegmenter:
    """Classifies recipe text lines into title, metadata, ingredients and steps."""

    def segment(self, text: str | None) -> RecipeStructure:
        """
        Segment recipe text.

        Each non-empty line is checked for a section header first. Content
        lines then feed servings, cook time and title extraction, and are
        classified as ingredient or instruction by the ordered rule list.

        Args:
            text: Cleaned recipe text. Empty input yields an empty structure.

        Returns:
            RecipeStructure for the text.
        """
        structure = RecipeStructure()
        if not text:
            return structure

        # Tracked for diagnostics only; classification is per line
        current_section = Section.UNKNOWN

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            header = match_header(line)
            if header is not None:
                current_section = header
                continue

            servings = extract_servings(line)
            if servings is not None:
                structure.servings = servings

            cook_time = extract_cook_time(line)
            if cook_time is not None:
                structure.cook_time = cook_time

            if not structure.title and is_title_candidate(line):
                structure.title = line

            kind = classify_line(line)
            if kind is LineKind.INGREDIENT:
                structure.ingredients.append(line)
            elif kind is LineKind.INSTRUCTION:
                structure.instructions.append(line)

        logger.debug(
            f"Segmented recipe: {len(structure.ingredients)} ingredients, "
            f"{len(structure.instructions)} instructions, last section={current_section.value}"
        )
        return structure


def segment(text: str | None) -> RecipeStructure:
    """Segment text with a default segmenter."""
    return RecipeSegmenter().segment(text)

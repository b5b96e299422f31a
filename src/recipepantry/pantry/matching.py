"""Recipe ingredient to pantry matching."""

from collections.abc import Iterable, Sequence

from recipepantry.logging_config import get_logger
from recipepantry.normalize.units import extract_ingredient_name
from recipepantry.schemas import IngredientMatch, IngredientRecord

logger = get_logger(__name__)


class MatchEngine:
    """
    Splits recipe ingredients into available and missing.

    Matching is exact on the trimmed, lowercased name: no substring or
    fuzzy matching. The result feeds the feasibility scorer and does not
    carry a score of its own.
    """

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().lower()

    def match(
        self,
        recipe_ingredient_names: Sequence[str],
        pantry_ingredients: Iterable[IngredientRecord],
    ) -> IngredientMatch:
        """
        Match recipe ingredient names against pantry records.

        Both output lists keep recipe order, and duplicate names in the
        input appear once per occurrence.
        """
        pantry_names = {self._key(item.name) for item in pantry_ingredients}
        result = IngredientMatch()
        for name in recipe_ingredient_names:
            if self._key(name) in pantry_names:
                result.available.append(name)
            else:
                result.missing.append(name)

        logger.debug(
            f"Matched {len(result.available)}/{len(recipe_ingredient_names)} recipe ingredients"
        )
        return result

    def match_lines(
        self,
        ingredient_lines: Sequence[str],
        pantry_ingredients: Iterable[IngredientRecord],
    ) -> IngredientMatch:
        """Match raw recipe lines such as "2 cup flour" by their ingredient name."""
        names = [extract_ingredient_name(line) for line in ingredient_lines]
        return self.match([name for name in names if name], pantry_ingredients)

"""Unit vocabulary, quantity parsing and ingredient-name extraction."""

import re

from recipepantry.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Unit Vocabulary
# =============================================================================

# Every spelling we accept, mapped to its canonical pantry unit.
UNIT_ALIASES: dict[str, str] = {
    # Volume
    "cup": "cup",
    "cups": "cup",
    "c": "cup",
    "tbsp": "tbsp",
    "tbsps": "tbsp",
    "tbs": "tbsp",
    "tbl": "tbsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "tsp": "tsp",
    "tsps": "tsp",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "ml": "ml",
    "milliliter": "ml",
    "milliliters": "ml",
    "millilitre": "ml",
    "millilitres": "ml",
    "l": "l",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    # Weight
    "g": "g",
    "gr": "g",
    "gram": "g",
    "grams": "g",
    "kg": "kg",
    "kgs": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "oz": "oz",
    "ozs": "oz",
    "ounce": "oz",
    "ounces": "oz",
    "lb": "lb",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    # Count-based units all collapse to piece
    "piece": "piece",
    "pieces": "piece",
    "pc": "piece",
    "pcs": "piece",
    "each": "piece",
    "ea": "piece",
    "whole": "piece",
    "clove": "piece",
    "cloves": "piece",
    "slice": "piece",
    "slices": "piece",
    "can": "piece",
    "cans": "piece",
    "jar": "piece",
    "jars": "piece",
    "bunch": "piece",
    "bunches": "piece",
    "head": "piece",
    "heads": "piece",
    "stick": "piece",
    "sticks": "piece",
    "package": "piece",
    "packages": "piece",
    "pack": "piece",
    "packs": "piece",
    "other": "other",
}

# Unit words recognised inside recipe lines. Plural forms are matched
# explicitly so raw (un-normalized) text segments the same way.
RECIPE_UNIT_PATTERN = (
    r"(?:cups?|tbsps?|tsps?|tablespoons?|teaspoons?|lbs?|pounds?|ozs?|ounces?"
    r"|kg|g|grams?|ml|l|liters?|litres?|pieces?|cloves?|spoons?)"
)

UNICODE_FRACTIONS: dict[str, float] = {
    "½": 0.5,
    "⅓": 1 / 3,
    "⅔": 2 / 3,
    "¼": 0.25,
    "¾": 0.75,
    "⅛": 0.125,
}

QUANTITY_PATTERN = r"(?:\d+(?:\.\d+)?(?:\s+\d+/\d+|/\d+)?[½⅓⅔¼¾⅛]?|[½⅓⅔¼¾⅛])"

# Descriptors that say how an ingredient is prepared, not what it is
DESCRIPTORS = [
    "fresh",
    "dried",
    "frozen",
    "canned",
    "chopped",
    "diced",
    "minced",
    "sliced",
    "grated",
    "shredded",
    "crushed",
    "halved",
    "quartered",
    "peeled",
    "seeded",
    "pitted",
    "softened",
    "melted",
    "sifted",
    "large",
    "medium",
    "small",
]


def canonical_unit(unit: str | None) -> str | None:
    """
    Map a unit spelling to its canonical pantry unit.

    Returns None when the spelling is unknown.
    """
    if unit is None:
        return None
    return UNIT_ALIASES.get(unit.lower().strip().rstrip("."))


# =============================================================================
# Parsing Functions
# =============================================================================


def parse_quantity_string(quantity_str: str) -> float:
    """
    Parse a quantity string into a float.

    Handles formats like:
    - "2"
    - "1.5"
    - "1/2"
    - "1 1/2" (one and a half)
    - "2-3" (range, returns average)
    - "1½", "¾"
    """
    if not quantity_str:
        return 1.0

    quantity_str = quantity_str.strip().lower()

    if not quantity_str or quantity_str in ("to taste", "pinch", "dash", "some"):
        return 1.0

    for char, value in UNICODE_FRACTIONS.items():
        if char in quantity_str:
            whole_match = re.match(r"(\d+)\s*" + re.escape(char), quantity_str)
            whole = int(whole_match.group(1)) if whole_match else 0
            return whole + value

    range_match = re.match(r"(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)", quantity_str)
    if range_match:
        low = float(range_match.group(1))
        high = float(range_match.group(2))
        return (low + high) / 2

    mixed_match = re.match(r"(\d+)\s+(\d+)/(\d+)", quantity_str)
    if mixed_match:
        whole = int(mixed_match.group(1))
        num = int(mixed_match.group(2))
        denom = int(mixed_match.group(3))
        if denom == 0:
            return float(whole)
        return whole + (num / denom)

    frac_match = re.match(r"(\d+)/(\d+)", quantity_str)
    if frac_match:
        num = int(frac_match.group(1))
        denom = int(frac_match.group(2))
        if denom == 0:
            return 1.0
        return num / denom

    num_match = re.match(r"(\d+(?:\.\d+)?)", quantity_str)
    if num_match:
        return float(num_match.group(1))

    return 1.0


def coerce_quantity(value: str | float | int | None) -> float | None:
    """
    Turn a user-supplied quantity into a float.

    Returns None for a missing value. Raises ValueError for text that holds
    no number at all, so callers can report the field.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid quantity: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text:
        return None
    if not re.match(rf"^{QUANTITY_PATTERN}", text):
        raise ValueError(f"Invalid quantity: {value!r}")
    return parse_quantity_string(text)


def extract_ingredient_name(line: str) -> str:
    """
    Pull the ingredient name out of a raw recipe line.

    Examples:
        "2 cups flour" -> "flour"
        "1 1/2 tsp salt" -> "salt"
        "3 large eggs, beaten" -> "eggs"
        "1 cup of fresh chopped basil (packed)" -> "basil"
    """
    if not line:
        return ""

    name = line.lower().strip()

    # Leading bullets and list markers
    name = re.sub(r"^[-•*·]+\s*", "", name)

    # Leading quantity (or range) and unit
    name = re.sub(
        rf"^{QUANTITY_PATTERN}(?:\s*-\s*{QUANTITY_PATTERN})?\s*"
        rf"(?:{RECIPE_UNIT_PATTERN}\b\.?)?\s*(?:of\s+)?",
        "",
        name,
    )

    # Parenthetical notes
    name = re.sub(r"\([^)]*\)", "", name)

    # Trailing preparation notes after a comma
    name = name.split(",", 1)[0]

    for desc in DESCRIPTORS:
        name = re.sub(rf"\b{desc}\b", "", name)

    name = " ".join(name.split())
    return name.strip(" .;:")

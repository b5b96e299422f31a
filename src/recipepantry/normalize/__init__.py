"""Normalize raw recipe text, units and ingredient names."""

from recipepantry.normalize.text import normalize
from recipepantry.normalize.units import (
    UNIT_ALIASES,
    canonical_unit,
    coerce_quantity,
    extract_ingredient_name,
    parse_quantity_string,
)

__all__ = [
    "UNIT_ALIASES",
    "canonical_unit",
    "coerce_quantity",
    "extract_ingredient_name",
    "normalize",
    "parse_quantity_string",
]

"""Ordered line-classification rules for recipe segmentation.

Precedence, top to bottom:

1. Section headers. A header line switches the current section and is not
   content.
2. Metadata (servings, cook time). Extracted from every content line,
   independently of classification.
3. Ingredient rules. Any match makes the line an ingredient.
4. Instruction rules. Only tried when no ingredient rule matched.
"""

import re
from dataclasses import dataclass
from enum import Enum

from recipepantry.normalize.units import RECIPE_UNIT_PATTERN


class Section(str, Enum):
    UNKNOWN = "unknown"
    INGREDIENTS = "ingredients"
    INSTRUCTIONS = "instructions"


class LineKind(str, Enum):
    INGREDIENT = "ingredient"
    INSTRUCTION = "instruction"


@dataclass(frozen=True)
class LineRule:
    """A single named classification pattern."""

    name: str
    kind: LineKind
    pattern: re.Pattern[str]
    min_length: int = 0  # line must be strictly longer than this

    def matches(self, line: str) -> bool:
        return len(line) > self.min_length and self.pattern.search(line) is not None


HEADER_RULES: list[tuple[Section, re.Pattern[str]]] = [
    (Section.INGREDIENTS, re.compile(r"^(ingredients?|what you.?ll need)", re.IGNORECASE)),
    (Section.INSTRUCTIONS, re.compile(r"^(instructions?|directions?|method|steps?)", re.IGNORECASE)),
]

SERVINGS_PATTERN = re.compile(r"(serves?|servings?|makes?)[:\s]*(\d+)", re.IGNORECASE)
COOK_TIME_PATTERN = re.compile(r"(\d+)\s*(min|minute|hour|hr)", re.IGNORECASE)

TITLE_MIN_LENGTH = 10
TITLE_MAX_LENGTH = 100

INSTRUCTION_MIN_LENGTH = 20

INGREDIENT_RULES: list[LineRule] = [
    LineRule(
        name="quantity_then_unit",
        kind=LineKind.INGREDIENT,
        pattern=re.compile(
            rf"^\d+(?:\.\d+)?\s*(?:[a-z]+\s+){{0,2}}?{RECIPE_UNIT_PATTERN}\b", re.IGNORECASE
        ),
    ),
    LineRule(
        name="fraction_then_unit",
        kind=LineKind.INGREDIENT,
        pattern=re.compile(
            rf"^(?:\d+\s*)?(?:\d+\s*/\s*\d+|[½⅓⅔¼¾⅛])\s*{RECIPE_UNIT_PATTERN}\b", re.IGNORECASE
        ),
    ),
    LineRule(
        name="unit_of_noun",
        kind=LineKind.INGREDIENT,
        pattern=re.compile(rf"\b{RECIPE_UNIT_PATTERN}\s+(?:of\s+)?[a-z]", re.IGNORECASE),
    ),
]

INSTRUCTION_RULES: list[LineRule] = [
    # Numbered steps are accepted at any length
    LineRule(
        name="numbered_step",
        kind=LineKind.INSTRUCTION,
        pattern=re.compile(r"^\d+[.)]\s"),
    ),
    LineRule(
        name="sequencing_adverb",
        kind=LineKind.INSTRUCTION,
        pattern=re.compile(r"^(?:first|next|then|finally|meanwhile|after)", re.IGNORECASE),
        min_length=INSTRUCTION_MIN_LENGTH,
    ),
    LineRule(
        name="cooking_verb",
        kind=LineKind.INSTRUCTION,
        pattern=re.compile(r"(?:heat|cook|bake|mix|stir|add|combine|place|put)", re.IGNORECASE),
        min_length=INSTRUCTION_MIN_LENGTH,
    ),
]

CLASSIFICATION_RULES: list[LineRule] = INGREDIENT_RULES + INSTRUCTION_RULES


def match_header(line: str) -> Section | None:
    """Return the section a header line opens, or None for content lines."""
    for section, pattern in HEADER_RULES:
        if pattern.match(line):
            return section
    return None


def matching_rule(line: str) -> LineRule | None:
    """The first rule that matches a content line, in precedence order."""
    for rule in CLASSIFICATION_RULES:
        if rule.matches(line):
            return rule
    return None


def classify_line(line: str) -> LineKind | None:
    """Classify a content line as ingredient, instruction, or neither."""
    rule = matching_rule(line)
    return rule.kind if rule else None


def extract_servings(line: str) -> int | None:
    match = SERVINGS_PATTERN.search(line)
    return int(match.group(2)) if match else None


def extract_cook_time(line: str) -> str | None:
    match = COOK_TIME_PATTERN.search(line)
    return f"{match.group(1)} {match.group(2).lower()}" if match else None


def is_title_candidate(line: str) -> bool:
    return TITLE_MIN_LENGTH < len(line) < TITLE_MAX_LENGTH

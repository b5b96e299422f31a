"""Cleanup of raw OCR text before recipe segmentation.

The corrections here are heuristics with known false positives: the
zero-to-letter-O substitution also rewrites legitimate digits ("10 min"
becomes "1O min"). They are applied as a fixed rule set and never extended
on the fly, so that ``normalize`` stays pure and idempotent.
"""

import re

# Characters optical recognition commonly confuses, in application order
OCR_CHARACTER_CORRECTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"[|\\]"), "I"),
    (re.compile(r"0"), "O"),
]

# Bullet and social-media noise: tokens made only of these characters
NOISE_TOKEN = re.compile(r"(?<!\S)[@#&%$*]+(?!\S)")

# Plural or misspelled unit words and their singular canonical form
UNIT_CORRECTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(rf"\b{pattern}\b", re.IGNORECASE), replacement)
    for pattern, replacement in (
        ("tsps?", "tsp"),
        ("tbsps?", "tbsp"),
        ("cups?", "cup"),
        ("ozs?", "oz"),
        ("lbs?", "lb"),
        ("cloves?", "clove"),
        ("spoons?", "spoon"),
    )
]


def apply_character_corrections(text: str) -> str:
    """Replace characters OCR tends to misread."""
    for pattern, replacement in OCR_CHARACTER_CORRECTIONS:
        text = pattern.sub(replacement, text)
    return text


def strip_noise_tokens(text: str) -> str:
    """Drop isolated punctuation-only tokens such as bullets and hashtags."""
    return NOISE_TOKEN.sub("", text)


def normalize_unit_words(text: str) -> str:
    """Singularize unit words, matched whole-word and case-insensitively."""
    for pattern, replacement in UNIT_CORRECTIONS:
        text = pattern.sub(replacement, text)
    return text


def collapse_whitespace(text: str) -> str:
    """Collapse spaces inside lines and drop blank lines."""
    lines = (" ".join(line.split()) for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def normalize(raw_text: str | None) -> str:
    """
    Clean raw extracted text.

    Args:
        raw_text: Text as returned by the OCR engine.

    Returns:
        Cleaned text, one non-empty line per source line.
    """
    if not raw_text:
        return ""

    text = apply_character_corrections(raw_text)
    text = strip_noise_tokens(text)
    text = normalize_unit_words(text)
    return collapse_whitespace(text)

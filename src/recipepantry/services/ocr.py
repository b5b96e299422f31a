"""Tesseract-backed text extraction for recipe photos."""

import asyncio
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pytesseract
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from recipepantry.config import get_settings
from recipepantry.errors import UpstreamServiceError, ValidationError
from recipepantry.logging_config import get_logger
from recipepantry.schemas import OCRResult
from recipepantry.services.base import TextExtractor

logger = get_logger(__name__)


def preprocess_image(image: Image.Image, max_width: int = 1200) -> Image.Image:
    """
    Prepare an image for OCR.

    Fixes EXIF orientation, converts to grayscale, shrinks wide images
    (never enlarges), stretches contrast and sharpens.
    """
    image = ImageOps.exif_transpose(image)
    image = image.convert("L")
    if image.width > max_width:
        height = max(1, round(image.height * max_width / image.width))
        image = image.resize((max_width, height))
    image = ImageOps.autocontrast(image)
    return image.filter(ImageFilter.SHARPEN)


def text_from_ocr_data(data: Mapping[str, Sequence[Any]]) -> tuple[str, float]:
    """
    Rebuild line-broken text and mean word confidence from tesseract word data.

    Args:
        data: Output of ``pytesseract.image_to_data`` as a dict.

    Returns:
        Tuple of (text, confidence 0-100).
    """
    lines: dict[tuple[int, int, int], list[str]] = {}
    confidences: list[float] = []

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        try:
            conf = float(data["conf"][i])
        except (KeyError, IndexError, TypeError, ValueError):
            conf = -1.0
        if not word or conf < 0:
            continue

        key = (
            int(data["block_num"][i]),
            int(data["par_num"][i]),
            int(data["line_num"][i]),
        )
        lines.setdefault(key, []).append(word)
        confidences.append(conf)

    text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    confidence = sum(confidences) / len(confidences) if confidences else 0.0
    return text, min(max(confidence, 0.0), 100.0)


class TesseractTextExtractor(TextExtractor):
    """Text extractor running tesseract in a worker thread."""

    MAX_WIDTH = 1200
    # Sparse text mode suits recipe cards with scattered blocks
    TESSERACT_CONFIG = "--psm 11 -c preserve_interword_spaces=1"

    def __init__(self, tesseract_cmd: str | None = None, language: str = "eng"):
        settings = get_settings()
        self.tesseract_cmd = tesseract_cmd or settings.tesseract_cmd
        self.language = language
        self._ready = False

    @property
    def name(self) -> str:
        return "ocr"

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        if self._ready:
            return

        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd

        logger.info("Initializing OCR engine")
        try:
            version = await asyncio.to_thread(pytesseract.get_tesseract_version)
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            logger.error(f"OCR initialization failed: {e}")
            raise UpstreamServiceError("OCR initialization failed", service=self.name) from e

        self._ready = True
        logger.info(f"OCR engine ready (tesseract {version})")

    async def close(self) -> None:
        # Each recognition spawns its own tesseract process; nothing to release
        self._ready = False

    def _recognize(self, image_path: Path) -> OCRResult:
        with Image.open(image_path) as source:
            image = preprocess_image(source, max_width=self.MAX_WIDTH)

        data = pytesseract.image_to_data(
            image,
            lang=self.language,
            config=self.TESSERACT_CONFIG,
            output_type=pytesseract.Output.DICT,
        )
        text, confidence = text_from_ocr_data(data)
        return OCRResult(text=text, confidence=confidence, word_count=len(text.split()))

    async def extract_text(self, image_path: Path) -> OCRResult:
        if not self._ready:
            await self.initialize()

        logger.info(f"Processing image with OCR: {Path(image_path).name}")
        try:
            result = await asyncio.to_thread(self._recognize, Path(image_path))
        except UnidentifiedImageError as e:
            raise ValidationError(
                "Failed to process image. Please try with a clearer image.", field="image"
            ) from e
        except (pytesseract.TesseractError, OSError) as e:
            logger.error(f"OCR processing failed: {e}")
            raise UpstreamServiceError(f"OCR processing failed: {e}", service=self.name) from e

        logger.info(
            f"OCR completed: {result.word_count} words, {result.confidence:.1f}% confidence"
        )
        return result

"""Error taxonomy shared by the pantry, recipe and analysis layers."""

from typing import Any


class RecipePantryError(Exception):
    """Base exception for all expected application failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an API error body."""
        return {"success": False, "message": self.message}


class ValidationError(RecipePantryError):
    """Missing or malformed required input."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class NotFoundError(RecipePantryError):
    """Referenced pantry or ingredient does not exist."""

    def __init__(self, message: str, resource: str = "ingredient"):
        super().__init__(message)
        self.resource = resource


class UpstreamServiceError(RecipePantryError):
    """OCR or AI scorer unavailable, timed out, or answered with an error."""

    def __init__(self, message: str, service: str, status_code: int | None = None):
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class TextExtractionEmptyError(RecipePantryError):
    """OCR ran but produced no usable text; the photo should be retaken."""

    def __init__(
        self,
        message: str = (
            "No text could be extracted from the image. "
            "Please ensure the image is clear and contains readable text."
        ),
    ):
        super().__init__(message)

"""Gemini-backed recipe feasibility scorer."""

import json
import re
from collections.abc import Sequence
from typing import Any

import httpx
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from recipepantry.config import get_settings
from recipepantry.errors import UpstreamServiceError
from recipepantry.logging_config import get_logger
from recipepantry.schemas import (
    ExtractedIngredient,
    FeasibilityAnalysis,
    IngredientRecord,
    MissingIngredient,
    NutritionalInfo,
    Substitution,
    Suggestions,
)
from recipepantry.services.base import FeasibilityScorer

logger = get_logger(__name__)

PLACEHOLDER_API_KEYS = {"", "your_gemini_api_key_here"}
FALLBACK_SCORE = 50


# =============================================================================
# Prompts
# =============================================================================

ANALYSIS_PROMPT = """
As a culinary expert AI, analyze this recipe against the user's available pantry ingredients and provide a detailed feasibility assessment.

**RECIPE TEXT:**
{recipe_text}

**USER'S PANTRY:**
{pantry_list}

**ANALYSIS REQUIRED:**
Please provide a structured analysis in the following JSON format:

{{
  "feasibilityScore": [0-100 percentage],
  "recipeTitle": "[extracted recipe title]",
  "extractedIngredients": [
    {{"name": "[ingredient name]", "quantity": "[amount needed]", "unit": "[measurement unit]", "essential": [true/false]}}
  ],
  "requiredTools": ["[tool/utensil needed]"],
  "availableIngredients": ["[ingredients user has]"],
  "missingIngredients": [
    {{"name": "[missing ingredient]", "quantity": "[amount needed]", "unit": "[measurement unit]", "substitutes": ["[possible substitute]"], "essential": [true/false]}}
  ],
  "suggestions": {{
    "substitutions": [
      {{"original": "[original ingredient]", "substitute": "[replacement ingredient]", "ratio": "[conversion ratio]", "notes": "[additional notes]"}}
    ],
    "modifications": ["[suggested recipe modifications]"],
    "tips": ["[cooking tips and advice]"]
  }},
  "nutritionalInfo": {{
    "estimatedCalories": "[per serving]",
    "difficulty": "[easy/medium/hard]",
    "cookingTime": "[estimated time]",
    "servings": "[number of servings]"
  }},
  "warningsAndNotes": ["[important warnings or notes]"]
}}

**SCORING CRITERIA:**
- 100%: All ingredients available
- 80-99%: Most ingredients available, minor substitutions needed
- 60-79%: Some ingredients missing but good substitutes available
- 40-59%: Several key ingredients missing, significant modifications needed
- 20-39%: Most ingredients missing, major changes required
- 0-19%: Recipe not feasible with current pantry

**IMPORTANT GUIDELINES:**
1. Be practical and realistic in your assessment
2. Consider ingredient essentiality (salt, pepper, oil are often assumed available)
3. Suggest creative but feasible substitutions
4. If recipe text is unclear, make reasonable assumptions but note them

Respond ONLY with the valid JSON structure above, no additional text or formatting.
"""

EXTRACTION_PROMPT = """
Extract only the ingredients from this recipe text and format them as a simple JSON array:

RECIPE TEXT:
{recipe_text}

Return ONLY a JSON array in this format:
[
  {{"name": "[ingredient name]", "quantity": "[amount]", "unit": "[unit of measurement]"}}
]

Respond with only the JSON array, no additional text.
"""


def format_pantry_list(pantry_ingredients: Sequence[IngredientRecord]) -> str:
    """Render pantry contents as a bullet list for the prompt."""
    lines = [
        f"- {item.name} ({item.quantity:g} {item.unit.value})" for item in pantry_ingredients
    ]
    return "\n".join(lines) or "No ingredients available"


def build_analysis_prompt(
    recipe_text: str, pantry_ingredients: Sequence[IngredientRecord]
) -> str:
    return ANALYSIS_PROMPT.format(
        recipe_text=recipe_text,
        pantry_list=format_pantry_list(pantry_ingredients),
    )


def build_extraction_prompt(recipe_text: str) -> str:
    return EXTRACTION_PROMPT.format(recipe_text=recipe_text)


# =============================================================================
# Response parsing
# =============================================================================


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences around a JSON payload."""
    text = re.sub(r"```(?:json)?\s*", "", text.strip(), flags=re.IGNORECASE)
    return text.strip()


def extract_json(text: str, opener: str = "{", closer: str = "}") -> Any:
    """
    Decode the outermost JSON object (or array) embedded in model output.

    Raises:
        ValueError: If no decodable JSON is present.
    """
    cleaned = strip_code_fences(text)
    start = cleaned.find(opener)
    end = cleaned.rfind(closer)
    if start == -1 or end < start:
        raise ValueError("No valid JSON found in response")
    return json.loads(cleaned[start : end + 1])


def validate_score(score: Any) -> int:
    """Read a 0-100 score; anything else becomes the fallback score."""
    if isinstance(score, bool):
        return FALLBACK_SCORE
    if isinstance(score, (int, float)):
        value = int(score)
    else:
        match = re.match(r"\s*(-?\d+)", str(score or ""))
        if not match:
            return FALLBACK_SCORE
        value = int(match.group(1))
    if value < 0 or value > 100:
        return FALLBACK_SCORE
    return value


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    return str(value).strip()


def _parse_ingredient(item: Any) -> ExtractedIngredient | None:
    if isinstance(item, str):
        return ExtractedIngredient(name=item.strip()) if item.strip() else None
    item = _as_dict(item)
    name = _text(item.get("name"))
    if not name:
        return None
    return ExtractedIngredient(
        name=name,
        quantity=_text(item.get("quantity")),
        unit=_text(item.get("unit")),
        essential=bool(item.get("essential", True)),
    )


def _parse_missing(item: Any) -> MissingIngredient | None:
    base = _parse_ingredient(item)
    if base is None:
        return None
    substitutes = [_text(s) for s in _as_list(_as_dict(item).get("substitutes")) if _text(s)]
    return MissingIngredient(**base.model_dump(), substitutes=substitutes)


def _parse_available(item: Any) -> str:
    if isinstance(item, dict):
        return _text(item.get("name"))
    return _text(item)


def parse_ingredient_list(data: Any) -> list[ExtractedIngredient]:
    parsed = (_parse_ingredient(item) for item in _as_list(data))
    return [item for item in parsed if item is not None]


def fallback_analysis(response_text: str) -> FeasibilityAnalysis:
    """Analysis returned when the model's answer cannot be parsed."""
    return FeasibilityAnalysis(
        feasibility_score=FALLBACK_SCORE,
        recipe_title="Recipe Analysis",
        suggestions=Suggestions(
            modifications=["Unable to parse detailed analysis. Please try again."],
            tips=["Check your recipe image quality and try again."],
        ),
        warnings_and_notes=[
            "Analysis parsing failed. Raw response available for debugging.",
            "Please check your internet connection and API key configuration.",
        ],
        is_fallback=True,
        raw_response=response_text,
    )


def parse_feasibility_response(response_text: str) -> FeasibilityAnalysis:
    """
    Turn raw model output into a FeasibilityAnalysis.

    Missing or mistyped fields fall back to defaults. Output with no
    decodable JSON object yields ``fallback_analysis``.
    """
    try:
        data = extract_json(response_text)
    except ValueError as e:
        logger.warning(f"Failed to parse feasibility response: {e}")
        return fallback_analysis(response_text)
    if not isinstance(data, dict):
        logger.warning("Feasibility response JSON is not an object")
        return fallback_analysis(response_text)

    suggestions = _as_dict(data.get("suggestions"))
    nutrition = _as_dict(data.get("nutritionalInfo"))
    missing = (_parse_missing(item) for item in _as_list(data.get("missingIngredients")))
    available = (_parse_available(item) for item in _as_list(data.get("availableIngredients")))

    return FeasibilityAnalysis(
        feasibility_score=validate_score(data.get("feasibilityScore")),
        recipe_title=_text(data.get("recipeTitle"), "Unknown Recipe"),
        extracted_ingredients=parse_ingredient_list(data.get("extractedIngredients")),
        required_tools=[_text(t) for t in _as_list(data.get("requiredTools")) if _text(t)],
        available_ingredients=[name for name in available if name],
        missing_ingredients=[item for item in missing if item is not None],
        suggestions=Suggestions(
            substitutions=[
                Substitution(
                    original=_text(s.get("original")),
                    substitute=_text(s.get("substitute")),
                    ratio=_text(s.get("ratio")),
                    notes=_text(s.get("notes")),
                )
                for s in _as_list(suggestions.get("substitutions"))
                if isinstance(s, dict)
            ],
            modifications=[_text(m) for m in _as_list(suggestions.get("modifications"))],
            tips=[_text(t) for t in _as_list(suggestions.get("tips"))],
        ),
        nutritional_info=NutritionalInfo(
            estimated_calories=_text(nutrition.get("estimatedCalories"), "Unknown"),
            difficulty=_text(nutrition.get("difficulty"), "medium"),
            cooking_time=_text(nutrition.get("cookingTime"), "Unknown"),
            servings=_text(nutrition.get("servings"), "Unknown"),
        ),
        warnings_and_notes=[_text(w) for w in _as_list(data.get("warningsAndNotes"))],
    )


# =============================================================================
# Client
# =============================================================================


class GeminiFeasibilityScorer(FeasibilityScorer):
    """Feasibility scorer calling the Gemini generateContent REST endpoint."""

    BACKOFF_BASE = 1
    BACKOFF_MAX = 10

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = base_url or settings.gemini_base_url
        self.timeout = timeout or settings.ai_timeout
        self.max_retries = max_retries or settings.ai_max_retries
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    @property
    def is_ready(self) -> bool:
        return self._client is not None and not self._client.is_closed

    async def initialize(self) -> None:
        if self.is_ready:
            return

        if (self.api_key or "").strip() in PLACEHOLDER_API_KEYS:
            raise UpstreamServiceError(
                "Gemini API key not configured. Set GEMINI_API_KEY in your environment.",
                service=self.name,
            )

        logger.info(f"Initializing Gemini client with model: {self.model}")
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={"Content-Type": "application/json", "User-Agent": "RecipePantry/1.0"},
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _generate(self, prompt: str) -> str:
        """Send a prompt and return the concatenated text of the first candidate."""
        if not self.is_ready:
            await self.initialize()
        client = self._client

        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        @retry(
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.BACKOFF_BASE, max=self.BACKOFF_MAX),
            reraise=True,
        )
        async def _do_request() -> httpx.Response:
            return await client.post(self.url, params={"key": self.api_key}, json=payload)

        try:
            response = await _do_request()
        except (httpx.TimeoutException, httpx.NetworkError, RetryError) as e:
            logger.error(f"Gemini request failed after {self.max_retries} attempts: {e}")
            raise UpstreamServiceError(
                "AI analysis service temporarily unavailable", service=self.name
            ) from e

        if response.status_code >= 400:
            error_detail = response.text[:500] if response.text else "No details"
            logger.error(f"Gemini API error {response.status_code}: {error_detail}")
            raise UpstreamServiceError(
                f"AI analysis request failed with status {response.status_code}",
                service=self.name,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamServiceError(
                "AI analysis service returned a non-JSON response", service=self.name
            ) from e

        candidates = _as_list(_as_dict(body).get("candidates"))
        if not candidates:
            # Blocked or empty generations are treated as an unparseable answer
            logger.warning("Gemini response contained no candidates")
            return ""
        parts = _as_list(_as_dict(_as_dict(candidates[0]).get("content")).get("parts"))
        return "".join(_text(_as_dict(part).get("text")) for part in parts)

    async def analyze_feasibility(
        self,
        recipe_text: str,
        pantry_ingredients: Sequence[IngredientRecord],
    ) -> FeasibilityAnalysis:
        logger.info("Analyzing recipe feasibility with Gemini")
        prompt = build_analysis_prompt(recipe_text, pantry_ingredients)
        analysis = parse_feasibility_response(await self._generate(prompt))
        logger.info(f"Gemini analysis completed: feasibility {analysis.feasibility_score}%")
        return analysis

    async def extract_ingredients(self, recipe_text: str) -> list[ExtractedIngredient]:
        text = await self._generate(build_extraction_prompt(recipe_text))
        try:
            data = extract_json(text, opener="[", closer="]")
        except ValueError as e:
            logger.warning(f"Failed to parse extracted ingredients: {e}")
            return []
        return parse_ingredient_list(data)

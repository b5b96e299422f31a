"""Tests for the Gemini feasibility scorer."""

import json

import httpx
import pytest

from recipepantry.errors import UpstreamServiceError
from recipepantry.schemas import IngredientRecord, Unit
from recipepantry.services.gemini import (
    FALLBACK_SCORE,
    GeminiFeasibilityScorer,
    build_analysis_prompt,
    extract_json,
    fallback_analysis,
    parse_feasibility_response,
    validate_score,
)

ANALYSIS_JSON = {
    "feasibilityScore": 80,
    "recipeTitle": "Pancakes",
    "extractedIngredients": [
        {"name": "flour", "quantity": "2", "unit": "cups", "essential": True},
        {"name": "salt", "quantity": "1", "unit": "tsp", "essential": False},
    ],
    "requiredTools": ["pan", "whisk"],
    "availableIngredients": ["flour"],
    "missingIngredients": [
        {"name": "salt", "quantity": "1", "unit": "tsp", "substitutes": ["soy sauce"]}
    ],
    "suggestions": {
        "substitutions": [
            {"original": "salt", "substitute": "soy sauce", "ratio": "1:1", "notes": "darker"}
        ],
        "modifications": ["Skip the salt"],
        "tips": ["Rest the batter"],
    },
    "nutritionalInfo": {
        "estimatedCalories": "250",
        "difficulty": "easy",
        "cookingTime": "20 min",
        "servings": "4",
    },
    "warningsAndNotes": ["Contains gluten"],
}


def gemini_body(text: str) -> dict:
    """Wrap model output the way generateContent returns it."""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_scorer(handler, **kwargs) -> GeminiFeasibilityScorer:
    kwargs.setdefault("max_retries", 2)
    return GeminiFeasibilityScorer(
        api_key="test-key",
        model="gemini-test",
        base_url="https://gemini.test/v1beta",
        timeout=5,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    """Retry without sleeping."""
    monkeypatch.setattr(GeminiFeasibilityScorer, "BACKOFF_BASE", 0)


@pytest.fixture
def pantry():
    return [
        IngredientRecord(name="flour", quantity=2, unit=Unit.CUP),
        IngredientRecord(name="egg", quantity=6),
    ]


# =============================================================================
# Parsing
# =============================================================================


class TestValidateScore:
    @pytest.mark.parametrize(
        "raw,score",
        [
            (85, 85),
            (0, 0),
            (100, 100),
            (72.9, 72),
            ("85%", 85),
            (" 40 percent", 40),
            (150, FALLBACK_SCORE),
            (-5, FALLBACK_SCORE),
            ("high", FALLBACK_SCORE),
            (None, FALLBACK_SCORE),
            (True, FALLBACK_SCORE),
        ],
    )
    def test_scores(self, raw, score):
        assert validate_score(raw) == score


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_markdown_fences_and_prose(self):
        text = 'Here you go:\n```json\n{"a": {"b": 2}}\n```\nEnjoy!'
        assert extract_json(text) == {"a": {"b": 2}}

    def test_array(self):
        assert extract_json('```\n[{"name": "salt"}]\n```', opener="[", closer="]") == [
            {"name": "salt"}
        ]

    @pytest.mark.parametrize("text", ["", "no json here", "{not: valid json}"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            extract_json(text)


class TestParseFeasibilityResponse:
    """Tests for turning model output into an analysis."""

    def test_full_response(self):
        analysis = parse_feasibility_response(json.dumps(ANALYSIS_JSON))

        assert analysis.feasibility_score == 80
        assert analysis.recipe_title == "Pancakes"
        assert [i.name for i in analysis.extracted_ingredients] == ["flour", "salt"]
        assert analysis.extracted_ingredients[1].essential is False
        assert analysis.required_tools == ["pan", "whisk"]
        assert analysis.available_ingredients == ["flour"]
        assert analysis.missing_ingredients[0].substitutes == ["soy sauce"]
        assert analysis.suggestions.substitutions[0].ratio == "1:1"
        assert analysis.suggestions.tips == ["Rest the batter"]
        assert analysis.nutritional_info.difficulty == "easy"
        assert analysis.warnings_and_notes == ["Contains gluten"]
        assert analysis.is_fallback is False

    def test_missing_fields_get_defaults(self):
        analysis = parse_feasibility_response('{"feasibilityScore": "abc"}')

        assert analysis.feasibility_score == FALLBACK_SCORE
        assert analysis.recipe_title == "Unknown Recipe"
        assert analysis.extracted_ingredients == []
        assert analysis.nutritional_info.cooking_time == "Unknown"
        assert analysis.is_fallback is False

    def test_mistyped_fields_ignored(self):
        analysis = parse_feasibility_response(
            '{"extractedIngredients": "flour", "suggestions": [], '
            '"availableIngredients": [{"name": "flour"}, "", "egg"]}'
        )

        assert analysis.extracted_ingredients == []
        assert analysis.suggestions.modifications == []
        assert analysis.available_ingredients == ["flour", "egg"]

    @pytest.mark.parametrize("text", ["", "Sorry, I cannot help with that.", "[1, 2, 3]"])
    def test_malformed_output_falls_back(self, text):
        analysis = parse_feasibility_response(text)

        assert analysis.is_fallback is True
        assert analysis.feasibility_score == FALLBACK_SCORE
        assert analysis.raw_response == text

    def test_fallback_content(self):
        analysis = fallback_analysis("raw")

        assert analysis.recipe_title == "Recipe Analysis"
        assert analysis.suggestions.modifications
        assert analysis.suggestions.tips
        assert analysis.warnings_and_notes


class TestPrompt:
    def test_lists_pantry_items(self, pantry):
        prompt = build_analysis_prompt("2 cup flour", pantry)

        assert "2 cup flour" in prompt
        assert "- flour (2 cup)" in prompt
        assert "- egg (6 piece)" in prompt

    def test_empty_pantry(self):
        assert "No ingredients available" in build_analysis_prompt("text", [])


# =============================================================================
# Client
# =============================================================================


class TestGeminiFeasibilityScorer:
    """Tests for the HTTP client against a mock transport."""

    @pytest.mark.asyncio
    async def test_analyze_feasibility(self, pantry):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=gemini_body(json.dumps(ANALYSIS_JSON)))

        scorer = make_scorer(handler)
        analysis = await scorer.analyze_feasibility("2 cup flour", pantry)
        await scorer.close()

        assert analysis.feasibility_score == 80
        assert len(requests) == 1
        request = requests[0]
        assert request.url.path == "/v1beta/models/gemini-test:generateContent"
        assert request.url.params["key"] == "test-key"
        prompt = json.loads(request.content)["contents"][0]["parts"][0]["text"]
        assert "2 cup flour" in prompt
        assert "- egg (6 piece)" in prompt

    @pytest.mark.asyncio
    async def test_fenced_answer(self, pantry):
        fenced = f"```json\n{json.dumps(ANALYSIS_JSON)}\n```"
        scorer = make_scorer(lambda request: httpx.Response(200, json=gemini_body(fenced)))

        analysis = await scorer.analyze_feasibility("text", pantry)

        assert analysis.recipe_title == "Pancakes"

    @pytest.mark.asyncio
    async def test_no_candidates_falls_back(self, pantry):
        scorer = make_scorer(lambda request: httpx.Response(200, json={"candidates": []}))

        analysis = await scorer.analyze_feasibility("text", pantry)

        assert analysis.is_fallback is True

    @pytest.mark.asyncio
    async def test_http_error(self, pantry):
        scorer = make_scorer(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(UpstreamServiceError) as exc_info:
            await scorer.analyze_feasibility("text", pantry)

        assert exc_info.value.status_code == 500
        assert exc_info.value.service == "gemini"

    @pytest.mark.asyncio
    async def test_non_json_body(self, pantry):
        scorer = make_scorer(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(UpstreamServiceError):
            await scorer.analyze_feasibility("text", pantry)

    @pytest.mark.asyncio
    async def test_network_errors_retried_then_raised(self, pantry):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        scorer = make_scorer(handler, max_retries=3)

        with pytest.raises(UpstreamServiceError):
            await scorer.analyze_feasibility("text", pantry)

        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_transient_error_recovers(self, pantry):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json=gemini_body(json.dumps(ANALYSIS_JSON)))

        scorer = make_scorer(handler)

        analysis = await scorer.analyze_feasibility("text", pantry)

        assert analysis.feasibility_score == 80
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_extract_ingredients(self):
        answer = '```json\n[{"name": "flour", "quantity": "2", "unit": "cups"}, {"name": ""}]\n```'
        scorer = make_scorer(lambda request: httpx.Response(200, json=gemini_body(answer)))

        ingredients = await scorer.extract_ingredients("2 cups flour")

        assert [(i.name, i.quantity, i.unit) for i in ingredients] == [("flour", "2", "cups")]

    @pytest.mark.asyncio
    async def test_extract_ingredients_unparseable(self):
        scorer = make_scorer(lambda request: httpx.Response(200, json=gemini_body("none")))

        assert await scorer.extract_ingredients("text") == []


class TestLifecycle:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["", "your_gemini_api_key_here"])
    async def test_missing_api_key(self, key):
        scorer = GeminiFeasibilityScorer(api_key=key)

        with pytest.raises(UpstreamServiceError):
            await scorer.initialize()
        assert scorer.is_ready is False

    @pytest.mark.asyncio
    async def test_initialize_and_close(self):
        scorer = make_scorer(lambda request: httpx.Response(200, json={}))

        await scorer.initialize()
        assert scorer.is_ready is True

        await scorer.close()
        assert scorer.is_ready is False

"""Tests for the pantry and recipe API routes."""

import pytest
from fastapi.testclient import TestClient

from recipepantry.errors import UpstreamServiceError
from recipepantry.main import app
from recipepantry.routers.dependencies import get_analyzer, get_reconciler
from recipepantry.services import RecipeAnalyzer


@pytest.fixture
def analyzer(reconciler, fake_extractor, fake_scorer):
    return RecipeAnalyzer(
        reconciler, fake_extractor, fake_scorer, ocr_timeout=1, ai_timeout=1, max_concurrency=2
    )


@pytest.fixture
def client(reconciler, analyzer):
    """Test client wired to in-memory collaborators. The lifespan is not run."""
    app.dependency_overrides[get_reconciler] = lambda: reconciler
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# =============================================================================
# Pantry
# =============================================================================


class TestPantryRoutes:
    """Tests for the pantry endpoints."""

    def test_get_creates_empty_pantry(self, client):
        response = client.get("/api/v1/pantry", headers={"X-User-Id": "alice"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user_id"] == "alice"
        assert body["data"]["ingredients"] == []

    def test_user_from_query_and_default(self, client):
        client.post("/api/v1/pantry/ingredients?user_id=bob", json={"name": "egg"})

        assert client.get("/api/v1/pantry?user_id=bob").json()["data"]["total_items"] == 1
        assert client.get("/api/v1/pantry").json()["data"]["user_id"] == "default-user"

    def test_add_merges(self, client):
        client.post("/api/v1/pantry/ingredients", json={"name": "Egg", "quantity": 2})
        response = client.post(
            "/api/v1/pantry/ingredients", json={"name": "egg", "quantity": "3", "unit": "pieces"}
        )

        assert response.status_code == 201
        assert response.json()["data"]["quantity"] == 5
        pantry = client.get("/api/v1/pantry").json()["data"]
        assert pantry["total_items"] == 1

    def test_add_invalid_category(self, client):
        response = client.post(
            "/api/v1/pantry/ingredients", json={"name": "egg", "category": "candy"}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["field"] == "category"

    def test_bulk_add(self, client):
        response = client.post(
            "/api/v1/pantry/ingredients/bulk",
            json={"ingredients": [{"name": "rice", "unit": "kg"}, {"name": ""}]},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert len(data["added_ingredients"]) == 1
        assert len(data["errors"]) == 1

    def test_update(self, client):
        client.post("/api/v1/pantry/ingredients", json={"name": "milk", "unit": "l"})

        response = client.put("/api/v1/pantry/ingredients/milk", json={"quantity": 2})

        assert response.status_code == 200
        assert response.json()["data"]["quantity"] == 2

    def test_update_unknown(self, client):
        client.post("/api/v1/pantry/ingredients", json={"name": "milk"})

        response = client.put("/api/v1/pantry/ingredients/caviar", json={"quantity": 2})

        assert response.status_code == 404
        assert "caviar" in response.json()["message"]

    def test_remove_and_clear(self, client):
        client.post("/api/v1/pantry/ingredients", json={"name": "milk"})
        client.post("/api/v1/pantry/ingredients", json={"name": "egg"})

        removed = client.delete("/api/v1/pantry/ingredients/milk")
        assert removed.json()["removed"] == 1

        cleared = client.delete("/api/v1/pantry")
        assert cleared.status_code == 200
        assert cleared.json()["data"]["total_items"] == 0

    def test_clear_missing_pantry(self, client):
        response = client.delete("/api/v1/pantry", headers={"X-User-Id": "ghost"})

        assert response.status_code == 404

    def test_search(self, client):
        client.post("/api/v1/pantry/ingredients", json={"name": "brown sugar"})

        response = client.get("/api/v1/pantry/search", params={"query": "SUGAR"})

        assert response.json()["count"] == 1

    def test_search_requires_query(self, client):
        response = client.get("/api/v1/pantry/search")

        assert response.status_code == 400
        assert response.json()["field"] == "query"

    def test_stats(self, client):
        client.post(
            "/api/v1/pantry/ingredients",
            json={"name": "milk", "category": "dairy", "expiry_date": "2024-06-05"},
        )

        data = client.get("/api/v1/pantry/stats").json()["data"]

        assert data["categories"] == {"dairy": 1}
        assert [i["name"] for i in data["expiring_items"]] == ["milk"]


# =============================================================================
# Recipes
# =============================================================================


class TestRecipeRoutes:
    """Tests for the recipe analysis endpoints."""

    def test_analyze_image(self, client, fake_extractor):
        client.post("/api/v1/pantry/ingredients", json={"name": "flour", "unit": "cup"})

        response = client.post(
            "/api/v1/recipe/analyze",
            files={"image": ("recipe.jpg", b"fake jpeg bytes", "image/jpeg")},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["feasibility_score"] == 75
        assert data["pantry"]["match_percentage"] == 50
        assert data["structure"]["servings"] == 4
        # The temporary upload is gone once the request finishes
        assert len(fake_extractor.calls) == 1
        assert not fake_extractor.calls[0].exists()

    def test_analyze_rejects_non_image(self, client):
        response = client.post(
            "/api/v1/recipe/analyze",
            files={"image": ("recipe.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["field"] == "image"

    def test_analyze_no_text(self, client, fake_extractor):
        fake_extractor.text = ""

        response = client.post(
            "/api/v1/recipe/analyze",
            files={"image": ("recipe.png", b"fake png bytes", "image/png")},
        )

        assert response.status_code == 422
        assert "No text could be extracted" in response.json()["message"]

    def test_scorer_unavailable(self, client, fake_scorer):
        async def unavailable(recipe_text, pantry_ingredients):
            raise UpstreamServiceError("AI analysis service temporarily unavailable", "gemini")

        fake_scorer.analyze_feasibility = unavailable

        response = client.post("/api/v1/recipe/analyze-text", json={"recipe_text": "2 cups flour"})

        assert response.status_code == 503
        assert response.json() == {
            "success": False,
            "message": "AI analysis service temporarily unavailable",
        }

    def test_extract_text(self, client):
        response = client.post(
            "/api/v1/recipe/extract-text",
            files={"image": ("recipe.jpg", b"fake jpeg bytes", "image/jpeg")},
        )

        assert response.status_code == 200
        assert response.json()["data"]["structure"]["ingredients"] == [
            "2 cup flour",
            "1 tsp salt",
        ]

    def test_analyze_text(self, client, clean_recipe):
        response = client.post("/api/v1/recipe/analyze-text", json={"recipe_text": clean_recipe})

        assert response.status_code == 200
        assert response.json()["data"]["ocr"] is None

    def test_analyze_empty_text(self, client):
        response = client.post("/api/v1/recipe/analyze-text", json={"recipe_text": "   "})

        assert response.status_code == 400

    def test_extract_ingredients(self, client, clean_recipe):
        response = client.post(
            "/api/v1/recipe/extract-ingredients", json={"recipe_text": clean_recipe}
        )

        data = response.json()["data"]
        assert [i["name"] for i in data["ingredients"]] == ["flour"]
        assert data["detected_ingredients"] == ["2 cup flour", "1 tsp salt"]

    def test_services(self, client, fake_extractor, fake_scorer):
        response = client.get("/api/v1/recipe/services")

        body = response.json()
        assert body["services"] == {"ocr": False, "gemini": False, "pantry_store": True}
        assert body["all_ready"] is False

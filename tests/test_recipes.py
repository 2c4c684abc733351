import pytest
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mealprep import schemas
from mealprep.core.errors import NotFoundError, ValidationError
from mealprep.crud import recipes as crud_recipes

from conftest import recipe_in


def recipe_payload(name="Tomato Soup", **overrides):
    data = {
        "name": name,
        "description": "Smooth and warming",
        "ingredients": [
            {"name": "Tomatoes", "amount": 800, "unit": "g"},
            {"name": "Onion", "amount": 1, "unit": "piece", "notes": "diced"},
        ],
        "instructions": "Soften the onion, add tomatoes, simmer and blend.",
        "nutrition": {"calories": 180, "protein": 4},
        "cuisine": "Italian",
        "prep_time_minutes": 10,
        "cook_time_minutes": 25,
        "difficulty": "easy",
        "tags": ["soup", "vegetarian", "soup"],
    }
    data.update(overrides)
    return data


def test_create_recipe(client: TestClient, headers, user_id):
    response = client.post("/recipes/", json=recipe_payload(), headers=headers)
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Tomato Soup"
    assert data["times"]["total_time_minutes"] == 35
    assert data["rating"] == {"avg_rating": 0.0, "rating_count": 0}
    assert data["audit"]["owner_id"] == str(user_id)
    assert data["tags"] == ["soup", "vegetarian"]
    assert [i["name"] for i in data["ingredients"]] == ["Tomatoes", "Onion"]
    assert data["nutrition"]["calories"] == 180


def test_create_recipe_ignores_rating_fields(client: TestClient, headers):
    payload = recipe_payload(avg_rating=5.0, rating_count=99, total_time_minutes=1)
    response = client.post("/recipes/", json=payload, headers=headers)
    assert response.status_code == 201
    data = response.json()
    assert data["rating"] == {"avg_rating": 0.0, "rating_count": 0}
    assert data["times"]["total_time_minutes"] == 35


def test_create_recipe_validation_errors(client: TestClient, headers):
    payload = recipe_payload(name="  ", ingredients=[], difficulty="extreme")
    response = client.post("/recipes/", json=payload, headers=headers)
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "validation_error"
    fields = {e["field"] for e in data["errors"]}
    assert {"name", "ingredients", "difficulty"} <= fields


def test_read_recipe(client: TestClient, headers):
    recipe_id = client.post("/recipes/", json=recipe_payload(), headers=headers).json()["id"]
    response = client.get(f"/recipes/{recipe_id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["id"] == recipe_id


def test_read_missing_recipe(client: TestClient, headers):
    response = client.get(f"/recipes/{uuid4()}", headers=headers)
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_update_recipe_field_mask(client: TestClient, headers):
    recipe_id = client.post("/recipes/", json=recipe_payload(), headers=headers).json()["id"]
    response = client.patch(
        f"/recipes/{recipe_id}", json={"cook_time_minutes": 40}, headers=headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["times"]["cook_time_minutes"] == 40
    assert data["times"]["total_time_minutes"] == 50
    # Untouched fields survive a sparse update
    assert data["description"] == "Smooth and warming"
    assert data["cuisine"] == "Italian"


def test_update_recipe_rejects_empty_mask(client: TestClient, headers):
    recipe_id = client.post("/recipes/", json=recipe_payload(), headers=headers).json()["id"]
    response = client.patch(f"/recipes/{recipe_id}", json={}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "No fields to update"


def test_update_recipe_ignores_derived_fields(client: TestClient, headers):
    recipe_id = client.post("/recipes/", json=recipe_payload(), headers=headers).json()["id"]
    response = client.patch(
        f"/recipes/{recipe_id}",
        json={"name": "Roasted Tomato Soup", "avg_rating": 4.5, "rating_count": 3},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Roasted Tomato Soup"
    assert data["rating"] == {"avg_rating": 0.0, "rating_count": 0}


def test_update_replaces_ingredients_in_order(client: TestClient, headers):
    recipe_id = client.post("/recipes/", json=recipe_payload(), headers=headers).json()["id"]
    new_ingredients = [
        {"name": "Basil", "amount": 1, "unit": "bunch"},
        {"name": "Tomatoes", "amount": 1, "unit": "kg"},
    ]
    response = client.patch(
        f"/recipes/{recipe_id}", json={"ingredients": new_ingredients}, headers=headers
    )
    assert response.status_code == 200
    assert [i["name"] for i in response.json()["ingredients"]] == ["Basil", "Tomatoes"]


def test_update_recipe_not_owner(client: TestClient, headers, other_headers):
    recipe_id = client.post("/recipes/", json=recipe_payload(), headers=headers).json()["id"]
    response = client.patch(f"/recipes/{recipe_id}", json={"name": "Mine now"}, headers=other_headers)
    assert response.status_code == 403


def test_search_recipes_total_count(client: TestClient, headers):
    for name in ["Tomato Soup", "Tomato Salad", "Pea Soup"]:
        client.post("/recipes/", json=recipe_payload(name=name), headers=headers)

    response = client.get("/recipes/?q=tomato&limit=1", headers=headers)
    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.headers["X-Total-Count"] == "2"


def test_read_my_recipes(client: TestClient, headers, other_headers):
    client.post("/recipes/", json=recipe_payload(name="Mine"), headers=headers)
    client.post("/recipes/", json=recipe_payload(name="Theirs"), headers=other_headers)

    response = client.get("/recipes/mine", headers=headers)
    assert response.status_code == 200
    assert [r["name"] for r in response.json()] == ["Mine"]
    assert response.headers["X-Total-Count"] == "1"


def test_requires_authentication(client: TestClient):
    response = client.get("/recipes/")
    assert response.status_code == 401


def test_rejects_bad_token(client: TestClient):
    response = client.get("/recipes/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


# --- Store level ---

def test_get_recipe_or_404(db: Session):
    with pytest.raises(NotFoundError):
        crud_recipes.get_recipe_or_404(db, uuid4())


def test_create_recipe_with_explicit_id(db: Session):
    recipe_id = uuid4()
    db_recipe = crud_recipes.create_recipe(db, recipe_in("Fixed"), recipe_id=recipe_id)
    assert db_recipe.id == recipe_id
    assert db_recipe.avg_rating == 0.0
    assert db_recipe.rating_count == 0


def test_update_missing_recipe(db: Session):
    with pytest.raises(NotFoundError):
        crud_recipes.update_recipe(db, uuid4(), schemas.RecipeUpdate(name="Nope"))


def test_negative_times_rejected(db: Session):
    with pytest.raises(ValidationError) as exc_info:
        crud_recipes.create_recipe(db, recipe_in("Bad", prep_time_minutes=-1))
    assert exc_info.value.errors[0]["field"] == "prep_time_minutes"


def test_parse_difficulty_is_case_insensitive():
    assert crud_recipes.parse_difficulty(" HARD ").value == "hard"
    with pytest.raises(ValidationError):
        crud_recipes.parse_difficulty("trivial")


def test_normalize_tags():
    assert crud_recipes.normalize_tags([" quick ", "quick", "", None, "vegan"]) == ["quick", "vegan"]


def test_create_recipe_name_too_long(client: TestClient, headers):
    response = client.post("/recipes/", json=recipe_payload(name="x" * 300), headers=headers)
    assert response.status_code == 400
    assert response.json()["errors"] == [
        {"field": "name", "message": "name must be at most 255 characters"}
    ]


def test_ingredient_lengths_checked(db: Session):
    ingredients = [{"name": "Salt", "amount": 1, "unit": "u" * 21}]
    with pytest.raises(ValidationError) as exc_info:
        crud_recipes.create_recipe(db, recipe_in("Salty", ingredients=ingredients))
    assert [e["field"] for e in exc_info.value.errors] == ["ingredients[0].unit"]


def test_update_recipe_cuisine_too_long(db: Session):
    recipe = crud_recipes.create_recipe(db, recipe_in("Dal"))
    with pytest.raises(ValidationError) as exc_info:
        crud_recipes.update_recipe(db, recipe.id, schemas.RecipeUpdate(cuisine="c" * 101))
    assert exc_info.value.errors[0]["field"] == "cuisine"

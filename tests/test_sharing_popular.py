from datetime import date
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mealprep import schemas
from mealprep.crud import collections as crud_collections
from mealprep.crud import favorites as crud_favorites
from mealprep.crud import meal_plans as crud_meal_plans
from mealprep.crud import recipes as crud_recipes
from mealprep.services import consistency, relationships


def test_share_creates_independent_fork(db: Session, user_id, other_user_id, make_recipe):
    source = make_recipe(
        "Banana Bread",
        owner_id=user_id,
        tags=["baking"],
        nutrition={"calories": 310},
        difficulty="medium",
    )
    consistency.add_recipe_rating(db, uuid4(), source.id, 5)

    fork = consistency.share_recipe(db, source.id, from_user_id=user_id, to_user_id=other_user_id)

    assert fork.id != source.id
    assert fork.name == "Banana Bread (Shared)"
    assert fork.owner_id == other_user_id
    assert fork.avg_rating == 0.0
    assert fork.rating_count == 0
    assert fork.tags == ["baking"]
    assert fork.calories == 310
    assert [i.name for i in fork.ingredients] == [i.name for i in source.ingredients]

    # Editing the fork leaves the source alone
    crud_recipes.update_recipe(db, fork.id, schemas.RecipeUpdate(name="My Banana Bread"))
    db.refresh(source)
    assert source.name == "Banana Bread"
    assert source.owner_id == user_id
    assert source.rating_count == 1


def test_share_api(client: TestClient, headers, user_id, other_user_id, make_recipe):
    source = make_recipe("Pesto", owner_id=user_id)
    response = client.post(
        f"/recipes/{source.id}/share", json={"to_user_id": str(other_user_id)}, headers=headers
    )
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Pesto (Shared)"
    assert data["audit"]["owner_id"] == str(other_user_id)


def test_popular_requires_rating_of_three(db: Session, user_id, make_recipe):
    heavily_used = make_recipe("Heavily Used")
    well_rated = make_recipe("Well Rated")
    unrated = make_recipe("Unrated")

    plan = crud_meal_plans.create_meal_plan(
        db, schemas.MealPlanCreate(name="Week A", week_start_date=date(2026, 10, 12)), user_id
    )
    for day in range(7):
        crud_meal_plans.assign_recipe(db, plan.id, heavily_used.id, day, "dinner")
        crud_meal_plans.assign_recipe(db, plan.id, unrated.id, day, "lunch")
    consistency.add_recipe_rating(db, uuid4(), heavily_used.id, 2)
    consistency.add_recipe_rating(db, uuid4(), well_rated.id, 3)

    popular = relationships.popular_recipes(db)
    assert [r.name for r in popular] == ["Well Rated"]


def test_popular_ranks_by_usage_then_rating(db: Session, user_id, make_recipe):
    a = make_recipe("A")
    b = make_recipe("B")
    c = make_recipe("C")

    # Two favorites each for A and B, one for C
    consistency.add_recipe_rating(db, uuid4(), a.id, 3)
    consistency.add_recipe_rating(db, uuid4(), a.id, 3)
    consistency.add_recipe_rating(db, uuid4(), b.id, 5)
    consistency.add_recipe_rating(db, uuid4(), b.id, 4)
    consistency.add_recipe_rating(db, uuid4(), c.id, 5)

    collection = crud_collections.create_collection(
        db, schemas.CollectionCreate(name="Favourites"), user_id
    )
    crud_collections.add_recipe(db, collection.id, c.id)
    crud_collections.add_recipe(db, collection.id, c.id)  # no-op

    # A: 2, B: 2 (higher rating), C: 2 (favorite + collection, best rating)
    popular = relationships.popular_recipes(db, limit=2)
    assert [r.name for r in popular] == ["C", "B"]

    crud_favorites.add_favorite(db, user_id, a.id)
    popular = relationships.popular_recipes(db)
    assert [r.name for r in popular] == ["A", "C", "B"]


def test_recipes_with_usage_stats(db: Session, user_id, make_recipe):
    liked = make_recipe("Liked")
    other = make_recipe("Other")
    consistency.add_recipe_rating(db, user_id, liked.id, 4)

    results = relationships.recipes_with_usage_stats(db, user_id=user_id)
    by_name = {r.recipe.name: r.usage_stats for r in results}
    assert [r.recipe.name for r in results][0] == "Liked"
    assert by_name["Liked"].is_user_favorite is True
    assert by_name["Liked"].user_rating == 4
    assert by_name["Liked"].favorites_count == 1
    assert by_name["Other"].is_user_favorite is False
    assert by_name["Other"].total_usage == 0

    anonymous = relationships.recipes_with_usage_stats(db)
    assert all(r.usage_stats.is_user_favorite is False for r in anonymous)
    assert other.id in {r.recipe.id for r in anonymous}


def test_popular_api(client: TestClient, headers, make_recipe):
    recipe = make_recipe("Crowd Pleaser")
    client.put(f"/recipes/{recipe.id}/rating", json={"rating": 5}, headers=headers)

    response = client.get("/recipes/popular", headers=headers)
    assert response.status_code == 200
    assert [r["name"] for r in response.json()] == ["Crowd Pleaser"]

    response = client.get("/recipes/with-usage", headers=headers)
    assert response.status_code == 200
    assert response.json()[0]["usage_stats"]["is_user_favorite"] is True

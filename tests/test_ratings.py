import pytest
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mealprep import models
from mealprep.core.errors import NotFoundError, ValidationError
from mealprep.crud import favorites as crud_favorites
from mealprep.services import consistency, relationships


def test_two_ratings_average(db: Session, make_recipe):
    recipe = make_recipe("Recipe X")
    user_a, user_b = uuid4(), uuid4()

    consistency.add_recipe_rating(db, user_a, recipe.id, 4)
    db_recipe = consistency.add_recipe_rating(db, user_b, recipe.id, 2)

    assert db_recipe.avg_rating == 3.0
    assert db_recipe.rating_count == 2


def test_rating_round_trip(db: Session, make_recipe):
    recipe = make_recipe()
    user_a, user_b = uuid4(), uuid4()
    consistency.add_recipe_rating(db, user_a, recipe.id, 3)

    consistency.add_recipe_rating(db, user_b, recipe.id, 5)
    db_recipe = consistency.remove_recipe_rating(db, user_b, recipe.id)

    assert db_recipe.avg_rating == 3.0
    assert db_recipe.rating_count == 1
    favorite = crud_favorites.get_favorite(db, user_b, recipe.id)
    assert favorite is not None
    assert favorite.personal_rating is None


def test_no_ratings_is_zero_not_null(db: Session, user_id, make_recipe):
    recipe = make_recipe()
    consistency.add_recipe_rating(db, user_id, recipe.id, 5)
    db_recipe = consistency.remove_recipe_rating(db, user_id, recipe.id)

    assert db_recipe.avg_rating == 0.0
    assert db_recipe.rating_count == 0


def test_rerating_replaces_previous_rating(db: Session, user_id, make_recipe):
    recipe = make_recipe()
    consistency.add_recipe_rating(db, user_id, recipe.id, 1, notes="too salty")
    db_recipe = consistency.add_recipe_rating(db, user_id, recipe.id, 4)

    assert db_recipe.avg_rating == 4.0
    assert db_recipe.rating_count == 1
    # Notes are kept when a later rating does not send any
    assert crud_favorites.get_favorite(db, user_id, recipe.id).personal_notes == "too salty"


def test_average_is_rounded(db: Session, make_recipe):
    recipe = make_recipe()
    for rating in (5, 4, 4):
        db_recipe = consistency.add_recipe_rating(db, uuid4(), recipe.id, rating)
    assert db_recipe.avg_rating == 4.33
    assert db_recipe.rating_count == 3


def test_unrated_favorites_do_not_count(db: Session, make_recipe):
    recipe = make_recipe()
    crud_favorites.add_favorite(db, uuid4(), recipe.id)
    db_recipe = consistency.add_recipe_rating(db, uuid4(), recipe.id, 2)
    assert db_recipe.rating_count == 1
    assert db_recipe.avg_rating == 2.0


def test_unfavorite_recomputes(db: Session, make_recipe):
    recipe = make_recipe()
    user_a, user_b = uuid4(), uuid4()
    consistency.add_recipe_rating(db, user_a, recipe.id, 5)
    consistency.add_recipe_rating(db, user_b, recipe.id, 1)

    db_recipe = consistency.remove_favorite(db, user_b, recipe.id)

    assert db_recipe.avg_rating == 5.0
    assert db_recipe.rating_count == 1
    assert crud_favorites.get_favorite(db, user_b, recipe.id) is None


@pytest.mark.parametrize("rating", [0, 6, True, 3.5, "4"])
def test_rating_bounds(db: Session, user_id, make_recipe, rating):
    recipe = make_recipe()
    with pytest.raises(ValidationError):
        consistency.add_recipe_rating(db, user_id, recipe.id, rating)
    assert db.query(models.Favorite).count() == 0


def test_rating_missing_recipe(db: Session, user_id):
    with pytest.raises(NotFoundError):
        consistency.add_recipe_rating(db, user_id, uuid4(), 4)


def test_remove_rating_without_favorite(db: Session, user_id, make_recipe):
    recipe = make_recipe()
    with pytest.raises(NotFoundError):
        consistency.remove_recipe_rating(db, user_id, recipe.id)


def test_recalculate_rating_fixes_drift(db: Session, user_id, make_recipe):
    recipe = make_recipe()
    consistency.add_recipe_rating(db, user_id, recipe.id, 4)

    # Simulate a stale aggregate written outside the engine
    db.query(models.Recipe).filter(models.Recipe.id == recipe.id).update(
        {models.Recipe.avg_rating: 1.0, models.Recipe.rating_count: 7}
    )
    db.commit()

    db_recipe = relationships.recalculate_rating(db, recipe.id)
    assert (db_recipe.avg_rating, db_recipe.rating_count) == (4.0, 1)


def test_rating_api(client: TestClient, headers, other_headers, make_recipe):
    recipe = make_recipe()

    response = client.put(f"/recipes/{recipe.id}/rating", json={"rating": 4}, headers=headers)
    assert response.status_code == 200
    assert response.json()["rating"] == {"avg_rating": 4.0, "rating_count": 1}

    response = client.put(f"/recipes/{recipe.id}/rating", json={"rating": 2}, headers=other_headers)
    assert response.json()["rating"] == {"avg_rating": 3.0, "rating_count": 2}

    response = client.delete(f"/recipes/{recipe.id}/rating", headers=other_headers)
    assert response.status_code == 200
    assert response.json()["rating"] == {"avg_rating": 4.0, "rating_count": 1}

    response = client.put(f"/recipes/{recipe.id}/rating", json={"rating": 9}, headers=headers)
    assert response.status_code == 400
    assert response.json()["errors"] == [
        {"field": "rating", "message": "Rating must be between 1 and 5"}
    ]

    response = client.post(f"/recipes/{recipe.id}/rating/recalculate", headers=headers)
    assert response.status_code == 200
    assert response.json()["rating"]["rating_count"] == 1


def test_recalculation_locks_the_recipe_row(db: Session, make_recipe, locking_selects):
    recipe = make_recipe()
    consistency.add_recipe_rating(db, uuid4(), recipe.id, 4)
    assert any("FROM recipes" in sql for sql in locking_selects)


def test_recalculate_missing_recipe(db: Session):
    with pytest.raises(NotFoundError):
        relationships.recalculate_rating(db, uuid4())

import pytest
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mealprep import models, schemas
from mealprep.core.errors import ConflictError, NotFoundError, ValidationError
from mealprep.crud import collections as crud_collections


def test_create_collection_defaults(db: Session, user_id):
    collection = crud_collections.create_collection(
        db, schemas.CollectionCreate(name="  Soups  ", tags=["winter", "winter", " "]), user_id
    )
    assert collection.name == "Soups"
    assert collection.color == "#4DB6AC"
    assert collection.icon == "heart"
    assert collection.is_public is False
    assert collection.tags == ["winter"]


def test_collection_name_unique_per_owner(db: Session, user_id, other_user_id):
    crud_collections.create_collection(db, schemas.CollectionCreate(name="Soups"), user_id)
    with pytest.raises(ConflictError):
        crud_collections.create_collection(db, schemas.CollectionCreate(name="Soups"), user_id)
    crud_collections.create_collection(db, schemas.CollectionCreate(name="Soups"), other_user_id)


def test_collection_name_required(db: Session, user_id):
    with pytest.raises(ValidationError):
        crud_collections.create_collection(db, schemas.CollectionCreate(name=""), user_id)


def test_membership(db: Session, user_id, make_recipe):
    collection = crud_collections.create_collection(db, schemas.CollectionCreate(name="Soups"), user_id)
    recipe = make_recipe("Leek Soup")

    collection = crud_collections.add_recipe(db, collection.id, recipe.id)
    collection = crud_collections.add_recipe(db, collection.id, recipe.id)
    assert [e.recipe_id for e in collection.entries] == [recipe.id]

    collection = crud_collections.remove_recipe(db, collection.id, recipe.id)
    assert collection.entries == []

    with pytest.raises(NotFoundError):
        crud_collections.remove_recipe(db, collection.id, recipe.id)
    with pytest.raises(NotFoundError):
        crud_collections.add_recipe(db, collection.id, uuid4())


def test_delete_collection_keeps_recipes(db: Session, user_id, make_recipe):
    collection = crud_collections.create_collection(db, schemas.CollectionCreate(name="Soups"), user_id)
    collection_id = collection.id
    recipe = make_recipe()
    crud_collections.add_recipe(db, collection_id, recipe.id)

    crud_collections.delete_collection(db, collection_id)

    assert crud_collections.get_collection(db, collection_id) is None
    assert db.query(models.CollectionRecipe).count() == 0
    assert db.get(models.Recipe, recipe.id) is not None


def test_update_collection(db: Session, user_id):
    collection = crud_collections.create_collection(db, schemas.CollectionCreate(name="Soups"), user_id)
    updated = crud_collections.update_collection(
        db, collection.id, schemas.CollectionUpdate(is_public=True, color="#FF7043")
    )
    assert updated.is_public is True
    assert updated.color == "#FF7043"
    assert updated.name == "Soups"

    with pytest.raises(ValidationError):
        crud_collections.update_collection(db, collection.id, schemas.CollectionUpdate())


def test_list_collections(db: Session, user_id, other_user_id):
    for name in ["Soups", "Bakes", "Salads"]:
        crud_collections.create_collection(db, schemas.CollectionCreate(name=name), user_id)
    crud_collections.create_collection(db, schemas.CollectionCreate(name="Theirs"), other_user_id)

    collections, total = crud_collections.get_collections(db, user_id, sort_by="name")
    assert total == 3
    assert [c.name for c in collections] == ["Bakes", "Salads", "Soups"]


def test_collection_api(client: TestClient, headers, other_headers, make_recipe):
    recipe = make_recipe()
    response = client.post("/collections/", json={"name": "Weeknights"}, headers=headers)
    assert response.status_code == 201
    collection_id = response.json()["id"]

    response = client.post(
        f"/collections/{collection_id}/recipes", json={"recipe_id": str(recipe.id)}, headers=headers
    )
    assert response.status_code == 200
    assert [e["recipe_id"] for e in response.json()["entries"]] == [str(recipe.id)]

    # Private collections are hidden from other users
    assert client.get(f"/collections/{collection_id}", headers=other_headers).status_code == 403

    client.patch(f"/collections/{collection_id}", json={"is_public": True}, headers=headers)
    assert client.get(f"/collections/{collection_id}", headers=other_headers).status_code == 200

    # ...but still only editable by the owner
    response = client.delete(f"/collections/{collection_id}", headers=other_headers)
    assert response.status_code == 403

    response = client.delete(f"/collections/{collection_id}/recipes/{recipe.id}", headers=headers)
    assert response.json()["entries"] == []

    assert client.get("/collections/", headers=headers).headers["X-Total-Count"] == "1"
    assert client.delete(f"/collections/{collection_id}", headers=headers).status_code == 204


def test_collection_field_lengths(db: Session, user_id):
    with pytest.raises(ValidationError) as exc_info:
        crud_collections.create_collection(db, schemas.CollectionCreate(name="n" * 256), user_id)
    assert exc_info.value.field == "name"

    collection = crud_collections.create_collection(db, schemas.CollectionCreate(name="Soups"), user_id)
    with pytest.raises(ValidationError) as exc_info:
        crud_collections.update_collection(
            db, collection.id, schemas.CollectionUpdate(color="#4DB6AC00")
        )
    assert exc_info.value.field == "color"

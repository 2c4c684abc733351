# crud/collections.py
# Collections of recipes owned by a user. Membership rows reference recipes
# but never own them.

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from mealprep import filters, models, schemas
from mealprep.core.errors import ConflictError, NotFoundError, ValidationError
from mealprep.crud.recipes import check_length, get_recipe_or_404, normalize_tags
from mealprep.db.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def _check_name_available(
    db: Session, user_id: UUID, name: str, exclude_collection_id: Optional[UUID] = None
) -> None:
    query = db.query(models.Collection).filter(
        models.Collection.user_id == user_id, models.Collection.name == name
    )
    if exclude_collection_id is not None:
        query = query.filter(models.Collection.id != exclude_collection_id)
    if query.first() is not None:
        raise ConflictError(f"A collection named '{name}' already exists", field="name")


def get_collection(db: Session, collection_id: UUID) -> Optional[models.Collection]:
    return (
        db.query(models.Collection)
        .options(selectinload(models.Collection.entries))
        .filter(models.Collection.id == collection_id)
        .first()
    )


def get_collection_or_404(db: Session, collection_id: UUID) -> models.Collection:
    db_collection = get_collection(db, collection_id)
    if db_collection is None:
        logger.warning(f"Collection {collection_id} not found.")
        raise NotFoundError("Collection not found", field="collection_id")
    return db_collection


def get_collections(
    db: Session, user_id: UUID, skip: int = 0, limit: int = 20, sort_by: Optional[str] = None
) -> Tuple[List[models.Collection], int]:
    query = db.query(models.Collection).filter(models.Collection.user_id == user_id)
    total_count = query.count()
    query = filters.apply_sorting(
        query,
        sort_by,
        filters.COLLECTION_SORT_FIELDS,
        default_sort=(models.Collection.created_at.desc(), models.Collection.id),
    )
    collections = (
        query.options(selectinload(models.Collection.entries)).offset(skip).limit(limit).all()
    )
    return collections, total_count


def create_collection(
    db: Session, collection_in: schemas.CollectionCreate, user_id: UUID
) -> models.Collection:
    name = (collection_in.name or "").strip()
    if not name:
        raise ValidationError("Collection name is required", field="name")
    check_length("name", name, 255)
    check_length("color", collection_in.color, 7)
    check_length("icon", collection_in.icon, 50)

    now = datetime.now(timezone.utc)
    with unit_of_work(db):
        _check_name_available(db, user_id, name)
        db_collection = models.Collection(
            user_id=user_id,
            name=name,
            description=collection_in.description,
            color=collection_in.color,
            icon=collection_in.icon,
            is_public=collection_in.is_public,
            tags=normalize_tags(collection_in.tags),
            created_at=now,
            updated_at=now,
        )
        db.add(db_collection)

    logger.info(f"Created collection {db_collection.id} ({name}) for user {user_id}")
    return get_collection(db, db_collection.id)


def update_collection(
    db: Session, collection_id: UUID, collection_update: schemas.CollectionUpdate
) -> models.Collection:
    update_data = collection_update.field_mask()
    if not update_data:
        raise ValidationError("No fields to update")
    if "name" in update_data:
        update_data["name"] = (update_data["name"] or "").strip()
        if not update_data["name"]:
            raise ValidationError("Collection name is required", field="name")
    for key, max_length in (("name", 255), ("color", 7), ("icon", 50)):
        if key in update_data:
            check_length(key, update_data[key], max_length)

    with unit_of_work(db):
        db_collection = get_collection_or_404(db, collection_id)
        if "name" in update_data:
            _check_name_available(
                db, db_collection.user_id, update_data["name"], exclude_collection_id=collection_id
            )
        for key, value in update_data.items():
            if key == "tags":
                value = normalize_tags(value)
            setattr(db_collection, key, value)
        db_collection.updated_at = datetime.now(timezone.utc)

    db.refresh(db_collection)
    return db_collection


def delete_collection(db: Session, collection_id: UUID) -> None:
    with unit_of_work(db):
        db_collection = get_collection_or_404(db, collection_id)
        db.delete(db_collection)
    logger.info(f"Deleted collection {collection_id}")


def add_recipe(db: Session, collection_id: UUID, recipe_id: UUID) -> models.Collection:
    """
    Add a recipe to a collection. Adding a recipe that is already a member
    is a no-op.
    """
    with unit_of_work(db):
        db_collection = get_collection_or_404(db, collection_id)
        get_recipe_or_404(db, recipe_id)
        if db.get(models.CollectionRecipe, (collection_id, recipe_id)) is None:
            db.add(models.CollectionRecipe(
                collection_id=collection_id,
                recipe_id=recipe_id,
                added_at=datetime.now(timezone.utc),
            ))
            db_collection.updated_at = datetime.now(timezone.utc)

    db.expire_all()
    return get_collection(db, collection_id)


def remove_recipe(db: Session, collection_id: UUID, recipe_id: UUID) -> models.Collection:
    with unit_of_work(db):
        db_collection = get_collection_or_404(db, collection_id)
        db_entry = db.get(models.CollectionRecipe, (collection_id, recipe_id))
        if db_entry is None:
            raise NotFoundError("Recipe is not in this collection", field="recipe_id")
        db.delete(db_entry)
        db_collection.updated_at = datetime.now(timezone.utc)

    db.expire_all()
    return get_collection(db, collection_id)

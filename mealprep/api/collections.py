# api/collections.py
# Recipe collections owned by the current user.

import logging
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from typing import List

from mealprep import models, schemas
from mealprep.crud import collections as crud_collections
from mealprep.db.session import get_db
from mealprep.api.auth import get_current_user_id

router = APIRouter()

logger = logging.getLogger(__name__)


def _get_owned_collection(db: Session, collection_id: UUID, user_id: UUID) -> models.Collection:
    db_collection = crud_collections.get_collection_or_404(db, collection_id)
    if db_collection.user_id != user_id:
        logger.error(f"User {user_id} is not authorized to modify collection {collection_id}")
        raise HTTPException(status_code=403, detail="Not authorized to modify this collection")
    return db_collection


@router.post("/", response_model=schemas.Collection, status_code=status.HTTP_201_CREATED)
def create_collection(
    collection_in: schemas.CollectionCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    return crud_collections.create_collection(db, collection_in, user_id)


@router.get("/", response_model=List[schemas.Collection])
def read_collections(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    sort: str = Query(
        default=None,
        description="Comma-separated sort fields. Prefix with '-' for descending order. "
        "Valid fields: name, created_at, updated_at.",
    ),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    collections, total_count = crud_collections.get_collections(
        db, user_id, skip=skip, limit=limit, sort_by=sort
    )
    response.headers["X-Total-Count"] = str(total_count)
    return collections


@router.get("/{collection_id}", response_model=schemas.Collection)
def read_collection(
    collection_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    A collection is visible to its owner, and to everyone once made public.
    """
    db_collection = crud_collections.get_collection_or_404(db, collection_id)
    if db_collection.user_id != user_id and not db_collection.is_public:
        raise HTTPException(status_code=403, detail="Not authorized to view this collection")
    return db_collection


@router.patch("/{collection_id}", response_model=schemas.Collection)
def update_collection(
    collection_id: UUID,
    collection_update: schemas.CollectionUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    _get_owned_collection(db, collection_id, user_id)
    return crud_collections.update_collection(db, collection_id, collection_update)


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_collection(
    collection_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    _get_owned_collection(db, collection_id, user_id)
    crud_collections.delete_collection(db, collection_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{collection_id}/recipes", response_model=schemas.Collection)
def add_recipe_to_collection(
    collection_id: UUID,
    entry: schemas.CollectionAddRecipe,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    _get_owned_collection(db, collection_id, user_id)
    return crud_collections.add_recipe(db, collection_id, entry.recipe_id)


@router.delete("/{collection_id}/recipes/{recipe_id}", response_model=schemas.Collection)
def remove_recipe_from_collection(
    collection_id: UUID,
    recipe_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    _get_owned_collection(db, collection_id, user_id)
    return crud_collections.remove_recipe(db, collection_id, recipe_id)

# api/favorites.py
# The current user's favorite recipes.

import logging
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List

from mealprep import schemas
from mealprep.core.errors import NotFoundError
from mealprep.crud import favorites as crud_favorites
from mealprep.db.session import get_db
from mealprep.api.auth import get_current_user_id
from mealprep.services import consistency

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/", response_model=List[schemas.Favorite])
def read_favorites(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Favorites of the current user, most recently added first.
    Returns total count in `X-Total-Count`.
    """
    favorites, total_count = crud_favorites.get_favorites(db, user_id, skip=skip, limit=limit)
    response.headers["X-Total-Count"] = str(total_count)
    return favorites


@router.get("/{recipe_id}", response_model=schemas.Favorite)
def read_favorite(
    recipe_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    db_favorite = crud_favorites.get_favorite(db, user_id, recipe_id)
    if db_favorite is None:
        raise NotFoundError("Recipe is not in your favorites", field="recipe_id")
    return db_favorite


@router.put("/{recipe_id}", response_model=schemas.Favorite)
def add_favorite(
    recipe_id: UUID,
    favorite_in: schemas.FavoriteUpsert,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Favorite a recipe, or update the notes of an existing favorite.
    A personal rating already given is kept.
    """
    return crud_favorites.add_favorite(db, user_id, recipe_id, favorite_in.personal_notes)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_favorite(
    recipe_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Unfavorite a recipe. Its aggregate rating is recomputed without this
    user's rating.
    """
    consistency.remove_favorite(db, user_id, recipe_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# crud/favorites.py
# Favorite/Rating Store: one row per (user, recipe) with an optional personal
# rating and notes.
#
# Anything that changes personal_rating or removes a row must go through
# services/consistency.py so the recipe's aggregate rating is recomputed.

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from mealprep import models
from mealprep.crud.recipes import get_recipe_or_404
from mealprep.db.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def get_favorite(db: Session, user_id: UUID, recipe_id: UUID) -> Optional[models.Favorite]:
    return db.get(models.Favorite, (user_id, recipe_id))


def get_favorites(
    db: Session, user_id: UUID, skip: int = 0, limit: int = 20
) -> Tuple[List[models.Favorite], int]:
    query = db.query(models.Favorite).filter(models.Favorite.user_id == user_id)
    total_count = query.count()
    favorites = (
        query.order_by(models.Favorite.added_at.desc(), models.Favorite.recipe_id)
        .offset(skip)
        .limit(limit)
        .all()
    )
    return favorites, total_count


def upsert_favorite(
    db: Session,
    user_id: UUID,
    recipe_id: UUID,
    personal_notes: Optional[str] = None,
) -> models.Favorite:
    """
    Get or create the favorite row. Notes are only overwritten when given, and
    an existing personal rating is always preserved. Does not commit on its
    own; callers wrap it in a unit of work.
    """
    get_recipe_or_404(db, recipe_id)
    db_favorite = get_favorite(db, user_id, recipe_id)
    if db_favorite is None:
        db_favorite = models.Favorite(
            user_id=user_id,
            recipe_id=recipe_id,
            personal_notes=personal_notes,
            added_at=datetime.now(timezone.utc),
        )
        db.add(db_favorite)
        logger.debug(f"User {user_id} favorited recipe {recipe_id}")
    elif personal_notes is not None:
        db_favorite.personal_notes = personal_notes
    return db_favorite


def add_favorite(
    db: Session, user_id: UUID, recipe_id: UUID, personal_notes: Optional[str] = None
) -> models.Favorite:
    with unit_of_work(db):
        db_favorite = upsert_favorite(db, user_id, recipe_id, personal_notes)
    db.refresh(db_favorite)
    return db_favorite

# services/consistency.py
# Consistency Engine: multi-entity operations that must run as one
# transaction. Each public function here is a single unit of work; any error
# raised part way through rolls the whole sequence back.

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mealprep import models, schemas
from mealprep.core.errors import ConflictError, NotFoundError, ValidationError
from mealprep.crud import favorites as crud_favorites
from mealprep.crud import meal_plans as crud_meal_plans
from mealprep.crud import recipes as crud_recipes
from mealprep.db.unit_of_work import unit_of_work
from mealprep.services import relationships

logger = logging.getLogger(__name__)

SHARED_SUFFIX = " (Shared)"


# --- Usage-guarded deletion ---

def delete_recipe(db: Session, recipe_id: UUID, cascade: bool = False) -> schemas.UsageStats:
    """
    Delete a recipe once nothing references it.

    Usage is recounted inside the same transaction as the delete, with the
    recipe row locked where the backend supports it. With `cascade`, every
    meal plan item pointing at the recipe is removed in one statement first;
    favorites and collection memberships go with the recipe row.

    Returns the usage that was detached.
    """
    with unit_of_work(db):
        db_recipe = db.scalars(
            select(models.Recipe).where(models.Recipe.id == recipe_id).with_for_update()
        ).first()
        if db_recipe is None:
            raise NotFoundError("Recipe not found", field="recipe_id")

        db.flush()
        usage = relationships.usage_stats(db, recipe_id)
        if usage.total_usage > 0 and not cascade:
            logger.warning(
                f"Refusing to delete recipe {recipe_id}: used by {usage.meal_plan_usage} meal plan slot(s), "
                f"{usage.favorites_count} favorite(s), {usage.collections_count} collection(s)"
            )
            raise ConflictError(
                "Recipe is currently in use. Remove it from meal plans, favorites and "
                "collections first, or delete with cascade.",
                field="recipe_id",
                cascade_available=True,
            )

        if usage.meal_plan_usage:
            affected_plan_ids = db.scalars(
                select(models.MealPlanItem.meal_plan_id)
                .where(models.MealPlanItem.recipe_id == recipe_id)
                .distinct()
            ).all()
            db.query(models.MealPlanItem).filter(
                models.MealPlanItem.recipe_id == recipe_id
            ).delete(synchronize_session=False)
            db.query(models.MealPlan).filter(
                models.MealPlan.id.in_(affected_plan_ids)
            ).update(
                {models.MealPlan.updated_at: datetime.now(timezone.utc)},
                synchronize_session=False,
            )

        db.delete(db_recipe)

    db.expire_all()
    logger.info(f"Deleted recipe {recipe_id} (cascade={cascade}, detached {usage.total_usage} reference(s))")
    return usage


# --- Rating aggregation ---

def _check_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5", field="rating")
    return rating


def add_recipe_rating(
    db: Session, user_id: UUID, recipe_id: UUID, rating: int, notes: Optional[str] = None
) -> models.Recipe:
    """
    Upsert the user's favorite row with a personal rating and recompute the
    recipe's aggregate in the same transaction.
    """
    _check_rating(rating)
    with unit_of_work(db):
        db_favorite = crud_favorites.upsert_favorite(db, user_id, recipe_id, notes)
        db_favorite.personal_rating = rating
        db_recipe = relationships.recalculate_rating(db, recipe_id)
    db.refresh(db_recipe)
    return db_recipe


def remove_recipe_rating(db: Session, user_id: UUID, recipe_id: UUID) -> models.Recipe:
    """
    Clear the personal rating. The favorite row itself stays; unfavoriting is
    remove_favorite.
    """
    with unit_of_work(db):
        db_favorite = crud_favorites.get_favorite(db, user_id, recipe_id)
        if db_favorite is None:
            raise NotFoundError("Recipe is not in your favorites", field="recipe_id")
        db_favorite.personal_rating = None
        db_recipe = relationships.recalculate_rating(db, recipe_id)
    db.refresh(db_recipe)
    return db_recipe


def remove_favorite(db: Session, user_id: UUID, recipe_id: UUID) -> models.Recipe:
    with unit_of_work(db):
        db_favorite = crud_favorites.get_favorite(db, user_id, recipe_id)
        if db_favorite is None:
            raise NotFoundError("Recipe is not in your favorites", field="recipe_id")
        db.delete(db_favorite)
        db_recipe = relationships.recalculate_rating(db, recipe_id)
    db.refresh(db_recipe)
    logger.debug(f"User {user_id} unfavorited recipe {recipe_id}")
    return db_recipe


# --- Sharing ---

def share_recipe(db: Session, recipe_id: UUID, from_user_id: UUID, to_user_id: UUID) -> models.Recipe:
    """
    Fork a recipe into a new one owned by `to_user_id`. The copy starts with no
    ratings and shares nothing with the source afterwards.
    """
    source = crud_recipes.get_recipe_or_404(db, recipe_id)
    if source.owner_id is not None and source.owner_id != from_user_id:
        logger.warning(f"Recipe {recipe_id} is being shared by non-owner {from_user_id}")

    fork = schemas.RecipeCreate(
        name=source.name + SHARED_SUFFIX,
        description=source.description,
        ingredients=[schemas.Ingredient.model_validate(line) for line in source.ingredients],
        instructions=source.instructions,
        nutrition=schemas.NutritionInfo(
            **{field: getattr(source, field) for field in schemas.NUTRITION_FIELDS}
        ),
        cuisine=source.cuisine,
        prep_time_minutes=source.prep_time_minutes,
        cook_time_minutes=source.cook_time_minutes,
        difficulty=source.difficulty.value,
        image_url=source.image_url,
        tags=list(source.tags or []),
    )
    db_fork = crud_recipes.create_recipe(db, fork, owner_id=to_user_id)
    logger.info(f"Recipe {recipe_id} shared from {from_user_id} to {to_user_id} as {db_fork.id}")
    return db_fork


# --- Active meal plan ---

def set_active_meal_plan(db: Session, user_id: UUID, plan_id: UUID) -> models.MealPlan:
    """
    Make `plan_id` the user's only active plan. Other plans are deactivated
    first; if the target turns out not to exist (or belongs to someone else)
    the deactivation is rolled back with it.
    """
    with unit_of_work(db):
        deactivated = crud_meal_plans.deactivate_other_plans(db, user_id, keep_plan_id=plan_id)
        db_plan = crud_meal_plans.get_meal_plan(db, plan_id)
        if db_plan is None or db_plan.user_id != user_id:
            logger.warning(f"Cannot activate meal plan {plan_id} for user {user_id}: not found")
            raise NotFoundError("Meal plan not found", field="meal_plan_id")
        db_plan.is_active = True
        db_plan.updated_at = datetime.now(timezone.utc)

    logger.info(f"Activated meal plan {plan_id} for user {user_id} (deactivated {deactivated})")
    db.expire_all()
    return crud_meal_plans.get_meal_plan(db, plan_id)

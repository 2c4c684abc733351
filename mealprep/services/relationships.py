# services/relationships.py
# Relationship Ledger: who references a recipe, how often, and the derived
# rating aggregate.

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from mealprep import models, schemas
from mealprep.core.errors import NotFoundError
from mealprep.crud.recipes import get_recipe_or_404
from mealprep.db.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

POPULAR_MIN_RATING = 3.0


def _count(db: Session, model, recipe_id: UUID) -> int:
    return db.scalar(select(func.count()).select_from(model).where(model.recipe_id == recipe_id)) or 0


def usage_stats(db: Session, recipe_id: UUID) -> schemas.UsageStats:
    """
    Count every reference to a recipe. last_used is the newest added_at across
    meal plan items, favorites and collection memberships.
    """
    meal_plan_usage = _count(db, models.MealPlanItem, recipe_id)
    favorites_count = _count(db, models.Favorite, recipe_id)
    collections_count = _count(db, models.CollectionRecipe, recipe_id)

    activity = [
        db.scalar(select(func.max(model.added_at)).where(model.recipe_id == recipe_id))
        for model in (models.MealPlanItem, models.Favorite, models.CollectionRecipe)
    ]
    activity = [ts for ts in activity if ts is not None]

    return schemas.UsageStats(
        recipe_id=recipe_id,
        meal_plan_usage=meal_plan_usage,
        favorites_count=favorites_count,
        collections_count=collections_count,
        total_usage=meal_plan_usage + favorites_count + collections_count,
        last_used=max(activity) if activity else None,
    )


def recipe_relationships(db: Session, recipe_id: UUID) -> schemas.RecipeRelationships:
    get_recipe_or_404(db, recipe_id)

    plan_rows = db.execute(
        select(
            models.MealPlan.id,
            models.MealPlan.name,
            models.MealPlanItem.day_of_week,
            models.MealPlanItem.meal_type,
            models.MealPlanItem.added_at,
        )
        .join(models.MealPlanItem, models.MealPlanItem.meal_plan_id == models.MealPlan.id)
        .where(models.MealPlanItem.recipe_id == recipe_id)
        .order_by(models.MealPlanItem.added_at.desc())
    ).all()

    favorites = db.scalars(
        select(models.Favorite)
        .where(models.Favorite.recipe_id == recipe_id)
        .order_by(models.Favorite.added_at.desc())
    ).all()

    collection_rows = db.execute(
        select(
            models.Collection.id,
            models.Collection.name,
            models.Collection.user_id,
            models.CollectionRecipe.added_at,
        )
        .join(models.CollectionRecipe, models.CollectionRecipe.collection_id == models.Collection.id)
        .where(models.CollectionRecipe.recipe_id == recipe_id)
        .order_by(models.CollectionRecipe.added_at.desc())
    ).all()

    return schemas.RecipeRelationships(
        meal_plans=[
            schemas.MealPlanReference(
                plan_id=plan_id, plan_name=name, day_of_week=day, meal_type=meal_type, added_at=added_at
            )
            for plan_id, name, day, meal_type, added_at in plan_rows
        ],
        favorited_by=[
            schemas.FavoriteReference(
                user_id=fav.user_id, personal_rating=fav.personal_rating, added_at=fav.added_at
            )
            for fav in favorites
        ],
        in_collections=[
            schemas.CollectionReference(
                collection_id=collection_id, collection_name=name, user_id=user_id, added_at=added_at
            )
            for collection_id, name, user_id, added_at in collection_rows
        ],
    )


def recalculate_rating(db: Session, recipe_id: UUID) -> models.Recipe:
    """
    Recompute avg_rating/rating_count from the non-null personal ratings of all
    favorites of the recipe. This is the only writer of those two columns.
    A recipe without ratings gets 0 / 0, never NULL.
    """
    with unit_of_work(db):
        # Concurrent raters recompute one after another
        db_recipe = db.scalars(
            select(models.Recipe).where(models.Recipe.id == recipe_id).with_for_update()
        ).first()
        if db_recipe is None:
            raise NotFoundError("Recipe not found", field="recipe_id")
        db.flush()
        avg_rating, rating_count = db.execute(
            select(func.avg(models.Favorite.personal_rating), func.count(models.Favorite.personal_rating))
            .where(
                models.Favorite.recipe_id == recipe_id,
                models.Favorite.personal_rating.is_not(None),
            )
        ).one()
        db_recipe.avg_rating = round(float(avg_rating), 2) if avg_rating is not None else 0.0
        db_recipe.rating_count = rating_count or 0

    logger.debug(
        f"Recalculated rating for recipe {recipe_id}: "
        f"{db_recipe.avg_rating} over {db_recipe.rating_count} rating(s)"
    )
    return db_recipe


def _usage_columns():
    """
    Per-recipe reference counts as grouped subqueries, LEFT JOINed onto
    recipes by the callers below.
    """
    meal_plan_counts = (
        select(models.MealPlanItem.recipe_id, func.count().label("meal_plan_usage"))
        .group_by(models.MealPlanItem.recipe_id)
        .subquery()
    )
    favorite_counts = (
        select(models.Favorite.recipe_id, func.count().label("favorites_count"))
        .group_by(models.Favorite.recipe_id)
        .subquery()
    )
    collection_counts = (
        select(models.CollectionRecipe.recipe_id, func.count().label("collections_count"))
        .group_by(models.CollectionRecipe.recipe_id)
        .subquery()
    )
    meal_plan_usage = func.coalesce(meal_plan_counts.c.meal_plan_usage, 0)
    favorites_count = func.coalesce(favorite_counts.c.favorites_count, 0)
    collections_count = func.coalesce(collection_counts.c.collections_count, 0)
    return (
        (meal_plan_counts, favorite_counts, collection_counts),
        (meal_plan_usage, favorites_count, collections_count),
    )


def _join_usage(stmt, subqueries):
    for subquery in subqueries:
        stmt = stmt.outerjoin(subquery, subquery.c.recipe_id == models.Recipe.id)
    return stmt


def popular_recipes(db: Session, limit: int = 10) -> List[models.Recipe]:
    """
    Recipes ranked by total usage, then by rating. Recipes rated below 3.0
    (including unrated ones) never appear.
    """
    subqueries, (meal_plan_usage, favorites_count, collections_count) = _usage_columns()
    total_usage = meal_plan_usage + favorites_count + collections_count

    stmt = _join_usage(select(models.Recipe).select_from(models.Recipe), subqueries)
    stmt = (
        stmt.where(models.Recipe.avg_rating >= POPULAR_MIN_RATING)
        .order_by(total_usage.desc(), models.Recipe.avg_rating.desc(), models.Recipe.id)
        .options(selectinload(models.Recipe.ingredients))
        .limit(limit)
    )
    return list(db.scalars(stmt).all())


def recipes_with_usage_stats(
    db: Session, user_id: Optional[UUID] = None, limit: int = 20
) -> List[schemas.RecipeWithUsage]:
    subqueries, (meal_plan_usage, favorites_count, collections_count) = _usage_columns()

    columns = [models.Recipe, meal_plan_usage, favorites_count, collections_count]
    if user_id is not None:
        columns += [models.Favorite.recipe_id, models.Favorite.personal_rating]

    stmt = _join_usage(select(*columns).select_from(models.Recipe), subqueries)
    if user_id is not None:
        stmt = stmt.outerjoin(
            models.Favorite,
            (models.Favorite.recipe_id == models.Recipe.id) & (models.Favorite.user_id == user_id),
        )
    stmt = (
        stmt.order_by(models.Recipe.avg_rating.desc(), models.Recipe.created_at.desc())
        .options(selectinload(models.Recipe.ingredients))
        .limit(limit)
    )

    results = []
    for row in db.execute(stmt).all():
        recipe, plans, favorites, collections = row[:4]
        is_user_favorite = False
        user_rating = None
        if user_id is not None:
            is_user_favorite = row[4] is not None
            user_rating = row[5]
        results.append(schemas.RecipeWithUsage(
            recipe=schemas.Recipe.model_validate(recipe),
            usage_stats=schemas.RecipeUsage(
                meal_plan_usage=plans,
                favorites_count=favorites,
                collections_count=collections,
                total_usage=plans + favorites + collections,
                is_user_favorite=is_user_favorite,
                user_rating=user_rating,
            ),
        ))
    return results

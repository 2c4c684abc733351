# api/recipes.py
# Handles all API endpoints related to recipes, their ratings and their
# usage across meal plans, favorites and collections.

import logging
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

# Import local modules
from mealprep import schemas
from mealprep import models
from mealprep.crud import recipes as crud_recipes
from mealprep.db.session import get_db
from mealprep.api.auth import get_current_user_id
from mealprep.filters import parse_filters
from mealprep.services import consistency, relationships

# Create an API router
router = APIRouter()

# Get a logger instance
logger = logging.getLogger(__name__)


def _get_owned_recipe(db: Session, recipe_id: UUID, user_id: UUID, action: str) -> models.Recipe:
    db_recipe = crud_recipes.get_recipe_or_404(db, recipe_id)
    if db_recipe.owner_id != user_id:
        logger.error(f"User {user_id} is not authorized to {action} recipe with ID: {recipe_id}")
        raise HTTPException(status_code=403, detail=f"Not authorized to {action} this recipe")
    return db_recipe


@router.post("/", response_model=schemas.Recipe, status_code=status.HTTP_201_CREATED)
def create_recipe(
        recipe: schemas.RecipeCreate,
        db: Session = Depends(get_db),
        user_id: UUID = Depends(get_current_user_id)
):
    """
    Create a new recipe owned by the current user.
    """
    logger.debug(f"User {user_id} is creating a new recipe.")
    return crud_recipes.create_recipe(db=db, recipe=recipe, owner_id=user_id)


@router.get("/", response_model=List[schemas.Recipe])
def read_recipes(
    request: Request,
    response: Response,
    q: Optional[str] = Query(
        default=None, description="Free-text search over name and description"
    ),
    skip: int = Query(
        default=0, ge=0, description="Number of records to skip for pagination"
    ),
    limit: int = Query(
        default=20,
        ge=1,
        le=100,
        description="Maximum number of records to return (1-100)",
    ),
    sort: str = Query(
        default=None,
        description="Comma-separated sort fields. Prefix with '-' for descending order. "
        "Valid fields: name, created_at, updated_at, calories, total_time_minutes, avg_rating.",
    ),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Search recipes, newest first unless `sort` says otherwise.

    **Filtering:** Use bracket notation `field[operator]=value` for filters.

    Operators: `eq`, `neq`, `gt`, `gte`, `lt`, `lte`, `in`, `like`.

    Filter fields: `name`, `description`, `cuisine`, `difficulty`, `owner_id`,
    `calories`, `prep_time_minutes`, `cook_time_minutes`, `total_time_minutes`,
    `avg_rating`, `rating_count`.

    Examples:
    - `?difficulty[in]=easy,medium` - Easy or medium recipes
    - `?total_time_minutes[lte]=30` - Ready in half an hour

    Returns total count in `X-Total-Count` response header.
    """
    filters_list = parse_filters(request.query_params)
    recipes, total_count = crud_recipes.search_recipes(
        db, search=q, filters_list=filters_list, skip=skip, limit=limit, sort_by=sort
    )
    response.headers["X-Total-Count"] = str(total_count)
    return recipes


@router.get("/mine", response_model=List[schemas.Recipe])
def read_my_recipes(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Recipes created by the current user, newest first.
    """
    recipes, total_count = crud_recipes.get_recipes_for_owner(db, user_id, skip=skip, limit=limit)
    response.headers["X-Total-Count"] = str(total_count)
    return recipes


@router.get("/popular", response_model=List[schemas.Recipe])
def read_popular_recipes(
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Most used recipes rated 3.0 or better.
    """
    return relationships.popular_recipes(db, limit=limit)


@router.get("/with-usage", response_model=List[schemas.RecipeWithUsage])
def read_recipes_with_usage(
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    return relationships.recipes_with_usage_stats(db, user_id=user_id, limit=limit)


@router.get("/{recipe_id}", response_model=schemas.Recipe)
def read_recipe(
        recipe_id: UUID,
        db: Session = Depends(get_db),
        user_id: UUID = Depends(get_current_user_id)
):
    """
    Retrieve a single recipe by its ID.
    """
    logger.debug(f"Fetching recipe with ID: {recipe_id}")
    return crud_recipes.get_recipe_or_404(db, recipe_id)


@router.patch("/{recipe_id}", response_model=schemas.Recipe)
def update_recipe(
        recipe_id: UUID,
        recipe: schemas.RecipeUpdate,
        db: Session = Depends(get_db),
        user_id: UUID = Depends(get_current_user_id)
):
    """
    Partially update a recipe. Only the owner of the recipe can perform this action.
    Rating fields and the total time are derived and cannot be set here.
    """
    logger.debug(f"User {user_id} is updating recipe with ID: {recipe_id}")
    _get_owned_recipe(db, recipe_id, user_id, "update")
    return crud_recipes.update_recipe(db=db, recipe_id=recipe_id, recipe_update=recipe)


@router.delete("/{recipe_id}", response_model=schemas.UsageStats)
def delete_recipe(
        recipe_id: UUID,
        cascade: bool = Query(
            default=False,
            description="Also remove the recipe from meal plans, favorites and collections",
        ),
        db: Session = Depends(get_db),
        user_id: UUID = Depends(get_current_user_id)
):
    """
    Delete a recipe. Only the owner of the recipe can perform this action.

    A recipe that is still referenced is refused with 409 unless `cascade=true`.
    Returns the references that were detached.
    """
    logger.debug(f"User {user_id} is deleting recipe with ID: {recipe_id} (cascade={cascade})")
    _get_owned_recipe(db, recipe_id, user_id, "delete")
    return consistency.delete_recipe(db, recipe_id, cascade=cascade)


# --- Relationship ledger ---

@router.get("/{recipe_id}/usage", response_model=schemas.UsageStats)
def read_recipe_usage(
    recipe_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    crud_recipes.get_recipe_or_404(db, recipe_id)
    return relationships.usage_stats(db, recipe_id)


@router.get("/{recipe_id}/relationships", response_model=schemas.RecipeRelationships)
def read_recipe_relationships(
    recipe_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    return relationships.recipe_relationships(db, recipe_id)


@router.post("/{recipe_id}/rating/recalculate", response_model=schemas.Recipe)
def recalculate_recipe_rating(
    recipe_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    db_recipe = relationships.recalculate_rating(db, recipe_id)
    db.refresh(db_recipe)
    return db_recipe


# --- Personal ratings ---

@router.put("/{recipe_id}/rating", response_model=schemas.Recipe)
def rate_recipe(
    recipe_id: UUID,
    rating_in: schemas.RatingIn,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Set the current user's rating (1-5). Favorites the recipe if needed.
    """
    return consistency.add_recipe_rating(db, user_id, recipe_id, rating_in.rating, rating_in.notes)


@router.delete("/{recipe_id}/rating", response_model=schemas.Recipe)
def unrate_recipe(
    recipe_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Clear the current user's rating. The recipe stays in their favorites.
    """
    return consistency.remove_recipe_rating(db, user_id, recipe_id)


# --- Sharing ---

@router.post("/{recipe_id}/share", response_model=schemas.Recipe, status_code=status.HTTP_201_CREATED)
def share_recipe(
    recipe_id: UUID,
    share: schemas.RecipeShare,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Copy a recipe into another user's collection of recipes. The copy is
    independent of the original and starts without ratings.
    """
    return consistency.share_recipe(db, recipe_id, from_user_id=user_id, to_user_id=share.to_user_id)

# crud/recipes.py
# Recipe Store: create, read, update and search recipes.
#
# Deleting a recipe is deliberately not offered here. It goes through the
# usage guard in services/consistency.py.

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from mealprep import filters, models, schemas
from mealprep.core.errors import NotFoundError, ValidationError
from mealprep.db.unit_of_work import unit_of_work

# Get a logger instance
logger = logging.getLogger(__name__)


def parse_difficulty(value) -> models.Difficulty:
    if isinstance(value, models.Difficulty):
        return value
    try:
        return models.Difficulty(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            "Difficulty must be one of: easy, medium, hard", field="difficulty"
        )


def normalize_tags(tags) -> List[str]:
    seen = []
    for tag in tags or []:
        tag = (tag or "").strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# Column widths in models.py
RECIPE_MAX_LENGTHS = {"name": 255, "cuisine": 100, "image_url": 500}
INGREDIENT_MAX_LENGTHS = {"name": 100, "unit": 20}


def length_error(field: str, value, max_length: int) -> Optional[dict]:
    if value is not None and len(value) > max_length:
        return {"field": field, "message": f"{field} must be at most {max_length} characters"}
    return None


def check_length(field: str, value, max_length: int) -> None:
    error = length_error(field, value, max_length)
    if error is not None:
        raise ValidationError(error["message"], field=field)


def check_recipe_fields(fields: dict) -> List[dict]:
    """
    Validate whichever recipe fields are present in `fields`.
    Returns a list of {field, message} errors; empty means valid.
    """
    errors = []

    if "name" in fields and not (fields["name"] or "").strip():
        errors.append({"field": "name", "message": "Recipe name is required"})

    for key, max_length in RECIPE_MAX_LENGTHS.items():
        error = length_error(key, fields.get(key), max_length)
        if error is not None:
            errors.append(error)

    if "ingredients" in fields:
        ingredients = fields["ingredients"] or []
        if not ingredients:
            errors.append({"field": "ingredients", "message": "At least one ingredient is required"})
        for index, ingredient in enumerate(ingredients):
            if not (ingredient.get("name") or "").strip():
                errors.append({
                    "field": f"ingredients[{index}].name",
                    "message": "Ingredient name is required",
                })
            for key, max_length in INGREDIENT_MAX_LENGTHS.items():
                error = length_error(f"ingredients[{index}].{key}", ingredient.get(key), max_length)
                if error is not None:
                    errors.append(error)
            amount = ingredient.get("amount")
            if amount is None or amount < 0:
                errors.append({
                    "field": f"ingredients[{index}].amount",
                    "message": "Ingredient amount must be a non-negative number",
                })

    if "instructions" in fields and not (fields["instructions"] or "").strip():
        errors.append({"field": "instructions", "message": "Instructions are required"})

    if "difficulty" in fields:
        try:
            parse_difficulty(fields["difficulty"])
        except ValidationError as exc:
            errors.extend(exc.errors)

    for key in ("prep_time_minutes", "cook_time_minutes"):
        if key in fields and (fields[key] is None or fields[key] < 0):
            errors.append({"field": key, "message": f"{key} must be a non-negative number of minutes"})

    return errors


def _build_ingredients(ingredients) -> List[models.RecipeIngredient]:
    return [
        models.RecipeIngredient(
            position=position,
            name=item["name"].strip(),
            amount=item["amount"],
            unit=item["unit"],
            notes=item.get("notes"),
        )
        for position, item in enumerate(ingredients)
    ]


def _apply_nutrition(db_recipe: models.Recipe, nutrition: dict) -> None:
    for field in schemas.NUTRITION_FIELDS:
        if field in nutrition:
            setattr(db_recipe, field, nutrition[field])


# --- Recipe CRUD Functions ---

def get_recipe(db: Session, recipe_id: UUID) -> Optional[models.Recipe]:
    """
    Retrieve a single recipe with its ingredient lines.
    """
    logger.debug(f"Retrieving recipe with id {recipe_id}")
    return (
        db.query(models.Recipe)
        .options(selectinload(models.Recipe.ingredients))
        .filter(models.Recipe.id == recipe_id)
        .first()
    )


def get_recipe_or_404(db: Session, recipe_id: UUID) -> models.Recipe:
    db_recipe = get_recipe(db, recipe_id)
    if db_recipe is None:
        logger.warning(f"Recipe with ID {recipe_id} not found.")
        raise NotFoundError("Recipe not found", field="recipe_id")
    return db_recipe


def search_recipes(
    db: Session,
    search: Optional[str] = None,
    filters_list: Optional[List[filters.Filter]] = None,
    skip: int = 0,
    limit: int = 20,
    sort_by: Optional[str] = None,
    owner_id: Optional[UUID] = None,
) -> Tuple[List[models.Recipe], int]:
    """
    Search recipes. The total is counted on the filtered query before the page
    window is applied, so callers can render "N of M".
    """
    logger.debug(f"Searching recipes search={search!r} skip={skip} limit={limit} sort={sort_by}")
    query = db.query(models.Recipe)
    if owner_id is not None:
        query = query.filter(models.Recipe.owner_id == owner_id)
    query = filters.apply_search(query, search)
    if filters_list:
        query = filters.apply_filters(query, filters_list)

    total_count = query.count()

    query = filters.apply_sorting(
        query,
        sort_by,
        filters.SORT_FIELDS,
        default_sort=(models.Recipe.created_at.desc(), models.Recipe.id),
    )
    recipes = (
        query.options(selectinload(models.Recipe.ingredients))
        .offset(skip)
        .limit(limit)
        .all()
    )
    return recipes, total_count


def get_recipes_for_owner(
    db: Session, owner_id: UUID, skip: int = 0, limit: int = 50
) -> Tuple[List[models.Recipe], int]:
    return search_recipes(db, skip=skip, limit=limit, owner_id=owner_id)


def create_recipe(
    db: Session,
    recipe: schemas.RecipeCreate,
    owner_id: Optional[UUID] = None,
    recipe_id: Optional[UUID] = None,
) -> models.Recipe:
    """
    Create a new recipe with its ingredient lines.
    Aggregate rating fields always start at 0/0.
    """
    logger.debug(f"Creating recipe: {recipe.name!r} for owner {owner_id}")
    data = recipe.model_dump()
    errors = check_recipe_fields(data)
    if errors:
        raise ValidationError("Invalid recipe data", errors=errors)

    now = datetime.now(timezone.utc)
    with unit_of_work(db):
        db_recipe = models.Recipe(
            name=data["name"].strip(),
            description=data["description"],
            instructions=data["instructions"],
            cuisine=data["cuisine"],
            difficulty=parse_difficulty(data["difficulty"]),
            image_url=data["image_url"],
            tags=normalize_tags(data["tags"]),
            prep_time_minutes=data["prep_time_minutes"],
            cook_time_minutes=data["cook_time_minutes"],
            avg_rating=0.0,
            rating_count=0,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        if recipe_id is not None:
            db_recipe.id = recipe_id
        _apply_nutrition(db_recipe, data["nutrition"])
        db_recipe.ingredients = _build_ingredients(data["ingredients"])
        db.add(db_recipe)

    db.refresh(db_recipe)
    logger.info(f"Created recipe {db_recipe.id} ({db_recipe.name})")
    return db_recipe


def update_recipe(
    db: Session, recipe_id: UUID, recipe_update: schemas.RecipeUpdate
) -> models.Recipe:
    """
    Apply a sparse update. An empty field mask is rejected rather than being
    reported as a successful no-op.
    """
    logger.debug(f"Updating recipe {recipe_id} with: {recipe_update}")
    update_data = recipe_update.field_mask()
    if not update_data:
        raise ValidationError("No fields to update")

    errors = check_recipe_fields(update_data)
    if errors:
        raise ValidationError("Invalid recipe data", errors=errors)

    with unit_of_work(db):
        db_recipe = get_recipe_or_404(db, recipe_id)

        for key, value in update_data.items():
            if key == "ingredients":
                db_recipe.ingredients = _build_ingredients(value)
            elif key == "nutrition":
                _apply_nutrition(db_recipe, value or {})
            elif key == "difficulty":
                db_recipe.difficulty = parse_difficulty(value)
            elif key == "tags":
                db_recipe.tags = normalize_tags(value)
            elif key == "name":
                db_recipe.name = value.strip()
            else:
                setattr(db_recipe, key, value)

        db_recipe.updated_at = datetime.now(timezone.utc)

    db.refresh(db_recipe)
    return db_recipe

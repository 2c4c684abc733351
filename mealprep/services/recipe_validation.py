# services/recipe_validation.py
# Validation and sanitization of AI-generated recipe payloads.
#
# The generator is untrusted: every field is type-checked, text is stripped of
# markup and capped, and the total time must equal prep + cook exactly.

import logging
import re
from typing import Any, List, Optional, Tuple

from mealprep import schemas
from mealprep.core.errors import IntegrityViolation, ValidationError

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 500
MAX_INSTRUCTIONS_LENGTH = 5000
MAX_CUISINE_LENGTH = 50
MAX_INGREDIENT_NAME_LENGTH = 100
MAX_UNIT_LENGTH = 20
MAX_NOTES_LENGTH = 200
MAX_TAG_LENGTH = 30
MAX_IMAGE_URL_LENGTH = 500

MAX_INGREDIENTS = 50
MAX_TAGS = 20
MAX_MINUTES = 1440

DIFFICULTIES = ("easy", "medium", "hard")

TOTAL_TIME_MISMATCH = "Total time must equal prep time plus cook time"

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)


def sanitize_text(text: str, max_length: int) -> str:
    """
    Strip script blocks, HTML tags and javascript: URLs, then trim and cap.
    """
    text = _SCRIPT_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    text = _JS_PROTOCOL_RE.sub("", text)
    return text.strip()[:max_length].strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_text(payload: dict, key: str, max_length: int, errors: List[dict]) -> Optional[str]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        errors.append({"field": key, "message": f"{key} must be a string"})
        return None
    return sanitize_text(value, max_length) or None


def _validate_ingredients(ingredients: Any, errors: List[dict]) -> List[dict]:
    if not isinstance(ingredients, list):
        errors.append({"field": "ingredients", "message": "Ingredients must be a list"})
        return []
    if not ingredients:
        errors.append({"field": "ingredients", "message": "At least one ingredient is required"})
        return []
    if len(ingredients) > MAX_INGREDIENTS:
        errors.append({"field": "ingredients", "message": f"Too many ingredients (max {MAX_INGREDIENTS})"})
        return []

    sanitized = []
    for index, item in enumerate(ingredients):
        prefix = f"ingredients[{index}]"
        if not isinstance(item, dict):
            errors.append({"field": prefix, "message": "Ingredient must be an object"})
            continue

        name = item.get("name")
        name = sanitize_text(name, MAX_INGREDIENT_NAME_LENGTH) if isinstance(name, str) else ""
        if not name:
            errors.append({"field": f"{prefix}.name", "message": "Ingredient name is required"})

        amount = item.get("amount")
        if not _is_number(amount) or amount < 0:
            errors.append({
                "field": f"{prefix}.amount",
                "message": "Ingredient amount must be a non-negative number",
            })

        unit = item.get("unit")
        unit = sanitize_text(unit, MAX_UNIT_LENGTH) if isinstance(unit, str) else ""
        if not unit:
            errors.append({"field": f"{prefix}.unit", "message": "Ingredient unit is required"})

        notes = item.get("notes")
        notes = sanitize_text(notes, MAX_NOTES_LENGTH) if isinstance(notes, str) else None

        if name and unit and _is_number(amount) and amount >= 0:
            sanitized.append({
                "name": name,
                "amount": round(float(amount), 2),
                "unit": unit,
                "notes": notes or None,
            })
    return sanitized


def _validate_nutrition(nutrition: Any, errors: List[dict]) -> dict:
    if nutrition is None:
        return {}
    if not isinstance(nutrition, dict):
        errors.append({"field": "nutrition", "message": "Nutrition info must be an object"})
        return {}

    sanitized = {}
    for field in schemas.NUTRITION_FIELDS:
        value = nutrition.get(field)
        if value is None:
            continue
        if not _is_number(value) or value < 0:
            errors.append({"field": f"nutrition.{field}", "message": f"{field} must be a non-negative number"})
        else:
            sanitized[field] = round(float(value), 2)
    return sanitized


def _validate_minutes(payload: dict, key: str, errors: List[dict]) -> Optional[int]:
    value = payload.get(key)
    if not _is_number(value) or not 0 <= value <= MAX_MINUTES:
        errors.append({
            "field": key,
            "message": f"{key} must be a number between 0 and {MAX_MINUTES} minutes",
        })
        return None
    if isinstance(value, float) and not value.is_integer():
        errors.append({"field": key, "message": f"{key} must be a whole number of minutes"})
        return None
    return int(value)


def _validate_tags(tags: Any, errors: List[dict]) -> List[str]:
    if tags is None:
        return []
    if not isinstance(tags, list):
        errors.append({"field": "tags", "message": "Tags must be a list"})
        return []

    sanitized = []
    for index, tag in enumerate(tags):
        if not isinstance(tag, str):
            errors.append({"field": f"tags[{index}]", "message": "Tag must be a string"})
            continue
        tag = sanitize_text(tag, MAX_TAG_LENGTH)
        if not tag:
            errors.append({"field": f"tags[{index}]", "message": "Tag cannot be empty"})
            continue
        if tag not in sanitized:
            sanitized.append(tag)

    if len(sanitized) > MAX_TAGS:
        logger.debug(f"Capping {len(sanitized)} generated tags to {MAX_TAGS}")
    return sanitized[:MAX_TAGS]


def check_recipe_payload(payload: Any) -> Tuple[Optional[schemas.RecipeCreate], List[dict]]:
    """
    Validate a generator payload.

    Returns (recipe, errors). `recipe` is None whenever `errors` is non-empty.
    """
    if not isinstance(payload, dict):
        return None, [{"field": "recipe", "message": "Generator returned no recipe object"}]

    errors: List[dict] = []

    name = payload.get("name")
    name = sanitize_text(name, MAX_NAME_LENGTH) if isinstance(name, str) else ""
    if not name:
        errors.append({"field": "name", "message": "Recipe name is required"})

    instructions = payload.get("instructions")
    instructions = sanitize_text(instructions, MAX_INSTRUCTIONS_LENGTH) if isinstance(instructions, str) else ""
    if not instructions:
        errors.append({"field": "instructions", "message": "Instructions are required"})

    description = _optional_text(payload, "description", MAX_DESCRIPTION_LENGTH, errors)
    cuisine = _optional_text(payload, "cuisine", MAX_CUISINE_LENGTH, errors)
    image_url = _optional_text(payload, "image_url", MAX_IMAGE_URL_LENGTH, errors)

    ingredients = _validate_ingredients(payload.get("ingredients"), errors)
    nutrition = _validate_nutrition(payload.get("nutrition"), errors)
    tags = _validate_tags(payload.get("tags"), errors)

    difficulty = payload.get("difficulty")
    if not isinstance(difficulty, str) or difficulty.strip().lower() not in DIFFICULTIES:
        errors.append({"field": "difficulty", "message": "Difficulty must be one of: easy, medium, hard"})
        difficulty = None
    else:
        difficulty = difficulty.strip().lower()

    prep = _validate_minutes(payload, "prep_time_minutes", errors)
    cook = _validate_minutes(payload, "cook_time_minutes", errors)
    total = _validate_minutes(payload, "total_time_minutes", errors)
    if None not in (prep, cook, total) and total != prep + cook:
        errors.append({
            "field": "total_time_minutes",
            "message": TOTAL_TIME_MISMATCH,
        })

    if errors:
        return None, errors

    return schemas.RecipeCreate(
        name=name,
        description=description,
        ingredients=ingredients,
        instructions=instructions,
        nutrition=nutrition,
        cuisine=cuisine,
        prep_time_minutes=prep,
        cook_time_minutes=cook,
        difficulty=difficulty,
        image_url=image_url,
        tags=tags,
    ), []


def validate_and_sanitize_recipe(payload: Any) -> schemas.RecipeCreate:
    """
    Like check_recipe_payload, but raises. A total time that disagrees with
    prep + cook is reported as an IntegrityViolation; everything else as a
    ValidationError.
    """
    recipe, errors = check_recipe_payload(payload)
    if not errors:
        return recipe

    if any(e["message"] == TOTAL_TIME_MISMATCH for e in errors):
        raise IntegrityViolation("Generated recipe has inconsistent timings", errors=errors)
    raise ValidationError("Generated recipe failed validation", errors=errors)

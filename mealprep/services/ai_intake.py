# services/ai_intake.py
# AI Recipe Intake Pipeline.
#
#   requested -> generating -> validating -> valid -> persisted
#                                         \-> invalid -> retrying | failed
#
# Generated payloads are validated and sanitized here, then still go through
# the Recipe Store's own validation on create.

import enum
import logging
import threading
import uuid
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from mealprep import models, schemas
from mealprep.core.config import settings
from mealprep.core.errors import DomainError, OperationCancelled, TransientError, ValidationError
from mealprep.crud import recipes as crud_recipes
from mealprep.services.generator import RecipeGenerator
from mealprep.services.recipe_validation import validate_and_sanitize_recipe
from mealprep.services.retry import RetryPolicy, check_cancelled

logger = logging.getLogger(__name__)

MAX_RECIPE_NAME_LENGTH = 200
MAX_CUISINE_LENGTH = 50
MAX_RESTRICTIONS = 10
MIN_SERVINGS = 1
MAX_SERVINGS = 20

INVALID_INPUT_MESSAGE = "Invalid input parameters"
INVALID_OUTPUT_MESSAGE = "AI generated invalid recipe data"


class IntakeState(str, enum.Enum):
    REQUESTED = "requested"
    GENERATING = "generating"
    VALIDATING = "validating"
    VALID = "valid"
    PERSISTED = "persisted"
    INVALID = "invalid"
    RETRYING = "retrying"
    FAILED = "failed"


def _enter(state: IntakeState, recipe_name, attempt: int = 0) -> IntakeState:
    logger.debug(f"AI intake {recipe_name!r} attempt {attempt + 1}: {state.value}")
    return state


def validate_generation_input(request: schemas.GenerationRequest) -> List[dict]:
    """
    Check the request before the generator is ever called. Returns a list of
    {field, message} errors.
    """
    errors = []

    name = request.recipe_name
    if not isinstance(name, str) or not name.strip():
        errors.append({"field": "recipe_name", "message": "Recipe name is required"})
    elif len(name) > MAX_RECIPE_NAME_LENGTH:
        errors.append({
            "field": "recipe_name",
            "message": f"Recipe name is too long (max {MAX_RECIPE_NAME_LENGTH} characters)",
        })

    cuisine = request.cuisine
    if cuisine not in (None, "") and (not isinstance(cuisine, str) or len(cuisine) > MAX_CUISINE_LENGTH):
        errors.append({
            "field": "cuisine",
            "message": f"Cuisine must be a string with max {MAX_CUISINE_LENGTH} characters",
        })

    restrictions = request.dietary_restrictions
    if restrictions is not None:
        if not isinstance(restrictions, list):
            errors.append({"field": "dietary_restrictions", "message": "Dietary restrictions must be a list"})
        elif len(restrictions) > MAX_RESTRICTIONS:
            errors.append({
                "field": "dietary_restrictions",
                "message": f"Too many dietary restrictions (max {MAX_RESTRICTIONS})",
            })
        else:
            for index, restriction in enumerate(restrictions):
                if not isinstance(restriction, str) or not restriction.strip():
                    errors.append({
                        "field": f"dietary_restrictions[{index}]",
                        "message": "Dietary restriction must be a non-empty string",
                    })

    servings = request.servings
    if servings is not None and (
        isinstance(servings, bool)
        or not isinstance(servings, int)
        or not MIN_SERVINGS <= servings <= MAX_SERVINGS
    ):
        errors.append({
            "field": "servings",
            "message": f"Servings must be a number between {MIN_SERVINGS} and {MAX_SERVINGS}",
        })

    return errors


def _call_generator(generator: RecipeGenerator, generator_input: dict) -> dict:
    try:
        return generator.generate(generator_input)
    except DomainError:
        raise
    except Exception as exc:
        raise TransientError(str(exc) or exc.__class__.__name__) from exc


def _generate_and_store(
    db: Session,
    generator: RecipeGenerator,
    generator_input: dict,
    owner_id: Optional[UUID],
    attempt: int = 0,
) -> models.Recipe:
    name = generator_input.get("recipe_name")
    _enter(IntakeState.GENERATING, name, attempt)
    payload = _call_generator(generator, generator_input)

    _enter(IntakeState.VALIDATING, name, attempt)
    recipe_in = validate_and_sanitize_recipe(payload)

    _enter(IntakeState.VALID, name, attempt)
    db_recipe = crud_recipes.create_recipe(db, recipe_in, owner_id=owner_id, recipe_id=uuid.uuid4())
    _enter(IntakeState.PERSISTED, name, attempt)
    return db_recipe


def _success(db_recipe: models.Recipe, attempts: int) -> schemas.CreationResult:
    return schemas.CreationResult(
        success=True,
        recipe=schemas.Recipe.model_validate(db_recipe),
        attempts=attempts,
        state=IntakeState.PERSISTED.value,
    )


def _failure(message: str, errors: Optional[List[dict]] = None, attempts: int = 0) -> schemas.CreationResult:
    return schemas.CreationResult(
        success=False,
        errors=errors or None,
        message=message,
        attempts=attempts,
        state=IntakeState.FAILED.value,
    )


def _owner(request: schemas.GenerationRequest, owner_id: Optional[UUID]) -> Optional[UUID]:
    return owner_id if owner_id is not None else request.created_by_user_id


def create_recipe_with_ai(
    db: Session,
    request: schemas.GenerationRequest,
    generator: RecipeGenerator,
    owner_id: Optional[UUID] = None,
) -> schemas.CreationResult:
    """
    Generate, validate and store one recipe in a single attempt.
    """
    _enter(IntakeState.REQUESTED, request.recipe_name)
    errors = validate_generation_input(request)
    if errors:
        return _failure(INVALID_INPUT_MESSAGE, errors)

    generator_input = request.generator_input(settings.DEFAULT_SERVINGS)
    try:
        db_recipe = _generate_and_store(db, generator, generator_input, _owner(request, owner_id))
    except ValidationError as exc:
        _enter(IntakeState.INVALID, request.recipe_name)
        return _failure(INVALID_OUTPUT_MESSAGE, exc.errors, attempts=1)
    except DomainError as exc:
        logger.warning(f"AI recipe generation for {request.recipe_name!r} failed: {exc.message}")
        return _failure(f"Failed to generate recipe: {exc.message}", attempts=1)
    return _success(db_recipe, attempts=1)


def create_recipe_with_ai_retry(
    db: Session,
    request: schemas.GenerationRequest,
    generator: RecipeGenerator,
    owner_id: Optional[UUID] = None,
    policy: Optional[RetryPolicy] = None,
    cancel: Optional[threading.Event] = None,
) -> schemas.CreationResult:
    """
    Like create_recipe_with_ai, with bounded retries.

    A validation failure is retried once with a simplified request; if the
    simplified request also yields invalid output the errors are returned
    straight away. Generator failures are retried with exponential backoff
    until the policy runs out of attempts. Setting `cancel` aborts between
    attempts and during backoff with OperationCancelled.
    """
    policy = policy or RetryPolicy()
    _enter(IntakeState.REQUESTED, request.recipe_name)
    errors = validate_generation_input(request)
    if errors:
        return _failure(INVALID_INPUT_MESSAGE, errors)

    owner = _owner(request, owner_id)
    generator_input = request.generator_input(settings.DEFAULT_SERVINGS)
    simplified = False
    last_error: Optional[DomainError] = None

    for attempt in range(policy.max_attempts):
        check_cancelled(cancel)
        try:
            db_recipe = _generate_and_store(db, generator, generator_input, owner, attempt)
            return _success(db_recipe, attempts=attempt + 1)

        except ValidationError as exc:
            _enter(IntakeState.INVALID, request.recipe_name, attempt)
            if simplified or not policy.has_retry(attempt):
                logger.warning(
                    f"AI recipe {request.recipe_name!r} still invalid after attempt {attempt + 1}: "
                    f"{exc.errors}"
                )
                return _failure(INVALID_OUTPUT_MESSAGE, exc.errors, attempts=attempt + 1)
            logger.warning(
                f"Recipe generation attempt {attempt + 1} failed validation, "
                f"retrying with simplified input"
            )
            _enter(IntakeState.RETRYING, request.recipe_name, attempt)
            generator_input = policy.simplify(generator_input)
            simplified = True

        except TransientError as exc:
            last_error = exc
            if not policy.has_retry(attempt):
                break
            logger.warning(f"Recipe generation attempt {attempt + 1} failed, retrying: {exc.message}")
            _enter(IntakeState.RETRYING, request.recipe_name, attempt)
            policy.wait(attempt, cancel)

        except OperationCancelled:
            raise

        except DomainError as exc:
            logger.warning(f"AI recipe generation for {request.recipe_name!r} failed: {exc.message}")
            return _failure(f"Failed to generate recipe: {exc.message}", exc.errors, attempts=attempt + 1)

    message = last_error.message if last_error is not None else "Unknown error"
    return _failure(
        f"Failed to generate recipe after {policy.max_attempts} attempts: {message}",
        attempts=policy.max_attempts,
    )


def create_multiple_recipes_with_ai(
    db: Session,
    generation_requests: List[schemas.GenerationRequest],
    generator: RecipeGenerator,
    owner_id: Optional[UUID] = None,
    cancel: Optional[threading.Event] = None,
) -> List[schemas.CreationResult]:
    """
    Generate a batch of recipes. Every item is attempted and reported on its
    own; one item blowing up does not stop the rest.
    """
    if len(generation_requests) > settings.AI_MAX_BATCH_SIZE:
        raise ValidationError(
            f"Cannot generate more than {settings.AI_MAX_BATCH_SIZE} recipes at once",
            field="requests",
        )

    results = []
    for index, request in enumerate(generation_requests):
        check_cancelled(cancel)
        try:
            results.append(create_recipe_with_ai(db, request, generator, owner_id=owner_id))
        except OperationCancelled:
            raise
        except Exception as exc:
            logger.exception(f"Batch item {index + 1} failed")
            results.append(_failure(f"Failed to generate recipe {index + 1}: {exc}"))
    return results

# api/ai.py
# AI recipe generation endpoints. These are the only rate-limited routes.

import logging
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import List

from mealprep import schemas
from mealprep.core.config import settings
from mealprep.core.rate_limit import limiter
from mealprep.db.session import get_db
from mealprep.api.auth import get_current_user_id
from mealprep.services import ai_intake
from mealprep.services.generator import RecipeGenerator, get_recipe_generator

router = APIRouter()

logger = logging.getLogger(__name__)


def _status_for(result: schemas.CreationResult) -> int:
    if result.success:
        return status.HTTP_201_CREATED
    if result.errors:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_503_SERVICE_UNAVAILABLE


@router.post("/recipes", response_model=schemas.CreationResult)
@limiter.limit(settings.AI_RATE_LIMIT)
def generate_recipe(
    request: Request,
    response: Response,
    generation: schemas.GenerationRequest,
    retry: bool = Query(default=True, description="Retry failed generations with backoff"),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
    generator: RecipeGenerator = Depends(get_recipe_generator),
):
    """
    Generate a recipe with the AI generator and save it for the current user.

    Responds 201 with the stored recipe, 400 with field errors when the input
    or the generated recipe is invalid, and 503 when the generator kept
    failing.
    """
    logger.debug(f"User {user_id} requested AI recipe {generation.recipe_name!r} (retry={retry})")
    if retry:
        result = ai_intake.create_recipe_with_ai_retry(db, generation, generator, owner_id=user_id)
    else:
        result = ai_intake.create_recipe_with_ai(db, generation, generator, owner_id=user_id)
    response.status_code = _status_for(result)
    return result


@router.post("/recipes/batch", response_model=List[schemas.CreationResult])
@limiter.limit(settings.AI_RATE_LIMIT)
def generate_recipes(
    request: Request,
    batch: schemas.GenerationBatch,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
    generator: RecipeGenerator = Depends(get_recipe_generator),
):
    """
    Generate up to AI_MAX_BATCH_SIZE recipes. Each item succeeds or fails on
    its own; check `success` per result.
    """
    return ai_intake.create_multiple_recipes_with_ai(db, batch.requests, generator, owner_id=user_id)

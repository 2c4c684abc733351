# api/meal_plans.py
# Endpoints for weekly meal plans and their (day, meal type) slots.

import logging
from datetime import date
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from mealprep import models, schemas
from mealprep.crud import meal_plans as crud_meal_plans
from mealprep.db.session import get_db
from mealprep.api.auth import get_current_user_id
from mealprep.services import consistency

router = APIRouter()

logger = logging.getLogger(__name__)


def _get_owned_plan(db: Session, plan_id: UUID, user_id: UUID) -> models.MealPlan:
    db_plan = crud_meal_plans.get_meal_plan_or_404(db, plan_id)
    if db_plan.user_id != user_id:
        logger.error(f"User {user_id} is not authorized to access meal plan {plan_id}")
        raise HTTPException(status_code=403, detail="Not authorized to access this meal plan")
    return db_plan


@router.post("/", response_model=schemas.MealPlan, status_code=status.HTTP_201_CREATED)
def create_meal_plan(
    plan_in: schemas.MealPlanCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Create a meal plan. The week start date must fall on the configured week
    start day (Monday by default). Creating it active deactivates the user's
    other plans.
    """
    return crud_meal_plans.create_meal_plan(db, plan_in, user_id)


@router.get("/", response_model=List[schemas.MealPlan])
def read_meal_plans(
    response: Response,
    is_active: Optional[bool] = Query(default=None),
    week_start_date: Optional[date] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    sort: str = Query(
        default=None,
        description="Comma-separated sort fields. Prefix with '-' for descending order. "
        "Valid fields: name, week_start_date, created_at, updated_at.",
    ),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    The current user's meal plans. Returns total count in `X-Total-Count`.
    """
    plans, total_count = crud_meal_plans.get_meal_plans(
        db,
        user_id,
        is_active=is_active,
        week_start_date=week_start_date,
        skip=skip,
        limit=limit,
        sort_by=sort,
    )
    response.headers["X-Total-Count"] = str(total_count)
    return plans


@router.get("/active", response_model=Optional[schemas.MealPlan])
def read_active_meal_plan(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    db_plan = crud_meal_plans.get_active_meal_plan(db, user_id)
    if db_plan is None:
        return None
    return crud_meal_plans.get_meal_plan(db, db_plan.id)


@router.get("/{plan_id}", response_model=schemas.MealPlan)
def read_meal_plan(
    plan_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    return _get_owned_plan(db, plan_id, user_id)


@router.patch("/{plan_id}", response_model=schemas.MealPlan)
def update_meal_plan(
    plan_id: UUID,
    plan_update: schemas.MealPlanUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Rename or re-date a plan. Use `POST /{plan_id}/activate` to change which
    plan is active.
    """
    _get_owned_plan(db, plan_id, user_id)
    return crud_meal_plans.update_meal_plan(db, plan_id, plan_update)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_meal_plan(
    plan_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    _get_owned_plan(db, plan_id, user_id)
    crud_meal_plans.delete_meal_plan(db, plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{plan_id}/activate", response_model=schemas.MealPlan)
def activate_meal_plan(
    plan_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Make this the user's only active plan.
    """
    return consistency.set_active_meal_plan(db, user_id, plan_id)


# --- Slots ---

@router.get("/{plan_id}/items/{day_of_week}", response_model=List[schemas.MealPlanItem])
def read_day_items(
    plan_id: UUID,
    day_of_week: int,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    _get_owned_plan(db, plan_id, user_id)
    return crud_meal_plans.get_items_for_day(db, plan_id, day_of_week)


@router.put("/{plan_id}/items/{day_of_week}/{meal_type}", response_model=schemas.MealPlan)
def assign_recipe(
    plan_id: UUID,
    day_of_week: int,
    meal_type: str,
    item: schemas.MealPlanItemAssign,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Put a recipe into a slot. `day_of_week` is 0 (Monday) to 6 (Sunday);
    `meal_type` is breakfast, lunch, dinner or snack. An occupied slot is
    overwritten.
    """
    _get_owned_plan(db, plan_id, user_id)
    return crud_meal_plans.assign_recipe(db, plan_id, item.recipe_id, day_of_week, meal_type)


@router.delete("/{plan_id}/items/{day_of_week}/{meal_type}", response_model=schemas.MealPlan)
def remove_recipe(
    plan_id: UUID,
    day_of_week: int,
    meal_type: str,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    _get_owned_plan(db, plan_id, user_id)
    return crud_meal_plans.remove_recipe(db, plan_id, day_of_week, meal_type)


@router.delete("/{plan_id}/items", response_model=schemas.MealPlan)
def clear_meal_plan(
    plan_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    _get_owned_plan(db, plan_id, user_id)
    return crud_meal_plans.clear_meal_plan(db, plan_id)

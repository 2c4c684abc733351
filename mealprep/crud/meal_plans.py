# crud/meal_plans.py
# Meal Plan Store: plans and their (day, meal type) slot assignments.

import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from mealprep import filters, models, schemas
from mealprep.core.config import settings
from mealprep.core.errors import ConflictError, NotFoundError, ValidationError
from mealprep.crud.recipes import check_length, get_recipe_or_404
from mealprep.db.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def parse_meal_type(value) -> models.MealType:
    if isinstance(value, models.MealType):
        return value
    try:
        return models.MealType(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            "Meal type must be one of: breakfast, lunch, dinner, snack", field="meal_type"
        )


def check_day_of_week(day_of_week: int) -> int:
    if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
        raise ValidationError("Day of week must be between 0 and 6", field="day_of_week")
    return day_of_week


def check_week_start(week_start_date: Optional[date]) -> date:
    if week_start_date is None:
        raise ValidationError("Week start date is required", field="week_start_date")
    if week_start_date.weekday() != settings.WEEK_START_WEEKDAY:
        raise ValidationError(
            f"Week start date must be a {WEEKDAY_NAMES[settings.WEEK_START_WEEKDAY]}",
            field="week_start_date",
        )
    return week_start_date


def _check_name_available(
    db: Session, user_id: UUID, name: str, exclude_plan_id: Optional[UUID] = None
) -> None:
    query = db.query(models.MealPlan).filter(
        models.MealPlan.user_id == user_id, models.MealPlan.name == name
    )
    if exclude_plan_id is not None:
        query = query.filter(models.MealPlan.id != exclude_plan_id)
    if query.first() is not None:
        raise ConflictError(f"A meal plan named '{name}' already exists", field="name")


def _touch(db_plan: models.MealPlan) -> None:
    db_plan.updated_at = datetime.now(timezone.utc)


def deactivate_other_plans(db: Session, user_id: UUID, keep_plan_id: Optional[UUID] = None) -> int:
    """
    Flip every active plan of `user_id` (except `keep_plan_id`) to inactive.
    Must run inside the same unit of work as the matching activation.
    """
    # Lock all of the user's plans so concurrent activations queue up
    db.query(models.MealPlan.id).filter(models.MealPlan.user_id == user_id).with_for_update().all()
    query = db.query(models.MealPlan).filter(
        models.MealPlan.user_id == user_id, models.MealPlan.is_active.is_(True)
    )
    if keep_plan_id is not None:
        query = query.filter(models.MealPlan.id != keep_plan_id)
    return query.update(
        {
            models.MealPlan.is_active: False,
            models.MealPlan.updated_at: datetime.now(timezone.utc),
        },
        synchronize_session="fetch",
    )


# --- Meal Plan CRUD Functions ---

def get_meal_plan(db: Session, plan_id: UUID) -> Optional[models.MealPlan]:
    logger.debug(f"Retrieving meal plan {plan_id}")
    return (
        db.query(models.MealPlan)
        .options(selectinload(models.MealPlan.items).selectinload(models.MealPlanItem.recipe))
        .filter(models.MealPlan.id == plan_id)
        .first()
    )


def get_meal_plan_or_404(db: Session, plan_id: UUID) -> models.MealPlan:
    db_plan = get_meal_plan(db, plan_id)
    if db_plan is None:
        logger.warning(f"Meal plan {plan_id} not found.")
        raise NotFoundError("Meal plan not found", field="meal_plan_id")
    return db_plan


def get_meal_plans(
    db: Session,
    user_id: UUID,
    is_active: Optional[bool] = None,
    week_start_date: Optional[date] = None,
    skip: int = 0,
    limit: int = 20,
    sort_by: Optional[str] = None,
) -> Tuple[List[models.MealPlan], int]:
    query = db.query(models.MealPlan).filter(models.MealPlan.user_id == user_id)
    if is_active is not None:
        query = query.filter(models.MealPlan.is_active.is_(is_active))
    if week_start_date is not None:
        query = query.filter(models.MealPlan.week_start_date == week_start_date)

    total_count = query.count()

    query = filters.apply_sorting(
        query,
        sort_by,
        filters.MEAL_PLAN_SORT_FIELDS,
        default_sort=(models.MealPlan.created_at.desc(), models.MealPlan.id),
    )
    plans = (
        query.options(selectinload(models.MealPlan.items).selectinload(models.MealPlanItem.recipe))
        .offset(skip)
        .limit(limit)
        .all()
    )
    return plans, total_count


def get_active_meal_plan(db: Session, user_id: UUID) -> Optional[models.MealPlan]:
    return (
        db.query(models.MealPlan)
        .filter(models.MealPlan.user_id == user_id, models.MealPlan.is_active.is_(True))
        .first()
    )


def create_meal_plan(db: Session, plan_in: schemas.MealPlanCreate, user_id: UUID) -> models.MealPlan:
    name = (plan_in.name or "").strip()
    if not name:
        raise ValidationError("Meal plan name is required", field="name")
    check_length("name", name, 255)
    check_week_start(plan_in.week_start_date)

    now = datetime.now(timezone.utc)
    with unit_of_work(db):
        _check_name_available(db, user_id, name)
        if plan_in.is_active:
            deactivate_other_plans(db, user_id)
        db_plan = models.MealPlan(
            user_id=user_id,
            name=name,
            description=plan_in.description,
            week_start_date=plan_in.week_start_date,
            is_active=plan_in.is_active,
            created_at=now,
            updated_at=now,
        )
        db.add(db_plan)

    logger.info(f"Created meal plan {db_plan.id} ({name}) for user {user_id}")
    return get_meal_plan(db, db_plan.id)


def update_meal_plan(db: Session, plan_id: UUID, plan_update: schemas.MealPlanUpdate) -> models.MealPlan:
    update_data = plan_update.field_mask()
    if not update_data:
        raise ValidationError("No fields to update")
    if "name" in update_data:
        update_data["name"] = (update_data["name"] or "").strip()
        if not update_data["name"]:
            raise ValidationError("Meal plan name is required", field="name")
        check_length("name", update_data["name"], 255)
    if "week_start_date" in update_data:
        check_week_start(update_data["week_start_date"])

    with unit_of_work(db):
        db_plan = get_meal_plan_or_404(db, plan_id)
        if "name" in update_data:
            _check_name_available(db, db_plan.user_id, update_data["name"], exclude_plan_id=plan_id)
        for key, value in update_data.items():
            setattr(db_plan, key, value)
        _touch(db_plan)

    return get_meal_plan(db, plan_id)


def delete_meal_plan(db: Session, plan_id: UUID) -> None:
    """
    Delete a plan. Items are removed explicitly first so reference counts never
    depend on storage-level cascade.
    """
    with unit_of_work(db):
        db_plan = get_meal_plan_or_404(db, plan_id)
        removed = (
            db.query(models.MealPlanItem)
            .filter(models.MealPlanItem.meal_plan_id == plan_id)
            .delete(synchronize_session=False)
        )
        db.expire(db_plan, ["items"])
        db.delete(db_plan)
    logger.info(f"Deleted meal plan {plan_id} and {removed} item(s)")


def clear_meal_plan(db: Session, plan_id: UUID) -> models.MealPlan:
    with unit_of_work(db):
        db_plan = get_meal_plan_or_404(db, plan_id)
        removed = (
            db.query(models.MealPlanItem)
            .filter(models.MealPlanItem.meal_plan_id == plan_id)
            .delete(synchronize_session=False)
        )
        _touch(db_plan)
    logger.debug(f"Cleared {removed} item(s) from meal plan {plan_id}")
    db.expire_all()
    return get_meal_plan(db, plan_id)


# --- Slot assignment ---

def assign_recipe(
    db: Session, plan_id: UUID, recipe_id: UUID, day_of_week: int, meal_type
) -> models.MealPlan:
    """
    Put `recipe_id` into the (day, meal type) slot. An occupied slot is
    replaced: last write wins.
    """
    check_day_of_week(day_of_week)
    meal_type = parse_meal_type(meal_type)

    with unit_of_work(db):
        db_plan = get_meal_plan_or_404(db, plan_id)
        get_recipe_or_404(db, recipe_id)

        db_item = db.get(models.MealPlanItem, (plan_id, day_of_week, meal_type))
        now = datetime.now(timezone.utc)
        if db_item is None:
            db.add(models.MealPlanItem(
                meal_plan_id=plan_id,
                recipe_id=recipe_id,
                day_of_week=day_of_week,
                meal_type=meal_type,
                added_at=now,
            ))
        else:
            logger.debug(
                f"Replacing recipe {db_item.recipe_id} with {recipe_id} "
                f"at day {day_of_week} {meal_type.value} of plan {plan_id}"
            )
            db_item.recipe_id = recipe_id
            db_item.added_at = now
        _touch(db_plan)

    db.expire_all()
    return get_meal_plan(db, plan_id)


def remove_recipe(db: Session, plan_id: UUID, day_of_week: int, meal_type) -> models.MealPlan:
    check_day_of_week(day_of_week)
    meal_type = parse_meal_type(meal_type)

    with unit_of_work(db):
        db_plan = get_meal_plan_or_404(db, plan_id)
        db_item = db.get(models.MealPlanItem, (plan_id, day_of_week, meal_type))
        if db_item is None:
            raise NotFoundError("No recipe is assigned to that slot", field="meal_type")
        db.delete(db_item)
        _touch(db_plan)

    db.expire_all()
    return get_meal_plan(db, plan_id)


def get_items_for_day(db: Session, plan_id: UUID, day_of_week: int) -> List[models.MealPlanItem]:
    """Slots of one day, breakfast through snack."""
    check_day_of_week(day_of_week)
    get_meal_plan_or_404(db, plan_id)
    items = (
        db.query(models.MealPlanItem)
        .options(selectinload(models.MealPlanItem.recipe))
        .filter(
            models.MealPlanItem.meal_plan_id == plan_id,
            models.MealPlanItem.day_of_week == day_of_week,
        )
        .all()
    )
    meal_order = list(models.MealType)
    return sorted(items, key=lambda item: meal_order.index(item.meal_type))

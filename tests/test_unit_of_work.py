import pytest
from datetime import date
from uuid import uuid4
from sqlalchemy.orm import Session

from mealprep import models
from mealprep.core.errors import ConflictError, NotFoundError
from mealprep.db.unit_of_work import unit_of_work


def new_plan(user_id, name="Week A"):
    return models.MealPlan(user_id=user_id, name=name, week_start_date=date(2026, 10, 12))


def test_commits_on_success(db: Session, user_id):
    with unit_of_work(db):
        db.add(new_plan(user_id))
    db.rollback()
    assert db.query(models.MealPlan).count() == 1


def test_rolls_back_on_domain_error(db: Session, user_id):
    with pytest.raises(NotFoundError):
        with unit_of_work(db):
            db.add(new_plan(user_id))
            db.flush()
            raise NotFoundError("Meal plan not found")
    assert db.query(models.MealPlan).count() == 0


def test_nested_units_join_the_outer_one(db: Session, user_id):
    with pytest.raises(NotFoundError):
        with unit_of_work(db):
            with unit_of_work(db):
                db.add(new_plan(user_id))
            # The inner unit only flushed
            assert db.query(models.MealPlan).count() == 1
            raise NotFoundError("later failure")
    assert db.query(models.MealPlan).count() == 0


def test_integrity_error_becomes_conflict(db: Session, user_id):
    with unit_of_work(db):
        db.add(new_plan(user_id))

    with pytest.raises(ConflictError):
        with unit_of_work(db):
            db.add(new_plan(user_id))
    # The session is usable again after the rollback
    assert db.query(models.MealPlan).count() == 1


def test_unexpected_errors_propagate(db: Session, user_id):
    with pytest.raises(KeyError):
        with unit_of_work(db):
            db.add(new_plan(user_id, name=str(uuid4())))
            db.flush()
            raise KeyError("boom")
    assert db.query(models.MealPlan).count() == 0


def test_depth_is_reset(db: Session):
    with pytest.raises(RuntimeError):
        with unit_of_work(db):
            raise RuntimeError("boom")
    assert db.info["unit_of_work_depth"] == 0

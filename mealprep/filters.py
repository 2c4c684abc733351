# mealprep/filters.py
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID
from sqlalchemy.orm import Query
from sqlalchemy import asc, desc, or_
import re

from mealprep import models
from mealprep.core.errors import ValidationError


class Filter:
    def __init__(self, field: str, operator: str, value: Any):
        self.field = field
        self.operator = operator
        self.value = value

    def __repr__(self):
        return f"Filter({self.field} {self.operator} {self.value})"


OPERATORS = {'eq', 'neq', 'gt', 'gte', 'lt', 'lte', 'in', 'like'}

ALLOWED_FIELDS = {
    'name': models.Recipe.name,
    'description': models.Recipe.description,
    'cuisine': models.Recipe.cuisine,
    'difficulty': models.Recipe.difficulty,
    'owner_id': models.Recipe.owner_id,
    'calories': models.Recipe.calories,
    'prep_time_minutes': models.Recipe.prep_time_minutes,
    'cook_time_minutes': models.Recipe.cook_time_minutes,
    'total_time_minutes': models.Recipe.total_time_minutes,
    'avg_rating': models.Recipe.avg_rating,
    'rating_count': models.Recipe.rating_count,
}

SORT_FIELDS = {
    'created_at': models.Recipe.created_at,
    'updated_at': models.Recipe.updated_at,
    'name': models.Recipe.name,
    'calories': models.Recipe.calories,
    'total_time_minutes': models.Recipe.total_time_minutes,
    'avg_rating': models.Recipe.avg_rating,
}

MEAL_PLAN_SORT_FIELDS = {
    'created_at': models.MealPlan.created_at,
    'updated_at': models.MealPlan.updated_at,
    'name': models.MealPlan.name,
    'week_start_date': models.MealPlan.week_start_date,
}

COLLECTION_SORT_FIELDS = {
    'created_at': models.Collection.created_at,
    'updated_at': models.Collection.updated_at,
    'name': models.Collection.name,
}


def parse_filters(query_params: Dict[str, str]) -> List[Filter]:
    filters = []
    # Pattern to match field[operator]=value
    pattern = re.compile(r"^(\w+)\[(\w+)\]$")

    for key, value in query_params.items():
        match = pattern.match(key)
        if match:
            field, operator = match.groups()
            filters.append(Filter(field, operator, value))

    return filters


NUMERIC_FIELDS = {
    'calories', 'prep_time_minutes', 'cook_time_minutes', 'total_time_minutes',
    'avg_rating', 'rating_count',
}

TEXT_FIELDS = {'name', 'description', 'cuisine'}


def _coerce(field: str, value: str) -> Any:
    # Enum columns only accept members; anything else is a caller mistake.
    if field == 'difficulty':
        try:
            return models.Difficulty(value.strip().lower())
        except ValueError:
            raise ValidationError(
                f"Invalid difficulty '{value}'. Valid values: easy, medium, hard",
                field="difficulty",
            )
    if field in NUMERIC_FIELDS:
        try:
            return float(value)
        except ValueError:
            raise ValidationError(f"'{value}' is not a number", field=field)
    if field == 'owner_id':
        try:
            return UUID(value.strip())
        except ValueError:
            raise ValidationError(f"'{value}' is not a valid id", field=field)
    return value


def apply_search(query: Query, search: Optional[str]) -> Query:
    """
    Free-text match over name and description.
    """
    if not search or not search.strip():
        return query
    term = f"%{search.strip()}%"
    return query.filter(or_(
        models.Recipe.name.ilike(term),
        models.Recipe.description.ilike(term),
    ))


def apply_filters(query: Query, filters: List[Filter]) -> Query:
    for f in filters:
        model_attr = ALLOWED_FIELDS.get(f.field)
        if model_attr is None:
            continue
        if f.operator not in OPERATORS:
            raise ValidationError(
                f"Unsupported operator '{f.operator}' for field '{f.field}'",
                field=f.field,
            )

        if f.operator == 'in':
            vals = [_coerce(f.field, v) for v in str(f.value).split(',')]
            query = query.filter(model_attr.in_(vals))
            continue

        if f.operator == 'like':
            if f.field not in TEXT_FIELDS:
                raise ValidationError(
                    f"Operator 'like' is not supported for '{f.field}'",
                    field=f.field,
                )
            query = query.filter(model_attr.ilike(f"%{f.value}%"))
            continue

        value = _coerce(f.field, f.value)
        if f.operator == 'eq':
            query = query.filter(model_attr == value)
        elif f.operator == 'neq':
            query = query.filter(model_attr != value)
        elif f.operator == 'gt':
            query = query.filter(model_attr > value)
        elif f.operator == 'gte':
            query = query.filter(model_attr >= value)
        elif f.operator == 'lt':
            query = query.filter(model_attr < value)
        elif f.operator == 'lte':
            query = query.filter(model_attr <= value)

    return query


def apply_sorting(
    query: Query,
    sort_param: Optional[str],
    sort_fields: Dict[str, Any],
    default_sort: Sequence[Any],
) -> Query:
    """
    Apply `sort=name,-created_at` style ordering. Unknown fields are ignored;
    the default ordering is always appended so pages are deterministic.
    """
    if sort_param:
        for field in sort_param.split(','):
            field = field.strip()
            direction = asc
            if field.startswith('-'):
                direction = desc
                field = field[1:]

            model_attr = sort_fields.get(field)
            if model_attr is not None:
                query = query.order_by(direction(model_attr))

    return query.order_by(*default_sort)

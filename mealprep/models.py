# models.py
# Defines the SQLAlchemy ORM models for the database tables.

import uuid
import enum
from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, Enum, Float, ForeignKey,
    Integer, JSON, String, Text, UniqueConstraint, func
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from sqlalchemy.types import Uuid
from mealprep.db.session import Base


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MealType(str, enum.Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Recipe(Base):
    """
    Recipe model for the 'recipes' table.

    avg_rating and rating_count are derived from favorites and are only written
    by the rating recalculation. total_time_minutes is never stored.
    """
    __tablename__ = "recipes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    owner_id = Column(Uuid(as_uuid=True), nullable=True, index=True)

    # Core fields
    name = Column(String(255), index=True, nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=False)
    cuisine = Column(String(100), nullable=True, index=True)
    difficulty = Column(
        Enum(Difficulty, values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=Difficulty.MEDIUM,
    )
    image_url = Column(String(500), nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    # Times
    prep_time_minutes = Column(Integer, nullable=False, default=0)
    cook_time_minutes = Column(Integer, nullable=False, default=0)

    # Nutrition (per serving)
    calories = Column(Float, nullable=True)
    protein = Column(Float, nullable=True)
    carbs = Column(Float, nullable=True)
    fat = Column(Float, nullable=True)
    fiber = Column(Float, nullable=True)
    sugar = Column(Float, nullable=True)
    sodium = Column(Float, nullable=True)

    # Aggregate rating
    avg_rating = Column(Float, nullable=False, default=0.0, index=True)
    rating_count = Column(Integer, nullable=False, default=0)

    # Audit
    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.position",
    )
    favorites = relationship("Favorite", back_populates="recipe", cascade="all, delete-orphan")
    collection_entries = relationship(
        "CollectionRecipe", back_populates="recipe", cascade="all, delete-orphan"
    )

    @hybrid_property
    def total_time_minutes(self):
        return (self.prep_time_minutes or 0) + (self.cook_time_minutes or 0)

    @total_time_minutes.inplace.expression
    @classmethod
    def _total_time_minutes_expression(cls):
        return func.coalesce(cls.prep_time_minutes, 0) + func.coalesce(cls.cook_time_minutes, 0)

    def __str__(self):
        return f"{self.id}: {self.name}"


class RecipeIngredient(Base):
    """
    One ingredient line of a recipe. Lines keep the order they were authored in.
    """
    __tablename__ = "recipe_ingredients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    recipe_id = Column(
        Uuid(as_uuid=True), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)

    recipe = relationship("Recipe", back_populates="ingredients")


class MealPlan(Base):
    __tablename__ = "meal_plans"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_meal_plans_user_name"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    week_start_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    items = relationship(
        "MealPlanItem",
        back_populates="meal_plan",
        cascade="all, delete-orphan",
        order_by="[MealPlanItem.day_of_week, MealPlanItem.meal_type]",
    )


class MealPlanItem(Base):
    """
    One recipe assigned to a (day, meal type) slot of a meal plan.
    The slot triple is the primary key, so a slot holds at most one recipe.
    """
    __tablename__ = "meal_plan_items"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_meal_plan_items_day"),
    )

    meal_plan_id = Column(
        Uuid(as_uuid=True), ForeignKey("meal_plans.id", ondelete="CASCADE"), primary_key=True
    )
    day_of_week = Column(Integer, primary_key=True)
    meal_type = Column(
        Enum(MealType, values_callable=_enum_values, native_enum=False), primary_key=True
    )
    # No ON DELETE here: the usage guard must detach items before a recipe goes away.
    recipe_id = Column(Uuid(as_uuid=True), ForeignKey("recipes.id"), nullable=False, index=True)
    added_at = Column(DateTime, default=func.now())

    meal_plan = relationship("MealPlan", back_populates="items")
    recipe = relationship("Recipe")


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (
        CheckConstraint(
            "personal_rating IS NULL OR personal_rating BETWEEN 1 AND 5",
            name="ck_favorites_rating",
        ),
    )

    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    recipe_id = Column(
        Uuid(as_uuid=True), ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    personal_rating = Column(Integer, nullable=True)
    personal_notes = Column(Text, nullable=True)
    added_at = Column(DateTime, default=func.now())

    recipe = relationship("Recipe", back_populates="favorites")


class Collection(Base):
    __tablename__ = "collections"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_collections_user_name"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=False, default="#4DB6AC")
    icon = Column(String(50), nullable=False, default="heart")
    is_public = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    entries = relationship(
        "CollectionRecipe",
        back_populates="collection",
        cascade="all, delete-orphan",
        order_by="CollectionRecipe.added_at",
    )


class CollectionRecipe(Base):
    """
    Membership of a recipe in a collection.
    """
    __tablename__ = "collection_recipes"

    collection_id = Column(
        Uuid(as_uuid=True), ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True
    )
    recipe_id = Column(
        Uuid(as_uuid=True), ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    added_at = Column(DateTime, default=func.now())

    collection = relationship("Collection", back_populates="entries")
    recipe = relationship("Recipe", back_populates="collection_entries")

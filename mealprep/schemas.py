# schemas.py
# Defines the Pydantic models (schemas) for data validation and serialization.

from pydantic import BaseModel, ConfigDict, model_validator
from typing import List, Optional, Any
from uuid import UUID
from datetime import date, datetime

from mealprep.models import MealType


# --- Errors / results ---

class FieldError(BaseModel):
    field: str
    message: str


# --- Ingredient / Nutrition ---

class Ingredient(BaseModel):
    name: str
    amount: float
    unit: str
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class NutritionInfo(BaseModel):
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    fiber: Optional[float] = None
    sugar: Optional[float] = None
    sodium: Optional[float] = None


NUTRITION_FIELDS = tuple(NutritionInfo.model_fields)


# --- Recipe Schemas ---

class RecipeCreate(BaseModel):
    # difficulty stays a plain string here; the store parses it into the enum.
    name: str
    description: Optional[str] = None
    ingredients: List[Ingredient] = []
    instructions: str = ""
    nutrition: NutritionInfo = NutritionInfo()
    cuisine: Optional[str] = None
    prep_time_minutes: int = 0
    cook_time_minutes: int = 0
    difficulty: str = "medium"
    image_url: Optional[str] = None
    tags: List[str] = []


class RecipeUpdate(BaseModel):
    """
    Sparse update. Only fields the caller explicitly set end up in the field
    mask; derived and immutable fields are ignored if sent.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    ingredients: Optional[List[Ingredient]] = None
    instructions: Optional[str] = None
    nutrition: Optional[NutritionInfo] = None
    cuisine: Optional[str] = None
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    difficulty: Optional[str] = None
    image_url: Optional[str] = None
    tags: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore")

    def field_mask(self) -> dict:
        return self.model_dump(exclude_unset=True)


class RecipeTimes(BaseModel):
    prep_time_minutes: int
    cook_time_minutes: int
    total_time_minutes: int


class RecipeRating(BaseModel):
    avg_rating: float
    rating_count: int


class RecipeAudit(BaseModel):
    owner_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Recipe(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    cuisine: Optional[str] = None
    difficulty: str
    image_url: Optional[str] = None
    tags: List[str]
    ingredients: List[Ingredient]
    instructions: str
    times: RecipeTimes
    nutrition: NutritionInfo
    rating: RecipeRating
    audit: RecipeAudit

    @model_validator(mode='before')
    @classmethod
    def transform_from_orm(cls, data: Any) -> Any:
        if hasattr(data, "id"):  # Is an ORM object
            return {
                "id": data.id,
                "name": data.name,
                "description": data.description,
                "cuisine": data.cuisine,
                "difficulty": getattr(data.difficulty, "value", data.difficulty),
                "image_url": data.image_url,
                "tags": list(data.tags or []),
                "ingredients": data.ingredients,
                "instructions": data.instructions,
                "times": {
                    "prep_time_minutes": data.prep_time_minutes,
                    "cook_time_minutes": data.cook_time_minutes,
                    "total_time_minutes": data.total_time_minutes,
                },
                "nutrition": {field: getattr(data, field) for field in NUTRITION_FIELDS},
                "rating": {
                    "avg_rating": data.avg_rating,
                    "rating_count": data.rating_count,
                },
                "audit": {
                    "owner_id": data.owner_id,
                    "created_at": data.created_at,
                    "updated_at": data.updated_at,
                },
            }
        return data

    model_config = ConfigDict(from_attributes=True)


class RecipeShare(BaseModel):
    to_user_id: UUID


class RatingIn(BaseModel):
    rating: int
    notes: Optional[str] = None


# --- Relationship ledger ---

class UsageStats(BaseModel):
    recipe_id: UUID
    meal_plan_usage: int
    favorites_count: int
    collections_count: int
    total_usage: int
    last_used: Optional[datetime] = None


class MealPlanReference(BaseModel):
    plan_id: UUID
    plan_name: str
    day_of_week: int
    meal_type: MealType
    added_at: Optional[datetime] = None


class FavoriteReference(BaseModel):
    user_id: UUID
    personal_rating: Optional[int] = None
    added_at: Optional[datetime] = None


class CollectionReference(BaseModel):
    collection_id: UUID
    collection_name: str
    user_id: UUID
    added_at: Optional[datetime] = None


class RecipeRelationships(BaseModel):
    meal_plans: List[MealPlanReference]
    favorited_by: List[FavoriteReference]
    in_collections: List[CollectionReference]


class RecipeUsage(BaseModel):
    meal_plan_usage: int
    favorites_count: int
    collections_count: int
    total_usage: int
    is_user_favorite: bool = False
    user_rating: Optional[int] = None


class RecipeWithUsage(BaseModel):
    recipe: Recipe
    usage_stats: RecipeUsage


# --- Meal Plan Schemas ---

class MealPlanCreate(BaseModel):
    name: str
    description: Optional[str] = None
    week_start_date: date
    is_active: bool = False


class MealPlanUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    week_start_date: Optional[date] = None

    model_config = ConfigDict(extra="ignore")

    def field_mask(self) -> dict:
        return self.model_dump(exclude_unset=True)


class MealPlanItemAssign(BaseModel):
    recipe_id: UUID


class MealPlanItem(BaseModel):
    meal_plan_id: UUID
    recipe_id: UUID
    day_of_week: int
    meal_type: MealType
    added_at: Optional[datetime] = None
    recipe_name: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def add_recipe_name(cls, data: Any) -> Any:
        if hasattr(data, "recipe"):
            return {
                "meal_plan_id": data.meal_plan_id,
                "recipe_id": data.recipe_id,
                "day_of_week": data.day_of_week,
                "meal_type": data.meal_type,
                "added_at": data.added_at,
                "recipe_name": data.recipe.name if data.recipe else None,
            }
        return data

    model_config = ConfigDict(from_attributes=True)


class MealPlan(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    week_start_date: date
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[MealPlanItem] = []

    model_config = ConfigDict(from_attributes=True)


# --- Favorite Schemas ---

class FavoriteUpsert(BaseModel):
    personal_notes: Optional[str] = None


class Favorite(BaseModel):
    user_id: UUID
    recipe_id: UUID
    personal_rating: Optional[int] = None
    personal_notes: Optional[str] = None
    added_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# --- Collection Schemas ---

class CollectionCreate(BaseModel):
    name: str
    description: Optional[str] = None
    color: str = "#4DB6AC"
    icon: str = "heart"
    is_public: bool = False
    tags: List[str] = []


class CollectionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore")

    def field_mask(self) -> dict:
        return self.model_dump(exclude_unset=True)


class CollectionAddRecipe(BaseModel):
    recipe_id: UUID


class CollectionEntry(BaseModel):
    recipe_id: UUID
    added_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Collection(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    is_public: bool
    tags: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    entries: List[CollectionEntry] = []

    model_config = ConfigDict(from_attributes=True)


# --- AI generation ---

class GenerationRequest(BaseModel):
    """
    Input for the AI generator. Kept loosely typed so the intake pipeline can
    report every problem as a field error instead of failing on the first one.
    """
    recipe_name: Any = None
    cuisine: Optional[Any] = None
    dietary_restrictions: Optional[Any] = None
    servings: Optional[Any] = None
    created_by_user_id: Optional[UUID] = None

    def generator_input(self, default_servings: int) -> dict:
        return {
            "recipe_name": self.recipe_name,
            "cuisine": self.cuisine,
            "dietary_restrictions": list(self.dietary_restrictions or []),
            "servings": self.servings if self.servings is not None else default_servings,
        }


class GenerationBatch(BaseModel):
    requests: List[GenerationRequest]


class CreationResult(BaseModel):
    success: bool
    recipe: Optional[Recipe] = None
    errors: Optional[List[FieldError]] = None
    message: Optional[str] = None
    attempts: int = 0
    state: Optional[str] = None

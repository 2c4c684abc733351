
import logging
from sqlalchemy.orm import Session

from mealprep import schemas
from mealprep.crud import recipes as crud_recipes
from mealprep.db.init_db import init_db
from mealprep.db.session import SessionLocal, engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_RECIPES = [
    schemas.RecipeCreate(
        name="Classic Omelette",
        description="A fluffy three-egg omelette.",
        ingredients=[
            schemas.Ingredient(name="Eggs", amount=3, unit="pieces"),
            schemas.Ingredient(name="Butter", amount=1, unit="tbsp"),
            schemas.Ingredient(name="Salt", amount=0.25, unit="tsp", notes="to taste"),
        ],
        instructions="Whisk the eggs with salt. Melt the butter in a pan, add the eggs and fold when just set.",
        nutrition=schemas.NutritionInfo(calories=320, protein=19, carbs=1, fat=26),
        cuisine="French",
        prep_time_minutes=5,
        cook_time_minutes=5,
        difficulty="easy",
        tags=["breakfast", "vegetarian", "quick"],
    ),
    schemas.RecipeCreate(
        name="Chicken Stir Fry",
        description="Weeknight stir fry with crisp vegetables.",
        ingredients=[
            schemas.Ingredient(name="Chicken breast", amount=500, unit="g", notes="thinly sliced"),
            schemas.Ingredient(name="Bell pepper", amount=2, unit="pieces"),
            schemas.Ingredient(name="Broccoli", amount=200, unit="g"),
            schemas.Ingredient(name="Soy sauce", amount=3, unit="tbsp"),
            schemas.Ingredient(name="Garlic", amount=2, unit="cloves"),
        ],
        instructions="Sear the chicken in a hot wok. Add garlic and vegetables, stir fry for 4 minutes, finish with soy sauce.",
        nutrition=schemas.NutritionInfo(calories=410, protein=42, carbs=14, fat=18, sodium=890),
        cuisine="Chinese",
        prep_time_minutes=15,
        cook_time_minutes=10,
        difficulty="medium",
        tags=["dinner", "high-protein"],
    ),
    schemas.RecipeCreate(
        name="Overnight Oats",
        ingredients=[
            schemas.Ingredient(name="Rolled oats", amount=50, unit="g"),
            schemas.Ingredient(name="Milk", amount=120, unit="ml"),
            schemas.Ingredient(name="Chia seeds", amount=1, unit="tbsp"),
            schemas.Ingredient(name="Berries", amount=80, unit="g"),
        ],
        instructions="Stir oats, milk and chia together. Refrigerate overnight and top with berries.",
        nutrition=schemas.NutritionInfo(calories=290, protein=11, carbs=45, fat=8, fiber=8, sugar=12),
        prep_time_minutes=5,
        cook_time_minutes=0,
        difficulty="easy",
        tags=["breakfast", "make-ahead"],
    ),
]


def seed_recipes(db: Session) -> None:
    for recipe in SAMPLE_RECIPES:
        _, total = crud_recipes.search_recipes(db, search=recipe.name, limit=1)
        if total:
            logger.info(f"Recipe {recipe.name!r} already exists.")
            continue
        logger.info(f"Creating sample recipe {recipe.name!r}...")
        crud_recipes.create_recipe(db, recipe)


def main() -> None:
    init_db(engine)
    db = SessionLocal()
    try:
        seed_recipes(db)
    finally:
        db.close()
    logger.info("Sample data loaded.")


if __name__ == "__main__":
    main()

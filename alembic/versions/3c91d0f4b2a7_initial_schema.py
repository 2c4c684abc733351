"""initial_schema

Revision ID: 3c91d0f4b2a7
Revises:
Create Date: 2026-10-18 10:12:31.204918

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c91d0f4b2a7"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "recipes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=False),
        sa.Column("cuisine", sa.String(length=100), nullable=True),
        sa.Column(
            "difficulty",
            sa.Enum("easy", "medium", "hard", name="difficulty", native_enum=False),
            nullable=False,
        ),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("prep_time_minutes", sa.Integer(), nullable=False),
        sa.Column("cook_time_minutes", sa.Integer(), nullable=False),
        sa.Column("calories", sa.Float(), nullable=True),
        sa.Column("protein", sa.Float(), nullable=True),
        sa.Column("carbs", sa.Float(), nullable=True),
        sa.Column("fat", sa.Float(), nullable=True),
        sa.Column("fiber", sa.Float(), nullable=True),
        sa.Column("sugar", sa.Float(), nullable=True),
        sa.Column("sodium", sa.Float(), nullable=True),
        sa.Column("avg_rating", sa.Float(), nullable=False),
        sa.Column("rating_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("recipes", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_recipes_id"), ["id"], unique=False)
        batch_op.create_index(batch_op.f("ix_recipes_owner_id"), ["owner_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_recipes_name"), ["name"], unique=False)
        batch_op.create_index(batch_op.f("ix_recipes_cuisine"), ["cuisine"], unique=False)
        batch_op.create_index(batch_op.f("ix_recipes_avg_rating"), ["avg_rating"], unique=False)
        batch_op.create_index(batch_op.f("ix_recipes_created_at"), ["created_at"], unique=False)

    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("recipe_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("recipe_ingredients", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_recipe_ingredients_id"), ["id"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_recipe_ingredients_recipe_id"), ["recipe_id"], unique=False
        )

    op.create_table(
        "meal_plans",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "name", name="uq_meal_plans_user_name"),
    )
    with op.batch_alter_table("meal_plans", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_meal_plans_id"), ["id"], unique=False)
        batch_op.create_index(batch_op.f("ix_meal_plans_user_id"), ["user_id"], unique=False)

    op.create_table(
        "meal_plan_items",
        sa.Column("meal_plan_id", sa.Uuid(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column(
            "meal_type",
            sa.Enum("breakfast", "lunch", "dinner", "snack", name="mealtype", native_enum=False),
            nullable=False,
        ),
        sa.Column("recipe_id", sa.Uuid(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_meal_plan_items_day"),
        sa.ForeignKeyConstraint(["meal_plan_id"], ["meal_plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"]),
        sa.PrimaryKeyConstraint("meal_plan_id", "day_of_week", "meal_type"),
    )
    with op.batch_alter_table("meal_plan_items", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_meal_plan_items_recipe_id"), ["recipe_id"], unique=False
        )

    op.create_table(
        "favorites",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("recipe_id", sa.Uuid(), nullable=False),
        sa.Column("personal_rating", sa.Integer(), nullable=True),
        sa.Column("personal_notes", sa.Text(), nullable=True),
        sa.Column("added_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "personal_rating IS NULL OR personal_rating BETWEEN 1 AND 5",
            name="ck_favorites_rating",
        ),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "recipe_id"),
    )
    with op.batch_alter_table("favorites", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_favorites_recipe_id"), ["recipe_id"], unique=False)

    op.create_table(
        "collections",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=7), nullable=False),
        sa.Column("icon", sa.String(length=50), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "name", name="uq_collections_user_name"),
    )
    with op.batch_alter_table("collections", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_collections_id"), ["id"], unique=False)
        batch_op.create_index(batch_op.f("ix_collections_user_id"), ["user_id"], unique=False)

    op.create_table(
        "collection_recipes",
        sa.Column("collection_id", sa.Uuid(), nullable=False),
        sa.Column("recipe_id", sa.Uuid(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["collection_id"], ["collections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("collection_id", "recipe_id"),
    )
    with op.batch_alter_table("collection_recipes", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_collection_recipes_recipe_id"), ["recipe_id"], unique=False
        )


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table("collection_recipes", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_collection_recipes_recipe_id"))
    op.drop_table("collection_recipes")

    with op.batch_alter_table("collections", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_collections_user_id"))
        batch_op.drop_index(batch_op.f("ix_collections_id"))
    op.drop_table("collections")

    with op.batch_alter_table("favorites", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_favorites_recipe_id"))
    op.drop_table("favorites")

    with op.batch_alter_table("meal_plan_items", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_meal_plan_items_recipe_id"))
    op.drop_table("meal_plan_items")

    with op.batch_alter_table("meal_plans", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_meal_plans_user_id"))
        batch_op.drop_index(batch_op.f("ix_meal_plans_id"))
    op.drop_table("meal_plans")

    with op.batch_alter_table("recipe_ingredients", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_recipe_ingredients_recipe_id"))
        batch_op.drop_index(batch_op.f("ix_recipe_ingredients_id"))
    op.drop_table("recipe_ingredients")

    with op.batch_alter_table("recipes", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_recipes_created_at"))
        batch_op.drop_index(batch_op.f("ix_recipes_avg_rating"))
        batch_op.drop_index(batch_op.f("ix_recipes_cuisine"))
        batch_op.drop_index(batch_op.f("ix_recipes_name"))
        batch_op.drop_index(batch_op.f("ix_recipes_owner_id"))
        batch_op.drop_index(batch_op.f("ix_recipes_id"))
    op.drop_table("recipes")

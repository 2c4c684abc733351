
import copy
import pytest
from typing import Generator
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# It is important to set environment variables before importing app modules
import os
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "testing"

from mealprep import schemas
from mealprep.api.auth import create_access_token
from mealprep.crud import recipes as crud_recipes
from mealprep.db.session import Base, enable_sqlite_foreign_keys, get_db
from mealprep.main import app
from mealprep.services.generator import RecipeGenerator, get_recipe_generator


VALID_PAYLOAD = {
    "name": "Lemon Herb Chicken",
    "description": "Roast chicken thighs with lemon and thyme.",
    "ingredients": [
        {"name": "Chicken thighs", "amount": 4, "unit": "pieces"},
        {"name": "Lemon", "amount": 1, "unit": "piece", "notes": "zested and juiced"},
        {"name": "Thyme", "amount": 2, "unit": "tsp"},
    ],
    "instructions": "Toss everything together and roast at 200C for 35 minutes.",
    "nutrition": {"calories": 420, "protein": 38, "fat": 24},
    "cuisine": "Mediterranean",
    "prep_time_minutes": 10,
    "cook_time_minutes": 35,
    "total_time_minutes": 45,
    "difficulty": "easy",
    "tags": ["dinner", "gluten-free"],
}


class FakeGenerator(RecipeGenerator):
    """
    In-process generator. Each call consumes the next output; the last one
    repeats. An output that is an exception is raised instead of returned.
    """

    def __init__(self, *outputs):
        self.outputs = list(outputs) or [VALID_PAYLOAD]
        self.calls = []

    def generate(self, generator_input: dict) -> dict:
        self.calls.append(dict(generator_input))
        if len(self.outputs) > 1:
            output = self.outputs.pop(0)
        else:
            output = self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return copy.deepcopy(output)


@pytest.fixture
def db_engine():
    # Fresh in-memory database per test; StaticPool keeps the single connection alive.
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_engine) -> Generator:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def locking_selects(db) -> Generator:
    """SELECTs issued through `db`, rendered as PostgreSQL, that take row locks."""
    captured = []

    def capture(orm_execute_state):
        if orm_execute_state.is_select and not orm_execute_state.is_relationship_load:
            sql = str(orm_execute_state.statement.compile(dialect=postgresql.dialect()))
            if "FOR UPDATE" in sql:
                captured.append(sql)

    event.listen(db, "do_orm_execute", capture)
    yield captured
    event.remove(db, "do_orm_execute", capture)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def client(db, generator) -> Generator:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_recipe_generator] = lambda: generator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user_id) -> dict:
    token = create_access_token(data={"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def other_user_id():
    return uuid4()


@pytest.fixture
def headers(user_id):
    return auth_headers(user_id)


@pytest.fixture
def other_headers(other_user_id):
    return auth_headers(other_user_id)


def recipe_in(name: str = "Test Recipe", **overrides) -> schemas.RecipeCreate:
    data = {
        "name": name,
        "ingredients": [{"name": "Water", "amount": 1, "unit": "cup"}],
        "instructions": "Boil it.",
        "prep_time_minutes": 5,
        "cook_time_minutes": 10,
    }
    data.update(overrides)
    return schemas.RecipeCreate(**data)


@pytest.fixture
def make_recipe(db):
    def _make(name: str = "Test Recipe", owner_id=None, **overrides):
        return crud_recipes.create_recipe(db, recipe_in(name, **overrides), owner_id=owner_id)
    return _make

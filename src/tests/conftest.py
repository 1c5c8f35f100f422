"""Pytest configuration and fixtures for the stock engine tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from src.models.base import Base
from src.services.composition_graph import (
    CompositionSnapshot,
    IngredientRow,
    RecipeIngredientRow,
    RecipePreparationRow,
    RecipeRow,
    RecipeSubRecipeRow,
)
from src.services.stock_engine import StockEngine
from src.utils.config import reset_config

# Ids used by the burger menu fixtures
CHEESE = 1
BUN = 2
BURGER = 10
DOUBLE_BURGER = 11
WATER = 12
COMBO = 13


@pytest.fixture(autouse=True)
def fresh_config():
    """Make every test read configuration from its own environment."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    # Create in-memory SQLite database for testing
    engine = create_engine("sqlite:///:memory:", echo=False)

    # Create all tables
    Base.metadata.create_all(engine)

    # Create session factory
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import src.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    # Provide database to test
    yield Session

    # Cleanup
    Session.remove()
    Base.metadata.drop_all(engine)

    # Restore original session factory
    db_module.get_session_factory = original_get_session


@pytest.fixture(scope="function")
def burger_snapshot():
    """Provide the burger menu composition.

    Creates:
    - Cheese: 100 g on hand at 0.05 per g (minimum 20)
    - Bun: 10 on hand at 0.80 each (minimum 2)
    - Burger: 50 g Cheese + 1 Bun (cost 3.30, price 25.00)
    - Double Burger: 2 x Burger as a sub-recipe (cost 6.60, price 40.00)
    - Water: no ingredients (always in stock)
    - Combo: 1 x Burger, prepared at the grill and fries stations
    """
    return CompositionSnapshot(
        ingredients=[
            IngredientRow(id=CHEESE, name="Cheese", unit="g", stock=100, cost="0.05", min_stock=20),
            IngredientRow(id=BUN, name="Bun", unit="un", stock=10, cost="0.80", min_stock=2),
        ],
        recipes=[
            RecipeRow(id=BURGER, name="Burger", price="25.00"),
            RecipeRow(id=DOUBLE_BURGER, name="Double Burger", price="40.00"),
            RecipeRow(id=WATER, name="Water", price="5.00"),
            RecipeRow(id=COMBO, name="Combo", price="30.00"),
        ],
        recipe_ingredients=[
            RecipeIngredientRow(recipe_id=BURGER, ingredient_id=CHEESE, quantity=50),
            RecipeIngredientRow(recipe_id=BURGER, ingredient_id=BUN, quantity=1),
        ],
        recipe_sub_recipes=[
            RecipeSubRecipeRow(parent_recipe_id=DOUBLE_BURGER, child_recipe_id=BURGER, quantity=2),
            RecipeSubRecipeRow(parent_recipe_id=COMBO, child_recipe_id=BURGER, quantity=1),
        ],
        preparations=[
            RecipePreparationRow(recipe_id=COMBO, name="Grill", station_id="grill"),
            RecipePreparationRow(recipe_id=COMBO, name="Fries", station_id="fries"),
        ],
        version=1,
    )


@pytest.fixture(scope="function")
def engine(burger_snapshot):
    """Provide a memoizing StockEngine over the burger menu."""
    return StockEngine(burger_snapshot, memoize=True)

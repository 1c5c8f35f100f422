"""
Tests for the row-store models.

Tests cover:
- OrderItemStatus reservation flag and allowed transitions
- Ingredient low-stock property
- Persisting recipes with ingredient and sub-recipe edges
- to_dict() serialization of Decimal columns
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from src.models import (
    ORDER_ITEM_TRANSITIONS,
    Ingredient,
    Order,
    OrderItem,
    OrderItemStatus,
    Recipe,
    RecipeIngredient,
    RecipeSubRecipe,
)


class TestOrderItemStatus:
    """Tests for the order item lifecycle enum."""

    def test_only_cancelled_releases(self):
        assert OrderItemStatus.PENDING.reserves_stock
        assert OrderItemStatus.SERVED.reserves_stock
        assert not OrderItemStatus.CANCELLED.reserves_stock

    def test_cancelled_is_terminal(self):
        assert ORDER_ITEM_TRANSITIONS[OrderItemStatus.CANCELLED] == set()

    def test_every_live_status_can_cancel(self):
        for status in OrderItemStatus:
            if status is not OrderItemStatus.CANCELLED:
                assert OrderItemStatus.CANCELLED in ORDER_ITEM_TRANSITIONS[status]

    def test_string_values(self):
        assert OrderItemStatus("in_preparation") is OrderItemStatus.IN_PREPARATION


class TestIngredient:
    """Tests for Ingredient model."""

    def test_is_low_stock(self):
        assert Ingredient(name="Cheese", stock=Decimal("20"), min_stock=Decimal("20")).is_low_stock
        assert not Ingredient(name="Cheese", stock=Decimal("21"), min_stock=Decimal("20")).is_low_stock

    def test_to_dict_serializes_decimal(self, test_db):
        session = test_db()
        cheese = Ingredient(name="Cheese", unit="g", stock=Decimal("100"), cost=Decimal("0.05"))
        session.add(cheese)
        session.commit()

        data = cheese.to_dict()

        assert data["name"] == "Cheese"
        assert isinstance(data["stock"], str)
        assert Decimal(data["cost"]) == Decimal("0.05")
        assert isinstance(data["created_at"], str)

    def test_negative_stock_rejected(self, test_db):
        session = test_db()
        session.add(Ingredient(name="Cheese", stock=Decimal("-1")))

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


class TestRecipeComposition:
    """Tests for recipe edges."""

    def test_recipe_with_edges(self, test_db):
        session = test_db()
        cheese = Ingredient(name="Cheese", unit="g")
        burger = Recipe(name="Burger", price=Decimal("25.00"))
        double = Recipe(name="Double Burger", price=Decimal("40.00"))
        session.add_all([cheese, burger, double])
        session.flush()

        burger.recipe_ingredients.append(
            RecipeIngredient(ingredient_id=cheese.id, quantity=Decimal("50"))
        )
        double.sub_recipes.append(RecipeSubRecipe(child_recipe_id=burger.id, quantity=Decimal("2")))
        session.commit()

        assert burger.recipe_ingredients[0].ingredient.name == "Cheese"
        assert double.sub_recipes[0].child_recipe is burger
        assert burger.used_in_recipes[0].parent_recipe is double

    def test_duplicate_sub_recipe_edge_rejected(self, test_db):
        session = test_db()
        burger = Recipe(name="Burger")
        double = Recipe(name="Double Burger")
        session.add_all([burger, double])
        session.flush()

        session.add_all(
            [
                RecipeSubRecipe(parent_recipe_id=double.id, child_recipe_id=burger.id, quantity=1),
                RecipeSubRecipe(parent_recipe_id=double.id, child_recipe_id=burger.id, quantity=2),
            ]
        )
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


    def test_self_sub_recipe_edge_rejected(self, test_db):
        session = test_db()
        burger = Recipe(name="Burger")
        session.add(burger)
        session.flush()

        session.add(RecipeSubRecipe(parent_recipe_id=burger.id, child_recipe_id=burger.id, quantity=1))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


class TestOrderItem:
    """Tests for OrderItem model."""

    def test_status_round_trips(self, test_db):
        session = test_db()
        burger = Recipe(name="Burger")
        order = Order(table_number=3)
        session.add_all([burger, order])
        session.flush()

        item = OrderItem(
            order_id=order.id,
            recipe_id=burger.id,
            name="Burger",
            status=OrderItemStatus.READY,
            group_id="g1",
        )
        session.add(item)
        session.commit()
        session.expire_all()

        loaded = session.get(OrderItem, item.id)
        assert loaded.status is OrderItemStatus.READY
        assert loaded.quantity == Decimal("1")
        assert order.order_items[0].group_id == "g1"


class TestValidators:
    """Tests for model attribute validators."""

    def test_unknown_unit_rejected(self):
        with pytest.raises(ValueError):
            Ingredient(name="Cheese", unit="bucket")

    def test_known_unit_accepted(self):
        assert Ingredient(name="Cheese", unit="kg").unit == "kg"

    def test_unknown_order_type_rejected(self):
        with pytest.raises(ValueError):
            Order(order_type="Drive-through")

"""Tests for the StockEngine facade.

Tests cover:
- Cost queries and composition edits (version bump, memo invalidation)
- Cart operations gated by can_add
- Sending the cart to the kitchen with station splitting
- Open order lifecycle: status moves, cancellation, completion
- Menu stock badges and change notifications
"""

from decimal import Decimal

import pytest

from src.models.enums import OrderItemStatus
from src.services.availability_service import (
    REASON_COMPOSITION_CYCLE,
    REASON_INSUFFICIENT_STOCK,
    REASON_UNAVAILABLE,
    REASON_UNKNOWN_INGREDIENT,
)
from src.services.composition_graph import CompositionSnapshot, IngredientRow, RecipeRow
from src.services.exceptions import (
    CompositionCycleError,
    IngredientNotFound,
    OrderItemNotFound,
    RecipeNotFound,
    ValidationError,
)
from src.services.reservation_service import OrderItemRow
from src.services.stock_engine import StockEngine

CHEESE, BUN, BURGER, DOUBLE_BURGER, WATER, COMBO = 1, 2, 10, 11, 12, 13


class TestQueries:
    """Tests for read-only engine queries."""

    def test_effective_cost(self, engine):
        assert engine.get_effective_cost(BURGER) == Decimal("3.30")
        assert engine.get_effective_cost(DOUBLE_BURGER) == Decimal("6.60")

    def test_flattened_requirement_is_a_copy(self, engine):
        requirement = engine.get_flattened_requirement(DOUBLE_BURGER)
        requirement[CHEESE] = Decimal("1")

        assert engine.get_flattened_requirement(DOUBLE_BURGER)[CHEESE] == Decimal("100")

    def test_empty_engine(self):
        engine = StockEngine(memoize=False)

        assert engine.version == 0
        assert engine.menu_stock_status() == {}
        assert engine.reserved_for(CHEESE) == Decimal("0")

    def test_available_for(self, engine):
        engine.add_to_cart(BURGER)

        assert engine.available_for(CHEESE) == Decimal("50")
        assert engine.available_for(999) == Decimal("0")

    def test_low_stock_ingredients(self, engine):
        engine.ledger.apply_movement(CHEESE, -80)

        assert [i.name for i in engine.low_stock_ingredients()] == ["Cheese"]


class TestCompositionEdits:
    """Tests for edits that bump the snapshot version."""

    def test_update_ingredient_cost(self, engine):
        engine.get_effective_cost(DOUBLE_BURGER)

        engine.update_ingredient_cost(CHEESE, "0.10")

        assert engine.version == 2
        assert engine.get_effective_cost(DOUBLE_BURGER) == Decimal("11.60")

    def test_update_unknown_ingredient_cost(self, engine):
        with pytest.raises(IngredientNotFound):
            engine.update_ingredient_cost(999, 1)
        assert engine.version == 1

    def test_set_recipe_ingredients(self, engine):
        engine.set_recipe_ingredients(BURGER, [(CHEESE, 25), (BUN, 1)])

        assert engine.get_flattened_requirement(DOUBLE_BURGER) == {
            CHEESE: Decimal("50"),
            BUN: Decimal("2"),
        }

    def test_set_recipe_ingredients_unknown_recipe(self, engine):
        with pytest.raises(RecipeNotFound):
            engine.set_recipe_ingredients(999, [(CHEESE, 1)])

    def test_negative_quantity_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.set_recipe_ingredients(BURGER, [(CHEESE, -1)])
        assert engine.get_flattened_requirement(BURGER)[CHEESE] == Decimal("50")

    def test_sub_recipe_cycle(self, engine):
        engine.set_sub_recipes(BURGER, [(DOUBLE_BURGER, 1)])

        with pytest.raises(CompositionCycleError):
            engine.get_effective_cost(DOUBLE_BURGER)
        assert engine.can_add(BURGER).reason == REASON_COMPOSITION_CYCLE
        assert engine.find_cycle() is not None
        assert engine.get_effective_cost(WATER) == Decimal("0")

    def test_missing_ingredient_recorded_in_diagnostics(self, engine):
        engine.set_recipe_ingredients(WATER, [(999, 1)])

        result = engine.can_add(WATER)

        assert result.reason == REASON_UNKNOWN_INGREDIENT
        assert [d.ref_id for d in engine.diagnostics] == [999]

    def test_upsert_ingredient_writes_stock(self, engine):
        engine.upsert_ingredient(IngredientRow(id=3, name="Ice", unit="un", stock=40))

        assert engine.ledger.stock_of(3) == Decimal("40")
        assert engine.graph.ingredient(3).name == "Ice"

    def test_upsert_ingredient_negative_stock_leaves_state(self, engine):
        reasons = []
        engine.on_change.append(lambda _engine, reason: reasons.append(reason))

        with pytest.raises(ValidationError):
            engine.upsert_ingredient(IngredientRow(id=99, name="Ice", stock=-5))

        assert engine.version == 1
        assert engine.graph.ingredient(99) is None
        assert engine.ledger.stock_of(99) is None
        assert reasons == []

    def test_load_snapshot_replaces_everything(self, engine, burger_snapshot):
        engine.add_order_items([OrderItemRow(id=1, order_id=7, recipe_id=BURGER, quantity=1)])
        fresh = CompositionSnapshot(
            ingredients=[IngredientRow(id=CHEESE, name="Cheese", stock=500, cost="0.05")],
            recipes=burger_snapshot.recipes,
            recipe_ingredients=burger_snapshot.recipe_ingredients,
            recipe_sub_recipes=burger_snapshot.recipe_sub_recipes,
        )

        engine.load_snapshot(fresh, order_items=[])

        assert engine.version == 2
        assert engine.ledger.stock_of(CHEESE) == Decimal("500")
        assert engine.order_items == []


class TestCart:
    """Tests for cart operations."""

    def test_add_to_cart_approved(self, engine):
        result, item = engine.add_to_cart(BURGER, 2, notes="no onion")

        assert result.ok
        assert item.quantity == Decimal("2")
        assert engine.reserved_for(CHEESE) == Decimal("100")

    def test_add_to_cart_rejected_leaves_cart_unchanged(self, engine):
        engine.add_to_cart(DOUBLE_BURGER)

        result, item = engine.add_to_cart(BURGER)

        assert result.reason == REASON_INSUFFICIENT_STOCK
        assert result.limiting_ingredient_id == CHEESE
        assert item is None
        assert len(engine.cart) == 1

    def test_unavailable_recipe_rejected(self, engine):
        engine.upsert_recipe(RecipeRow(id=BURGER, name="Burger", price="25.00", is_available=False))

        result, item = engine.add_to_cart(BURGER)

        assert result.reason == REASON_UNAVAILABLE
        assert item is None

    def test_update_cart_quantity_checks_increase(self, engine):
        _, item = engine.add_to_cart(BURGER)

        result, updated = engine.update_cart_quantity(item.id, 2)

        assert not result.ok
        assert updated is None
        assert engine.cart.get(item.id).quantity == Decimal("1")

    def test_update_cart_quantity_decrease(self, engine):
        _, item = engine.add_to_cart(BURGER, 2)

        result, updated = engine.update_cart_quantity(item.id, -1)
        assert result.ok
        assert updated.quantity == Decimal("1")

        _, removed = engine.update_cart_quantity(item.id, -1)
        assert removed is None
        assert len(engine.cart) == 0

    def test_remove_from_cart_releases(self, engine):
        _, item = engine.add_to_cart(BURGER)

        engine.remove_from_cart(item.id)

        assert engine.reserved_for(CHEESE) == Decimal("0")


class TestSendCartToKitchen:
    """Tests for send_cart_to_kitchen()."""

    def test_rows_created_and_cart_cleared(self, engine):
        engine.add_to_cart(BURGER)
        engine.add_to_cart(COMBO)
        reserved_before = engine.reservations()

        rows = engine.send_cart_to_kitchen(order_id=7)

        assert len(engine.cart) == 0
        assert len(rows) == 3
        assert engine.reservations() == reserved_before

    def test_single_station_row(self, engine):
        engine.add_to_cart(BURGER, 1, notes="rare")

        (row,) = engine.send_cart_to_kitchen(order_id=7)

        assert row.name == "Burger"
        assert row.station_id == "default"
        assert row.group_id is None
        assert row.price == Decimal("25.00")
        assert row.notes == "rare"
        assert row.status is OrderItemStatus.PENDING

    def test_multi_station_recipe_is_split(self, engine):
        engine.add_to_cart(COMBO)

        rows = engine.send_cart_to_kitchen(order_id=7)

        assert [r.station_id for r in rows] == ["grill", "fries"]
        assert rows[0].group_id is not None
        assert rows[0].group_id == rows[1].group_id
        assert all(r.quantity == Decimal("1") for r in rows)
        assert sum(r.price for r in rows) == Decimal("30.00")
        assert engine.reserved_for(CHEESE) == Decimal("50")

    def test_empty_cart(self, engine):
        assert engine.send_cart_to_kitchen(order_id=7) == []


class TestOpenOrders:
    """Tests for order item lifecycle."""

    def test_status_moves_forward(self, engine):
        engine.add_order_items([OrderItemRow(id=1, order_id=7, recipe_id=BURGER, quantity=1)])

        updated = engine.update_order_item_status(1, "in_preparation")

        assert updated.status is OrderItemStatus.IN_PREPARATION
        assert engine.reserved_for(CHEESE) == Decimal("50")

    def test_status_cannot_skip(self, engine):
        engine.add_order_items([OrderItemRow(id=1, order_id=7, recipe_id=BURGER, quantity=1)])

        with pytest.raises(ValidationError):
            engine.update_order_item_status(1, OrderItemStatus.SERVED)

    def test_cancel_releases_immediately(self, engine):
        engine.set_open_order_items(
            [
                OrderItemRow(id=1, order_id=7, recipe_id=BURGER, quantity=1),
                OrderItemRow(id=2, order_id=7, recipe_id=BURGER, quantity=1),
            ]
        )
        assert not engine.can_add(BURGER).ok

        engine.cancel_order_item(2)

        assert engine.can_add(BURGER).ok
        assert engine.reserved_for(CHEESE) == Decimal("50")

    def test_cancel_through_status(self, engine):
        engine.add_order_items([OrderItemRow(id=1, order_id=7, recipe_id=BURGER, quantity=1)])

        engine.update_order_item_status(1, OrderItemStatus.CANCELLED)

        assert engine.reserved_for(CHEESE) == Decimal("0")
        with pytest.raises(ValidationError):
            engine.update_order_item_status(1, OrderItemStatus.PENDING)

    def test_cancel_twice_rejected(self, engine):
        engine.add_order_items([OrderItemRow(id=1, order_id=7, recipe_id=BURGER, quantity=1)])
        engine.cancel_order_item(1)

        with pytest.raises(ValidationError):
            engine.cancel_order_item(1)

    def test_cancel_grouped_row_cancels_group(self, engine):
        engine.add_to_cart(COMBO)
        rows = engine.send_cart_to_kitchen(order_id=7)

        engine.cancel_order_item(rows[1].id)

        assert all(r.status is OrderItemStatus.CANCELLED for r in engine.order_items)
        assert engine.reserved_for(CHEESE) == Decimal("0")

    def test_cancel_unknown_item(self, engine):
        with pytest.raises(OrderItemNotFound):
            engine.cancel_order_item(99)

    def test_complete_order_releases_without_deducting(self, engine):
        engine.add_order_items(
            [
                OrderItemRow(id=1, order_id=7, recipe_id=BURGER, quantity=1),
                OrderItemRow(id=2, order_id=8, recipe_id=BURGER, quantity=1),
            ]
        )

        removed = engine.complete_order(7)

        assert [r.id for r in removed] == [1]
        assert engine.reserved_for(CHEESE) == Decimal("50")
        assert engine.ledger.stock_of(CHEESE) == Decimal("100")


class TestMenuStockStatus:
    """Tests for menu_stock_status()."""

    def test_all_in_stock(self, engine):
        assert engine.menu_stock_status() == {
            BURGER: True,
            DOUBLE_BURGER: True,
            WATER: True,
            COMBO: True,
        }

    def test_reserved_cheese_marks_dishes_out(self, engine):
        engine.add_to_cart(DOUBLE_BURGER)

        status = engine.menu_stock_status()

        assert status[BURGER] is False
        assert status[DOUBLE_BURGER] is False
        assert status[COMBO] is False
        assert status[WATER] is True

    def test_sub_recipes_are_not_listed(self, engine):
        engine.upsert_recipe(RecipeRow(id=50, name="Sauce", is_sub_recipe=True))

        assert 50 not in engine.menu_stock_status()

    def test_cyclic_recipe_is_out(self, engine):
        engine.set_sub_recipes(BURGER, [(DOUBLE_BURGER, 1)])

        status = engine.menu_stock_status()

        assert status[BURGER] is False
        assert status[WATER] is True


class TestChangeNotifications:
    """Tests for on_change listeners."""

    def test_reasons(self, engine):
        reasons = []
        engine.on_change.append(lambda _engine, reason: reasons.append(reason))

        _, item = engine.add_to_cart(BURGER)
        engine.update_ingredient_cost(BUN, "0.90")
        engine.ledger.apply_movement(CHEESE, 10)
        engine.send_cart_to_kitchen(order_id=7)

        assert reasons == ["cart", "composition", "stock", "cart", "orders"]

    def test_rejected_add_does_not_notify(self, engine):
        engine.ledger.set_stock(CHEESE, 0)
        reasons = []
        engine.on_change.append(lambda _engine, reason: reasons.append(reason))

        engine.add_to_cart(BURGER)

        assert reasons == []

    def test_load_snapshot_notifies_after_stock_is_replaced(self, engine, burger_snapshot):
        """Listeners re-querying on a new snapshot see its stock, not the old one."""
        seen = []

        def listener(eng, reason):
            seen.append((reason, eng.ledger.stock_of(CHEESE), eng.can_add(BURGER).ok))

        engine.on_change.append(listener)
        no_cheese = CompositionSnapshot(
            ingredients=[
                IngredientRow(id=CHEESE, name="Cheese", stock=0, cost="0.05"),
                IngredientRow(id=BUN, name="Bun", stock=10, cost="0.80"),
            ],
            recipes=burger_snapshot.recipes,
            recipe_ingredients=burger_snapshot.recipe_ingredients,
            recipe_sub_recipes=burger_snapshot.recipe_sub_recipes,
        )

        engine.load_snapshot(no_cheese, order_items=[])

        assert [reason for reason, _, _ in seen] == ["composition", "stock", "orders"]
        assert all(stock == Decimal("0") and not ok for _, stock, ok in seen)

    def test_upsert_ingredient_notifies_once_per_reason(self, engine):
        reasons = []
        engine.on_change.append(lambda _engine, reason: reasons.append(reason))

        engine.upsert_ingredient(IngredientRow(id=3, name="Ice", stock=40))

        assert reasons == ["composition", "stock"]

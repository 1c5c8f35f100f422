"""
Stock Engine - state container and public API of the costing and
reservation engine.

One StockEngine instance serves one point-of-sale client. It owns:

- the current CompositionSnapshot and a version counter bumped on every
  composition change (ingredient costs, recipes, edges)
- the CostEngine memo, cleared wholesale whenever the version changes
- the StockLedger, the active Cart and the open order items
- an ``on_change`` listener list

Everything is synchronous and re-derived from the current state on demand,
so a ``can_add`` call followed by the cart mutation it approved always sees
a consistent view. Another terminal may approve against the same stock
before the sale is persisted; ``can_add`` is an optimistic local check and
the authoritative check belongs to the commit on the server side.

Usage:
    engine = StockEngine(snapshot, order_items=open_items)

    result, item = engine.add_to_cart(recipe_id=burger.id)
    if not result:
        print(f"Not enough {engine.graph.ingredient(result.limiting_ingredient_id).name}")
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from src.models.enums import ORDER_ITEM_TRANSITIONS, OrderItemStatus
from src.services.availability_service import (
    REASON_UNAVAILABLE,
    AvailabilityChecker,
    AvailabilityResult,
)
from src.services.composition_graph import (
    CompositionGraph,
    CompositionSnapshot,
    IngredientRow,
    RecipeIngredientRow,
    RecipeRow,
    RecipeSubRecipeRow,
)
from src.services.cost_engine import CostEngine, ResolvedRecipe
from src.services.dto_utils import Number, to_decimal
from src.services.exceptions import (
    CompositionCycleError,
    IngredientNotFound,
    MissingReferenceError,
    RecipeNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.reservation_service import (
    Cart,
    CartItem,
    OrderItemRow,
    ReservationAccumulator,
)
from src.services.stock_ledger import StockLedger
from src.utils.constants import DEFAULT_STATION_ID, ERROR_INVALID_NON_NEGATIVE

logger = get_service_logger(__name__)

ZERO = Decimal("0")

# Change reasons passed to on_change listeners
CHANGE_COMPOSITION = "composition"
CHANGE_STOCK = "stock"
CHANGE_CART = "cart"
CHANGE_ORDERS = "orders"

ChangeListener = Callable[["StockEngine", str], None]


class StockEngine:
    """
    Costing and stock reservation engine for one client instance.

    Args:
        snapshot: Initial composition snapshot (empty when omitted)
        order_items: Items of currently open orders
        memoize: Cache resolved recipes per version (config default when None)
    """

    def __init__(
        self,
        snapshot: Optional[CompositionSnapshot] = None,
        order_items: Iterable[OrderItemRow] = (),
        memoize: Optional[bool] = None,
    ):
        if snapshot is None:
            snapshot = CompositionSnapshot()
        self._snapshot = snapshot
        self._graph = CompositionGraph(snapshot)

        self.diagnostics: List[MissingReferenceError] = []
        self.cost_engine = CostEngine(self._graph, memoize=memoize, diagnostics=self.diagnostics)
        self.ledger = StockLedger(snapshot.ingredients)
        self.cart = Cart()
        self.accumulator = ReservationAccumulator(self.cost_engine, self.cart, order_items)
        self.checker = AvailabilityChecker(self.cost_engine, self.ledger, self.accumulator)

        self.on_change: List[ChangeListener] = []
        self._pending: Optional[List[str]] = None
        self.ledger.on_change.append(lambda _ledger: self._notify(CHANGE_STOCK))
        self.cart.on_change.append(lambda _cart: self._notify(CHANGE_CART))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def snapshot(self) -> CompositionSnapshot:
        return self._snapshot

    @property
    def graph(self) -> CompositionGraph:
        return self._graph

    @property
    def order_items(self) -> List[OrderItemRow]:
        return self.accumulator.order_items

    def _notify(self, reason: str) -> None:
        if self._pending is not None:
            if reason not in self._pending:
                self._pending.append(reason)
            return
        for listener in list(self.on_change):
            listener(self, reason)

    @contextmanager
    def _deferred_notifications(self):
        """Hold listener notifications until every part of an update is applied."""
        if self._pending is not None:
            yield
            return
        self._pending = []
        try:
            yield
        finally:
            reasons, self._pending = self._pending, None
        for reason in reasons:
            self._notify(reason)

    def _install(self, snapshot: CompositionSnapshot) -> None:
        """Adopt a new composition snapshot under the next version number."""
        snapshot = replace(snapshot, version=max(snapshot.version, self.version + 1))
        self._snapshot = snapshot
        self._graph = CompositionGraph(snapshot)
        self.cost_engine.rebind(self._graph)
        log_operation(
            logger,
            operation="install_snapshot",
            outcome="success",
            level=logging.DEBUG,
            version=snapshot.version,
        )
        self._notify(CHANGE_COMPOSITION)

    # ------------------------------------------------------------------
    # Composition updates (pushed by the persistence collaborator)
    # ------------------------------------------------------------------

    def load_snapshot(
        self,
        snapshot: CompositionSnapshot,
        order_items: Optional[Iterable[OrderItemRow]] = None,
    ) -> None:
        """
        Replace composition and stock with a fresh snapshot.

        Args:
            snapshot: New snapshot; stock levels in it replace the ledger
            order_items: New open order items, or None to keep the current ones
        """
        with self._deferred_notifications():
            self._install(snapshot)
            self.ledger.replace(snapshot.ingredients)
            if order_items is not None:
                self.accumulator.set_order_items(order_items)
                self._notify(CHANGE_ORDERS)

    def update_ingredient_cost(self, ingredient_id: int, cost: Number) -> IngredientRow:
        """
        Change an ingredient's unit cost.

        Raises:
            IngredientNotFound: If the ingredient is not in the snapshot
        """
        current = self._graph.ingredient(ingredient_id)
        if current is None:
            raise IngredientNotFound(ingredient_id)
        updated = replace(current, cost=to_decimal(cost))
        ingredients = tuple(
            updated if i.id == ingredient_id else i for i in self._snapshot.ingredients
        )
        self._install(replace(self._snapshot, ingredients=ingredients))
        return updated

    def upsert_ingredient(self, ingredient: IngredientRow) -> None:
        """
        Add or replace an ingredient row; its stock is written to the ledger.

        Raises:
            ValidationError: If the row carries negative stock
        """
        if ingredient.stock < ZERO:
            raise ValidationError(
                [f"Stock for ingredient {ingredient.id}: {ERROR_INVALID_NON_NEGATIVE}"]
            )
        ingredients = tuple(i for i in self._snapshot.ingredients if i.id != ingredient.id)
        with self._deferred_notifications():
            self._install(replace(self._snapshot, ingredients=ingredients + (ingredient,)))
            self.ledger.set_stock(ingredient.id, ingredient.stock)

    def upsert_recipe(self, recipe: RecipeRow) -> None:
        """Add or replace a recipe header (price, flags)."""
        recipes = tuple(r for r in self._snapshot.recipes if r.id != recipe.id)
        self._install(replace(self._snapshot, recipes=recipes + (recipe,)))

    def set_recipe_ingredients(
        self, recipe_id: int, edges: Iterable[Tuple[int, Number]]
    ) -> None:
        """
        Replace a recipe's direct ingredient edges.

        Args:
            recipe_id: Recipe being edited
            edges: (ingredient_id, quantity per unit) pairs

        Raises:
            RecipeNotFound: If the recipe is not in the snapshot
            ValidationError: If any quantity is negative
        """
        self._require_recipe(recipe_id)
        new_edges = tuple(
            RecipeIngredientRow(recipe_id=recipe_id, ingredient_id=i, quantity=q)
            for i, q in edges
        )
        _validate_quantities(e.quantity for e in new_edges)
        kept = tuple(e for e in self._snapshot.recipe_ingredients if e.recipe_id != recipe_id)
        self._install(replace(self._snapshot, recipe_ingredients=kept + new_edges))

    def set_sub_recipes(self, recipe_id: int, edges: Iterable[Tuple[int, Number]]) -> None:
        """
        Replace a recipe's sub-recipe edges.

        Acyclicity is not enforced here; a cycle surfaces as
        CompositionCycleError when an affected recipe is resolved.

        Args:
            recipe_id: Parent recipe being edited
            edges: (child_recipe_id, quantity per unit) pairs

        Raises:
            RecipeNotFound: If the parent recipe is not in the snapshot
            ValidationError: If any quantity is negative
        """
        self._require_recipe(recipe_id)
        new_edges = tuple(
            RecipeSubRecipeRow(parent_recipe_id=recipe_id, child_recipe_id=c, quantity=q)
            for c, q in edges
        )
        _validate_quantities(e.quantity for e in new_edges)
        kept = tuple(
            e for e in self._snapshot.recipe_sub_recipes if e.parent_recipe_id != recipe_id
        )
        self._install(replace(self._snapshot, recipe_sub_recipes=kept + new_edges))

    def _require_recipe(self, recipe_id: int) -> RecipeRow:
        recipe = self._graph.recipe(recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)
        return recipe

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def resolve(self, recipe_id: int) -> ResolvedRecipe:
        return self.cost_engine.resolve(recipe_id)

    def get_effective_cost(self, recipe_id: int) -> Decimal:
        """
        Ingredient cost of one unit of a recipe, sub-recipes included.

        Raises:
            CompositionCycleError: If the recipe's composition is circular
        """
        return self.cost_engine.resolve(recipe_id).total_cost

    def get_flattened_requirement(self, recipe_id: int) -> Dict[int, Decimal]:
        """
        Raw ingredient quantities for one unit of a recipe.

        Returns:
            A copy of the flattened map; callers may mutate it freely

        Raises:
            CompositionCycleError: If the recipe's composition is circular
        """
        return dict(self.cost_engine.resolve(recipe_id).flattened)

    def can_add(self, recipe_id: int, quantity: Number = 1) -> AvailabilityResult:
        """Check whether ``quantity`` more units of a recipe can be reserved."""
        return self.checker.can_add(recipe_id, quantity)

    def reserved_for(self, ingredient_id: int) -> Decimal:
        """Quantity of an ingredient claimed by open orders and the cart."""
        return self.accumulator.reserved_for(ingredient_id)

    def reservations(self) -> Dict[int, Decimal]:
        return self.accumulator.reservations()

    def available_for(self, ingredient_id: int) -> Decimal:
        """Unreserved stock of an ingredient (zero for unknown ingredients)."""
        stock = self.ledger.stock_of(ingredient_id)
        if stock is None:
            return ZERO
        return stock - self.accumulator.reserved_for(ingredient_id)

    def menu_stock_status(self) -> Dict[int, bool]:
        """
        In-stock flag for every sellable recipe, for menu badges.

        A recipe is in stock when every ingredient of its bill of materials
        has unreserved stock above zero. Recipes with no ingredients are
        always in stock; recipes that cannot be fully resolved are not.

        Returns:
            Dict mapping sellable recipe id to its in-stock flag
        """
        reserved = self.accumulator.reservations()
        status: Dict[int, bool] = {}
        for recipe_id in self._graph.recipe_ids():
            recipe = self._graph.recipe(recipe_id)
            if recipe.is_sub_recipe:
                continue
            try:
                resolved = self.cost_engine.resolve(recipe_id)
            except CompositionCycleError:
                status[recipe_id] = False
                continue
            if not resolved.is_complete:
                status[recipe_id] = False
                continue
            in_stock = True
            for ingredient_id in resolved.flattened:
                stock = self.ledger.stock_of(ingredient_id)
                if stock is None or stock - reserved.get(ingredient_id, ZERO) <= ZERO:
                    in_stock = False
                    break
            status[recipe_id] = in_stock
        return status

    def low_stock_ingredients(self) -> List[IngredientRow]:
        """Ingredient rows at or below their minimum stock."""
        return [
            self._graph.ingredient(i)
            for i in self.ledger.low_stock()
            if self._graph.ingredient(i) is not None
        ]

    def find_cycle(self) -> Optional[List[int]]:
        return self._graph.find_cycle()

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    def add_to_cart(
        self, recipe_id: int, quantity: Number = 1, notes: str = ""
    ) -> Tuple[AvailabilityResult, Optional[CartItem]]:
        """
        Add a recipe to the active cart if stock allows it.

        Returns:
            (result, item); item is None when the result is a rejection
        """
        quantity = to_decimal(quantity)
        recipe = self._graph.recipe(recipe_id)
        if recipe is not None and not recipe.is_available:
            log_operation(
                logger,
                operation="add_to_cart",
                outcome=REASON_UNAVAILABLE,
                recipe_id=recipe_id,
            )
            return (
                AvailabilityResult(
                    ok=False, recipe_id=recipe_id, quantity=quantity, reason=REASON_UNAVAILABLE
                ),
                None,
            )

        result = self.checker.can_add(recipe_id, quantity)
        if not result.ok:
            return result, None
        return result, self.cart.add(recipe_id, quantity, notes)

    def update_cart_quantity(
        self, item_id: str, change: Number
    ) -> Tuple[AvailabilityResult, Optional[CartItem]]:
        """
        Change a cart line's quantity; increases are checked against stock.

        Returns:
            (result, item); item is None if the line was removed or the
            increase was rejected
        """
        item = self.cart.get(item_id)
        change = to_decimal(change)
        if change > ZERO:
            result = self.checker.can_add(item.recipe_id, change)
            if not result.ok:
                return result, None
        else:
            result = AvailabilityResult(ok=True, recipe_id=item.recipe_id, quantity=change)
        return result, self.cart.update_quantity(item_id, change)

    def set_cart_notes(self, item_id: str, notes: str) -> CartItem:
        return self.cart.set_notes(item_id, notes)

    def remove_from_cart(self, item_id: str) -> CartItem:
        """Remove a cart line, releasing its reservation immediately."""
        return self.cart.remove(item_id)

    def send_cart_to_kitchen(self, order_id) -> List[OrderItemRow]:
        """
        Turn the cart into pending order items of an open order.

        A recipe with several preparations is split into one row per
        station; those rows share a fresh group_id and each carries the
        full quantity. The cart is emptied; total reservation is unchanged.

        Returns:
            The created order item rows
        """
        rows: List[OrderItemRow] = []
        for item in self.cart:
            recipe = self._graph.recipe(item.recipe_id)
            name = recipe.name if recipe is not None else f"Recipe #{item.recipe_id}"
            line_price = (recipe.price if recipe is not None else ZERO) * item.quantity
            preparations = self._graph.preparations(item.recipe_id)

            if preparations:
                group_id = str(uuid.uuid4())
                share = line_price / len(preparations)
                for prep in preparations:
                    rows.append(
                        OrderItemRow(
                            id=str(uuid.uuid4()),
                            order_id=order_id,
                            recipe_id=item.recipe_id,
                            quantity=item.quantity,
                            name=f"{name} ({prep.name})",
                            notes=item.notes or None,
                            station_id=prep.station_id,
                            price=share,
                            group_id=group_id,
                        )
                    )
            else:
                rows.append(
                    OrderItemRow(
                        id=str(uuid.uuid4()),
                        order_id=order_id,
                        recipe_id=item.recipe_id,
                        quantity=item.quantity,
                        name=name,
                        notes=item.notes or None,
                        station_id=DEFAULT_STATION_ID,
                        price=line_price,
                    )
                )

        if not rows:
            return rows

        self.accumulator.add_order_items(rows)
        self.cart.clear()
        log_operation(
            logger,
            operation="send_cart_to_kitchen",
            outcome="success",
            order_id=order_id,
            item_count=len(rows),
        )
        self._notify(CHANGE_ORDERS)
        return rows

    # ------------------------------------------------------------------
    # Open orders
    # ------------------------------------------------------------------

    def set_open_order_items(self, items: Iterable[OrderItemRow]) -> None:
        """Replace all open order items (e.g., after a realtime push)."""
        self.accumulator.set_order_items(items)
        self._notify(CHANGE_ORDERS)

    def add_order_items(self, items: Iterable[OrderItemRow]) -> None:
        self.accumulator.add_order_items(items)
        self._notify(CHANGE_ORDERS)

    def update_order_item_status(self, item_id, status) -> OrderItemRow:
        """
        Move an order item along its kitchen lifecycle.

        Raises:
            OrderItemNotFound: If the item is not among open order items
            ValidationError: If the transition is not allowed
        """
        status = OrderItemStatus(status)
        current = self.accumulator.get_order_item(item_id)
        if status is OrderItemStatus.CANCELLED:
            return self.cancel_order_item(item_id)
        if status not in ORDER_ITEM_TRANSITIONS[current.status]:
            raise ValidationError(
                [f"Cannot move order item {item_id} from {current.status.value} to {status.value}"]
            )
        updated = self.accumulator.replace_order_item(item_id, status=status)
        self._notify(CHANGE_ORDERS)
        return updated

    def cancel_order_item(self, item_id) -> OrderItemRow:
        """
        Cancel an order item, releasing its reservation immediately.

        Cancelling one row of a station-split dish cancels every row of its
        group, since together they are one logical unit.

        Raises:
            OrderItemNotFound: If the item is not among open order items
            ValidationError: If the item is already cancelled
        """
        current = self.accumulator.get_order_item(item_id)
        if current.status is OrderItemStatus.CANCELLED:
            raise ValidationError([f"Order item {item_id} is already cancelled"])

        if current.group_id is None:
            targets = [current]
        else:
            targets = [i for i in self.accumulator.order_items if i.group_id == current.group_id]

        updated = None
        for target in targets:
            row = self.accumulator.replace_order_item(target.id, status=OrderItemStatus.CANCELLED)
            if target.id == item_id:
                updated = row

        log_operation(
            logger,
            operation="cancel_order_item",
            outcome="success",
            order_item_id=item_id,
            recipe_id=current.recipe_id,
            rows=len(targets),
        )
        self._notify(CHANGE_ORDERS)
        return updated

    def complete_order(self, order_id) -> List[OrderItemRow]:
        """
        Remove a paid order from the open set, releasing all its reservations.

        Stock is not deducted here; the inventory collaborator deducts it
        when it finalizes the sale.

        Returns:
            The order's item rows that were released
        """
        removed = self.accumulator.remove_order(order_id)
        log_operation(
            logger,
            operation="complete_order",
            outcome="success",
            order_id=order_id,
            item_count=len(removed),
        )
        self._notify(CHANGE_ORDERS)
        return removed


def _validate_quantities(quantities: Iterable[Decimal]) -> None:
    errors = [f"Quantity {q}: {ERROR_INVALID_NON_NEGATIVE}" for q in quantities if q < ZERO]
    if errors:
        raise ValidationError(errors)

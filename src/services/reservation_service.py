"""
Reservation Service - stock already claimed by open orders and the cart.

Reservation for an ingredient is the sum, over every claiming item, of the
item's recipe's flattened requirement scaled by the item's quantity.
Claiming items are:

1. Order items of open (unpaid) orders whose status is not cancelled.
   Rows sharing a group_id are one dish split across kitchen stations and
   count once.
2. Items sitting unsent in the active cart.

Reading the flattened bill of materials (never the raw edges) means a
sub-recipe used by several items is never counted twice.

Totals are recomputed from the current items on every query; nothing is
patched incrementally.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Union

from src.models.enums import OrderItemStatus
from src.services.cost_engine import CostEngine
from src.services.dto_utils import Number, to_decimal
from src.services.exceptions import (
    CartItemNotFound,
    CompositionCycleError,
    OrderItemNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import ERROR_INVALID_POSITIVE, MAX_NOTES_LENGTH

logger = get_service_logger(__name__)

ZERO = Decimal("0")

ItemId = Union[int, str]


@dataclass(frozen=True)
class OrderItemRow:
    """An order item of an open order, as pushed by the persistence layer."""

    id: ItemId
    order_id: ItemId
    recipe_id: int
    quantity: Decimal
    status: OrderItemStatus = OrderItemStatus.PENDING
    group_id: Optional[str] = None
    name: str = ""
    notes: Optional[str] = None
    station_id: Optional[str] = None
    price: Decimal = ZERO

    def __post_init__(self):
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "price", to_decimal(self.price))
        object.__setattr__(self, "status", OrderItemStatus(self.status))


@dataclass
class CartItem:
    """An item in the active, not-yet-sent cart."""

    id: str
    recipe_id: int
    quantity: Decimal
    notes: str = ""


def collapse_groups(items: Iterable[OrderItemRow]) -> List[OrderItemRow]:
    """
    Reduce order item rows to one row per logical dish.

    Cancelled rows are dropped. Rows without a group_id are kept as-is; for
    each group_id the first non-cancelled row stands for the whole group.

    Args:
        items: Order item rows in arrival order

    Returns:
        Rows that hold a reservation, one per logical dish
    """
    seen_groups = set()
    result = []
    for item in items:
        if not item.status.reserves_stock:
            continue
        if item.group_id is None:
            result.append(item)
            continue
        if item.group_id in seen_groups:
            continue
        seen_groups.add(item.group_id)
        result.append(item)
    return result


def _validate_notes(notes: str) -> None:
    if notes and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError([f"Notes cannot exceed {MAX_NOTES_LENGTH} characters"])


class Cart:
    """
    The active cart of one point-of-sale client.

    The cart never checks stock itself; StockEngine.add_to_cart runs the
    availability check before calling add().
    """

    def __init__(self):
        self._items: List[CartItem] = []
        self.on_change: List[Callable[["Cart"], None]] = []

    def _notify(self) -> None:
        for listener in list(self.on_change):
            listener(self)

    @property
    def items(self) -> List[CartItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def get(self, item_id: str) -> CartItem:
        for item in self._items:
            if item.id == item_id:
                return item
        raise CartItemNotFound(item_id)

    def add(self, recipe_id: int, quantity: Number = 1, notes: str = "") -> CartItem:
        """
        Append a new line to the cart.

        Raises:
            ValidationError: If quantity is not positive or notes are too long
        """
        quantity = to_decimal(quantity)
        if quantity <= ZERO:
            raise ValidationError([f"Cart quantity: {ERROR_INVALID_POSITIVE}"])
        _validate_notes(notes)
        item = CartItem(id=str(uuid.uuid4()), recipe_id=recipe_id, quantity=quantity, notes=notes)
        self._items.append(item)
        self._notify()
        return item

    def update_quantity(self, item_id: str, change: Number) -> Optional[CartItem]:
        """
        Change a line's quantity by ``change``; lines reaching zero are removed.

        Returns:
            The updated item, or None if it was removed
        """
        item = self.get(item_id)
        new_quantity = item.quantity + to_decimal(change)
        if new_quantity <= ZERO:
            self._items.remove(item)
            self._notify()
            return None
        item.quantity = new_quantity
        self._notify()
        return item

    def set_notes(self, item_id: str, notes: str) -> CartItem:
        item = self.get(item_id)
        _validate_notes(notes)
        item.notes = notes.strip()
        self._notify()
        return item

    def remove(self, item_id: str) -> CartItem:
        item = self.get(item_id)
        self._items.remove(item)
        self._notify()
        return item

    def clear(self) -> List[CartItem]:
        """Empty the cart and return the removed items."""
        removed = self._items
        self._items = []
        self._notify()
        return removed


class ReservationAccumulator:
    """
    Sums per-ingredient reservations of open order items and the cart.

    Args:
        cost_engine: Source of flattened requirements
        cart: Active cart (a new empty cart when omitted)
        order_items: Items of currently open orders
    """

    def __init__(
        self,
        cost_engine: CostEngine,
        cart: Optional[Cart] = None,
        order_items: Iterable[OrderItemRow] = (),
    ):
        self.cost_engine = cost_engine
        self.cart = cart if cart is not None else Cart()
        self._order_items: List[OrderItemRow] = list(order_items)

    # ------------------------------------------------------------------
    # Open order items
    # ------------------------------------------------------------------

    @property
    def order_items(self) -> List[OrderItemRow]:
        return list(self._order_items)

    def set_order_items(self, items: Iterable[OrderItemRow]) -> None:
        """Replace all open order items (e.g., after a realtime push)."""
        self._order_items = list(items)

    def add_order_items(self, items: Iterable[OrderItemRow]) -> None:
        self._order_items.extend(items)

    def get_order_item(self, item_id: ItemId) -> OrderItemRow:
        for item in self._order_items:
            if item.id == item_id:
                return item
        raise OrderItemNotFound(item_id)

    def replace_order_item(self, item_id: ItemId, **changes) -> OrderItemRow:
        """Swap an order item row for a copy with ``changes`` applied."""
        for index, item in enumerate(self._order_items):
            if item.id == item_id:
                updated = replace(item, **changes)
                self._order_items[index] = updated
                return updated
        raise OrderItemNotFound(item_id)

    def remove_order(self, order_id: ItemId) -> List[OrderItemRow]:
        """Drop every item of an order (it was paid or deleted)."""
        removed = [i for i in self._order_items if i.order_id == order_id]
        self._order_items = [i for i in self._order_items if i.order_id != order_id]
        return removed

    # ------------------------------------------------------------------
    # Reservation totals
    # ------------------------------------------------------------------

    def weight_of(self, recipe_id: int, quantity: Number) -> Dict[int, Decimal]:
        """
        Ingredients claimed by ``quantity`` units of a recipe.

        Raises:
            CompositionCycleError: If the recipe cannot be resolved
        """
        quantity = to_decimal(quantity)
        flattened = self.cost_engine.resolve(recipe_id).flattened
        return {ingredient_id: per_unit * quantity for ingredient_id, per_unit in flattened.items()}

    def reservations(self) -> Dict[int, Decimal]:
        """
        Current reservation for every claimed ingredient.

        Items whose recipe is caught in a sub-recipe cycle cannot be expanded
        and contribute nothing; they are logged.

        Returns:
            Dict mapping ingredient id to reserved quantity
        """
        totals: Dict[int, Decimal] = {}
        claims = [(i.recipe_id, i.quantity) for i in collapse_groups(self._order_items)]
        claims.extend((c.recipe_id, c.quantity) for c in self.cart)

        for recipe_id, quantity in claims:
            try:
                weight = self.weight_of(recipe_id, quantity)
            except CompositionCycleError as e:
                log_operation(
                    logger,
                    operation="reservations",
                    outcome="skipped_cyclic_recipe",
                    level=logging.WARNING,
                    recipe_id=recipe_id,
                    path=e.path,
                )
                continue
            for ingredient_id, amount in weight.items():
                totals[ingredient_id] = totals.get(ingredient_id, ZERO) + amount

        return totals

    def reserved_for(self, ingredient_id: int) -> Decimal:
        """Quantity of an ingredient claimed by open orders and the cart."""
        return self.reservations().get(ingredient_id, ZERO)

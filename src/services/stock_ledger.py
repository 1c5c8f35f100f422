"""
Stock Ledger - on-hand quantity per ingredient.

The ledger is a plain state container. It is only mutated on behalf of the
inventory collaborator (stock counts, purchases, sale deductions) and
notifies registered listeners after every change.
"""

import logging
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from src.services.composition_graph import IngredientRow
from src.services.dto_utils import Number, to_decimal
from src.services.exceptions import IngredientNotFound, ValidationError
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import ERROR_INVALID_NON_NEGATIVE

logger = get_service_logger(__name__)

ZERO = Decimal("0")

Listener = Callable[["StockLedger"], None]


class StockLedger:
    """
    On-hand stock per ingredient id.

    Attributes:
        on_change: Callables invoked with the ledger after each mutation
    """

    def __init__(self, ingredients: Iterable[IngredientRow] = ()):
        self._stock: Dict[int, Decimal] = {}
        self._min_stock: Dict[int, Decimal] = {}
        self.on_change: List[Listener] = []
        self._load(ingredients)

    def _load(self, ingredients: Iterable[IngredientRow]) -> None:
        ingredients = list(ingredients)
        self._stock = {i.id: i.stock for i in ingredients}
        self._min_stock = {i.id: i.min_stock for i in ingredients}

    def _notify(self) -> None:
        for listener in list(self.on_change):
            listener(self)

    def stock_of(self, ingredient_id: int) -> Optional[Decimal]:
        """
        On-hand quantity for an ingredient.

        Returns:
            Stock as Decimal, or None if the ingredient is unknown
        """
        return self._stock.get(ingredient_id)

    def __contains__(self, ingredient_id: int) -> bool:
        return ingredient_id in self._stock

    def as_dict(self) -> Dict[int, Decimal]:
        return dict(self._stock)

    def replace(self, ingredients: Iterable[IngredientRow]) -> None:
        """Replace all stock levels from a fresh snapshot."""
        self._load(ingredients)
        log_operation(
            logger,
            operation="replace",
            outcome="success",
            level=logging.DEBUG,
            ingredient_count=len(self._stock),
        )
        self._notify()

    def set_stock(self, ingredient_id: int, quantity: Number) -> Decimal:
        """
        Set the on-hand quantity of an ingredient (e.g., after a stock count).

        Raises:
            ValidationError: If quantity is negative
        """
        quantity = to_decimal(quantity)
        if quantity < ZERO:
            raise ValidationError([f"Stock for ingredient {ingredient_id}: {ERROR_INVALID_NON_NEGATIVE}"])
        self._stock[ingredient_id] = quantity
        self._min_stock.setdefault(ingredient_id, ZERO)
        self._notify()
        return quantity

    def apply_movement(self, ingredient_id: int, delta: Number) -> Decimal:
        """
        Apply an inventory movement (positive for entries, negative for exits).

        Returns:
            New on-hand quantity

        Raises:
            IngredientNotFound: If the ingredient is not in the ledger
            ValidationError: If the movement would make stock negative
        """
        if ingredient_id not in self._stock:
            raise IngredientNotFound(ingredient_id)

        new_quantity = self._stock[ingredient_id] + to_decimal(delta)
        if new_quantity < ZERO:
            raise ValidationError(
                [
                    f"Movement of {delta} for ingredient {ingredient_id} would leave "
                    f"negative stock ({new_quantity})"
                ]
            )
        self._stock[ingredient_id] = new_quantity
        log_operation(
            logger,
            operation="apply_movement",
            outcome="success",
            level=logging.DEBUG,
            ingredient_id=ingredient_id,
            delta=str(delta),
            stock=str(new_quantity),
        )
        self._notify()
        return new_quantity

    def low_stock(self) -> List[int]:
        """Ingredient ids whose stock is at or below their minimum."""
        return [
            ingredient_id
            for ingredient_id, quantity in self._stock.items()
            if quantity <= self._min_stock.get(ingredient_id, ZERO)
        ]

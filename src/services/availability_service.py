"""
Availability Service - can one more unit of a recipe be sold right now?

The check combines three inputs:

- the recipe's flattened requirement (CostEngine)
- what open orders and the cart already claim (ReservationAccumulator)
- on-hand stock (StockLedger)

For each ingredient, ``stock - reserved`` must be at least
``per_unit * quantity``. Equality approves. The first short ingredient in
bill-of-materials order rejects.

The checker fails closed: an ingredient it cannot find, a sub-recipe it
cannot expand, or a cyclic composition all reject. It has no side effects;
only a later cart or order mutation changes reservation state.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from src.services.cost_engine import CostEngine
from src.services.dto_utils import Number, to_decimal
from src.services.exceptions import CompositionCycleError, ValidationError
from src.services.logging_utils import get_service_logger, log_operation
from src.services.reservation_service import ReservationAccumulator
from src.services.stock_ledger import StockLedger
from src.utils.constants import ERROR_INVALID_POSITIVE

logger = get_service_logger(__name__)

ZERO = Decimal("0")

# Rejection reasons
REASON_INSUFFICIENT_STOCK = "insufficient_stock"
REASON_UNKNOWN_INGREDIENT = "unknown_ingredient"
REASON_UNKNOWN_RECIPE = "unknown_recipe"
REASON_COMPOSITION_CYCLE = "composition_cycle"
REASON_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class AvailabilityResult:
    """
    Outcome of an availability check.

    Attributes:
        ok: True if the addition can proceed
        recipe_id: Recipe that was checked
        quantity: Units that were checked
        limiting_ingredient_id: First ingredient found short (rejections only)
        required: Quantity of the limiting ingredient the addition needs
        available: Unreserved stock of the limiting ingredient
        reason: Machine-readable rejection reason, None when ok
    """

    ok: bool
    recipe_id: int
    quantity: Decimal
    limiting_ingredient_id: Optional[int] = None
    required: Optional[Decimal] = None
    available: Optional[Decimal] = None
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


class AvailabilityChecker:
    """Pure predicate over the cost engine, ledger and reservations."""

    def __init__(
        self,
        cost_engine: CostEngine,
        ledger: StockLedger,
        accumulator: ReservationAccumulator,
    ):
        self.cost_engine = cost_engine
        self.ledger = ledger
        self.accumulator = accumulator

    def can_add(self, recipe_id: int, quantity: Number = 1) -> AvailabilityResult:
        """
        Check whether ``quantity`` more units of a recipe can be reserved.

        Args:
            recipe_id: Recipe about to be added to a cart or order
            quantity: Units to add

        Returns:
            AvailabilityResult; rejected results name the limiting ingredient
            whenever one exists

        Raises:
            ValidationError: If quantity is not positive
        """
        quantity = to_decimal(quantity)
        if quantity <= ZERO:
            raise ValidationError([f"Quantity to add: {ERROR_INVALID_POSITIVE}"])

        try:
            resolved = self.cost_engine.resolve(recipe_id)
        except CompositionCycleError:
            return self._reject(recipe_id, quantity, REASON_COMPOSITION_CYCLE)

        if resolved.missing_ingredient_ids:
            return self._reject(
                recipe_id,
                quantity,
                REASON_UNKNOWN_INGREDIENT,
                limiting_ingredient_id=resolved.missing_ingredient_ids[0],
                available=ZERO,
            )
        if resolved.missing_recipe_ids:
            return self._reject(recipe_id, quantity, REASON_UNKNOWN_RECIPE)

        if not resolved.flattened:
            return AvailabilityResult(ok=True, recipe_id=recipe_id, quantity=quantity)

        reserved = self.accumulator.reservations()
        for ingredient_id, per_unit in resolved.flattened.items():
            required = per_unit * quantity
            stock = self.ledger.stock_of(ingredient_id)
            if stock is None:
                return self._reject(
                    recipe_id,
                    quantity,
                    REASON_UNKNOWN_INGREDIENT,
                    limiting_ingredient_id=ingredient_id,
                    required=required,
                    available=ZERO,
                )
            available = stock - reserved.get(ingredient_id, ZERO)
            if available < required:
                return self._reject(
                    recipe_id,
                    quantity,
                    REASON_INSUFFICIENT_STOCK,
                    limiting_ingredient_id=ingredient_id,
                    required=required,
                    available=available,
                )

        return AvailabilityResult(ok=True, recipe_id=recipe_id, quantity=quantity)

    def _reject(self, recipe_id, quantity, reason, **details) -> AvailabilityResult:
        log_operation(
            logger,
            operation="can_add",
            outcome=reason,
            level=logging.INFO,
            recipe_id=recipe_id,
            quantity=str(quantity),
            **{k: (str(v) if isinstance(v, Decimal) else v) for k, v in details.items()},
        )
        return AvailabilityResult(
            ok=False, recipe_id=recipe_id, quantity=quantity, reason=reason, **details
        )

"""
Usage Service - ingredient consumption and cost of goods for sold items.

Both reports walk the same order items the reservation accumulator would
count (cancelled rows dropped, station-split groups counted once) and scale
each recipe's resolved requirement by the item quantity.

Usage:
    usage = calculate_ingredient_usage(engine, completed_items)
    cogs = calculate_cost_of_goods(engine, completed_items)
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List

from src.services.exceptions import CompositionCycleError
from src.services.logging_utils import get_service_logger, log_operation
from src.services.reservation_service import OrderItemRow, collapse_groups
from src.services.stock_engine import StockEngine

logger = get_service_logger(__name__)

ZERO = Decimal("0")


def _countable(engine: StockEngine, order_items: Iterable[OrderItemRow]) -> List:
    """Pair each counted item with its resolved recipe, skipping cyclic recipes."""
    pairs = []
    for item in collapse_groups(order_items):
        try:
            resolved = engine.resolve(item.recipe_id)
        except CompositionCycleError as e:
            log_operation(
                logger,
                operation="usage_report",
                outcome="skipped_cyclic_recipe",
                level=logging.WARNING,
                recipe_id=item.recipe_id,
                path=e.path,
            )
            continue
        pairs.append((item, resolved))
    return pairs


def calculate_ingredient_usage(
    engine: StockEngine, order_items: Iterable[OrderItemRow]
) -> Dict[int, Decimal]:
    """
    Raw ingredient quantities consumed by a set of sold order items.

    Args:
        engine: Engine providing the current composition
        order_items: Items of completed orders

    Returns:
        Dict mapping ingredient id to total quantity used
    """
    usage: Dict[int, Decimal] = {}
    for item, resolved in _countable(engine, order_items):
        for ingredient_id, per_unit in resolved.flattened.items():
            usage[ingredient_id] = usage.get(ingredient_id, ZERO) + per_unit * item.quantity
    return usage


def calculate_cost_of_goods(engine: StockEngine, order_items: Iterable[OrderItemRow]) -> Decimal:
    """
    Ingredient cost of a set of sold order items at current ingredient costs.

    Args:
        engine: Engine providing the current composition
        order_items: Items of completed orders

    Returns:
        Total cost as Decimal (unrounded)
    """
    total = ZERO
    for item, resolved in _countable(engine, order_items):
        total += resolved.total_cost * item.quantity
    return total

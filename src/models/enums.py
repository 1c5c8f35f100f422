"""
Enumerations for order tracking.

This module contains enums used across order-related models:
- OrderItemStatus: Kitchen lifecycle of a single order item row
"""

from enum import Enum


class OrderItemStatus(str, Enum):
    """
    Kitchen lifecycle status of an order item.

    Every status except CANCELLED holds a stock reservation. CANCELLED is
    terminal and releases the item's reservation immediately.

    Values:
        PENDING: Sent to the kitchen, not started
        IN_PREPARATION: Being prepared at its station
        READY: Prepared, waiting to be served
        SERVED: Delivered to the table
        CANCELLED: Voided; no longer reserves stock
    """

    PENDING = "pending"
    IN_PREPARATION = "in_preparation"
    READY = "ready"
    SERVED = "served"
    CANCELLED = "cancelled"

    @property
    def reserves_stock(self) -> bool:
        """True for every status that still claims ingredients."""
        return self is not OrderItemStatus.CANCELLED


# Allowed forward moves; CANCELLED may be entered from any non-terminal state.
ORDER_ITEM_TRANSITIONS = {
    OrderItemStatus.PENDING: {OrderItemStatus.IN_PREPARATION, OrderItemStatus.CANCELLED},
    OrderItemStatus.IN_PREPARATION: {OrderItemStatus.READY, OrderItemStatus.CANCELLED},
    OrderItemStatus.READY: {OrderItemStatus.SERVED, OrderItemStatus.CANCELLED},
    OrderItemStatus.SERVED: {OrderItemStatus.CANCELLED},
    OrderItemStatus.CANCELLED: set(),
}

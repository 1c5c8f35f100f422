"""
Order models for kitchen-bound sales.

This module contains:
- Order: A table, takeout or quick-sale ticket
- OrderItem: One dish row routed to a kitchen station
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship, validates

from src.utils.constants import ORDER_TYPES

from .base import BaseModel
from .enums import OrderItemStatus


class Order(BaseModel):
    """
    Order model.

    An order is "open" until it is paid; while open, every non-cancelled
    item on it reserves ingredient stock.

    Attributes:
        table_number: Table the order belongs to (0 for counter sales)
        order_type: "Dine-in", "Takeout", "QuickSale" or "Tab"
        is_completed: True once the order has been paid
        completed_at: When the order was paid
    """

    __tablename__ = "orders"

    table_number = Column(Integer, nullable=False, default=0)
    order_type = Column(String(20), nullable=False, default="Dine-in")
    is_completed = Column(Boolean, nullable=False, default=False, index=True)
    completed_at = Column(DateTime, nullable=True)

    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="select",
    )

    @validates("order_type")
    def _validate_order_type(self, _key: str, value: str) -> str:
        if value not in ORDER_TYPES:
            raise ValueError(f"Unknown order type '{value}'")
        return value

    def __repr__(self) -> str:
        """String representation of order."""
        return f"Order(id={self.id}, table_number={self.table_number}, is_completed={self.is_completed})"


class OrderItem(BaseModel):
    """
    Order item model.

    Attributes:
        order_id: Foreign key to Order
        recipe_id: Recipe being sold
        name: Display name at time of sale
        quantity: Units ordered
        notes: Free-text kitchen notes
        status: Kitchen lifecycle status
        station_id: Kitchen station this row is routed to
        price: Price charged for this row
        group_id: Shared by rows that split one dish across stations
    """

    __tablename__ = "order_items"

    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="RESTRICT"), nullable=False)
    name = Column(String(200), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False, default=1)
    notes = Column(Text, nullable=True)
    status = Column(
        SAEnum(OrderItemStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OrderItemStatus.PENDING,
    )
    station_id = Column(String(50), nullable=True)
    price = Column(Numeric(14, 4), nullable=False, default=0)
    group_id = Column(String(36), nullable=True, index=True)

    order = relationship("Order", back_populates="order_items")
    recipe = relationship("Recipe")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
        Index("idx_order_item_order", "order_id"),
        Index("idx_order_item_recipe", "recipe_id"),
    )

    def __repr__(self) -> str:
        """String representation of order item."""
        return (
            f"OrderItem(id={self.id}, recipe_id={self.recipe_id}, "
            f"quantity={self.quantity}, status='{self.status}')"
        )

"""
Database models package.

This package contains the SQLAlchemy ORM models for the row-store the stock
engine reads its snapshots from.
"""

from .base import Base, BaseModel
from .enums import OrderItemStatus, ORDER_ITEM_TRANSITIONS
from .ingredient import Ingredient
from .recipe import Recipe, RecipeIngredient, RecipeSubRecipe, RecipePreparation
from .order import Order, OrderItem

__all__ = [
    "Base",
    "BaseModel",
    "OrderItemStatus",
    "ORDER_ITEM_TRANSITIONS",
    "Ingredient",
    "Recipe",
    "RecipeIngredient",
    "RecipeSubRecipe",
    "RecipePreparation",
    "Order",
    "OrderItem",
]

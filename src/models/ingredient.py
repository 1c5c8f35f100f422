"""
Ingredient model for raw stock items.

An ingredient is anything the kitchen keeps on hand and consumes when a
recipe is produced: cheese, buns, oil. Stock and cost are mutated by the
inventory side of the suite; the stock engine only reads them.
"""

from sqlalchemy import Column, String, Numeric, Index, CheckConstraint
from sqlalchemy.orm import relationship, validates

from src.utils.constants import ALL_UNITS

from .base import BaseModel


class Ingredient(BaseModel):
    """
    Ingredient model representing a raw stock item.

    Attributes:
        name: Ingredient name (e.g., "Cheese")
        unit: Unit of measure stock and recipe quantities are expressed in
        stock: On-hand quantity (non-negative)
        cost: Cost per unit of measure
        min_stock: Threshold at or below which the ingredient is "low"
    """

    __tablename__ = "ingredients"

    name = Column(String(200), nullable=False, index=True)
    unit = Column(String(20), nullable=False, default="un")

    stock = Column(Numeric(14, 4), nullable=False, default=0)
    cost = Column(Numeric(14, 4), nullable=False, default=0)
    min_stock = Column(Numeric(14, 4), nullable=False, default=0)

    # Relationships
    recipe_ingredients = relationship(
        "RecipeIngredient", back_populates="ingredient", lazy="select"
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_ingredient_stock_non_negative"),
        CheckConstraint("min_stock >= 0", name="ck_ingredient_min_stock_non_negative"),
        Index("idx_ingredient_name", "name"),
    )

    def __repr__(self) -> str:
        """String representation of ingredient."""
        return f"Ingredient(id={self.id}, name='{self.name}', stock={self.stock} {self.unit})"

    @validates("unit")
    def _validate_unit(self, _key: str, value: str) -> str:
        if value not in ALL_UNITS:
            raise ValueError(f"Unknown unit '{value}'. Expected one of: {', '.join(ALL_UNITS)}")
        return value

    @property
    def is_low_stock(self) -> bool:
        """True when stock has fallen to or below the minimum."""
        return (self.stock or 0) <= (self.min_stock or 0)

"""
Recipe models for menu items and intermediate preparations.

This module contains:
- Recipe: A sellable dish or an intermediate preparation (sub-recipe)
- RecipeIngredient: Junction table linking recipes to raw ingredients
- RecipeSubRecipe: Junction table linking parent recipes to child recipes
- RecipePreparation: A preparation step routed to a kitchen station
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class Recipe(BaseModel):
    """
    Recipe model.

    Attributes:
        name: Recipe name (required)
        price: Unit sale price
        is_sub_recipe: True for intermediate preparations not sold directly
        is_available: False hides the recipe from the point of sale
    """

    __tablename__ = "recipes"

    name = Column(String(200), nullable=False, index=True)
    price = Column(Numeric(14, 4), nullable=False, default=0)
    is_sub_recipe = Column(Boolean, nullable=False, default=False, index=True)
    is_available = Column(Boolean, nullable=False, default=True)

    # Relationships
    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        lazy="select",
    )

    # Sub-recipe relationships (nested recipes)
    sub_recipes = relationship(
        "RecipeSubRecipe",
        foreign_keys="RecipeSubRecipe.parent_recipe_id",
        back_populates="parent_recipe",
        cascade="all, delete-orphan",
        lazy="select",
    )
    used_in_recipes = relationship(
        "RecipeSubRecipe",
        foreign_keys="RecipeSubRecipe.child_recipe_id",
        back_populates="child_recipe",
        lazy="select",
    )

    preparations = relationship(
        "RecipePreparation",
        back_populates="recipe",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (Index("idx_recipe_name", "name"),)

    def __repr__(self) -> str:
        """String representation of recipe."""
        return f"Recipe(id={self.id}, name='{self.name}', is_sub_recipe={self.is_sub_recipe})"


class RecipeIngredient(BaseModel):
    """
    Junction table linking recipes to ingredients with quantities.

    Attributes:
        recipe_id: Foreign key to Recipe
        ingredient_id: Foreign key to Ingredient
        quantity: Amount of ingredient per unit of recipe, in the ingredient's unit
    """

    __tablename__ = "recipe_ingredients"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False
    )
    quantity = Column(Numeric(14, 4), nullable=False)

    recipe = relationship("Recipe", back_populates="recipe_ingredients")
    ingredient = relationship("Ingredient", back_populates="recipe_ingredients")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_recipe_ingredient_quantity_non_negative"),
        Index("idx_recipe_ingredient_recipe", "recipe_id"),
        Index("idx_recipe_ingredient_ingredient", "ingredient_id"),
    )

    def __repr__(self) -> str:
        """String representation of recipe ingredient."""
        return (
            f"RecipeIngredient(recipe_id={self.recipe_id}, "
            f"ingredient_id={self.ingredient_id}, quantity={self.quantity})"
        )


class RecipeSubRecipe(BaseModel):
    """
    Junction table linking parent recipes to child (sub) recipes.

    The edge set forms a directed graph over recipes. It is intended to be
    acyclic but the table does not enforce it beyond forbidding self-edges;
    the cost engine detects cycles when it walks the graph.

    Attributes:
        parent_recipe_id: Recipe that contains the sub-recipe
        child_recipe_id: Recipe being included
        quantity: Units of child per unit of parent
    """

    __tablename__ = "recipe_sub_recipes"

    parent_recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    child_recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="RESTRICT"), nullable=False
    )
    quantity = Column(Numeric(14, 4), nullable=False, default=1)

    parent_recipe = relationship(
        "Recipe",
        foreign_keys=[parent_recipe_id],
        back_populates="sub_recipes",
    )
    child_recipe = relationship(
        "Recipe",
        foreign_keys=[child_recipe_id],
        back_populates="used_in_recipes",
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_recipe_sub_recipe_quantity_non_negative"),
        CheckConstraint(
            "parent_recipe_id <> child_recipe_id", name="ck_recipe_sub_recipe_no_self_edge"
        ),
        UniqueConstraint(
            "parent_recipe_id",
            "child_recipe_id",
            name="uq_recipe_sub_recipe_parent_child",
        ),
        Index("idx_recipe_sub_recipe_parent", "parent_recipe_id"),
        Index("idx_recipe_sub_recipe_child", "child_recipe_id"),
    )

    def __repr__(self) -> str:
        """String representation of sub-recipe edge."""
        return (
            f"RecipeSubRecipe(parent_recipe_id={self.parent_recipe_id}, "
            f"child_recipe_id={self.child_recipe_id}, quantity={self.quantity})"
        )


class RecipePreparation(BaseModel):
    """
    A preparation step of a recipe, routed to one kitchen station.

    A dish with several preparations is split into one order item row per
    station when sent to the kitchen; those rows share a group id.

    Attributes:
        recipe_id: Recipe this preparation belongs to
        name: Preparation label (e.g., "Grill", "Fries")
        station_id: Kitchen station identifier
    """

    __tablename__ = "recipe_preparations"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    station_id = Column(String(50), nullable=False)

    recipe = relationship("Recipe", back_populates="preparations")

    __table_args__ = (Index("idx_recipe_preparation_recipe", "recipe_id"),)

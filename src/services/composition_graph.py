"""
Composition Graph - read-only view of recipes, ingredients and their edges.

The graph is built once from an immutable CompositionSnapshot and indexes
both edge types by recipe id so the cost engine never scans the full edge
list:

- Recipe -> Ingredient (direct quantity per unit)
- Recipe -> Recipe (sub-recipe quantity per unit)

Rows pushed by the persistence collaborator are represented as frozen
dataclasses. Numeric fields are normalized to Decimal on construction.
"""

from collections import defaultdict
from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from src.services.dto_utils import to_decimal


def _normalize_decimals(row, names: Iterable[str]) -> None:
    """Coerce the named fields of a frozen dataclass to Decimal in place."""
    for name in names:
        object.__setattr__(row, name, to_decimal(getattr(row, name)))


@dataclass(frozen=True)
class IngredientRow:
    """Raw ingredient as seen by the engine."""

    id: int
    name: str
    unit: str = "un"
    stock: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
    min_stock: Decimal = Decimal("0")

    def __post_init__(self):
        _normalize_decimals(self, ("stock", "cost", "min_stock"))


@dataclass(frozen=True)
class RecipeRow:
    """Recipe header: sellable dish or intermediate preparation."""

    id: int
    name: str
    price: Decimal = Decimal("0")
    is_sub_recipe: bool = False
    is_available: bool = True

    def __post_init__(self):
        _normalize_decimals(self, ("price",))


@dataclass(frozen=True)
class RecipeIngredientRow:
    """Edge: quantity of an ingredient per unit of recipe."""

    recipe_id: int
    ingredient_id: int
    quantity: Decimal

    def __post_init__(self):
        _normalize_decimals(self, ("quantity",))


@dataclass(frozen=True)
class RecipeSubRecipeRow:
    """Edge: units of child recipe per unit of parent recipe."""

    parent_recipe_id: int
    child_recipe_id: int
    quantity: Decimal

    def __post_init__(self):
        _normalize_decimals(self, ("quantity",))


@dataclass(frozen=True)
class RecipePreparationRow:
    """Preparation step of a recipe routed to a kitchen station."""

    recipe_id: int
    name: str
    station_id: str


@dataclass(frozen=True)
class CompositionSnapshot:
    """
    Immutable snapshot of everything the cost engine reads.

    Attributes:
        ingredients: All ingredient rows
        recipes: All recipe rows
        recipe_ingredients: Recipe -> Ingredient edges
        recipe_sub_recipes: Recipe -> Recipe edges
        preparations: Station routing per recipe (used when sending to kitchen)
        version: Monotonic counter; a new version invalidates cached costs
    """

    ingredients: Tuple[IngredientRow, ...] = ()
    recipes: Tuple[RecipeRow, ...] = ()
    recipe_ingredients: Tuple[RecipeIngredientRow, ...] = ()
    recipe_sub_recipes: Tuple[RecipeSubRecipeRow, ...] = ()
    preparations: Tuple[RecipePreparationRow, ...] = field(default=())
    version: int = 0

    def __post_init__(self):
        # Accept any iterable but store tuples so the snapshot stays hashable-ish
        for f in fields(self):
            if f.name != "version":
                object.__setattr__(self, f.name, tuple(getattr(self, f.name)))


class CompositionGraph:
    """
    Indexed, read-only view over a CompositionSnapshot.

    Lookups for unknown ids return None or an empty list; deciding whether a
    missing row is an error is left to the caller.
    """

    def __init__(self, snapshot: CompositionSnapshot):
        self._snapshot = snapshot
        self._ingredients: Dict[int, IngredientRow] = {i.id: i for i in snapshot.ingredients}
        self._recipes: Dict[int, RecipeRow] = {r.id: r for r in snapshot.recipes}

        self._direct: Dict[int, List[RecipeIngredientRow]] = defaultdict(list)
        for edge in snapshot.recipe_ingredients:
            self._direct[edge.recipe_id].append(edge)

        self._subs: Dict[int, List[RecipeSubRecipeRow]] = defaultdict(list)
        for edge in snapshot.recipe_sub_recipes:
            self._subs[edge.parent_recipe_id].append(edge)

        self._preparations: Dict[int, List[RecipePreparationRow]] = defaultdict(list)
        for prep in snapshot.preparations:
            self._preparations[prep.recipe_id].append(prep)

    @property
    def snapshot(self) -> CompositionSnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def ingredient(self, ingredient_id: int) -> Optional[IngredientRow]:
        return self._ingredients.get(ingredient_id)

    def recipe(self, recipe_id: int) -> Optional[RecipeRow]:
        return self._recipes.get(recipe_id)

    def direct_ingredients(self, recipe_id: int) -> List[RecipeIngredientRow]:
        return list(self._direct.get(recipe_id, ()))

    def sub_recipes(self, recipe_id: int) -> List[RecipeSubRecipeRow]:
        return list(self._subs.get(recipe_id, ()))

    def preparations(self, recipe_id: int) -> List[RecipePreparationRow]:
        return list(self._preparations.get(recipe_id, ()))

    def recipe_ids(self) -> List[int]:
        return list(self._recipes)

    def ingredient_ids(self) -> List[int]:
        return list(self._ingredients)

    def ingredients(self) -> List[IngredientRow]:
        return list(self._ingredients.values())

    def find_cycle(self) -> Optional[List[int]]:
        """
        Detect a circular sub-recipe reference anywhere in the graph.

        Returns:
            Recipe ids forming a cycle (first id repeated at the end),
            or None if the sub-recipe edges are acyclic
        """
        visited = set()
        rec_stack = set()
        path: List[int] = []

        def dfs(node):
            if node in rec_stack:
                cycle_start = path.index(node)
                return path[cycle_start:] + [node]
            if node in visited:
                return None

            visited.add(node)
            rec_stack.add(node)
            path.append(node)

            for edge in self._subs.get(node, ()):
                cycle = dfs(edge.child_recipe_id)
                if cycle:
                    return cycle

            path.pop()
            rec_stack.remove(node)
            return None

        for recipe_id in list(self._subs):
            if recipe_id not in visited:
                cycle = dfs(recipe_id)
                if cycle:
                    return cycle

        return None

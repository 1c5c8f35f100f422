"""
Cost Engine - recursive recipe costing and bill-of-materials flattening.

For each recipe the engine computes, in one depth-first walk:

- total_cost: direct ingredient cost plus sub-recipe cost, each scaled by
  its quantity per unit
- flattened: raw ingredient id -> quantity needed for one unit, after
  expanding every nested sub-recipe

Both views come from the same walk, so for every recipe
``total_cost == sum(flattened[i] * cost(i))``.

Results are memoized per recipe id for the lifetime of one graph version.
Binding a new graph clears the memo wholesale; there is no incremental
patching.

Data problems are handled in two tiers:

- A dangling edge (missing ingredient or child recipe) is skipped, logged
  and recorded in ``diagnostics``. It never raises.
- A circular sub-recipe reference raises CompositionCycleError for the
  resolve call that hit it. Other recipes stay computable.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from src.services.composition_graph import CompositionGraph
from src.services.exceptions import CompositionCycleError, MissingReferenceError
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.config import get_config

logger = get_service_logger(__name__)

ZERO = Decimal("0")


def _append_unique(target: List, values) -> None:
    for value in values:
        if value not in target:
            target.append(value)


@dataclass(frozen=True)
class ResolvedRecipe:
    """Cost and flattened raw-ingredient requirements for one unit of a recipe."""

    recipe_id: int
    total_cost: Decimal = ZERO
    flattened: Dict[int, Decimal] = field(default_factory=dict)
    ingredient_count: int = 0
    # Dangling references anywhere in this recipe's tree, in walk order
    missing_ingredient_ids: Tuple[int, ...] = ()
    missing_recipe_ids: Tuple[int, ...] = ()

    @property
    def is_complete(self) -> bool:
        """False when any edge in the tree pointed at a missing row."""
        return not (self.missing_ingredient_ids or self.missing_recipe_ids)

    def cost_from_flattened(self, graph: CompositionGraph) -> Decimal:
        """Recompute cost from the bill of materials (for consistency checks)."""
        total = ZERO
        for ingredient_id, quantity in self.flattened.items():
            ingredient = graph.ingredient(ingredient_id)
            if ingredient is not None:
                total += quantity * ingredient.cost
        return total


class CostEngine:
    """
    Memoizing resolver over a CompositionGraph.

    Args:
        graph: Composition graph to resolve against
        memoize: Cache results per recipe id. Defaults to the
            ``memoize_costs`` config setting.
        diagnostics: Optional shared list that receives MissingReferenceError
            records. A new list is created when omitted.
    """

    def __init__(
        self,
        graph: CompositionGraph,
        memoize: Optional[bool] = None,
        diagnostics: Optional[List[MissingReferenceError]] = None,
    ):
        if memoize is None:
            memoize = get_config().memoize_costs
        self._graph = graph
        self._memoize = memoize
        self._memo: Dict[int, ResolvedRecipe] = {}
        self._reported: Set[Tuple[str, object, object]] = set()
        self.diagnostics: List[MissingReferenceError] = (
            diagnostics if diagnostics is not None else []
        )

    @property
    def graph(self) -> CompositionGraph:
        return self._graph

    @property
    def version(self) -> int:
        return self._graph.version

    @property
    def cached_recipe_ids(self) -> List[int]:
        return list(self._memo)

    def rebind(self, graph: CompositionGraph) -> None:
        """Switch to a new graph version and drop every cached result."""
        log_operation(
            logger,
            operation="rebind",
            outcome="memo_cleared",
            level=logging.DEBUG,
            old_version=self._graph.version,
            version=graph.version,
            cached=len(self._memo),
        )
        self._graph = graph
        self._memo.clear()
        self._reported.clear()
        self.diagnostics.clear()

    def resolve(self, recipe_id: int) -> ResolvedRecipe:
        """
        Resolve cost and flattened requirements for one unit of a recipe.

        Args:
            recipe_id: Recipe to resolve

        Returns:
            ResolvedRecipe. An unknown recipe id resolves to the empty result
            and is recorded as a missing reference.

        Raises:
            CompositionCycleError: If the recipe's sub-recipe edges loop back
                on themselves
        """
        cached = self._memo.get(recipe_id)
        if cached is not None:
            return cached

        if self._graph.recipe(recipe_id) is None:
            self._report_missing("recipe", recipe_id, None)
            return ResolvedRecipe(recipe_id=recipe_id, missing_recipe_ids=(recipe_id,))

        try:
            return self._resolve(recipe_id, [])
        except CompositionCycleError as e:
            log_operation(
                logger,
                operation="resolve",
                outcome="composition_cycle",
                level=logging.ERROR,
                recipe_id=recipe_id,
                path=e.path,
                version=self.version,
            )
            raise

    def resolve_all(self) -> Dict[int, ResolvedRecipe]:
        """
        Resolve every recipe in the graph.

        Recipes caught in a cycle are logged and left out of the result.

        Returns:
            Dict mapping recipe id to its ResolvedRecipe
        """
        results: Dict[int, ResolvedRecipe] = {}
        for recipe_id in self._graph.recipe_ids():
            try:
                results[recipe_id] = self.resolve(recipe_id)
            except CompositionCycleError:
                continue
        return results

    def _resolve(self, recipe_id: int, path: List[int]) -> ResolvedRecipe:
        cached = self._memo.get(recipe_id)
        if cached is not None:
            return cached

        if recipe_id in path:
            raise CompositionCycleError(path[path.index(recipe_id):] + [recipe_id])

        path.append(recipe_id)
        try:
            total_cost = ZERO
            flattened: Dict[int, Decimal] = {}
            missing_ingredients: List[int] = []
            missing_recipes: List[int] = []

            direct = self._graph.direct_ingredients(recipe_id)
            for edge in direct:
                ingredient = self._graph.ingredient(edge.ingredient_id)
                if ingredient is None:
                    self._report_missing("ingredient", edge.ingredient_id, recipe_id)
                    _append_unique(missing_ingredients, [edge.ingredient_id])
                    continue
                total_cost += ingredient.cost * edge.quantity
                flattened[edge.ingredient_id] = (
                    flattened.get(edge.ingredient_id, ZERO) + edge.quantity
                )

            subs = self._graph.sub_recipes(recipe_id)
            for edge in subs:
                if self._graph.recipe(edge.child_recipe_id) is None:
                    self._report_missing("recipe", edge.child_recipe_id, recipe_id)
                    _append_unique(missing_recipes, [edge.child_recipe_id])
                    continue
                child = self._resolve(edge.child_recipe_id, path)
                total_cost += child.total_cost * edge.quantity
                for ingredient_id, sub_quantity in child.flattened.items():
                    flattened[ingredient_id] = (
                        flattened.get(ingredient_id, ZERO) + sub_quantity * edge.quantity
                    )
                _append_unique(missing_ingredients, child.missing_ingredient_ids)
                _append_unique(missing_recipes, child.missing_recipe_ids)
        finally:
            path.pop()

        result = ResolvedRecipe(
            recipe_id=recipe_id,
            total_cost=total_cost,
            flattened=flattened,
            ingredient_count=len(direct) + len(subs),
            missing_ingredient_ids=tuple(missing_ingredients),
            missing_recipe_ids=tuple(missing_recipes),
        )
        if self._memoize:
            self._memo[recipe_id] = result
        return result

    def _report_missing(self, kind: str, ref_id, owner_id) -> None:
        key = (kind, ref_id, owner_id)
        if key in self._reported:
            return
        self._reported.add(key)

        error = MissingReferenceError(kind, ref_id, owner_id=owner_id)
        self.diagnostics.append(error)
        log_operation(
            logger,
            operation="resolve",
            outcome="missing_reference",
            level=logging.WARNING,
            kind=kind,
            ref_id=ref_id,
            recipe_id=owner_id,
            version=self.version,
        )

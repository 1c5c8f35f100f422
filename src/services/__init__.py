"""Services package - costing and stock reservation engine.

Architecture:
- Engine: pure functions and small state containers over an immutable
  CompositionSnapshot (composition_graph, cost_engine, stock_ledger,
  reservation_service, availability_service, stock_engine)
- Persistence: SQLAlchemy row-store read via snapshot_service, with
  transactions managed by session_scope()
- Exceptions: Consistent error handling via ServiceError hierarchy

Service Modules:
- composition_graph: Snapshot dataclasses and the indexed recipe graph
- cost_engine: Recursive costing and bill-of-materials flattening
- stock_ledger: On-hand stock per ingredient
- reservation_service: Cart, open order items and reservation totals
- availability_service: can_add predicate
- stock_engine: StockEngine facade (the public API)
- usage_service: Ingredient usage and cost-of-goods reports
- snapshot_service: Loads snapshots and order items from the database

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Structured service logging
- dto_utils: Decimal conversion and display formatting
"""

from .availability_service import AvailabilityChecker, AvailabilityResult
from .composition_graph import (
    CompositionGraph,
    CompositionSnapshot,
    IngredientRow,
    RecipeIngredientRow,
    RecipePreparationRow,
    RecipeRow,
    RecipeSubRecipeRow,
)
from .cost_engine import CostEngine, ResolvedRecipe
from .exceptions import (
    CartItemNotFound,
    CompositionCycleError,
    DatabaseError,
    IngredientNotFound,
    MissingReferenceError,
    OrderItemNotFound,
    RecipeNotFound,
    ServiceError,
    ValidationError,
)
from .reservation_service import Cart, CartItem, OrderItemRow, ReservationAccumulator
from .stock_engine import StockEngine
from .stock_ledger import StockLedger
from .usage_service import calculate_cost_of_goods, calculate_ingredient_usage

__all__ = [
    # Engine
    "StockEngine",
    "CompositionGraph",
    "CompositionSnapshot",
    "IngredientRow",
    "RecipeRow",
    "RecipeIngredientRow",
    "RecipeSubRecipeRow",
    "RecipePreparationRow",
    "CostEngine",
    "ResolvedRecipe",
    "StockLedger",
    "Cart",
    "CartItem",
    "OrderItemRow",
    "ReservationAccumulator",
    "AvailabilityChecker",
    "AvailabilityResult",
    # Reports
    "calculate_ingredient_usage",
    "calculate_cost_of_goods",
    # Exceptions
    "ServiceError",
    "RecipeNotFound",
    "IngredientNotFound",
    "OrderItemNotFound",
    "CartItemNotFound",
    "MissingReferenceError",
    "CompositionCycleError",
    "ValidationError",
    "DatabaseError",
]

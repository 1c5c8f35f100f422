"""Service layer exception classes for the restaurant stock engine.

Exception Hierarchy:
    ServiceError (base)
    ├── RecipeNotFound
    ├── IngredientNotFound
    ├── OrderItemNotFound
    ├── CartItemNotFound
    ├── MissingReferenceError
    ├── CompositionCycleError
    ├── ValidationError
    └── DatabaseError

Every class carries an ``http_status_code`` so an outer web layer can map
failures without inspecting messages.

Note: an insufficient-stock outcome is not an exception. ``can_add``
returns a rejected AvailabilityResult naming the limiting ingredient.
"""

from typing import List, Optional


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    http_status_code = 500


class RecipeNotFound(ServiceError):
    """Raised when a recipe cannot be found by ID."""

    http_status_code = 404

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with ID {recipe_id} not found")


class IngredientNotFound(ServiceError):
    """Raised when an ingredient cannot be found by ID."""

    http_status_code = 404

    def __init__(self, ingredient_id: int):
        self.ingredient_id = ingredient_id
        super().__init__(f"Ingredient with ID {ingredient_id} not found")


class OrderItemNotFound(ServiceError):
    """Raised when an open order item cannot be found by ID."""

    http_status_code = 404

    def __init__(self, order_item_id):
        self.order_item_id = order_item_id
        super().__init__(f"Order item with ID {order_item_id} not found among open orders")


class CartItemNotFound(ServiceError):
    """Raised when a cart item cannot be found by ID."""

    http_status_code = 404

    def __init__(self, cart_item_id: str):
        self.cart_item_id = cart_item_id
        super().__init__(f"Cart item '{cart_item_id}' not found")


class MissingReferenceError(ServiceError):
    """Describes a composition edge pointing at a row that does not exist.

    This is recorded as a diagnostic and logged; the engine never raises it
    across its public API, so partial data does not block a sale.

    Args:
        kind: "ingredient" or "recipe"
        ref_id: The id that could not be resolved
        owner_id: The recipe whose edge holds the dangling reference

    Example:
        >>> str(MissingReferenceError("ingredient", 9, owner_id=3))
        'Recipe 3 references missing ingredient 9'
    """

    http_status_code = 409

    def __init__(self, kind: str, ref_id, owner_id=None):
        self.kind = kind
        self.ref_id = ref_id
        self.owner_id = owner_id
        if owner_id is None:
            message = f"Missing {kind} {ref_id}"
        else:
            message = f"Recipe {owner_id} references missing {kind} {ref_id}"
        super().__init__(message)


class CompositionCycleError(ServiceError):
    """Raised when resolving a recipe walks back into one of its ancestors.

    Args:
        path: Recipe ids from the first repeated recipe back to itself

    Example:
        >>> raise CompositionCycleError([1, 2, 1])
        CompositionCycleError: Circular sub-recipe reference: 1 -> 2 -> 1
    """

    http_status_code = 422

    def __init__(self, path: List):
        self.path = list(path)
        chain = " -> ".join(str(p) for p in self.path)
        super().__init__(f"Circular sub-recipe reference: {chain}")


class ValidationError(ServiceError):
    """Raised when data validation fails."""

    http_status_code = 400

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    http_status_code = 500

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")

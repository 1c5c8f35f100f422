"""
Snapshot Service - loads engine input from the row-store.

The stock engine works over immutable dataclass rows. This service reads
the SQLAlchemy models and converts them:

- ingredients, recipes, ingredient edges, sub-recipe edges and preparations
  become a CompositionSnapshot
- items of open orders become OrderItemRow values for the reservation side
- items of completed orders feed the usage and cost-of-goods reports

Key Features:
- All public functions accept session=None parameter
- Numeric columns come back as Decimal
- SQLAlchemy errors are wrapped in DatabaseError

Usage:
    snapshot = load_snapshot()
    engine = StockEngine(snapshot, order_items=load_open_order_items())
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.ingredient import Ingredient
from src.models.order import Order, OrderItem
from src.models.recipe import Recipe, RecipeIngredient, RecipePreparation, RecipeSubRecipe
from src.services.composition_graph import (
    CompositionSnapshot,
    IngredientRow,
    RecipeIngredientRow,
    RecipePreparationRow,
    RecipeRow,
    RecipeSubRecipeRow,
)
from src.services.database import session_scope
from src.services.exceptions import DatabaseError
from src.services.logging_utils import get_service_logger, log_operation
from src.services.reservation_service import OrderItemRow

logger = get_service_logger(__name__)


def load_snapshot(session: Optional[Session] = None, version: int = 0) -> CompositionSnapshot:
    """
    Read the full composition and stock state.

    Args:
        session: Optional session for transaction sharing
        version: Version number to stamp on the snapshot

    Returns:
        CompositionSnapshot of every ingredient, recipe and edge

    Raises:
        DatabaseError: If the database read fails
    """
    try:
        if session is not None:
            return _load_snapshot_impl(session, version)
        with session_scope() as session:
            return _load_snapshot_impl(session, version)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to load composition snapshot", e)


def _load_snapshot_impl(session: Session, version: int) -> CompositionSnapshot:
    """Internal implementation of load_snapshot."""
    ingredients = [
        IngredientRow(
            id=i.id,
            name=i.name,
            unit=i.unit,
            stock=i.stock,
            cost=i.cost,
            min_stock=i.min_stock,
        )
        for i in session.query(Ingredient).order_by(Ingredient.id).all()
    ]
    recipes = [
        RecipeRow(
            id=r.id,
            name=r.name,
            price=r.price,
            is_sub_recipe=bool(r.is_sub_recipe),
            is_available=bool(r.is_available),
        )
        for r in session.query(Recipe).order_by(Recipe.id).all()
    ]
    recipe_ingredients = [
        RecipeIngredientRow(
            recipe_id=e.recipe_id, ingredient_id=e.ingredient_id, quantity=e.quantity
        )
        for e in session.query(RecipeIngredient).order_by(RecipeIngredient.id).all()
    ]
    recipe_sub_recipes = [
        RecipeSubRecipeRow(
            parent_recipe_id=e.parent_recipe_id,
            child_recipe_id=e.child_recipe_id,
            quantity=e.quantity,
        )
        for e in session.query(RecipeSubRecipe).order_by(RecipeSubRecipe.id).all()
    ]
    preparations = [
        RecipePreparationRow(recipe_id=p.recipe_id, name=p.name, station_id=p.station_id)
        for p in session.query(RecipePreparation).order_by(RecipePreparation.id).all()
    ]

    log_operation(
        logger,
        operation="load_snapshot",
        outcome="success",
        ingredient_count=len(ingredients),
        recipe_count=len(recipes),
        version=version,
    )
    return CompositionSnapshot(
        ingredients=ingredients,
        recipes=recipes,
        recipe_ingredients=recipe_ingredients,
        recipe_sub_recipes=recipe_sub_recipes,
        preparations=preparations,
        version=version,
    )


def load_open_order_items(session: Optional[Session] = None) -> List[OrderItemRow]:
    """
    Read every item of every open (unpaid) order.

    Cancelled items are included; the reservation side ignores them.

    Args:
        session: Optional session for transaction sharing

    Returns:
        OrderItemRow list in insertion order

    Raises:
        DatabaseError: If the database read fails
    """
    try:
        if session is not None:
            return _load_order_items_impl(session, completed=False)
        with session_scope() as session:
            return _load_order_items_impl(session, completed=False)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to load open order items", e)


def load_completed_order_items(
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    session: Optional[Session] = None,
) -> List[OrderItemRow]:
    """
    Read items of paid orders, optionally within a completion window.

    Args:
        since: Only orders completed at or after this time
        until: Only orders completed before this time
        session: Optional session for transaction sharing

    Returns:
        OrderItemRow list for the usage and cost-of-goods reports

    Raises:
        DatabaseError: If the database read fails
    """
    try:
        if session is not None:
            return _load_order_items_impl(session, completed=True, since=since, until=until)
        with session_scope() as session:
            return _load_order_items_impl(session, completed=True, since=since, until=until)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to load completed order items", e)


def _load_order_items_impl(
    session: Session,
    completed: bool,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
) -> List[OrderItemRow]:
    """Internal implementation shared by the order item loaders."""
    query = session.query(OrderItem).join(Order).filter(Order.is_completed == completed)
    if since is not None:
        query = query.filter(Order.completed_at >= since)
    if until is not None:
        query = query.filter(Order.completed_at < until)

    return [
        OrderItemRow(
            id=item.id,
            order_id=item.order_id,
            recipe_id=item.recipe_id,
            quantity=item.quantity,
            status=item.status,
            group_id=item.group_id,
            name=item.name,
            notes=item.notes,
            station_id=item.station_id,
            price=item.price,
        )
        for item in query.order_by(OrderItem.id).all()
    ]

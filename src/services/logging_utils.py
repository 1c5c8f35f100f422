"""Service layer logging utilities.

Provides structured logging for engine operations so every component logs
with the same format and context fields.

Usage:
    from src.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="can_add",
        outcome="insufficient_stock",
        recipe_id=12,
        limiting_ingredient_id=4,
    )
"""

import logging
from typing import Any

LOGGER_NAMESPACE = "restaurant_stock.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger for a service module.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger under the 'restaurant_stock.services' namespace.

    Example:
        >>> get_service_logger("src.services.cost_engine").name
        'restaurant_stock.services.cost_engine'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured handlers;
    the message itself is "<operation>: <outcome>".

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "resolve", "can_add")
        outcome: Outcome description (e.g., "success", "missing_reference")
        level: Log level (default: INFO). Use DEBUG for per-call logs.
        **context: Additional context fields. Common fields:
            - recipe_id: Recipe being processed
            - ingredient_id: Ingredient involved
            - limiting_ingredient_id: Ingredient that caused a rejection
            - path: Recipe ids forming a cycle
            - version: Snapshot version the call ran against

    Example:
        >>> log_operation(
        ...     logger,
        ...     operation="resolve",
        ...     outcome="composition_cycle",
        ...     level=logging.ERROR,
        ...     recipe_id=3,
        ...     path=[3, 5, 3],
        ... )
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)

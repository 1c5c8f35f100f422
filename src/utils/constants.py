"""
Constants and enumerations for the Restaurant Stock Engine.

This module defines system-wide constants including:
- Application metadata
- Units of measure for ingredients
- Order item status names
- Numeric display precision
"""

from typing import List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Restaurant Stock Engine"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"

# ============================================================================
# Units of Measure
# ============================================================================

# Weight units
WEIGHT_UNITS: List[str] = [
    "g",  # Gram
    "kg",  # Kilogram
]

# Volume units
VOLUME_UNITS: List[str] = [
    "ml",  # Milliliter
    "l",  # Liter
]

# Count/discrete units
COUNT_UNITS: List[str] = [
    "un",  # Unit
    "pct",  # Packet
]

ALL_UNITS: List[str] = WEIGHT_UNITS + VOLUME_UNITS + COUNT_UNITS

# ============================================================================
# Orders
# ============================================================================

ORDER_TYPES: List[str] = [
    "Dine-in",
    "Takeout",
    "QuickSale",
    "Tab",
]

DEFAULT_STATION_ID = "default"

# ============================================================================
# Validation Constants
# ============================================================================

MAX_NOTES_LENGTH = 2000

# Display precision (rounding only happens at display time)
CURRENCY_DECIMAL_PLACES = 2
QUANTITY_DECIMAL_PLACES = 3

# ============================================================================
# Database Constants
# ============================================================================

DATABASE_FILENAME = "restaurant_stock.db"

# ============================================================================
# Error Messages
# ============================================================================

ERROR_INVALID_POSITIVE = "Value must be greater than zero"
ERROR_INVALID_NON_NEGATIVE = "Value must be zero or greater"

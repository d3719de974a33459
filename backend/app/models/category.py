"""
models/category.py — Shared Category enum and enum column helper.

Defined once so schemas, services and every model that carries a category
import the same enum. Do not duplicate these as plain string constants.
"""

from __future__ import annotations

import enum


class Category(str, enum.Enum):
    FOOD            = "food"
    DINING          = "dining"
    GROCERIES       = "groceries"
    TRANSPORTATION  = "transportation"
    TRAVEL          = "travel"
    SHOPPING        = "shopping"
    ENTERTAINMENT   = "entertainment"
    BILLS           = "bills"
    UTILITIES       = "utilities"
    HEALTHCARE      = "healthcare"
    INCOME          = "income"
    TRANSFER        = "transfer"
    INVESTMENT      = "investment"
    OTHER           = "other"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'dining'), not names ('DINING')."""
    return [member.value for member in enum_cls]

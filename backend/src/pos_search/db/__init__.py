"""Database models and session."""

from pos_search.db.models import (
    Base,
    Category,
    Product,
    ProductVariant,
    SearchClick,
    SearchEvent,
    SuggestionEntry,
)
from pos_search.db.session import Database, create_db_engine

__all__ = [
    "Base",
    "Category",
    "Product",
    "ProductVariant",
    "SuggestionEntry",
    "SearchEvent",
    "SearchClick",
    "Database",
    "create_db_engine",
]

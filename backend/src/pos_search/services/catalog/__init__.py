"""Catalog collaborator: read-only product/variant projections."""

from pos_search.services.catalog.base import CatalogEntry, CatalogSource
from pos_search.services.catalog.memory_catalog import InMemoryCatalogSource
from pos_search.services.catalog.sql_catalog import SqlCatalogSource

__all__ = [
    "CatalogEntry",
    "CatalogSource",
    "InMemoryCatalogSource",
    "SqlCatalogSource",
]

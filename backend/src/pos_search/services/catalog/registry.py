"""Catalog source registry - load the configured CatalogSource."""

import importlib

from pos_search.config import Settings
from pos_search.db.session import Database
from pos_search.services.catalog.base import CatalogSource
from pos_search.services.catalog.memory_catalog import InMemoryCatalogSource


def _load_class(dotted_path: str) -> type:
    """Load class from dotted path like 'pos_search.services.catalog.sql_catalog.SqlCatalogSource'."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    mod = importlib.import_module(module_path)
    return getattr(mod, class_name)


def get_catalog_source(settings: Settings, database: Database) -> CatalogSource:
    """Instantiate the configured catalog source."""
    cls = _load_class(settings.catalog_source)
    if issubclass(cls, InMemoryCatalogSource):
        return cls(seed_path=settings.catalog_seed_path)
    return cls(database)

"""Shared fixtures: temp SQLite store, small catalog, fixed clock."""

from datetime import datetime, timedelta

import pytest

from pos_search.db.session import Database
from pos_search.services.analytics.aggregator import AnalyticsAggregator
from pos_search.services.catalog.base import CatalogEntry
from pos_search.services.catalog.memory_catalog import InMemoryCatalogSource
from pos_search.services.engine import SearchEngine
from pos_search.services.recording import BackgroundRecorder
from pos_search.services.suggestions.index import SuggestionIndex

NOW = datetime(2026, 3, 10, 12, 0, 0)


class FakeClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


CATALOG = [
    CatalogEntry(
        id="p-gita",
        name="Bhagavad Gita As It Is",
        price=250.0,
        keywords=("gita", "scripture"),
        category_path=("books", "scripture"),
        stock=10,
        attributes={"format": "Hardcover", "binding": "Sewn"},
        language="en",
    ),
    CatalogEntry(
        id="p-bhag",
        name="Srimad Bhagavatam",
        price=400.0,
        keywords=("bhagavatam", "purana"),
        category_path=("books", "purana"),
        stock=0,
        attributes={"format": "Paperback"},
    ),
    CatalogEntry(
        id="p-mala",
        name="Tulsi Mala",
        price=150.0,
        keywords=("mala", "beads"),
        category_path=("devotional",),
        stock=5,
        attributes={"material": "tulsi"},
        language="hi",
    ),
    CatalogEntry(
        id="p-old",
        name="Gita Old Edition",
        price=500.0,
        keywords=("gita",),
        category_path=("books", "scripture"),
        stock=1,
        language="en",
        active=False,
    ),
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'pos_search.db'}")
    db.init_schema()
    yield db
    db.dispose()


@pytest.fixture
def catalog():
    return InMemoryCatalogSource(CATALOG)


@pytest.fixture
def suggestions(database, clock):
    return SuggestionIndex(database, clock=clock)


@pytest.fixture
def analytics(database, clock):
    return AnalyticsAggregator(database, clock=clock)


@pytest.fixture
def engine(database, catalog, suggestions, analytics, clock):
    eng = SearchEngine(
        catalog=catalog,
        suggestions=suggestions,
        analytics=analytics,
        recorder=BackgroundRecorder(max_workers=1),
        clock=clock,
    )
    yield eng
    eng.close()

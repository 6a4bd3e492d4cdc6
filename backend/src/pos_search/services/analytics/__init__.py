"""Search telemetry and rollups."""

from pos_search.services.analytics.aggregator import (
    AnalyticsAggregator,
    ClickThroughRow,
    NoResultQuery,
    PopularQuery,
    SearchEventView,
    TrendPoint,
)

__all__ = [
    "AnalyticsAggregator",
    "SearchEventView",
    "PopularQuery",
    "NoResultQuery",
    "TrendPoint",
    "ClickThroughRow",
]

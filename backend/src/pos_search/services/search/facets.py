"""Facet counts over a filtered result set (drives the filter sidebar)."""

import math
from collections import Counter, defaultdict
from collections.abc import Iterable
from typing import Any

from pos_search.services.catalog.base import CatalogEntry

PRICE_BUCKETS = 5


def price_ranges(prices: list[float], buckets: int = PRICE_BUCKETS) -> list[dict[str, Any]]:
    """Split [min, max] into equal-width ranges and count entries per range."""
    if not prices:
        return []
    low, high = min(prices), max(prices)
    if low == high:
        return [{"min": low, "max": high, "count": len(prices)}]
    step = math.ceil((high - low) / buckets) or 1
    ranges = []
    for i in range(buckets):
        lo = low + i * step
        hi = high if i == buckets - 1 else low + (i + 1) * step
        if lo > high:
            break
        last = i == buckets - 1 or hi >= high
        count = sum(1 for p in prices if lo <= p <= hi) if last else sum(1 for p in prices if lo <= p < hi)
        ranges.append({"min": lo, "max": min(hi, high), "count": count})
        if last:
            break
    return ranges


def build_facets(entries: Iterable[CatalogEntry | None]) -> dict[str, Any]:
    categories: Counter[str] = Counter()
    languages: Counter[str] = Counter()
    attributes: dict[str, Counter[str]] = defaultdict(Counter)
    prices: list[float] = []
    for entry in entries:
        if entry is None:
            continue
        if entry.category_id:
            categories[entry.category_id] += 1
        languages[entry.language or "any"] += 1
        for name, value in entry.attributes.items():
            attributes[name][value] += 1
        prices.append(entry.price)
    return {
        "categories": [{"value": k, "count": n} for k, n in sorted(categories.items())],
        "price_ranges": price_ranges(prices),
        "attributes": {
            name: [{"value": v, "count": n} for v, n in sorted(counts.items())]
            for name, counts in sorted(attributes.items())
        },
        "languages": [{"value": k, "count": n} for k, n in sorted(languages.items())],
    }

"""Catalog interfaces - the search core only ever reads through these."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CatalogEntry:
    """Read-only projection of a product or product variant.

    `price` is already the effective price (variant price for variants).
    `language` None means the entry matches every search language.
    """

    id: str
    name: str
    price: float
    keywords: tuple[str, ...] = ()
    category_path: tuple[str, ...] = ()
    stock: int = 0
    attributes: Mapping[str, str] = field(default_factory=dict)
    language: str | None = None
    active: bool = True
    product_id: str | None = None
    is_variant: bool = False

    @property
    def category_id(self) -> str | None:
        """Leaf category (last element of the ancestor chain)."""
        return self.category_path[-1] if self.category_path else None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CatalogEntry":
        """Build from a JSON-style mapping (camelCase or snake_case keys)."""

        def pick(*keys: str, default: Any = None) -> Any:
            for k in keys:
                if k in data and data[k] is not None:
                    return data[k]
            return default

        attributes = pick("attributes", default={}) or {}
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            price=float(pick("price", "basePrice", "base_price", default=0.0)),
            keywords=tuple(str(k) for k in pick("keywords", default=()) or ()),
            category_path=tuple(
                str(c) for c in pick("categoryPath", "category_path", default=()) or ()
            ),
            stock=int(pick("stock", "stockQuantity", "stock_quantity", default=0)),
            attributes={str(k): str(v) for k, v in attributes.items()},
            language=pick("language"),
            active=bool(pick("active", "isActive", "is_active", default=True)),
            product_id=pick("productId", "product_id"),
            is_variant=bool(pick("isVariant", "is_variant", default=False)),
        )


class CatalogSource(ABC):
    """Catalog read API. Implementations raise StoreUnavailableError when unreachable."""

    @abstractmethod
    def entries(
        self,
        *,
        language: str | None = None,
        category_ids: Iterable[str] | None = None,
        active_only: bool = True,
    ) -> list[CatalogEntry]:
        """Return entries for the language (plus language-agnostic ones).

        When category_ids is given, only entries whose category path contains
        one of them are returned. Implementations may over-return; the ranker
        re-applies every filter.
        """
        ...

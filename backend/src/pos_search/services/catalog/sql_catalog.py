"""SqlCatalogSource - projects catalog tables into CatalogEntry rows."""

from collections.abc import Iterable

from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

from pos_search.core.logging import get_logger
from pos_search.db.models import Category, Product
from pos_search.db.session import Database
from pos_search.services.catalog.base import CatalogEntry, CatalogSource

logger = get_logger("pos_search.services.catalog.sql_catalog")


def _category_paths(categories: list[Category]) -> dict[str, tuple[tuple[str, ...], bool]]:
    """Map category id -> (ancestor chain root-first, whole chain active)."""
    by_id = {c.id: c for c in categories}
    paths: dict[str, tuple[tuple[str, ...], bool]] = {}
    for cat in categories:
        chain: list[str] = []
        active = True
        seen: set[str] = set()
        node: Category | None = cat
        while node is not None and node.id not in seen:
            seen.add(node.id)
            chain.append(node.id)
            active = active and bool(node.active)
            node = by_id.get(node.parent_id) if node.parent_id else None
        paths[cat.id] = (tuple(reversed(chain)), active)
    return paths


def _keywords(*groups: Iterable[str] | None) -> tuple[str, ...]:
    out: list[str] = []
    for group in groups:
        for kw in group or ():
            kw = str(kw).strip()
            if kw and kw not in out:
                out.append(kw)
    return tuple(out)


def _attributes(*maps: dict | None) -> dict[str, str]:
    merged: dict[str, str] = {}
    for m in maps:
        for k, v in (m or {}).items():
            if v is None or isinstance(v, (dict, list)):
                continue
            merged[str(k)] = str(v)
    return merged


class SqlCatalogSource(CatalogSource):
    """Reads categories/products/product_variants from the shared store."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def entries(
        self,
        *,
        language: str | None = None,
        category_ids: Iterable[str] | None = None,
        active_only: bool = True,
    ) -> list[CatalogEntry]:
        with self._db.session() as db:
            paths = _category_paths(list(db.scalars(select(Category))))

            stmt = select(Product).options(selectinload(Product.variants))
            if active_only:
                stmt = stmt.where(Product.active.is_(True))
            if language is not None:
                stmt = stmt.where(or_(Product.language.is_(None), Product.language == language))
            if category_ids is not None:
                wanted = set(category_ids)
                matching = [cid for cid, (path, _) in paths.items() if not wanted.isdisjoint(path)]
                if not matching:
                    return []
                stmt = stmt.where(Product.category_id.in_(matching))

            out: list[CatalogEntry] = []
            for product in db.scalars(stmt):
                out.extend(self._project(product, paths, active_only))
        logger.debug("Catalog read: %d entries (language=%s)", len(out), language)
        return out

    @staticmethod
    def _project(
        product: Product,
        paths: dict[str, tuple[tuple[str, ...], bool]],
        active_only: bool,
    ) -> list[CatalogEntry]:
        path, path_active = paths.get(product.category_id or "", ((), True))
        active = bool(product.active) and path_active
        if active_only and not active:
            return []
        keywords = _keywords(product.keywords)
        attributes = _attributes(product.attributes)
        variants = list(product.variants)
        stock = sum(v.stock_quantity or 0 for v in variants) if variants else (product.stock_quantity or 0)
        entries = [
            CatalogEntry(
                id=product.id,
                name=product.name,
                price=float(product.base_price),
                keywords=keywords,
                category_path=path,
                stock=int(stock),
                attributes=attributes,
                language=product.language,
                active=active,
            )
        ]
        for variant in variants:
            entries.append(
                CatalogEntry(
                    id=variant.id,
                    name=f"{product.name} - {variant.name}",
                    price=float(variant.price),
                    keywords=_keywords(keywords, variant.keywords),
                    category_path=path,
                    stock=int(variant.stock_quantity or 0),
                    attributes=_attributes(product.attributes, variant.attributes),
                    language=product.language,
                    active=active,
                    product_id=product.id,
                    is_variant=True,
                )
            )
        return entries

#!/usr/bin/env python3
"""Load a JSON catalog into the configured store. Run from backend/: python scripts/seed_catalog.py catalog.json

Input: {"categories": [...], "products": [...]} where each product may carry
a "variants" list. Existing rows with the same id are replaced.
"""

import json
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

# Ensure backend/src is on path when run from project root
backend = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(backend / "src"))

from pos_search.config import get_settings
from pos_search.db.models import Category, Product, ProductVariant
from pos_search.db.session import Database


def main():
    if len(sys.argv) != 2:
        print("Usage: python scripts/seed_catalog.py <catalog.json>")
        sys.exit(2)
    data = json.loads(Path(sys.argv[1]).read_text(encoding="utf-8"))

    settings = get_settings()
    database = Database(settings.database_url)
    database.init_schema()
    print(f"Store: {settings.database_url}")

    with database.session() as db:
        for c in data.get("categories", []):
            db.merge(
                Category(
                    id=c["id"],
                    name=c["name"],
                    parent_id=c.get("parentId"),
                    active=c.get("isActive", True),
                )
            )
        db.flush()
        n_variants = 0
        for p in data.get("products", []):
            db.merge(
                Product(
                    id=p["id"],
                    name=p["name"],
                    keywords=p.get("keywords", []),
                    category_id=p.get("categoryId"),
                    base_price=p["basePrice"],
                    stock_quantity=p.get("stockQuantity", 0),
                    attributes=p.get("attributes", {}),
                    language=p.get("language"),
                    active=p.get("isActive", True),
                )
            )
            for v in p.get("variants", []):
                db.merge(
                    ProductVariant(
                        id=v["id"],
                        product_id=p["id"],
                        name=v["name"],
                        price=v["price"],
                        stock_quantity=v.get("stockQuantity", 0),
                        attributes=v.get("attributes", {}),
                        keywords=v.get("keywords", []),
                    )
                )
                n_variants += 1

    print(f"Categories: {len(data.get('categories', []))}")
    print(f"Products: {len(data.get('products', []))} ({n_variants} variants)")
    database.dispose()
    print("OK")


if __name__ == "__main__":
    main()

"""SQLAlchemy models.

Catalog tables (categories, products, product_variants) belong to the
external catalog and are only read here. Suggestion and event tables are
owned by the search core.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from pos_search.core.clock import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
        list[str]: JSON,
    }


class Category(Base):
    """Catalog category; parent_id builds the ancestor chain."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    parent_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("categories.id"), nullable=True, index=True
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True)


class Product(Base):
    """Catalog product with base price and optional variants."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(512))
    keywords: Mapped[list[str]] = mapped_column(JSON, default=list)
    category_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("categories.id"), nullable=True, index=True
    )
    base_price: Mapped[float] = mapped_column(Float)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0)
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    language: Mapped[str | None] = mapped_column(String(8), nullable=True)  # None = any
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    variants: Mapped[list["ProductVariant"]] = relationship(
        back_populates="product", order_by="ProductVariant.id"
    )


class ProductVariant(Base):
    """Sellable variant of a product with its own price and stock."""

    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("products.id"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    price: Mapped[float] = mapped_column(Float)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0)
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    keywords: Mapped[list[str]] = mapped_column(JSON, default=list)

    product: Mapped[Product] = relationship(back_populates="variants")


class SuggestionEntry(Base):
    """Autocomplete entry, one row per (normalized_text, language)."""

    __tablename__ = "search_suggestions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    normalized_text: Mapped[str] = mapped_column(String(512))
    display_text: Mapped[str] = mapped_column(String(512))
    language: Mapped[str] = mapped_column(String(8))
    frequency: Mapped[int] = mapped_column(Integer, default=1)
    last_used_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index(
            "ux_search_suggestions_text_language",
            "normalized_text",
            "language",
            unique=True,
        ),
        Index("ix_search_suggestions_language_text", "language", "normalized_text"),
    )


class SearchEvent(Base):
    """Append-only search log record."""

    __tablename__ = "search_events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    query_text: Mapped[str] = mapped_column(Text)
    normalized_text: Mapped[str] = mapped_column(String(512), index=True)
    language: Mapped[str] = mapped_column(String(8), default="en")
    result_count: Mapped[int] = mapped_column(Integer)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)


class SearchClick(Base):
    """Click on a result, correlated to a search event by event id."""

    __tablename__ = "search_clicks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("search_events.id"), index=True
    )
    entry_id: Mapped[str] = mapped_column(String(64), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

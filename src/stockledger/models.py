"""Database models."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects import sqlite
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

# Ledger dates are naive UTC, kept on SQLite as ISO 8601 text such as
# 2024-01-01T12:00:00.000000Z so the column sorts chronologically.
LedgerDate = DateTime().with_variant(
    sqlite.DATETIME(
        storage_format="%(year)04d-%(month)02d-%(day)02dT%(hour)02d:%(minute)02d:%(second)02d.%(microsecond)06dZ",
        regexp=r"(\d+)-(\d+)-(\d+)T(\d+):(\d+):(\d+)\.(\d+)Z",
    ),
    "sqlite",
)


class MovementType(str, enum.Enum):
    """Direction of a stock movement."""

    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class Product(Base):
    """A catalog entry whose quantity is driven by the movement ledger."""

    __tablename__ = "products"
    __table_args__ = (Index("idx_prod_name", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    min_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"


class Movement(Base):
    """One immutable ledger row. Rows are only removed with their product."""

    __tablename__ = "movements"
    __table_args__ = (
        Index("idx_mov_prod", "product_id"),
        Index("idx_mov_date", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    type: Mapped[MovementType] = mapped_column(
        Enum(MovementType, native_enum=False, length=16, create_constraint=True, name="movement_type"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[datetime] = mapped_column(LedgerDate, nullable=False)
    note: Mapped[str | None] = mapped_column(String, nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Movement id={self.id} product_id={self.product_id} type={self.type.value} quantity={self.quantity}>"

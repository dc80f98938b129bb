"""Read-side queries: search, paging, low stock and export."""

from __future__ import annotations

import math
from typing import Any, Optional

from sqlalchemy import func, or_, select

from .database import InventoryStore
from .exceptions import ValidationError
from .models import Product
from .schemas import ProductPage, ProductRead

# Columns matched by the free-text search and by the paged listing filter.
# The paged filter does not look at location.
SEARCH_FIELDS = (Product.name, Product.category, Product.location)
PAGED_FILTER_FIELDS = (Product.name, Product.category)

EXPORT_COLUMNS = (
    Product.id,
    Product.name,
    Product.quantity,
    Product.min_quantity,
    Product.category,
    Product.location,
)

_ORDER = (Product.name, Product.id)


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _matching(text: Optional[str], fields) -> list:
    if text is None or not str(text).strip():
        return []
    pattern = _like_pattern(str(text))
    return [or_(*(field.ilike(pattern, escape="\\") for field in fields))]


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer") from exc


class ProductQueries:
    """Non-transactional reads over the latest committed state."""

    def __init__(self, store: InventoryStore, *, default_page_size: int = 20, max_page_size: int = 200) -> None:
        self.store = store
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def search(self, text: Optional[str]) -> list[ProductRead]:
        """Products whose name, category or location contains ``text``."""

        statement = select(Product).where(*_matching(text, SEARCH_FIELDS)).order_by(*_ORDER)
        with self.store.snapshot() as session:
            return [ProductRead.model_validate(row) for row in session.scalars(statement)]

    def list_paged(self, search: Optional[str] = None, page: Any = 1, page_size: Any = None) -> ProductPage:
        """Return one 1-indexed page of products matching ``search``.

        Out-of-range pages come back with no items but with the totals
        filled in so callers can clamp.
        """

        page = 1 if page is None else _as_int(page, "page")
        page_size = self.default_page_size if page_size is None else _as_int(page_size, "page_size")
        if page_size < 1:
            raise ValidationError("page_size must be at least 1")
        page_size = min(page_size, self.max_page_size)

        criteria = _matching(search, PAGED_FILTER_FIELDS)
        with self.store.snapshot() as session:
            total_items = session.scalar(select(func.count()).select_from(Product).where(*criteria)) or 0
            total_pages = math.ceil(total_items / page_size)
            items: list[ProductRead] = []
            if 1 <= page <= total_pages:
                statement = (
                    select(Product)
                    .where(*criteria)
                    .order_by(*_ORDER)
                    .offset((page - 1) * page_size)
                    .limit(page_size)
                )
                items = [ProductRead.model_validate(row) for row in session.scalars(statement)]

        return ProductPage(
            items=items,
            page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
        )

    def low_stock(self) -> list[ProductRead]:
        """Products strictly below their minimum quantity."""

        statement = select(Product).where(Product.quantity < Product.min_quantity).order_by(*_ORDER)
        with self.store.snapshot() as session:
            return [ProductRead.model_validate(row) for row in session.scalars(statement)]

    def export_snapshot(self) -> list[ProductRead]:
        statement = select(*EXPORT_COLUMNS).order_by(*_ORDER)
        with self.store.snapshot() as session:
            return [ProductRead.model_validate(dict(row._mapping)) for row in session.execute(statement)]

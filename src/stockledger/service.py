"""Boundary facade exposed to view and glue code.

Every operation returns plain JSON-compatible data. Failures never escape:
they come back as ``{"error": True, "code": ..., "message": ...}``.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Mapping, Optional

from .config import Settings
from .database import InventoryStore
from .exceptions import StockLedgerError, StorageError
from .ledger import Clock, MovementLedger, utcnow
from .queries import ProductQueries
from .repository import ProductRepository

logger = logging.getLogger(__name__)

Result = Any


def _failure(code: str, message: str) -> dict[str, Any]:
    return {"error": True, "code": code, "message": message}


def safe_call(operation: str) -> Callable[[Callable[..., Result]], Callable[..., Result]]:
    """Wrap a boundary method so any failure becomes a structured result."""

    def decorator(func: Callable[..., Result]) -> Callable[..., Result]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Result:
            try:
                return func(*args, **kwargs)
            except StockLedgerError as exc:
                level = logging.ERROR if isinstance(exc, StorageError) else logging.WARNING
                logger.log(
                    level,
                    "%s failed: %s",
                    operation,
                    exc.message,
                    extra={"operation": operation, "error_code": exc.code},
                )
                return exc.as_dict()
            except Exception as exc:
                logger.exception("%s failed unexpectedly", operation, extra={"operation": operation})
                return _failure("INTERNAL_ERROR", str(exc) or exc.__class__.__name__)

        wrapper.operation = operation  # type: ignore[attr-defined]
        return wrapper

    return decorator


def is_error(result: Result) -> bool:
    return isinstance(result, dict) and result.get("error") is True


class InventoryService:
    """The boundary operations, composed over one open store."""

    def __init__(
        self,
        store: InventoryStore,
        *,
        clock: Clock = utcnow,
        default_page_size: int = 20,
        max_page_size: int = 200,
    ) -> None:
        self.store = store
        self.products = ProductRepository(store)
        self.ledger = MovementLedger(store, clock=clock)
        self.queries = ProductQueries(
            store, default_page_size=default_page_size, max_page_size=max_page_size
        )
        self._operations: dict[str, Callable[..., Result]] = {
            "getProducts": self.get_products,
            "getProductsPaged": self.get_products_paged,
            "createProduct": self.create_product,
            "updateProduct": self.update_product,
            "deleteProduct": self.delete_product,
            "addMovement": self.add_movement,
            "getMovements": self.get_movements,
            "lowStock": self.low_stock,
            "searchProducts": self.search_products,
            "exportSnapshot": self.export_snapshot,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "InventoryService":
        store = InventoryStore(settings.database_path, busy_timeout=settings.busy_timeout).open()
        return cls(store, default_page_size=settings.page_size, max_page_size=settings.max_page_size)

    def close(self) -> None:
        self.store.close()

    @property
    def operations(self) -> list[str]:
        return sorted(self._operations)

    def call(self, operation: str, *args: Any, **kwargs: Any) -> Result:
        """Dispatch a boundary operation by name."""

        handler = self._operations.get(operation)
        if handler is None:
            logger.warning("unknown operation %s", operation, extra={"operation": operation})
            return _failure("UNKNOWN_OPERATION", f"Unknown operation '{operation}'")
        return handler(*args, **kwargs)

    @safe_call("getProducts")
    def get_products(self) -> Result:
        return [product.model_dump() for product in self.products.list_all()]

    @safe_call("getProductsPaged")
    def get_products_paged(self, search: Optional[str] = None, page: Any = 1, page_size: Any = None) -> Result:
        return self.queries.list_paged(search, page, page_size).model_dump(by_alias=True)

    @safe_call("createProduct")
    def create_product(self, fields: Mapping[str, Any]) -> Result:
        return {"id": self.products.create(fields)}

    @safe_call("updateProduct")
    def update_product(self, fields: Mapping[str, Any]) -> Result:
        self.products.update(fields)
        return {"ok": True}

    @safe_call("deleteProduct")
    def delete_product(self, product_id: Any) -> Result:
        self.products.delete(product_id)
        return {"ok": True}

    @safe_call("addMovement")
    def add_movement(self, fields: Mapping[str, Any]) -> Result:
        record = self.ledger.add_movement(fields)
        return {"ok": True, "id": record.id, "date": record.date.isoformat()}

    @safe_call("getMovements")
    def get_movements(self) -> Result:
        return [movement.model_dump(mode="json") for movement in self.ledger.list()]

    @safe_call("lowStock")
    def low_stock(self) -> Result:
        return [product.model_dump() for product in self.queries.low_stock()]

    @safe_call("searchProducts")
    def search_products(self, text: Optional[str] = None) -> Result:
        return [product.model_dump() for product in self.queries.search(text)]

    @safe_call("exportSnapshot")
    def export_snapshot(self) -> Result:
        return [row.model_dump() for row in self.queries.export_snapshot()]

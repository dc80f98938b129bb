"""
Exceptions raised by the inventory store.

Every error carries a machine-readable ``code`` and a human-readable
``message`` so the boundary layer can turn it into a structured result::

    try:
        ledger.add_movement({"product_id": 7, "type": "INBOUND", "quantity": 5})
    except ReferentialIntegrityError as exc:
        return exc.as_dict()
"""

from __future__ import annotations

from typing import Any


class StockLedgerError(Exception):
    """Base class for all inventory store errors."""

    code = "STOCKLEDGER_ERROR"
    default_message = "Inventory store error"

    def __init__(self, message: str | None = None, **data: Any) -> None:
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to the structured ``{error, code, message}`` shape."""
        payload: dict[str, Any] = {"error": True, "code": self.code, "message": self.message}
        if self.data:
            payload["data"] = self.data
        return payload


class ValidationError(StockLedgerError):
    """Raised when input is malformed or a required field is missing."""

    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class NotFoundError(StockLedgerError):
    """Raised when an operation targets a product id that does not exist."""

    code = "NOT_FOUND"
    default_message = "Record not found"


class ReferentialIntegrityError(StockLedgerError):
    """Raised when a movement references a product that does not exist."""

    code = "REFERENTIAL_INTEGRITY"
    default_message = "Movement references an unknown product"


class StorageError(StockLedgerError):
    """Raised when the underlying database engine fails."""

    code = "STORAGE_ERROR"
    default_message = "Storage engine failure"


__all__ = [
    "NotFoundError",
    "ReferentialIntegrityError",
    "StockLedgerError",
    "StorageError",
    "ValidationError",
]

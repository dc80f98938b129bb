"""Pydantic schemas for store payloads."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError
from .models import MovementType

ModelT = TypeVar("ModelT", bound=BaseModel)


def _lenient_int(value: Any) -> int:
    """Return ``value`` as an int, or 0 when it is absent or not numeric."""

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            return 0
    return 0


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ProductFields(BaseModel):
    name: str
    quantity: int = 0
    min_quantity: int = 0
    category: Optional[str] = None
    location: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _require_name(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("product name must not be empty")
        return text

    @field_validator("quantity", "min_quantity", mode="before")
    @classmethod
    def _default_numbers(cls, value: Any) -> int:
        return _lenient_int(value)

    @field_validator("category", "location", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return _blank_to_none(value)


class ProductCreate(ProductFields):
    pass


class ProductUpdate(ProductFields):
    id: int = Field(..., ge=1)


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    quantity: int
    min_quantity: int
    category: Optional[str] = None
    location: Optional[str] = None


class MovementCreate(BaseModel):
    product_id: int
    type: MovementType
    # The sign check runs in the ledger, after the product lookup.
    quantity: int = Field(..., description="Magnitude; the direction comes from type")
    note: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("note", mode="before")
    @classmethod
    def _optional_note(cls, value: Any) -> Optional[str]:
        return _blank_to_none(value)


class MovementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    type: MovementType
    quantity: int
    date: datetime
    note: Optional[str] = None
    product_name: Optional[str] = None


class ProductPage(BaseModel):
    """One page of products plus the counts needed to clamp navigation."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[ProductRead]
    page: int
    page_size: int = Field(..., alias="pageSize")
    total_items: int = Field(..., alias="totalItems")
    total_pages: int = Field(..., alias="totalPages")


def coerce_id(value: Any, field: str = "id") -> int:
    """Return a positive integer identifier or raise ValidationError."""

    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be an integer")
    try:
        identifier = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer") from exc
    if identifier < 1:
        raise ValidationError(f"{field} must be positive")
    return identifier


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse_payload(model: type[ModelT], payload: ModelT | Mapping[str, Any]) -> ModelT:
    """Validate ``payload`` against ``model`` raising the store's ValidationError."""

    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise ValidationError(f"Expected an object for {model.__name__}, got {type(payload).__name__}")
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from exc

"""Append-only movement ledger.

The ledger is the only writer of quantity deltas. Recording a movement
inserts the ledger row and applies its delta to the product inside one
``BEGIN IMMEDIATE`` transaction, so either both land or neither does.
Movements are never updated or deleted here; they disappear only when
their product is deleted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from .database import InventoryStore
from .exceptions import ReferentialIntegrityError, ValidationError
from .models import Movement, MovementType, Product
from .schemas import MovementCreate, MovementRead, coerce_id, parse_payload

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form SQLite stores."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def delta(movement_type: MovementType, quantity: int) -> int:
    """Signed change a movement applies to its product."""

    if movement_type is MovementType.INBOUND:
        return quantity
    return -abs(quantity)


def _read(movement: Movement, product_name: str | None) -> MovementRead:
    return MovementRead(
        id=movement.id,
        product_id=movement.product_id,
        type=movement.type,
        quantity=movement.quantity,
        date=movement.date,
        note=movement.note,
        product_name=product_name,
    )


class MovementLedger:
    def __init__(self, store: InventoryStore, clock: Clock = utcnow) -> None:
        self.store = store
        self.clock = clock

    def add_movement(self, payload: MovementCreate | Mapping[str, Any]) -> MovementRead:
        """Record a movement and apply its delta atomically."""

        data = parse_payload(MovementCreate, payload)

        with self.store.transaction() as session:
            product = session.get(Product, data.product_id)
            if product is None:
                raise ReferentialIntegrityError(
                    f"Product {data.product_id} does not exist", product_id=data.product_id
                )
            if data.quantity <= 0:
                raise ValidationError("quantity must be a positive integer", quantity=data.quantity)
            change = delta(data.type, data.quantity)
            movement = Movement(
                product_id=data.product_id,
                type=data.type,
                quantity=data.quantity,
                date=self.clock(),
                note=data.note,
            )
            session.add(movement)
            session.flush()
            self._apply_delta(session, data.product_id, change)
            record = _read(movement, product.name)

        logger.info(
            "movement.add",
            extra={
                "movement_id": record.id,
                "product_id": record.product_id,
                "movement_type": record.type.value,
                "delta": change,
            },
        )
        return record

    def _apply_delta(self, session: Session, product_id: int, change: int) -> None:
        result = session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(quantity=Product.quantity + change)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ReferentialIntegrityError(f"Product {product_id} does not exist", product_id=product_id)

    def _listing(self):
        return (
            select(Movement, Product.name)
            .outerjoin(Product, Product.id == Movement.product_id)
            .order_by(Movement.date.desc(), Movement.id.desc())
        )

    def list(self) -> list[MovementRead]:
        """All movements, newest first, with the product name."""

        with self.store.snapshot() as session:
            return [_read(movement, name) for movement, name in session.execute(self._listing())]

    def list_for_product(self, product_id: Any) -> list[MovementRead]:
        product_id = coerce_id(product_id)
        statement = self._listing().where(Movement.product_id == product_id)
        with self.store.snapshot() as session:
            return [_read(movement, name) for movement, name in session.execute(statement)]

    def net_quantity(self, product_id: Any) -> int:
        """Sum of the deltas recorded for ``product_id``."""

        product_id = coerce_id(product_id)
        signed = case(
            (Movement.type == MovementType.INBOUND, Movement.quantity),
            else_=-func.abs(Movement.quantity),
        )
        statement = select(func.coalesce(func.sum(signed), 0)).where(Movement.product_id == product_id)
        with self.store.snapshot() as session:
            return int(session.scalar(statement) or 0)

"""Product catalog access helpers."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import delete, func, select, update

from .database import InventoryStore
from .exceptions import NotFoundError
from .models import Movement, Product
from .schemas import ProductCreate, ProductRead, ProductUpdate, coerce_id, parse_payload

logger = logging.getLogger(__name__)


class ProductRepository:
    """CRUD over the product catalog.

    Quantity deltas are never computed here; stock changes go through
    :class:`stockledger.ledger.MovementLedger`. ``update`` is the only place
    a quantity is overwritten directly, as a full-record correction.
    """

    def __init__(self, store: InventoryStore) -> None:
        self.store = store

    def list_all(self) -> list[ProductRead]:
        statement = select(Product).order_by(Product.name, Product.id)
        with self.store.snapshot() as session:
            return [ProductRead.model_validate(row) for row in session.scalars(statement)]

    def get(self, product_id: Any) -> ProductRead:
        product_id = coerce_id(product_id)
        with self.store.snapshot() as session:
            product = session.get(Product, product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
            return ProductRead.model_validate(product)

    def count(self) -> int:
        with self.store.snapshot() as session:
            return session.scalar(select(func.count()).select_from(Product)) or 0

    def create(self, payload: ProductCreate | Mapping[str, Any]) -> int:
        data = parse_payload(ProductCreate, payload)
        with self.store.transaction() as session:
            product = Product(**data.model_dump())
            session.add(product)
            session.flush()
            product_id = product.id
        logger.info("product.create", extra={"product_id": product_id, "product_name": data.name})
        return product_id

    def update(self, payload: ProductUpdate | Mapping[str, Any]) -> None:
        data = parse_payload(ProductUpdate, payload)
        statement = (
            update(Product)
            .where(Product.id == data.id)
            .values(**data.model_dump(exclude={"id"}))
            .execution_options(synchronize_session=False)
        )
        with self.store.transaction() as session:
            result = session.execute(statement)
            if result.rowcount == 0:
                raise NotFoundError(f"Product {data.id} not found", product_id=data.id)
        logger.info("product.update", extra={"product_id": data.id, "quantity": data.quantity})

    def delete(self, product_id: Any) -> None:
        """Remove a product and its ledger rows as one unit of work."""

        product_id = coerce_id(product_id)
        with self.store.transaction() as session:
            if session.get(Product, product_id) is None:
                raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
            removed = session.execute(
                delete(Movement)
                .where(Movement.product_id == product_id)
                .execution_options(synchronize_session=False)
            ).rowcount
            session.execute(
                delete(Product).where(Product.id == product_id).execution_options(synchronize_session=False)
            )
        logger.info("product.delete", extra={"product_id": product_id, "movements_removed": removed})

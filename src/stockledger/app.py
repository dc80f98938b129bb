"""FastAPI application factory."""

from __future__ import annotations

import io
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .config import Settings, configure_logging, get_settings
from .dependencies import get_service
from .exceptions import NotFoundError, ReferentialIntegrityError, StockLedgerError, StorageError, ValidationError
from .export import write_csv
from .schemas import MovementCreate, MovementRead, ProductCreate, ProductFields, ProductPage, ProductRead
from .service import InventoryService

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[StockLedgerError], int] = {
    ValidationError: 422,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ReferentialIntegrityError: status.HTTP_404_NOT_FOUND,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _status_for(exc: StockLedgerError) -> int:
    for error_type, code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(settings: Optional[Settings] = None, service: Optional[InventoryService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``service`` is not given the app opens its own store from
    ``settings`` on startup and closes it on shutdown.
    """

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if service is not None:
            app.state.service = service
            yield
            return
        app.state.service = InventoryService.from_settings(settings)
        try:
            yield
        finally:
            app.state.service.close()

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    if service is not None:
        app.state.service = service

    @app.exception_handler(StockLedgerError)
    async def stockledger_error_handler(request: Request, exc: StockLedgerError) -> JSONResponse:
        logger.warning("%s %s: %s", request.method, request.url.path, exc.message, extra={"error_code": exc.code})
        return JSONResponse(status_code=_status_for(exc), content=exc.as_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid value')}"
            for error in exc.errors()
        )
        return JSONResponse(
            status_code=422,
            content=ValidationError(message).as_dict(),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("%s %s failed unexpectedly", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": True, "code": "INTERNAL_ERROR", "message": str(exc) or exc.__class__.__name__},
        )

    @app.get("/health", tags=["system"])
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/products", response_model=list[ProductRead], tags=["products"])
    def list_products(svc: InventoryService = Depends(get_service)):
        return svc.products.list_all()

    @app.get("/products/paged", response_model=ProductPage, tags=["products"])
    def list_products_paged(
        search: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        svc: InventoryService = Depends(get_service),
    ):
        return svc.queries.list_paged(search, page, page_size)

    @app.get("/products/search", response_model=list[ProductRead], tags=["products"])
    def search_products(q: Optional[str] = None, svc: InventoryService = Depends(get_service)):
        return svc.queries.search(q)

    @app.get("/products/low-stock", response_model=list[ProductRead], tags=["products"])
    def low_stock(svc: InventoryService = Depends(get_service)):
        return svc.queries.low_stock()

    @app.get("/products/export", response_model=list[ProductRead], tags=["export"])
    def export_snapshot(svc: InventoryService = Depends(get_service)):
        return svc.queries.export_snapshot()

    @app.get("/products/export.csv", tags=["export"])
    def export_snapshot_csv(svc: InventoryService = Depends(get_service)) -> Response:
        buffer = io.StringIO()
        write_csv((row.model_dump() for row in svc.queries.export_snapshot()), buffer)
        return Response(
            content=buffer.getvalue(),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="products.csv"'},
        )

    @app.get("/products/{product_id}", response_model=ProductRead, tags=["products"])
    def get_product(product_id: int, svc: InventoryService = Depends(get_service)):
        return svc.products.get(product_id)

    @app.post("/products", status_code=status.HTTP_201_CREATED, tags=["products"])
    def create_product(payload: ProductCreate, svc: InventoryService = Depends(get_service)) -> dict[str, int]:
        return {"id": svc.products.create(payload)}

    @app.put("/products/{product_id}", tags=["products"])
    def update_product(
        product_id: int, payload: ProductFields, svc: InventoryService = Depends(get_service)
    ) -> dict[str, bool]:
        svc.products.update({"id": product_id, **payload.model_dump()})
        return {"ok": True}

    @app.delete("/products/{product_id}", tags=["products"])
    def delete_product(product_id: int, svc: InventoryService = Depends(get_service)) -> dict[str, bool]:
        svc.products.delete(product_id)
        return {"ok": True}

    @app.post("/movements", response_model=MovementRead, status_code=status.HTTP_201_CREATED, tags=["movements"])
    def add_movement(payload: MovementCreate, svc: InventoryService = Depends(get_service)):
        return svc.ledger.add_movement(payload)

    @app.get("/movements", response_model=list[MovementRead], tags=["movements"])
    def list_movements(svc: InventoryService = Depends(get_service)):
        return svc.ledger.list()

    return app

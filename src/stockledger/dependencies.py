"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from .service import InventoryService


def get_service(request: Request) -> InventoryService:
    """Provide the application's inventory service to routes."""

    return request.app.state.service

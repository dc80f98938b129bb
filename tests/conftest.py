import logging
from collections.abc import Generator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from stockledger.app import create_app
from stockledger.config import Settings, get_settings
from stockledger.database import InventoryStore
from stockledger.service import InventoryService


class StepClock:
    """Deterministic clock that moves one second forward per reading."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    yield
    logger = logging.getLogger("stockledger")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


@pytest.fixture(name="db_path")
def db_path_fixture(tmp_path: Path) -> Path:
    return tmp_path / "inventory.sqlite3"


@pytest.fixture(name="store")
def store_fixture(db_path: Path) -> Generator[InventoryStore, None, None]:
    store = InventoryStore(db_path).open()
    yield store
    store.close()


@pytest.fixture(name="clock")
def clock_fixture() -> StepClock:
    return StepClock()


@pytest.fixture(name="service")
def service_fixture(store: InventoryStore, clock: StepClock) -> InventoryService:
    return InventoryService(store, clock=clock, default_page_size=10, max_page_size=50)


@pytest.fixture(name="client")
def client_fixture(service: InventoryService, db_path: Path) -> Generator[TestClient, None, None]:
    settings = Settings(database_path=db_path, log_level="warning")
    app = create_app(settings, service=service)

    with TestClient(app) as client:
        yield client


@pytest.fixture(name="cli_env")
def cli_env_fixture(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    db_file = tmp_path / "cli" / "inventory.sqlite3"
    monkeypatch.setenv("STOCKLEDGER_DB", str(db_file))
    monkeypatch.setenv("STOCKLEDGER_LOG_LEVEL", "warning")
    get_settings.cache_clear()
    yield db_file
    get_settings.cache_clear()

"""Application configuration helpers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _default_data_root() -> Path:
    """Return the platform specific directory used for persistent data."""

    if os.name == "nt":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home()))
        return base / "StockLedger"
    return Path.home() / ".stockledger"


def _default_database_path() -> Path:
    """Resolve the database path taking overrides into account."""

    override = os.environ.get("STOCKLEDGER_DB")
    if override:
        return Path(override).expanduser()
    return _default_data_root() / "inventory.sqlite3"


@dataclass(slots=True)
class Settings:
    """Runtime configuration loaded from environment variables."""

    app_name: str = field(default_factory=lambda: os.environ.get("STOCKLEDGER_APP_NAME", "Stock Ledger"))
    host: str = field(default_factory=lambda: os.environ.get("STOCKLEDGER_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.environ.get("STOCKLEDGER_PORT", "8000")))
    reload: bool = field(default_factory=lambda: os.environ.get("STOCKLEDGER_RELOAD", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.environ.get("STOCKLEDGER_LOG_LEVEL", "info"))
    database_path: Path = field(default_factory=_default_database_path)
    page_size: int = field(default_factory=lambda: int(os.environ.get("STOCKLEDGER_PAGE_SIZE", "20")))
    max_page_size: int = field(default_factory=lambda: int(os.environ.get("STOCKLEDGER_MAX_PAGE_SIZE", "200")))
    busy_timeout: int = field(default_factory=lambda: int(os.environ.get("STOCKLEDGER_BUSY_TIMEOUT", "5000")))

    def ensure_storage(self) -> None:
        """Ensure that the database directory exists."""

        self.database_path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    settings = Settings()
    settings.ensure_storage()
    return settings


def configure_logging(level: str = "info") -> None:
    """Attach a stream handler to the ``stockledger`` logger tree once."""

    logger = logging.getLogger("stockledger")
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

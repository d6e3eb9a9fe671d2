import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_config() -> dict[str, str]:
    """
    Load configuration from environment variables.
    Called lazily to avoid failing on import.
    """
    return {
        "FILTER_STATE_KEY": os.getenv("FILTER_STATE_KEY", "applicants_table_state"),
        "FILTER_STATE_DB_PATH": os.getenv("FILTER_STATE_DB_PATH", "filter_state.db"),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
    }


class _Config:
    """Lazy configuration that only validates when values are actually accessed."""

    def __init__(self) -> None:
        self._config: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._config is None:
            self._config = get_config()
        return self._config

    @property
    def FILTER_STATE_KEY(self) -> str:
        """Storage key the table state blob is written under."""
        key = self._load()["FILTER_STATE_KEY"].strip()
        if not key:
            raise ValueError("FILTER_STATE_KEY must not be empty.")
        return key

    @property
    def FILTER_STATE_DB_PATH(self) -> str:
        """SQLite file backing the long-lived storage tier."""
        path = self._load()["FILTER_STATE_DB_PATH"].strip()
        if not path:
            raise ValueError("FILTER_STATE_DB_PATH must not be empty.")
        return path

    @property
    def LOG_LEVEL(self) -> int:
        raw = self._load()["LOG_LEVEL"].strip().upper()
        if raw not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got '{raw}'")
        return logging.getLevelName(raw)


_cfg = _Config()

# Module-level type declarations for mypy.
# The actual values come from __getattr__ below.
FILTER_STATE_KEY: str
FILTER_STATE_DB_PATH: str
LOG_LEVEL: int


# Module-level lazy access using __getattr__ (PEP 562).
def __getattr__(name: str) -> str | int:
    if name == "FILTER_STATE_KEY":
        return _cfg.FILTER_STATE_KEY
    if name == "FILTER_STATE_DB_PATH":
        return _cfg.FILTER_STATE_DB_PATH
    if name == "LOG_LEVEL":
        return _cfg.LOG_LEVEL
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

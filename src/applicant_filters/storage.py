import logging
import sqlite3
from types import TracebackType
from typing import Protocol

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """The string key-value store the filter state is persisted to."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """
    Short-lived storage tier. Lives as long as the process (a browser tab's
    session storage in the dashboard).
    """

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()


class SqliteStorage:
    """
    Long-lived storage tier: one `kv_store` table in a SQLite file that
    outlives the process. ":memory:" gives a throwaway tier for tests.
    Use as a context manager to close the connection on exit.
    """

    def __init__(self, db_path: str = "filter_state.db") -> None:
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = sqlite3.connect(db_path)
        self.init_db()

    @property
    def connection(self) -> sqlite3.Connection:
        """The open SQLite connection; raises once the tier is closed."""
        if self._conn is None:
            raise RuntimeError("Storage connection is closed")
        return self._conn

    def init_db(self) -> None:
        """Create the key-value table if it doesn't exist."""
        cursor = self.connection.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.connection.commit()
        logger.info(f"Filter state storage initialized at {self.db_path}")

    def get_item(self, key: str) -> str | None:
        cursor = self.connection.cursor()
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        cursor = self.connection.cursor()
        cursor.execute(
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                updated_at = CURRENT_TIMESTAMP
            """,
            (key, value),
        )
        self.connection.commit()

    def remove_item(self, key: str) -> None:
        cursor = self.connection.cursor()
        cursor.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self.connection.commit()

    def close(self) -> None:
        """Close the connection. Safe to call twice."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SqliteStorage":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

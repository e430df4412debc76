"""Key-value persistence for the remembered source directory."""

from __future__ import annotations

from pathlib import Path
import sqlite3

from korsync.store.schema import apply_runtime_pragmas, ensure_schema

DIRECTORY_HANDLE_KEY = "korsync__directory"


class SettingsRepository:
    """SQLite-backed storage for single opaque settings values."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._connection = sqlite3.connect(str(self._db_path))
        self._connection.row_factory = sqlite3.Row
        apply_runtime_pragmas(self._connection)
        ensure_schema(self._connection)

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "SettingsRepository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get(self, key: str) -> str | None:
        row = self._connection.execute("SELECT value FROM kv_settings WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set(self, key: str, value: str) -> None:
        with self._connection:
            self._connection.execute(
                """
                INSERT INTO kv_settings (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )

    def delete(self, key: str) -> None:
        with self._connection:
            self._connection.execute("DELETE FROM kv_settings WHERE key = ?", (key,))

    def get_directory(self) -> Path | None:
        value = self.get(DIRECTORY_HANDLE_KEY)
        return Path(value) if value else None

    def remember_directory(self, path: Path) -> None:
        self.set(DIRECTORY_HANDLE_KEY, str(path))

    def forget_directory(self) -> None:
        self.delete(DIRECTORY_HANDLE_KEY)

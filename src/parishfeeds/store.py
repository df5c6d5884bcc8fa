"""SQLite admin settings store.

A flat key/value table edited from the admin panel. The feed core reads the
manual verse override from it.

Reads catch ``aiosqlite.Error`` and degrade: ``get`` returns ``None`` and
``get_all_by_prefix`` returns ``[]``, so a broken database shows the network
verse instead of failing the page. Writes propagate, because an admin who
saves an override must learn that it was not stored.
"""

from __future__ import annotations

import aiosqlite
import structlog

log = structlog.get_logger()

MANUAL_VERSE_TEXT_KEY = "manual_verse_text"
MANUAL_VERSE_SOURCE_KEY = "manual_verse_source"
MANUAL_VERSE_PREFIX = "manual_verse_"

_CREATE_SETTINGS_TABLE = """
CREATE TABLE IF NOT EXISTS admin_settings (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SettingsStore:
    """SQLite-backed key/value store implementing SettingsStoreProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_SETTINGS_TABLE)
        await self._db.commit()

    async def get(self, key: str) -> str | None:
        """Read one setting. Returns ``None`` when missing or on read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT value FROM admin_settings WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            return row[0] if row is not None else None
        except aiosqlite.Error:
            log.warning("settings_read_error", key=key, exc_info=True)
            return None

    async def set(self, key: str, value: str) -> None:
        await self._db.execute(
            "INSERT INTO admin_settings (key, value, updated_at) "
            "VALUES (?, ?, datetime('now')) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
            "updated_at = excluded.updated_at",
            (key, value),
        )
        await self._db.commit()
        log.info("settings_updated", key=key)

    async def get_all_by_prefix(self, prefix: str) -> list[tuple[str, str]]:
        """Return ``(key, value)`` pairs whose key starts with ``prefix``, by key."""
        try:
            cursor = await self._db.execute(
                "SELECT key, value FROM admin_settings WHERE key LIKE ? ESCAPE '\\' "
                "ORDER BY key",
                (_escape_like(prefix) + "%",),
            )
            rows = await cursor.fetchall()
            return [(row[0], row[1]) for row in rows]
        except aiosqlite.Error:
            log.warning("settings_read_error", prefix=prefix, exc_info=True)
            return []

from __future__ import annotations

from userimport.common.time import getNowIso
from userimport.domain.models import DEFAULT_ROLE
from userimport.infra.directory.sqlite_engine import SqliteEngine

SCHEMA_VERSION = 2


def ensure_schema(engine: SqliteEngine) -> int:
    """
    Назначение:
        Создать схему каталога (meta/roles/accounts/notifications), применить
        миграции и гарантировать наличие базовой роли.

    Выходные данные:
        int
            Итоговая версия схемы.
    """
    with engine.transaction():
        _create_meta(engine)
        current_version = _get_schema_version(engine) or 0

        if current_version == 0:
            _create_tables(engine)
            _create_notifications(engine)
        elif current_version < 2:
            _create_notifications(engine)

        if current_version < SCHEMA_VERSION:
            _set_schema_version(engine, SCHEMA_VERSION)

        engine.execute(
            "INSERT OR IGNORE INTO roles(role_id, label, created_at) VALUES (?, ?, ?)",
            (DEFAULT_ROLE, "Authenticated user", getNowIso()),
        )
    return SCHEMA_VERSION


def _create_meta(engine: SqliteEngine) -> None:
    engine.execute(
        """
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
        """
    )


def _create_tables(engine: SqliteEngine) -> None:
    engine.execute(
        """
        CREATE TABLE IF NOT EXISTS roles (
            role_id TEXT PRIMARY KEY COLLATE NOCASE,
            label TEXT,
            created_at TEXT NOT NULL
        )
        """
    )
    engine.execute(
        """
        CREATE TABLE IF NOT EXISTS accounts (
            account_id INTEGER PRIMARY KEY AUTOINCREMENT,
            identifier TEXT NOT NULL UNIQUE COLLATE NOCASE,
            email TEXT NOT NULL COLLATE NOCASE,
            init_email TEXT NOT NULL,
            role TEXT NOT NULL REFERENCES roles(role_id),
            status INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        )
        """
    )
    engine.execute("CREATE INDEX IF NOT EXISTS idx_accounts_email ON accounts(email)")


def _create_notifications(engine: SqliteEngine) -> None:
    engine.execute(
        """
        CREATE TABLE IF NOT EXISTS notifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            account_id INTEGER NOT NULL REFERENCES accounts(account_id),
            kind TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )


def _get_schema_version(engine: SqliteEngine) -> int | None:
    row = engine.fetchone("SELECT value FROM meta WHERE key='schema_version'")
    if row is None:
        return None
    try:
        return int(row[0])
    except (TypeError, ValueError):
        return None


def _set_schema_version(engine: SqliteEngine, version: int) -> None:
    engine.execute(
        """
        INSERT INTO meta(key, value)
        VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        ("schema_version", str(version)),
    )

from __future__ import annotations

import sqlite3
from pathlib import Path

from userimport.infra.directory.schema import ensure_schema
from userimport.infra.directory.sqlite_engine import SqliteEngine

DB_FILE_NAME = "accounts.sqlite3"
BUSY_TIMEOUT_SECONDS = 5.0


def getDirectoryDbPath(dataDir: str) -> str:
    """Путь к файлу каталога учётных записей внутри dataDir."""
    return str(Path(dataDir) / DB_FILE_NAME)


def openDirectoryDb(dbPath: str) -> sqlite3.Connection:
    """
    Назначение:
        Открывает/создаёт файл каталога в режиме autocommit (isolation_level=None):
        границы транзакций задаёт только SqliteEngine.transaction().
    """
    Path(dbPath).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(dbPath, timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def openDirectoryEngine(dataDir: str) -> SqliteEngine:
    """
    Назначение:
        Готовый к работе каталог: соединение + актуальная схема.
    Ошибки/исключения:
        sqlite3.Error пробрасывается; соединение при этом закрывается.
    """
    engine = SqliteEngine(openDirectoryDb(getDirectoryDbPath(dataDir)))
    try:
        ensure_schema(engine)
    except sqlite3.Error:
        engine.close()
        raise
    return engine

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator

Params = tuple | dict | None


class SqliteEngine:
    """
    Назначение/ответственность:
        Доступ к каталогу учётных записей поверх соединения в режиме autocommit.
    Инварианты/гарантии:
        - Вне transaction() каждая команда фиксируется сразу.
        - transaction() берёт блокировку записи (BEGIN IMMEDIATE), чтобы
          проверка дубликатов и вставка параллельного импорта не перемешались.
        - Вложенные transaction() не поддерживаются: sqlite3 отклонит второй BEGIN.
    """

    def __init__(self, conn: sqlite3.Connection):
        if conn.isolation_level is not None:
            raise ValueError("SqliteEngine requires a connection opened with isolation_level=None")
        self.conn = conn

    def execute(self, sql: str, params: Params = None) -> sqlite3.Cursor:
        return self.conn.execute(sql, params if params is not None else ())

    def fetchone(self, sql: str, params: Params = None) -> sqlite3.Row | None:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = None) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def scalar(self, sql: str, params: Params = None) -> Any:
        """Первая колонка первой строки или None."""
        row = self.fetchone(sql, params)
        return row[0] if row is not None else None

    def exists(self, sql: str, params: Params = None) -> bool:
        return self.fetchone(sql, params) is not None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self.conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        self.conn.execute("COMMIT")

    def close(self) -> None:
        self.conn.close()

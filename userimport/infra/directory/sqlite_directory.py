from __future__ import annotations

import sqlite3

from userimport.common.time import getNowIso
from userimport.domain.exceptions import CreationError, NotificationError
from userimport.domain.models import CandidateAccount
from userimport.infra.directory.sqlite_engine import SqliteEngine

WELCOME_KIND = "register_admin_created"


class SqliteAccountDirectory:
    """
    Назначение/ответственность:
        Локальный каталог учётных записей в SQLite.
    Инварианты/гарантии:
        - identifier уникален без учёта регистра.
        - email сравнивается без учёта регистра, уникальность не навязывается.
    """

    def __init__(self, engine: SqliteEngine):
        self.engine = engine

    def exists_by_identifier(self, identifier: str) -> bool:
        return self.engine.exists("SELECT 1 FROM accounts WHERE identifier = ? LIMIT 1", (identifier,))

    def exists_by_email(self, email: str) -> bool:
        return self.engine.exists("SELECT 1 FROM accounts WHERE email = ? LIMIT 1", (email,))

    def canonical_role(self, role_id: str) -> str | None:
        """Роль в написании каталога (сравнение без учёта регистра) или None."""
        return self.engine.scalar("SELECT role_id FROM roles WHERE role_id = ?", (role_id,))

    def role_exists(self, role_id: str) -> bool:
        return self.canonical_role(role_id) is not None

    def create_account(self, candidate: CandidateAccount, activate: bool) -> int:
        """
        Контракт (вход/выход):
            - Вход: кандидат и признак активации.
            - Выход: account_id созданной записи.
        Ошибки/исключения:
            CreationError при нарушении ограничений БД.
        """
        try:
            with self.engine.transaction():
                cur = self.engine.execute(
                    """
                    INSERT INTO accounts(identifier, email, init_email, role, status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        candidate.identifier,
                        candidate.email,
                        candidate.email,
                        candidate.role,
                        1 if activate else 0,
                        getNowIso(),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise CreationError(candidate.identifier, str(exc)) from exc
        return int(cur.lastrowid)

    def add_role(self, role_id: str, label: str | None = None) -> bool:
        """Добавляет роль; False, если такая уже есть."""
        with self.engine.transaction():
            cur = self.engine.execute(
                "INSERT OR IGNORE INTO roles(role_id, label, created_at) VALUES (?, ?, ?)",
                (role_id, label, getNowIso()),
            )
        return cur.rowcount > 0

    def list_roles(self) -> list[str]:
        rows = self.engine.fetchall("SELECT role_id FROM roles ORDER BY role_id")
        return [row["role_id"] for row in rows]

    def get_account(self, identifier: str) -> dict | None:
        row = self.engine.fetchone(
            "SELECT account_id, identifier, email, init_email, role, status, created_at "
            "FROM accounts WHERE identifier = ?",
            (identifier,),
        )
        return dict(row) if row is not None else None

    def count_accounts(self) -> dict[str, int]:
        row = self.engine.fetchone(
            "SELECT COUNT(*) AS total, COALESCE(SUM(status), 0) AS active FROM accounts"
        )
        total = int(row["total"]) if row else 0
        active = int(row["active"]) if row else 0
        return {"total": total, "active": active, "blocked": total - active}


class SqliteNotificationOutbox:
    """
    Назначение/ответственность:
        NotificationSender для SQLite: ставит приветственное письмо в таблицу
        notifications, откуда его забирает внешняя почтовая служба.
    """

    def __init__(self, engine: SqliteEngine):
        self.engine = engine

    def send_welcome(self, account_id: int) -> None:
        try:
            with self.engine.transaction():
                self.engine.execute(
                    "INSERT INTO notifications(account_id, kind, created_at) VALUES (?, ?, ?)",
                    (account_id, WELCOME_KIND, getNowIso()),
                )
        except sqlite3.Error as exc:
            raise NotificationError(account_id, str(exc)) from exc

    def pending(self) -> list[dict]:
        rows = self.engine.fetchall("SELECT id, account_id, kind, created_at FROM notifications ORDER BY id")
        return [dict(row) for row in rows]


__all__ = ["SqliteAccountDirectory", "SqliteNotificationOutbox", "WELCOME_KIND"]


import sqlite3

import pytest

from userimport.domain.exceptions import CreationError
from userimport.domain.models import CandidateAccount
from userimport.infra.directory.db import getDirectoryDbPath, openDirectoryDb, openDirectoryEngine
from userimport.infra.directory.schema import SCHEMA_VERSION, ensure_schema
from userimport.infra.directory.sqlite_directory import (
    WELCOME_KIND,
    SqliteAccountDirectory,
    SqliteNotificationOutbox,
)
from userimport.infra.directory.sqlite_engine import SqliteEngine


@pytest.fixture()
def engine(tmp_path):
    engine = openDirectoryEngine(str(tmp_path))
    yield engine
    engine.close()


def _candidate(identifier="jdoe", email="john@example.com", role="authenticated"):
    return CandidateAccount(identifier=identifier, email=email, role=role)


def test_schema_seeds_default_role_and_is_idempotent(engine):
    directory = SqliteAccountDirectory(engine)
    assert directory.list_roles() == ["authenticated"]
    assert ensure_schema(engine) == SCHEMA_VERSION
    assert directory.list_roles() == ["authenticated"]


def test_create_and_lookup_case_insensitive(engine):
    directory = SqliteAccountDirectory(engine)
    account_id = directory.create_account(_candidate(), activate=True)

    assert isinstance(account_id, int)
    assert directory.exists_by_identifier("JDOE")
    assert directory.exists_by_email("John@Example.com")
    assert not directory.exists_by_identifier("asmith")

    stored = directory.get_account("jdoe")
    assert stored["account_id"] == account_id
    assert stored["init_email"] == "john@example.com"
    assert stored["status"] == 1


def test_blocked_account_status(engine):
    directory = SqliteAccountDirectory(engine)
    directory.create_account(_candidate(), activate=False)
    assert directory.get_account("jdoe")["status"] == 0
    assert directory.count_accounts() == {"total": 1, "active": 0, "blocked": 1}


def test_duplicate_identifier_raises_creation_error(engine):
    directory = SqliteAccountDirectory(engine)
    directory.create_account(_candidate(), activate=True)
    with pytest.raises(CreationError) as exc:
        directory.create_account(_candidate(identifier="JDoe", email="x@example.com"), activate=True)
    assert exc.value.message.startswith("Failed to create account JDoe:")
    assert directory.count_accounts()["total"] == 1


def test_duplicate_email_is_allowed_at_storage_level(engine):
    directory = SqliteAccountDirectory(engine)
    directory.create_account(_candidate(), activate=True)
    directory.create_account(_candidate(identifier="jdoe2"), activate=True)
    assert directory.count_accounts()["total"] == 2


def test_unknown_role_rejected_by_foreign_key(engine):
    directory = SqliteAccountDirectory(engine)
    with pytest.raises(CreationError):
        directory.create_account(_candidate(role="ghost"), activate=True)


def test_add_role(engine):
    directory = SqliteAccountDirectory(engine)
    assert directory.add_role("editor", "Editor")
    assert not directory.add_role("Editor")
    assert directory.role_exists("EDITOR")
    assert not directory.role_exists("admin")
    assert directory.list_roles() == ["authenticated", "editor"]


def test_notification_outbox_records_welcome(engine):
    directory = SqliteAccountDirectory(engine)
    outbox = SqliteNotificationOutbox(engine)
    account_id = directory.create_account(_candidate(), activate=True)

    outbox.send_welcome(account_id)

    pending = outbox.pending()
    assert len(pending) == 1
    assert pending[0]["account_id"] == account_id
    assert pending[0]["kind"] == WELCOME_KIND


def test_data_persists_across_connections(tmp_path):
    first = openDirectoryEngine(str(tmp_path))
    SqliteAccountDirectory(first).create_account(_candidate(), activate=True)
    first.close()

    second = openDirectoryEngine(str(tmp_path))
    try:
        assert SqliteAccountDirectory(second).exists_by_identifier("jdoe")
    finally:
        second.close()


def test_created_account_visible_to_other_connection(tmp_path):
    dbPath = getDirectoryDbPath(str(tmp_path))
    first = openDirectoryEngine(str(tmp_path))
    SqliteAccountDirectory(first).create_account(_candidate(), activate=True)

    reader = sqlite3.connect(dbPath)
    try:
        assert reader.execute("SELECT COUNT(*) FROM accounts").fetchone()[0] == 1
    finally:
        reader.close()
        first.close()


def test_canonical_role_returns_stored_spelling(engine):
    directory = SqliteAccountDirectory(engine)
    directory.add_role("editor")
    assert directory.canonical_role("EDITOR") == "editor"
    assert directory.canonical_role("Editor") == "editor"
    assert directory.canonical_role("admin") is None


def test_transaction_rolls_back_on_error(engine):
    with pytest.raises(RuntimeError):
        with engine.transaction():
            engine.execute("INSERT INTO roles(role_id, label, created_at) VALUES ('tmp', NULL, 'now')")
            raise RuntimeError("boom")

    assert not engine.exists("SELECT 1 FROM roles WHERE role_id = 'tmp'")
    assert not engine.conn.in_transaction


def test_statements_outside_transaction_are_committed(engine):
    engine.execute("INSERT INTO roles(role_id, label, created_at) VALUES ('ops', NULL, 'now')")
    assert not engine.conn.in_transaction
    assert engine.scalar("SELECT role_id FROM roles WHERE role_id = ?", ("OPS",)) == "ops"


def test_engine_requires_autocommit_connection(tmp_path):
    conn = sqlite3.connect(str(tmp_path / "plain.sqlite3"))
    try:
        with pytest.raises(ValueError):
            SqliteEngine(conn)
    finally:
        conn.close()


def test_open_directory_db_is_autocommit(tmp_path):
    conn = openDirectoryDb(getDirectoryDbPath(str(tmp_path)))
    try:
        assert conn.isolation_level is None
    finally:
        conn.close()

import os
import sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../backend")))
from database import make_session_factory
from models.schemas import Message
from services.session_store import SessionStore
from services.storage import JsonFileStorage, MemoryStorage, SqliteStorage


@pytest.fixture
def session_factory():
    # In-memory SQLite keeps each test isolated
    return make_session_factory(":memory:")


def test_memory_storage_starts_empty():
    assert MemoryStorage().load() is None


def test_json_file_storage_missing_file(tmp_path):
    assert JsonFileStorage(str(tmp_path / "chats.json")).load() is None


def test_json_file_storage_roundtrip(tmp_path):
    path = tmp_path / "nested" / "chats.json"
    storage = JsonFileStorage(str(path))
    storage.save('[{"id": "a"}]')
    storage.save('[{"id": "b"}]')

    assert storage.load() == '[{"id": "b"}]'
    assert not os.path.exists(f"{path}.tmp")


def test_sqlite_storage_missing_entry(session_factory):
    assert SqliteStorage(session_factory).load() is None


def test_sqlite_storage_overwrites_single_entry(session_factory):
    storage = SqliteStorage(session_factory)
    storage.save("[]")
    storage.save('[{"id": "x"}]')

    assert storage.load() == '[{"id": "x"}]'


def test_sqlite_storage_entries_are_independent(session_factory):
    SqliteStorage(session_factory, key="chats").save("one")
    SqliteStorage(session_factory, key="other").save("two")

    assert SqliteStorage(session_factory, key="chats").load() == "one"


def test_session_survives_restart_on_sqlite(tmp_path):
    db_path = str(tmp_path / "chat_history.db")
    store = SessionStore(SqliteStorage(make_session_factory(db_path))).load()
    conv = store.create_conversation()
    store.append_and_replace_messages(conv.id, [Message(role="user", content="Remember me")])

    # A fresh engine simulates a new process
    restarted = SessionStore(SqliteStorage(make_session_factory(db_path))).load()
    assert restarted.active_conversation.title == "Remember me"
    assert restarted.conversations == store.conversations


def test_session_survives_restart_on_json_file(tmp_path):
    path = str(tmp_path / "chats.json")
    store = SessionStore(JsonFileStorage(path)).load()
    store.create_conversation()

    assert SessionStore(JsonFileStorage(path)).load().conversations == store.conversations


def test_undecodable_json_file_falls_back_to_empty_session(tmp_path):
    path = tmp_path / "chats.json"
    path.write_bytes(b"[\xff\xfe garbage")

    store = SessionStore(JsonFileStorage(str(path))).load()

    assert store.conversations == []
    assert store.active_conversation is None


def test_damaged_sqlite_file_is_moved_aside(tmp_path):
    db_path = tmp_path / "chat_history.db"
    db_path.write_bytes(b"this is not a sqlite database at all" * 200)

    store = SessionStore(SqliteStorage(make_session_factory(str(db_path)))).load()
    assert store.conversations == []
    assert store.active_conversation is None
    assert os.path.exists(f"{db_path}.corrupt")

    conv = store.create_conversation()
    restarted = SessionStore(SqliteStorage(make_session_factory(str(db_path)))).load()
    assert restarted.active_conversation_id == conv.id

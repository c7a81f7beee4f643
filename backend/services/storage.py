"""
Durable client-local storage for the chat session.

Every backend holds a single named entry of text (the JSON-serialized list of
conversations) and exposes ``load()`` / ``save(payload)``. The session store
owns (de)serialization; backends only move text.
"""
import os
from typing import Optional, Protocol

from sqlalchemy.exc import DatabaseError
from sqlalchemy.orm import Session, sessionmaker

from database import create_tables
from errors import StorageCorruption
from models import db_models

DEFAULT_ENTRY = "chats"


class StorageBackend(Protocol):
    def load(self) -> Optional[str]: ...

    def save(self, payload: str) -> None: ...


class MemoryStorage:
    """Keeps the entry in process memory. Used by tests and throwaway sessions."""

    def __init__(self, payload: Optional[str] = None):
        self.payload = payload
        self.save_count = 0

    def load(self) -> Optional[str]:
        return self.payload

    def save(self, payload: str) -> None:
        self.payload = payload
        self.save_count += 1


class JsonFileStorage:
    """Stores the entry as a JSON file on local disk."""

    def __init__(self, path: str):
        self.path = os.path.abspath(path)

    def load(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8", errors="strict") as f:
                return f.read()
        except (UnicodeDecodeError, OSError) as e:
            raise StorageCorruption(f"Cannot read {self.path}: {e}") from e

    def save(self, payload: str) -> None:
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        # Write-then-rename so a crash never leaves half a file behind
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, self.path)


class SqliteStorage:
    """Stores the entry as a row of the local SQLite database.

    A file that SQLite cannot open is moved aside to ``<path>.corrupt`` on load,
    so the next save starts a fresh database.
    """

    def __init__(self, session_factory: sessionmaker, key: str = DEFAULT_ENTRY):
        self.session_factory = session_factory
        self.key = key
        self._tables_ready = False

    @property
    def engine(self):
        return self.session_factory.kw["bind"]

    def _ensure_tables(self):
        if not self._tables_ready:
            create_tables(self.engine)
            self._tables_ready = True

    def load(self) -> Optional[str]:
        try:
            self._ensure_tables()
            with self.session_factory() as db:
                entry = _get_entry(db, self.key)
                return entry.value if entry else None
        except DatabaseError as e:
            moved_to = self._quarantine()
            raise StorageCorruption(f"Unreadable chat database (moved to {moved_to}): {e}") from e

    def save(self, payload: str) -> None:
        self._ensure_tables()
        with self.session_factory() as db:
            entry = _get_entry(db, self.key)
            if entry:
                entry.value = payload
            else:
                db.add(db_models.StorageEntryDB(key=self.key, value=payload))
            db.commit()

    def _quarantine(self) -> Optional[str]:
        self.engine.dispose()
        self._tables_ready = False
        path = self.engine.url.database
        if not path or path == ":memory:" or not os.path.exists(path):
            return None
        moved_to = f"{path}.corrupt"
        os.replace(path, moved_to)
        return moved_to


def _get_entry(db: Session, key: str):
    return db.query(db_models.StorageEntryDB).filter(db_models.StorageEntryDB.key == key).first()

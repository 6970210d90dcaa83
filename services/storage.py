from __future__ import annotations
import threading
from typing import Dict, List, Optional, Protocol

from sqlalchemy import Column, String, Text, delete, func, select, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, Session

from config import Settings
from domain.enums import StoreBackend

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024

Base = declarative_base()

class StorageError(Exception):
    """Underlying key-value store failed or is unavailable."""

class StorageQuotaExceeded(StorageError):
    pass

class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def keys(self) -> List[str]:
        ...

def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))

class MemoryStore(KeyValueStore):
    """Process-local store with a byte quota. Used for tests and throwaway sessions."""

    def __init__(self, quota_bytes: int = DEFAULT_QUOTA_BYTES) -> None:
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            used = sum(_entry_size(k, v) for k, v in self._items.items() if k != key)
            if used + _entry_size(key, value) > self.quota_bytes:
                raise StorageQuotaExceeded(f"Writing {key!r} exceeds quota of {self.quota_bytes} bytes")
            self._items[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

class AutoSaveRow(Base):
    __tablename__ = 'autosaves'
    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)

class SqlStore(KeyValueStore):
    """SQLAlchemy-backed store; SQLite by default. Each write replaces the whole row."""

    def __init__(self, db_url: str, quota_bytes: int = DEFAULT_QUOTA_BYTES) -> None:
        self.quota_bytes = quota_bytes
        try:
            self.engine = create_engine(db_url, future=True)
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot open store at {db_url}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        try:
            with Session(self.engine) as s:
                row = s.get(AutoSaveRow, key)
                return row.value if row is not None else None
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def set(self, key: str, value: str) -> None:
        try:
            with Session(self.engine) as s:
                used = s.scalar(
                    select(func.coalesce(func.sum(func.length(AutoSaveRow.key) + func.length(AutoSaveRow.value)), 0))
                    .where(AutoSaveRow.key != key)
                )
                if int(used or 0) + _entry_size(key, value) > self.quota_bytes:
                    raise StorageQuotaExceeded(f"Writing {key!r} exceeds quota of {self.quota_bytes} bytes")
                s.merge(AutoSaveRow(key=key, value=value))
                s.commit()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def remove(self, key: str) -> None:
        try:
            with Session(self.engine) as s:
                s.execute(delete(AutoSaveRow).where(AutoSaveRow.key == key))
                s.commit()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def keys(self) -> List[str]:
        try:
            with Session(self.engine) as s:
                return list(s.scalars(select(AutoSaveRow.key).order_by(AutoSaveRow.key)).all())
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

class StoreFactory:
    @staticmethod
    def create(settings: Settings) -> KeyValueStore:
        backend = StoreBackend.parse(settings.store_backend)
        if backend is StoreBackend.memory:
            return MemoryStore(settings.storage_quota_bytes)
        return SqlStore(settings.db_url, settings.storage_quota_bytes)

"""Autosave, backup and recovery of in-progress editor content.

Every failure of the underlying store is converted into a ``False`` / ``None``
result: callers fall back to "no draft available" and never see an exception.
"""
from __future__ import annotations
import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

from domain.dtos import AutoSaveRecord
from services.storage import KeyValueStore, StorageError

log = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"
BACKUP_SUFFIX = "-backup"
AUTOSAVE_MARKERS = ("autosave", "editor")
DEFAULT_MAX_AGE = timedelta(hours=24)

class CorruptRecord(ValueError):
    pass

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def encode_record(record: AutoSaveRecord) -> str:
    return json.dumps({
        'data': record.data,
        'timestamp': record.saved_at.isoformat(),
        'version': record.version,
    }, ensure_ascii=False)

def decode_record(raw: str) -> AutoSaveRecord:
    try:
        doc = json.loads(raw)
        stamp = doc['timestamp']
        if isinstance(stamp, str) and stamp.endswith('Z'):
            stamp = stamp[:-1] + '+00:00'
        saved_at = datetime.fromisoformat(stamp)
        record = AutoSaveRecord(data=doc['data'], saved_at=saved_at, version=str(doc.get('version', '')))
    except (ValueError, KeyError, TypeError, RecursionError) as e:
        raise CorruptRecord(str(e)) from e
    if saved_at.tzinfo is None:
        record.saved_at = saved_at.replace(tzinfo=timezone.utc)
    return record

class ContentPersistence:
    def __init__(
        self,
        store: KeyValueStore,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.max_age = max_age
        self._clock = clock

    def save(self, key: str, data: Any) -> bool:
        record = AutoSaveRecord(data=data, saved_at=self._clock(), version=SCHEMA_VERSION)
        try:
            self.store.set(key, encode_record(record))
            return True
        except (StorageError, TypeError, ValueError, RecursionError):
            log.exception("Failed to save autosave %s", key)
            return False

    def load(self, key: str) -> Optional[Any]:
        record = self._read(key)
        if record is None:
            return None
        if self._is_stale(record):
            log.info("Autosave %s is older than %s, discarding", key, self.max_age)
            self.clear(key)
            return None
        return record.data

    def get_age(self, key: str) -> Optional[float]:
        """Minutes elapsed since the record was written."""
        record = self._read(key, purge_corrupt=False)
        if record is None:
            return None
        return (self._clock() - record.saved_at).total_seconds() / 60

    def has(self, key: str) -> bool:
        record = self._read(key)
        if record is None:
            return False
        if self._is_stale(record):
            self.clear(key)
            return False
        return True

    def clear(self, key: str) -> None:
        try:
            self.store.remove(key)
        except StorageError:
            log.exception("Failed to clear autosave %s", key)

    def create_backup(self, key: str, data: Any) -> bool:
        return self.save(key + BACKUP_SUFFIX, data)

    def restore_backup(self, key: str) -> Optional[Any]:
        backup_key = key + BACKUP_SUFFIX
        backup = self.load(backup_key)
        if backup is None:
            return None
        # move, but keep the backup if the primary slot could not be written
        if self.save(key, backup):
            self.clear(backup_key)
        return backup

    def list_autosaves(self) -> List[str]:
        try:
            keys = self.store.keys()
        except StorageError:
            log.exception("Failed to enumerate autosaves")
            return []
        return [k for k in keys if any(m in k for m in AUTOSAVE_MARKERS)]

    def cleanup_old_saves(self) -> int:
        cleaned = 0
        limit = self.max_age.total_seconds() / 60
        for key in self.list_autosaves():
            age = self.get_age(key)
            if age is not None and age > limit:
                self.clear(key)
                cleaned += 1
        if cleaned:
            log.info("Cleaned up %d stale autosave(s)", cleaned)
        return cleaned

    def _is_stale(self, record: AutoSaveRecord) -> bool:
        return self._clock() - record.saved_at > self.max_age

    def _read(self, key: str, purge_corrupt: bool = True) -> Optional[AutoSaveRecord]:
        try:
            raw = self.store.get(key)
        except StorageError:
            log.exception("Failed to read autosave %s", key)
            return None
        if raw is None:
            return None
        try:
            return decode_record(raw)
        except CorruptRecord:
            if purge_corrupt:
                log.warning("Autosave %s is corrupt, discarding", key)
                self.clear(key)
            return None

async def run_cleanup_loop(persistence: ContentPersistence, interval_seconds: float = 3600.0) -> None:
    """Clean up once immediately, then every ``interval_seconds`` until cancelled."""
    while True:
        persistence.cleanup_old_saves()
        await asyncio.sleep(interval_seconds)

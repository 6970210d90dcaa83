from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from domain.dtos import RecoveredDraft
from domain.enums import AutoSaveStatus
from services.content_persistence import BACKUP_SUFFIX, ContentPersistence

log = logging.getLogger(__name__)

_NOTHING = object()

class DraftEditor:
    """Debounced autosave plus backup-guarded commit for one editor slot.

    Every change restarts the debounce timer, so at most one write happens per
    quiet period. Must be driven from a running event loop.
    """

    def __init__(
        self,
        persistence: ContentPersistence,
        key: str = "blog-editor-autosave",
        debounce_seconds: float = 2.0,
        validate: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.persistence = persistence
        self.key = key
        self.debounce_seconds = debounce_seconds
        self.validate = validate
        self.status = AutoSaveStatus.saved
        self.last_saved: Optional[datetime] = None
        self._pending: Any = _NOTHING
        self._timer: Optional[asyncio.TimerHandle] = None
        self._changes = 0

    def notify_change(self, content: Any) -> None:
        self._changes += 1
        self._pending = content
        self.status = AutoSaveStatus.unsaved
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._write_pending)

    def flush(self) -> bool:
        self._cancel_timer()
        if self._pending is _NOTHING:
            return True
        return self._write_pending()

    def close(self) -> None:
        self._cancel_timer()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _write_pending(self) -> bool:
        self._timer = None
        content, self._pending = self._pending, _NOTHING
        self.status = AutoSaveStatus.saving
        if self.persistence.save(self.key, content):
            self.status = AutoSaveStatus.saved
            self.last_saved = datetime.now(timezone.utc)
            return True
        log.warning("Autosave of %s failed, keeping changes unsaved", self.key)
        self.status = AutoSaveStatus.unsaved
        return False

    def recover(self) -> Optional[RecoveredDraft]:
        data = self.persistence.load(self.key)
        if data is None:
            return None
        age = self.persistence.get_age(self.key) or 0.0
        return RecoveredDraft(data=data, age_minutes=age)

    def discard(self) -> None:
        self._cancel_timer()
        self._pending = _NOTHING
        self.persistence.clear(self.key)

    async def commit(self, save: Callable[[Any], Awaitable[Any]], content: Any) -> Any:
        """Persist ``content`` through ``save``; the autosave survives a failed save."""
        if self.validate is not None:
            self.validate(content)
        self._cancel_timer()
        self._pending = _NOTHING
        self.persistence.create_backup(self.key, content)
        changes_at_start = self._changes
        try:
            result = await save(content)
        except Exception:
            if self._changes != changes_at_start:
                # newer edits own the autosave slot
                self.persistence.clear(self.key + BACKUP_SUFFIX)
            elif self.persistence.restore_backup(self.key) is not None:
                log.info("Restored %s from backup after save failure", self.key)
            self.status = AutoSaveStatus.unsaved
            raise
        self.persistence.clear(self.key + BACKUP_SUFFIX)
        if self._changes != changes_at_start:
            log.info("Edits arrived during commit of %s, keeping autosave", self.key)
            self.status = AutoSaveStatus.unsaved
            return result
        self.persistence.clear(self.key)
        self.status = AutoSaveStatus.saved
        self.last_saved = datetime.now(timezone.utc)
        return result

    def status_text(self, now: Optional[datetime] = None) -> str:
        if self.status is AutoSaveStatus.saving:
            return "Saving draft..."
        if self.status is AutoSaveStatus.unsaved:
            return "Unsaved changes"
        if self.last_saved is None:
            return "Draft saved"
        seconds = int(((now or datetime.now(timezone.utc)) - self.last_saved).total_seconds())
        if seconds < 60:
            return f"Draft saved {seconds}s ago"
        return f"Draft saved {seconds // 60}m ago"

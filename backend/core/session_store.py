"""
Dataset Session Store

In-memory metadata for uploaded datasets with TTL expiry. The records
themselves live on disk (see core.dataset_loader); the global store
deletes a dataset's file when its session expires.
"""

import time
from threading import Lock
from typing import Any, Callable, Optional

from config import get_settings
from core.dataset_loader import dataset_loader
from core.logging_config import upload_logger as logger


class DatasetSessionStore:
    """Thread-safe dataset metadata storage."""

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        on_expire: Optional[Callable[[str], Any]] = None,
    ):
        self._sessions: dict[str, dict[str, Any]] = {}
        self._lock = Lock()
        if ttl_seconds is None:
            ttl_seconds = get_settings().session_ttl_hours * 3600
        self.ttl_seconds = ttl_seconds
        self.on_expire = on_expire

    def _expired(self, session: dict[str, Any], now: float) -> bool:
        return now - session["created_at"] > self.ttl_seconds

    def _release(self, expired: list[str]) -> None:
        if not expired:
            return
        logger.info(f"Expired {len(expired)} dataset session(s)")
        if self.on_expire is not None:
            for dataset_id in expired:
                self.on_expire(dataset_id)

    def create(self, dataset_id: str, metadata: dict[str, Any]) -> None:
        """Register a dataset."""
        with self._lock:
            self._sessions[dataset_id] = {
                **metadata,
                "created_at": time.time(),
            }

    def get(self, dataset_id: str) -> Optional[dict[str, Any]]:
        """Get dataset metadata, or None if unknown or expired."""
        with self._lock:
            session = self._sessions.get(dataset_id)
            if session is None:
                return None

            if not self._expired(session, time.time()):
                return dict(session)

            del self._sessions[dataset_id]

        self._release([dataset_id])
        return None

    def update(self, dataset_id: str, updates: dict[str, Any]) -> bool:
        """Update dataset metadata."""
        with self._lock:
            if dataset_id not in self._sessions:
                return False
            self._sessions[dataset_id].update(updates)
            return True

    def delete(self, dataset_id: str) -> bool:
        """Forget a dataset."""
        with self._lock:
            if dataset_id in self._sessions:
                del self._sessions[dataset_id]
                return True
            return False

    def purge_expired(self) -> list[str]:
        """Drop expired sessions and return their ids."""
        with self._lock:
            now = time.time()
            expired = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
            for sid in expired:
                del self._sessions[sid]

        self._release(expired)
        return expired

    def list_sessions(self) -> list[str]:
        """List active dataset ids, dropping expired ones."""
        self.purge_expired()
        with self._lock:
            return list(self._sessions)

    def clear_all(self) -> int:
        """Forget every dataset; returns how many were dropped."""
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            return count


# Global instance; expired datasets are removed from disk too
session_store = DatasetSessionStore(on_expire=dataset_loader.delete_dataset)

"""
Storage module for TinyLink (in-memory implementation).

Responsibilities:
    - Insert links with atomic code-uniqueness enforcement
    - Atomically bump click counters and last-click timestamps
    - Lookup, listing (newest first) and hard delete

Design:
    - Satisfies the BaseStorage contract; used by default and in tests.
    - One lock guards the whole map, so check-and-insert and read-modify-write
      happen as single indivisible steps under concurrent callers.
    - Lock acquisition is bounded by `timeout`; on expiry the call fails with
      Unavailable rather than blocking forever.
    - Records are kept as plain dicts internally and copied out as frozen Link
      snapshots, so callers never observe later mutations.

LLM Prompt Example:
    "Explain how a single lock with a bounded acquire timeout gives an in-memory
     store the same atomicity guarantees as a unique index and an
     UPDATE ... SET clicks = clicks + 1 statement in SQL."
"""

import contextlib
import itertools
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..errors import Conflict, NotFound, Unavailable
from ..models import Link
from .base import BaseStorage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Storage(BaseStorage):
    def __init__(self, timeout: float = 5.0, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize empty storage.

        Internal schema:
            self.links = {
                code: {
                    "destination": str,
                    "clicks": int,
                    "created_at": datetime,
                    "last_clicked_at": Optional[datetime],
                    "seq": int,   # insertion order, tie-breaker for listing
                }
            }
        """
        self.timeout = timeout
        self.clock = clock or _utcnow
        self.links: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._seq = itertools.count()

    @contextlib.contextmanager
    def _locked(self):
        if not self._lock.acquire(timeout=self.timeout):
            raise Unavailable("In-memory store is busy; timed out waiting for lock")
        try:
            yield
        finally:
            self._lock.release()

    @staticmethod
    def _snapshot(code: str, rec: Dict[str, Any]) -> Link:
        return Link(
            code=code,
            destination=rec["destination"],
            clicks=rec["clicks"],
            created_at=rec["created_at"],
            last_clicked_at=rec["last_clicked_at"],
        )

    def exists(self, code: str) -> bool:
        with self._locked():
            return code in self.links

    def insert(self, code: str, destination: str) -> Link:
        """
        Insert a new link; uniqueness check and write happen under the same lock.

        Raises:
            Conflict: If the code is already stored.
        """
        with self._locked():
            if code in self.links:
                raise Conflict(f"Short code already exists: {code}")
            rec = {
                "destination": destination,
                "clicks": 0,
                "created_at": self.clock(),
                "last_clicked_at": None,
                "seq": next(self._seq),
            }
            self.links[code] = rec
            return self._snapshot(code, rec)

    def find_by_code(self, code: str) -> Link:
        with self._locked():
            rec = self.links.get(code)
            if rec is None:
                raise NotFound(f"Link not found: {code}")
            return self._snapshot(code, rec)

    def list_all(self) -> List[Link]:
        with self._locked():
            ordered = sorted(
                self.links.items(),
                key=lambda item: (item[1]["created_at"], item[1]["seq"]),
                reverse=True,
            )
            return [self._snapshot(code, rec) for code, rec in ordered]

    def increment_clicks(self, code: str) -> Link:
        """
        Add one click and stamp last_clicked_at, atomically.

        The timestamp never precedes created_at, even if the clock steps back.
        """
        with self._locked():
            rec = self.links.get(code)
            if rec is None:
                raise NotFound(f"Link not found: {code}")
            rec["clicks"] += 1
            rec["last_clicked_at"] = max(self.clock(), rec["created_at"])
            return self._snapshot(code, rec)

    def delete(self, code: str) -> None:
        with self._locked():
            if self.links.pop(code, None) is None:
                raise NotFound(f"Link not found: {code}")

    def ping(self) -> None:
        with self._locked():
            return None

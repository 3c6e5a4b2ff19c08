"""
Base storage interface for TinyLink.

Purpose:
    Define a small, stable contract that multiple storage backends
    (in-memory, PostgreSQL) implement without requiring changes to the manager.

Contract:
    - Every method raises `Unavailable` when the backend times out or is unreachable.
    - `insert` enforces code uniqueness atomically and raises `Conflict`; callers must
      not pre-check with `exists` (check-then-insert is a race).
    - `increment_clicks` is a single indivisible read-modify-write (no lost updates).
    - Methods return fresh `Link` snapshots; backends never hand out live records.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import Link


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod  # pragma: no cover
    def exists(self, code: str) -> bool:
        """Return True if a link with this code is stored."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def insert(self, code: str, destination: str) -> Link:
        """
        Store a new link with clicks=0 and created_at=now.

        Raises:
            Conflict: If the code is already taken.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def find_by_code(self, code: str) -> Link:
        """
        Retrieve a link by its short code.

        Raises:
            NotFound: If no such code.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def list_all(self) -> List[Link]:
        """Return every link, newest created_at first."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def increment_clicks(self, code: str) -> Link:
        """
        Atomically add one click and set last_clicked_at to now.

        Returns:
            Link: The updated record.

        Raises:
            NotFound: If no such code.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete(self, code: str) -> None:
        """
        Hard-delete a link, freeing its code.

        Raises:
            NotFound: If no such code.
        """
        raise NotImplementedError

    def ping(self) -> None:
        """Raise Unavailable if the backend cannot serve requests."""
        return None

"""
Link record shared by the storage backends and the manager.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Link:
    """
    Snapshot of a stored short link.

    Backends return a fresh Link on every call; mutating operations
    (increment_clicks) return the updated snapshot instead of changing this one.
    """
    code: str
    destination: str
    clicks: int
    created_at: datetime
    last_clicked_at: Optional[datetime] = None

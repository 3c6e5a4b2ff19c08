"""
Storage factory – switch storage backend from config
=====================================================

Centralizes selection of the storage backend (in-memory vs PostgreSQL) so the rest
of the app stays ignorant of where data lives.

- Reads environment **at call time** to avoid stale values in tests.
- Imports the DB backend **only if** the selected backend is "postgres".

Environment variables
---------------------
- TINYLINK_STORAGE_BACKEND: "memory" (default) or "postgres"
- TINYLINK_DB_DSN:          DSN string if backend=="postgres" (falls back to DATABASE_URL)
- TINYLINK_STORE_TIMEOUT:   per-call timeout in seconds (default 5.0)
"""

import logging
import os
from typing import Optional

from tinylink.config import store_timeout
from tinylink.storage.base import BaseStorage
from tinylink.storage.storage import Storage

log = logging.getLogger(__name__)


def get_storage(backend: Optional[str] = None, **kwargs) -> BaseStorage:
    """
    Return a storage backend based on configuration.

    Parameters
    ----------
    backend : str, optional
        "memory" (default) or "postgres". If omitted, reads TINYLINK_STORAGE_BACKEND.
    kwargs : dict
        dsn="..." for postgres; timeout=<seconds> for either backend.
    """
    be = (backend or os.getenv("TINYLINK_STORAGE_BACKEND", "memory")).strip().lower()
    timeout = kwargs.get("timeout") or store_timeout()

    log.info("Selected storage backend: %r", be)

    if be == "memory":
        return Storage(timeout=timeout)

    if be == "postgres":
        dsn = kwargs.get("dsn") or os.getenv("TINYLINK_DB_DSN") or os.getenv("DATABASE_URL", "")
        if not dsn:
            raise ValueError("DB DSN is required for postgres backend (env TINYLINK_DB_DSN)")
        from tinylink.storage.db_storage import DBStorage
        return DBStorage(dsn=dsn, timeout=timeout)

    raise ValueError(f"Unknown storage backend: {be!r}")

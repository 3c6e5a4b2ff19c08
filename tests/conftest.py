"""
Global pytest fixtures for the TinyLink test suite.

Responsibilities:
    - Provide a fresh FastAPI TestClient via the app factory for integration tests
    - Provide an isolated in-memory Storage for direct testing
    - Provide a LinkManager wired to the Storage fixture

Using `create_app(storage=...)` ensures each test gets fresh in-memory state,
eliminating cross-test flakiness.
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from tinylink.manager.link_manager import LinkManager
from tinylink.storage.storage import Storage


@pytest.fixture
def storage() -> Storage:
    """Fresh in-memory Storage backend."""
    return Storage()


@pytest.fixture
def manager(storage: Storage) -> LinkManager:
    """LinkManager wired to the storage fixture with the default random generator."""
    return LinkManager(storage=storage)


@pytest.fixture
def client(storage: Storage) -> TestClient:
    """
    Fresh TestClient over a new app instance sharing the `storage` fixture,
    so tests can seed or inspect state directly.
    """
    return TestClient(create_app(storage=storage))

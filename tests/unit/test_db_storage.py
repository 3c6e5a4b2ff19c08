from datetime import datetime, timezone

import psycopg
import psycopg.errors
import pytest

from tinylink.errors import Conflict, InvalidInput, NotFound, Unavailable
from tinylink.models import Link
from tinylink.storage.db_storage import SCHEMA_SQL, DBStorage


CREATED = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _row(**overrides):
    row = {
        "code": "abc123",
        "destination": "https://x.com",
        "clicks": 0,
        "created_at": CREATED,
        "last_clicked_at": None,
    }
    row.update(overrides)
    return row


class DummyCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = conn.rowcount
        self._index = 0

    def execute(self, query, params=None):
        if self.conn.raise_on_execute is not None:
            raise self.conn.raise_on_execute
        self.conn.queries.append((" ".join(query.split()), params))
        return self

    def fetchone(self):
        results = self.conn.results
        if results and self._index < len(results):
            row = results[self._index]
            self._index += 1
            return row
        return None

    def fetchall(self):
        return list(self.conn.results or [])

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class DummyConnection:
    def __init__(self, results=None, rowcount=1, raise_on_execute=None):
        self.results = results
        self.rowcount = rowcount
        self.raise_on_execute = raise_on_execute
        self.autocommit = False
        self.closed = False
        self.queries = []
        self.connect_kwargs = {}

    def cursor(self, row_factory=None):
        return DummyCursor(self)

    def close(self):
        self.closed = True


@pytest.fixture
def connect(monkeypatch):
    """Patch psycopg.connect to hand out the given DummyConnection."""
    def _install(conn):
        def fake_connect(dsn, **kwargs):
            conn.connect_kwargs = kwargs
            return conn
        monkeypatch.setattr("psycopg.connect", fake_connect)
        return conn
    return _install


# ---------------------------------------------------------------------
# Connection handling
# ---------------------------------------------------------------------

def test_connection_is_bounded_and_closed(connect):
    conn = connect(DummyConnection(results=[(True,)]))
    DBStorage("fake", timeout=2.5).exists("abc123")
    assert conn.connect_kwargs["connect_timeout"] == 3
    assert conn.connect_kwargs["options"] == "-c statement_timeout=2500"
    assert conn.autocommit is True
    assert conn.closed is True


def test_connect_failure_is_unavailable(monkeypatch):
    def boom(dsn, **kwargs):
        raise psycopg.OperationalError("connection refused")
    monkeypatch.setattr("psycopg.connect", boom)
    with pytest.raises(Unavailable) as excinfo:
        DBStorage("fake").find_by_code("abc123")
    assert isinstance(excinfo.value.__cause__, psycopg.OperationalError)


def test_statement_timeout_is_unavailable(connect):
    conn = connect(DummyConnection(raise_on_execute=psycopg.errors.QueryCanceled("timeout")))
    with pytest.raises(Unavailable):
        DBStorage("fake").increment_clicks("abc123")
    assert conn.closed is True


def test_missing_schema_is_unavailable(connect):
    conn = connect(DummyConnection(
        raise_on_execute=psycopg.errors.UndefinedTable('relation "links" does not exist')))
    with pytest.raises(Unavailable) as excinfo:
        DBStorage("fake").find_by_code("abc123")
    assert isinstance(excinfo.value.__cause__, psycopg.errors.UndefinedTable)
    assert conn.closed is True


def test_interface_error_on_connect_is_unavailable(monkeypatch):
    def broken(dsn, **kwargs):
        raise psycopg.InterfaceError("bad connection state")
    monkeypatch.setattr("psycopg.connect", broken)
    with pytest.raises(Unavailable):
        DBStorage("fake").ping()


def test_rejected_value_is_invalid_input(connect):
    connect(DummyConnection(
        raise_on_execute=psycopg.errors.CharacterNotInRepertoire("invalid byte sequence")))
    with pytest.raises(InvalidInput):
        DBStorage("fake").insert("abc123", "https://x.com/\x00")


# ---------------------------------------------------------------------
# Contract methods
# ---------------------------------------------------------------------

def test_exists(connect):
    connect(DummyConnection(results=[(True,)]))
    assert DBStorage("fake").exists("abc123") is True
    connect(DummyConnection(results=[(False,)]))
    assert DBStorage("fake").exists("abc123") is False


def test_insert_returns_link(connect):
    conn = connect(DummyConnection(results=[_row()]))
    link = DBStorage("fake").insert("abc123", "https://x.com")
    assert link == Link(code="abc123", destination="https://x.com", clicks=0, created_at=CREATED)
    query, params = conn.queries[0]
    assert "ON CONFLICT (code) DO NOTHING" in query
    assert params == ("abc123", "https://x.com")


def test_insert_conflict(connect):
    conn = connect(DummyConnection(results=[], rowcount=0))
    with pytest.raises(Conflict):
        DBStorage("fake").insert("abc123", "https://x.com")
    # single statement, no separate existence check
    assert len(conn.queries) == 1


def test_find_by_code(connect):
    connect(DummyConnection(results=[_row(clicks=4)]))
    assert DBStorage("fake").find_by_code("abc123").clicks == 4


def test_find_by_code_not_found(connect):
    connect(DummyConnection(results=[]))
    with pytest.raises(NotFound):
        DBStorage("fake").find_by_code("abc123")


def test_list_all_orders_newest_first(connect):
    conn = connect(DummyConnection(results=[_row(code="bbbbbb"), _row(code="aaaaaa")]))
    links = DBStorage("fake").list_all()
    assert [link.code for link in links] == ["bbbbbb", "aaaaaa"]
    assert "ORDER BY created_at DESC" in conn.queries[0][0]


def test_increment_clicks_is_single_update(connect):
    clicked = datetime(2025, 1, 2, tzinfo=timezone.utc)
    conn = connect(DummyConnection(results=[_row(clicks=1, last_clicked_at=clicked)]))
    link = DBStorage("fake").increment_clicks("abc123")
    assert link.clicks == 1
    assert link.last_clicked_at == clicked
    assert len(conn.queries) == 1
    assert "SET clicks = clicks + 1" in conn.queries[0][0]


def test_increment_clicks_not_found(connect):
    connect(DummyConnection(results=[], rowcount=0))
    with pytest.raises(NotFound):
        DBStorage("fake").increment_clicks("abc123")


def test_delete(connect):
    connect(DummyConnection(rowcount=1))
    assert DBStorage("fake").delete("abc123") is None


def test_delete_not_found(connect):
    connect(DummyConnection(rowcount=0))
    with pytest.raises(NotFound):
        DBStorage("fake").delete("abc123")


def test_ping_and_schema(connect):
    conn = connect(DummyConnection())
    storage = DBStorage("fake")
    storage.ping()
    storage.create_schema()
    assert conn.queries[0][0] == "SELECT 1"
    assert conn.queries[1][0] == " ".join(SCHEMA_SQL.split())

"""
Tests de SourceReader y open_source() con una conexión DB-API en memoria.
"""

import os
import sys
from types import MappingProxyType

import pymssql
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pipeline import source
from pipeline.errors import QueryError, StoreConnectionError
from pipeline.source import SourceReader, open_source
from tests.helpers import FakeConnection

SQLSERVER = {
    "server": "legacy", "port": 1433, "user": "sa", "password": "x",
    "database": "socios", "encrypt": False, "timeout": 5,
}


def test_read_yields_read_only_rows():
    conn = FakeConnection(["provincia", "Descripcion"], [("BA", "Buenos Aires"), ("CF", "CABA")])
    rows = list(SourceReader(conn).read("SELECT provincia, Descripcion FROM Provincias"))

    assert rows == [
        {"provincia": "BA", "Descripcion": "Buenos Aires"},
        {"provincia": "CF", "Descripcion": "CABA"},
    ]
    assert isinstance(rows[0], MappingProxyType)
    with pytest.raises(TypeError):
        rows[0]["provincia"] = "ZZ"
    assert conn.cursors[0].closed


def test_read_fetches_in_chunks_and_passes_params():
    conn = FakeConnection(["socio"], [(i,) for i in range(25)])
    reader = SourceReader(conn, fetch_size=10)

    rows = list(reader.read("SELECT socio FROM socios WHERE socio < %s", (10000,)))

    assert len(rows) == 25
    assert conn.cursors[0].executed == [("SELECT socio FROM socios WHERE socio < %s", (10000,))]


def test_empty_result():
    conn = FakeConnection(["socio"], [])
    assert list(SourceReader(conn).read("SELECT socio FROM socios")) == []


def test_invalid_query_raises_query_error():
    conn = FakeConnection([], [], error=pymssql.ProgrammingError("Invalid object name 'Socioss'"))
    with pytest.raises(QueryError):
        list(SourceReader(conn).read("SELECT * FROM Socioss"))
    assert conn.cursors[0].closed


def test_lost_connection_raises_store_connection_error():
    conn = FakeConnection([], [], error=pymssql.OperationalError("DB-Lib error: server closed"))
    with pytest.raises(StoreConnectionError):
        list(SourceReader(conn).read("SELECT socio FROM socios"))


def test_open_source_disables_encryption_and_closes(monkeypatch):
    calls = {}

    class Conn:
        closed = False

        def close(self):
            self.closed = True

    conn = Conn()

    def fake_connect(**kwargs):
        calls.update(kwargs)
        return conn

    monkeypatch.setattr(source.pymssql, "connect", fake_connect)

    with open_source(SQLSERVER) as opened:
        assert opened is conn

    assert conn.closed
    assert calls["server"] == "legacy"
    assert calls["login_timeout"] == 5
    assert calls["encryption"] == "off"


def test_open_source_connection_failure(monkeypatch):
    def refuse(**kwargs):
        raise pymssql.OperationalError("Login failed for user 'sa'")

    monkeypatch.setattr(source.pymssql, "connect", refuse)

    with pytest.raises(StoreConnectionError):
        with open_source(SQLSERVER):
            pass

"""
Tests de ReferenceResolver: paginación completa y normalización de claves.
"""

import math
import os
import sys
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pipeline.errors import StoreConnectionError
from pipeline.resolver import NOT_FOUND, ReferenceResolver, normalize_key
from tests.helpers import FakeTargetStore


def store_with_socios(n):
    return FakeTargetStore({"socios": [{"id": i} for i in range(1, n + 1)]})


@pytest.mark.parametrize("n, page_size", [(2500, 1000), (2000, 1000), (999, 1000), (0, 1000)])
def test_reads_every_page(n, page_size):
    """N filas con página P → ceil(N/P) páginas y N entradas (mínimo 1 página)."""
    store = store_with_socios(n)
    resolver = ReferenceResolver(store, page_size=page_size)

    socios = resolver.build("socios", ("id",))

    assert len(socios) == n
    assert socios.pages == max(1, math.ceil(n / page_size))
    assert len(store.pages) == socios.pages
    if n:
        # Claves más allá de la primera página también resuelven
        assert socios.lookup(n) == n


def test_value_column_map():
    store = FakeTargetStore({
        "provincias": [{"id": 7, "codigo": "BA"}, {"id": 8, "codigo": "CF "}],
    })
    provincias = ReferenceResolver(store).build("provincias", "codigo", "id")

    assert provincias.lookup("BA") == 7
    # Espacios al final del lado destino también se normalizan
    assert provincias.lookup("CF") == 8
    assert provincias.lookup("ZZ") is NOT_FOUND
    assert provincias.lookup(None) is NOT_FOUND


def test_composite_key_map():
    store = FakeTargetStore({
        "asientos_header": [
            {"asiento": 1, "anio_mes": 202401, "tipo_asiento": 1},
            {"asiento": 1, "anio_mes": 202401, "tipo_asiento": 2},
        ],
    })
    headers = ReferenceResolver(store).build(
        "asientos_header", ("asiento", "anio_mes", "tipo_asiento")
    )

    assert len(headers) == 2
    assert (1, 202401, 2) in headers
    assert (1, Decimal("202401"), 1) in headers
    assert (1, 202401, 3) not in headers
    assert headers.lookup((1, 202401, 1)) == (1, 202401, 1)


def test_duplicate_keys_last_wins():
    store = FakeTargetStore({
        "conceptos": [{"codigo": "CUOTA", "id": 1}, {"codigo": "CUOTA ", "id": 2}],
    })
    conceptos = ReferenceResolver(store).build("conceptos", ("codigo",), "id")
    assert len(conceptos) == 1
    assert conceptos["CUOTA"] in (1, 2)


def test_connection_error_propagates():
    store = store_with_socios(10)
    store.offline = True
    with pytest.raises(StoreConnectionError):
        ReferenceResolver(store).build("socios", ("id",))


def test_invalid_page_size():
    with pytest.raises(ValueError):
        ReferenceResolver(FakeTargetStore(), page_size=0)


def test_normalize_key():
    assert normalize_key("BA ") == "BA"
    assert normalize_key(Decimal("5")) == 5
    assert normalize_key(5.0) == 5
    assert normalize_key(("BA",)) == "BA"
    assert normalize_key((1, None)) is None
    assert normalize_key((12, "202401", 1)) == "12\x1f202401\x1f1"


class CappedStore(FakeTargetStore):
    """Store que recorta cada página a max_rows, como db-max-rows de PostgREST."""

    def __init__(self, tables, max_rows):
        super().__init__(tables)
        self.max_rows = max_rows

    def select_page(self, table, columns, start, end, order_by=None):
        end = min(end, start + self.max_rows - 1)
        return super().select_page(table, columns, start, end, order_by)


def test_server_row_cap_does_not_truncate_map():
    """page_size mayor que el tope del servidor: se sigue paginando hasta el total."""
    store = CappedStore({"socios": [{"id": i} for i in range(1, 2501)]}, max_rows=1000)

    socios = ReferenceResolver(store, page_size=5000).build("socios", "id")

    assert len(socios) == 2500
    assert socios.pages == 3
    assert [start for _, start, _ in store.pages] == [0, 1000, 2000]
    assert socios.lookup(2500) == 2500


class UncountedStore(FakeTargetStore):
    """Store que no informa el total exacto."""

    def select_page(self, table, columns, start, end, order_by=None):
        page, _ = super().select_page(table, columns, start, end, order_by)
        return page, None


def test_without_total_stops_on_short_page():
    store = UncountedStore({"socios": [{"id": i} for i in range(1, 1501)]})

    socios = ReferenceResolver(store, page_size=1000).build("socios", "id")

    assert len(socios) == 1500
    assert socios.pages == 2

"""
Tests de MigrationOrchestrator con migradores reales sobre stores en memoria.

Escenarios:
- provincias (24 filas, id generado) → socios resuelve 'BA' al id generado
- dependencia fallida: las unidades dependientes no corren, las demás sí
- conexión perdida: aborta toda la corrida
- detalle filtrado contra la clave compuesta del padre
- lote fallido sin columnas clave: las filas se informan con su clave origen
- clientes → cuenta corriente de clientes → items filtrados por cabecera
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
import sqlmigra
from pipeline.loader import BatchLoader
from pipeline.orchestrator import DONE, FAILED, IDLE, MigrationOrchestrator
from pipeline.errors import QueryError
from pipeline.report import FK_UNRESOLVED, INSERT_ERROR
from pipeline.resolver import ReferenceResolver
from pipeline.sequences import SequenceReconciler
from tests.helpers import FakeSourceReader, FakeTargetStore

PROVINCIAS = [
    "BA", "CA", "CB", "CC", "CF", "CH", "CT", "ER", "FO", "JU", "LP", "LR",
    "MI", "MZ", "NQ", "RN", "SA", "SC", "SE", "SF", "SJ", "SL", "TF", "TU",
]


def legacy_tables():
    # 'BA' no es la primera: su id generado no coincide con un índice trivial
    codes = PROVINCIAS[1:5] + ["BA"] + PROVINCIAS[5:]
    return {
        "Provincias": [{"provincia": c, "Descripcion": f"Provincia {c} "} for c in codes],
        "paises": [{"idPais": 1, "Nombre": "Argentina"}],
        "Tarjetas": [{"IdTarjeta": 3, "Descripcion": "VISA"}],
        "Sexos": [
            {"id": 0, "descripcion": "No informado"},
            {"id": 1, "descripcion": "Masculino"},
            {"id": 2, "descripcion": "Femenino"},
        ],
        "socios": [
            {"socio": 1001, "Apellido": "Pérez", "provincia": "BA", "pais": 1, "Tarjeta": 3},
            {"socio": 1002, "Apellido": "Gómez", "provincia": "CF", "pais": 1, "Tarjeta": None},
            {"socio": 1003, "Apellido": "Díaz", "provincia": None, "pais": 99, "Tarjeta": 8},
        ],
        "AsientosDiariosHeader": [
            {"asiento": 1, "aniomes": 202401, "tipoasiento": 1, "fecha": None},
            {"asiento": 2, "aniomes": 202401, "tipoasiento": 1, "fecha": None},
        ],
        "AsientosDiariosItems": [
            {"asiento": 1, "aniomes": 202401, "tipoasiento": 1, "item": 1, "cuenta": 10, "debe": 5},
            {"asiento": 1, "aniomes": 202401, "tipoasiento": 1, "item": 2, "cuenta": 20, "haber": 5},
            {"asiento": 3, "aniomes": 202401, "tipoasiento": 1, "item": 1, "cuenta": 10, "debe": 1},
        ],
        "cuentas": [{"cuenta": 10, "descripcion": "Caja"}],
    }


def make_orchestrator(reader=None, store=None, dry_run=False):
    reader = reader or FakeSourceReader(legacy_tables())
    store = store or FakeTargetStore(generated_ids={"provincias": "id"})
    orchestrator = MigrationOrchestrator(
        reader=reader,
        store=store,
        resolver=ReferenceResolver(store, page_size=10),
        loader=BatchLoader(store, batch_size=10, dry_run=dry_run),
        reconciler=SequenceReconciler(store),
        unit_tables={name: cfg["target_table"] for name, cfg in config.UNITS.items()},
    )
    return orchestrator, store


def units(*names):
    return [sqlmigra.build_unit(name) for name in names]


def test_socios_resolve_generated_province_id():
    orchestrator, store = make_orchestrator()
    assert orchestrator.state == IDLE

    result = orchestrator.run(units("provincias", "paises", "tarjetas", "sexos", "socios"))

    assert result.ok
    assert result.state == DONE
    assert orchestrator.state == DONE
    assert len(store.rows("provincias")) == 24
    assert result.report_for("provincias").inserted == 24

    ba_id = next(r["id"] for r in store.rows("provincias") if r["codigo"] == "BA")
    socios = {r["id"]: r for r in store.rows("socios")}
    assert socios[1001]["provincia_id"] == ba_id
    assert socios[1001]["tarjeta_id"] == 3
    # Sin tarjeta o tarjeta inexistente → 0; país inexistente → NULL
    assert socios[1002]["tarjeta_id"] == 0
    assert socios[1003]["tarjeta_id"] == 0
    assert socios[1003]["pais_id"] is None
    assert socios[1003]["provincia_id"] is None

    sequence = result.report_for("socios").sequence
    assert sequence.applied and sequence.next_value == 1004


def test_rerun_is_idempotent():
    orchestrator, store = make_orchestrator()
    selected = units("provincias", "paises", "tarjetas", "sexos", "socios")
    orchestrator.run(selected)
    first = {r["codigo"]: r["id"] for r in store.rows("provincias")}

    result = orchestrator.run(selected)

    assert result.ok
    assert {r["codigo"]: r["id"] for r in store.rows("provincias")} == first
    assert len(store.rows("socios")) == 3


def test_failed_dependency_skips_dependents_only():
    reader = FakeSourceReader(legacy_tables(), failing=("Provincias",))
    orchestrator, store = make_orchestrator(reader=reader)

    result = orchestrator.run(units("provincias", "paises", "tarjetas", "sexos", "socios"))

    assert result.state == FAILED
    assert not result.ok
    assert "Provincias" in result.report_for("provincias").fatal_error
    assert "provincias" in result.report_for("socios").fatal_error
    # Las unidades independientes terminaron
    assert not result.report_for("paises").failed
    assert not result.report_for("tarjetas").failed
    assert store.rows("socios") == []


def test_dependency_outside_run_uses_target_counts():
    orchestrator, _ = make_orchestrator()
    result = orchestrator.run(units("socios"))
    assert result.report_for("socios").failed

    orchestrator, store = make_orchestrator()
    orchestrator.run(units("provincias", "paises", "tarjetas", "sexos"))
    result = orchestrator.run(units("socios"))
    assert result.ok
    assert len(store.rows("socios")) == 3


def test_connection_loss_aborts_run():
    orchestrator, store = make_orchestrator()
    store.offline = True

    result = orchestrator.run(units("provincias", "paises", "tarjetas"))

    assert result.state == FAILED
    assert "conexión" in result.fatal_error.lower()
    assert [r.unit for r in result.reports] == ["provincias"]


def test_detail_rows_filtered_against_parent():
    orchestrator, store = make_orchestrator()

    result = orchestrator.run(units("cuentas", "asientos_header", "asientos_items"))

    assert result.ok
    report = result.report_for("asientos_items")
    assert report.attempted == 3
    assert report.inserted == 2
    assert report.keys_for(FK_UNRESOLVED) == [(3, 202401, 1, 1)]
    items = {r["item"]: r for r in store.rows("asientos_items")}
    assert items[1]["cuenta_id"] == 10
    # Cuenta inexistente no descarta el item
    assert items[2]["cuenta_id"] is None


def test_dry_run_maps_without_writing():
    orchestrator, store = make_orchestrator(dry_run=True)

    result = orchestrator.run(units("provincias", "paises"))

    assert result.ok
    assert result.report_for("provincias").inserted == 24
    assert result.report_for("provincias").dry_run
    assert store.ops("upsert") == []
    assert store.ops("rpc") == []


def test_failed_batch_without_key_columns_reports_source_keys():
    reader = FakeSourceReader({
        "observaciones_socios": [
            {"Socio": 1, "fecha": "2024-01-05", "observacion": "Cambio de domicilio"},
            {"Socio": 2, "fecha": "2024-02-01", "observacion": "Baja temporaria"},
        ],
    })
    store = FakeTargetStore(
        tables={"socios": [{"id": 1}, {"id": 2}]},
        fail_rows=lambda table, row: row.get("socio_id") == 2,
    )
    orchestrator, _ = make_orchestrator(reader=reader, store=store)

    result = orchestrator.run(units("observaciones_socios"))

    report = result.report_for("observaciones_socios")
    assert not report.failed
    assert report.inserted == 0
    assert report.keys_for(INSERT_ERROR) == [(1, "2024-01-05"), (2, "2024-02-01")]


class MaxFailingStore(FakeTargetStore):
    def max_value(self, table, column):
        raise QueryError(f"max {table}.{column}", "[42501] permission denied")


def test_sequence_max_failure_does_not_fail_unit():
    store = MaxFailingStore(generated_ids={"provincias": "id"})
    orchestrator, _ = make_orchestrator(store=store)

    result = orchestrator.run(units("paises"))

    assert result.ok
    assert result.state == DONE
    sequence = result.report_for("paises").sequence
    assert sequence.applied is False
    assert "COALESCE(MAX(id), 0) + 1" in sequence.statement
    assert store.ops("rpc") == []


def test_clipro_current_accounts_follow_clients():
    reader = FakeSourceReader({
        "Clientes": [
            {"Codigo": 1, "RazonSocial": "Laboratorio Sur", "civa": "1", "idPais": 1, "Activo": 1},
            {"Codigo": 2, "RazonSocial": "Droguería Norte", "civa": "9", "idPais": 99, "Activo": 0},
        ],
        "VenCliHeader": [
            {"idtransaccion": 10, "cliente": 1, "fecha": "2024-03-01", "totalimporte": 100},
            {"idtransaccion": 11, "cliente": 7, "fecha": "2024-03-02", "totalimporte": 50},
        ],
        "Vencliitems": [
            {"idCampo": 100, "idTransaccion": 10, "item": 1, "cuenta": 10, "importe": 100},
            {"idCampo": 101, "idTransaccion": 11, "item": 1, "cuenta": 10, "importe": 50},
            {"idCampo": 102, "idTransaccion": 10, "item": 2, "cuenta": 99, "importe": 0},
        ],
    })
    store = FakeTargetStore(tables={
        "categorias_iva": [{"codigo": "1", "descripcion": "Responsable Inscripto"}],
        "paises": [{"id": 1, "nombre": "Argentina"}],
        "cuentas": [{"cuenta": 10}],
    })
    orchestrator, _ = make_orchestrator(reader=reader, store=store)

    result = orchestrator.run(units("clientes", "ven_cli_header", "ven_cli_items"))

    assert result.ok
    clientes = {r["codigo"]: r for r in store.rows("clientes")}
    assert clientes[1]["civa"] == "1"
    assert clientes[1]["id_pais"] == 1
    assert clientes[1]["activo"]
    # Categoría o país inexistentes → NULL, el cliente se carga igual
    assert clientes[2]["civa"] is None
    assert clientes[2]["id_pais"] is None
    assert result.report_for("clientes").sequence.next_value == 3

    header = result.report_for("ven_cli_header")
    assert header.keys_for(FK_UNRESOLVED) == [11]
    assert [r["id_transaccion"] for r in store.rows("ven_cli_header")] == [10]

    items = result.report_for("ven_cli_items")
    assert items.keys_for(FK_UNRESOLVED) == [101]
    cuentas = {r["id_campo"]: r["cuenta"] for r in store.rows("ven_cli_items")}
    assert cuentas == {100: 10, 102: None}

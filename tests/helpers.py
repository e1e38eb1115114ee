"""
Funciones helper y stores en memoria compartidos por todos los tests.

Proporciona:
- Carga dinámica de migradores basándose en config.py
- FakeTargetStore: reemplazo de SupabaseStore con tablas en memoria
- FakeSourceReader: reemplazo de SourceReader con filas fijas por tabla
- FakeConnection: conexión DB-API mínima para probar SourceReader
"""

import importlib
import os
import re
import sys
from types import MappingProxyType

# Agregar directorio raíz al path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from pipeline.errors import InsertError, QueryError, StoreConnectionError


# =============================================================================
# MIGRADORES
# =============================================================================


def get_migrator_class_for_unit(unit_name):
    """
    Carga dinámicamente la clase migrador para una unidad.

    Sigue la convención de nombres:
    - socios → SociosMigrator (en migrators/socios.py)
    - asientos_items → AsientosItemsMigrator (en migrators/cuentas.py)

    Raises:
        ImportError: Si no existe el módulo
        AttributeError: Si no existe la clase
    """
    cfg = config.get_unit_config(unit_name)
    module = importlib.import_module(f"migrators.{cfg['module']}")
    class_name = "".join(word.capitalize() for word in unit_name.split("_")) + "Migrator"
    return getattr(module, class_name)


def get_all_migrator_classes():
    """Lista de tuplas (unidad, clase) en orden de MIGRATION_ORDER."""
    return [
        (unit_name, get_migrator_class_for_unit(unit_name))
        for unit_name in config.MIGRATION_ORDER
    ]


def get_all_migrator_instances():
    """Lista de tuplas (unidad, instancia) con la tabla destino de config."""
    return [
        (unit_name, migrator_class(config.get_target_table(unit_name)))
        for unit_name, migrator_class in get_all_migrator_classes()
    ]


# =============================================================================
# STORES EN MEMORIA
# =============================================================================


def source_rows(rows):
    """Convierte dicts en SourceRows inmutables, como los devuelve SourceReader."""
    return [MappingProxyType(dict(row)) for row in rows]


class FakeSourceReader:
    """
    Devuelve filas fijas según la tabla del FROM de la consulta.

    Attributes:
        tables: Dict tabla origen → lista de dicts
        queries: Consultas recibidas (query, params)
        failing: Tablas cuya lectura levanta QueryError
    """

    # Acepta también un VALUES con alias: FROM (VALUES ...) AS Sexos (...)
    FROM = re.compile(r"\bFROM\s+(?:\(VALUES\b.*?\)\s+AS\s+)?(\w+)", re.IGNORECASE | re.DOTALL)

    def __init__(self, tables=None, failing=()):
        self.tables = {name.lower(): rows for name, rows in (tables or {}).items()}
        self.queries = []
        self.failing = {name.lower() for name in failing}

    def read(self, query, params=None):
        self.queries.append((query, params))
        table = self.FROM.search(query).group(1).lower()
        if table in self.failing:
            raise QueryError(query, f"Invalid object name '{table}'")
        for row in source_rows(self.tables.get(table, [])):
            yield row


class FakeTargetStore:
    """
    Reemplazo de SupabaseStore con tablas en memoria.

    Attributes:
        tables: Dict tabla → lista de filas (dicts)
        generated_ids: Dict tabla → columna serial que el store completa
        fail_rows: Predicado (tabla, fila) → True para rechazar el lote completo
        calls: Registro de operaciones (op, tabla, ...)
        pages: Registro de select_page (tabla, start, end)
        offline: Si True, toda operación levanta StoreConnectionError
    """

    def __init__(self, tables=None, generated_ids=None, fail_rows=None, rpc_error=None):
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.generated_ids = dict(generated_ids or {})
        self.fail_rows = fail_rows
        self.rpc_error = rpc_error
        self.calls = []
        self.pages = []
        self.offline = False
        self._next_id = {}

    def _check(self):
        if self.offline:
            raise StoreConnectionError("Supabase", "ConnectError: connection refused")

    def rows(self, table):
        return self.tables.setdefault(table, [])

    # --- lecturas ---

    def ping(self, table, column="*"):
        self._check()
        self.calls.append(("ping", table))

    def select_page(self, table, columns, start, end, order_by=None):
        self._check()
        self.pages.append((table, start, end))
        rows = self.rows(table)
        if order_by:
            rows = sorted(rows, key=lambda r: tuple(str(r.get(c)) for c in order_by))
        page = [{col: row.get(col) for col in columns} for row in rows[start:end + 1]]
        return page, len(rows)

    def count(self, table, column="*"):
        self._check()
        return len(self.rows(table))

    def max_value(self, table, column):
        self._check()
        values = [row.get(column) for row in self.rows(table) if row.get(column) is not None]
        return max(values) if values else 0

    # --- escrituras ---

    def _reject(self, table, rows):
        if self.fail_rows and any(self.fail_rows(table, row) for row in rows):
            raise InsertError(table, "[22P02] invalid input syntax for type integer")

    def _with_id(self, table, row):
        column = self.generated_ids.get(table)
        row = dict(row)
        if column and row.get(column) is None:
            self._next_id[table] = self._next_id.get(table, 0) + 1
            row[column] = self._next_id[table]
        return row

    def insert(self, table, rows):
        self._check()
        self.calls.append(("insert", table, len(rows)))
        self._reject(table, rows)
        self.rows(table).extend(self._with_id(table, row) for row in rows)
        return len(rows)

    def upsert(self, table, rows, on_conflict):
        self._check()
        self.calls.append(("upsert", table, len(rows)))
        self._reject(table, rows)
        existing = self.rows(table)
        for row in rows:
            key = tuple(row.get(col) for col in on_conflict)
            for current in existing:
                if tuple(current.get(col) for col in on_conflict) == key:
                    current.update(row)
                    break
            else:
                existing.append(self._with_id(table, row))
        return len(rows)

    def update(self, table, values, key_column, key):
        self._check()
        self.calls.append(("update", table, key))
        if self.fail_rows and self.fail_rows(table, dict(values, **{key_column: key})):
            raise InsertError(table, "[23514] check constraint violated")
        for row in self.rows(table):
            if row.get(key_column) == key:
                row.update(values)

    def delete_all(self, table, column):
        self._check()
        self.calls.append(("delete", table, column))
        self.tables[table] = [row for row in self.rows(table) if row.get(column) is None]

    def rpc(self, function, params):
        self._check()
        self.calls.append(("rpc", function, params))
        if self.rpc_error:
            raise self.rpc_error
        return None

    def ops(self, op, table=None):
        return [c for c in self.calls if c[0] == op and (table is None or c[1] == table)]


class FakeCursor:
    def __init__(self, columns, rows, error=None):
        self.description = [(col, None, None, None, None, None, None) for col in columns]
        self._rows = list(rows)
        self._error = error
        self.executed = []
        self.closed = False

    def execute(self, query, params=None):
        if self._error:
            raise self._error
        self.executed.append((query, params))

    def fetchmany(self, size):
        chunk, self._rows = self._rows[:size], self._rows[size:]
        return chunk

    def close(self):
        self.closed = True


class FakeConnection:
    """Conexión DB-API mínima: cada cursor() devuelve las mismas columnas y filas."""

    def __init__(self, columns, rows, error=None):
        self.columns = columns
        self.rows = rows
        self.error = error
        self.cursors = []

    def cursor(self):
        cursor = FakeCursor(self.columns, self.rows, self.error)
        self.cursors.append(cursor)
        return cursor

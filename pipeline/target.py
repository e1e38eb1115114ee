"""
Acceso al destino (Supabase/Postgres vía PostgREST).

SupabaseStore es el único módulo que conoce el cliente de Supabase. Traduce las
fallas del cliente a la taxonomía de pipeline.errors:
- httpx.TransportError (red caída, timeout) → StoreConnectionError
- APIError en lecturas, borrados y RPC       → QueryError
- APIError en insert/upsert/update           → InsertError

Siempre se usa la service role key (bypassea RLS), nunca una credencial de usuario.
"""

import logging

import httpx
from postgrest.exceptions import APIError
from supabase import create_client

from .errors import InsertError, QueryError, StoreConnectionError

logger = logging.getLogger(__name__)

STORE_NAME = "Supabase"


def connect_to_supabase(url, service_role_key):
    """
    Crea el cliente de Supabase con la service role key.

    Raises:
        StoreConnectionError: Si faltan URL o key
    """
    if not url or not service_role_key:
        raise StoreConnectionError(
            STORE_NAME, "SUPABASE_URL y SUPABASE_SERVICE_ROLE_KEY son obligatorias"
        )
    return SupabaseStore(create_client(url, service_role_key))


def _api_detail(error):
    message = getattr(error, "message", None) or str(error)
    code = getattr(error, "code", None)
    return f"[{code}] {message}" if code else message


class SupabaseStore:
    """
    Operaciones sobre tablas destino que usa el pipeline.

    Attributes:
        client: Cliente de supabase-py
    """

    def __init__(self, client):
        self.client = client

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def ping(self, table, column="*"):
        """Verifica conectividad leyendo una fila."""
        self._run(
            lambda: self.client.table(table).select(column).limit(1).execute(),
            QueryError,
            f"ping {table}",
        )

    def select_page(self, table, columns, start, end, order_by=None):
        """
        Lee una página [start, end] (inclusive) ordenada.

        Returns:
            tuple: (filas, total exacto de la tabla o None)
        """
        def query():
            request = self.client.table(table).select(*columns, count="exact")
            if order_by:
                # PostgREST acepta varias columnas separadas por coma
                request = request.order(",".join(order_by))
            return request.range(start, end).execute()

        response = self._run(query, QueryError, f"select {table}")
        return response.data or [], response.count

    def count(self, table, column="*"):
        response = self._run(
            lambda: self.client.table(table).select(column, count="exact").limit(1).execute(),
            QueryError,
            f"count {table}",
        )
        return response.count or 0

    def max_value(self, table, column):
        """Máximo de una columna, 0 si la tabla está vacía."""
        response = self._run(
            lambda: (
                self.client.table(table)
                .select(column)
                .order(column, desc=True)
                .limit(1)
                .execute()
            ),
            QueryError,
            f"max {table}.{column}",
        )
        if not response.data:
            return 0
        return response.data[0].get(column) or 0

    # =========================================================================
    # ESCRITURAS
    # =========================================================================

    def insert(self, table, rows):
        self._run(
            lambda: self.client.table(table).insert(rows).execute(),
            InsertError,
            table,
        )
        return len(rows)

    def upsert(self, table, rows, on_conflict):
        self._run(
            lambda: self.client.table(table).upsert(rows, on_conflict=",".join(on_conflict)).execute(),
            InsertError,
            table,
        )
        return len(rows)

    def update(self, table, values, key_column, key):
        self._run(
            lambda: self.client.table(table).update(values).eq(key_column, key).execute(),
            InsertError,
            table,
        )

    def delete_all(self, table, column):
        """
        Borra todas las filas de la tabla.

        PostgREST exige un filtro en DELETE: se usa "column IS NOT NULL",
        que vale para cualquier tipo de columna clave.
        """
        self._run(
            lambda: self.client.table(table).delete().not_.is_(column, "null").execute(),
            QueryError,
            f"delete {table}",
        )
        logger.info("Tabla %s vaciada", table)

    def rpc(self, function, params):
        response = self._run(
            lambda: self.client.rpc(function, params).execute(),
            QueryError,
            f"rpc {function}",
        )
        return response.data

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _run(self, call, error_class, context):
        try:
            return call()
        except httpx.TransportError as e:
            raise StoreConnectionError(STORE_NAME, e) from e
        except APIError as e:
            if error_class is InsertError:
                raise InsertError(context, _api_detail(e)) from e
            raise QueryError(context, _api_detail(e)) from e

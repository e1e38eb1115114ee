"""
Ajuste de secuencias de identidad después de insertar PKs explícitas.

Cuando se migra preservando IDs (socios.id = número de socio, tarjetas.id, ...)
la secuencia serial queda en 1 y el próximo INSERT de la aplicación choca.
reconcile() calcula MAX(id) + 1 y lo aplica en este orden:

1. Conexión directa a Postgres (psycopg2) si hay POSTGRES_* configurado
2. RPC 'reset_sequence' vía Supabase
3. Si nada funciona (la service role no tiene permiso para setval), devuelve
   la sentencia exacta para ejecutar a mano en el SQL Editor de Supabase.

Nunca es fatal para la unidad.
"""

import logging

import psycopg2
from psycopg2 import sql

from .errors import MigrationError, SequenceReconcileError, StoreConnectionError
from .report import SequenceResult

logger = logging.getLogger(__name__)

RESET_SEQUENCE_RPC = "reset_sequence"


def setval_statement(table, column, next_value):
    """Sentencia manual equivalente (para el operador)."""
    return (
        f"SELECT setval(pg_get_serial_sequence('{table}', '{column}'), "
        f"{next_value}, false);"
    )


def setval_from_max_statement(table, column):
    """Sentencia manual que calcula MAX + 1 en el servidor (sin conocer el máximo)."""
    return (
        f"SELECT setval(pg_get_serial_sequence('{table}', '{column}'), "
        f"(SELECT COALESCE(MAX({column}), 0) + 1 FROM {table}), false);"
    )


class SequenceReconciler:
    """
    Attributes:
        store: SupabaseStore (max_value, rpc)
        postgres_config: Dict para psycopg2.connect o None
        rpc_name: Nombre de la función RPC en Supabase
    """

    def __init__(self, store, postgres_config=None, rpc_name=RESET_SEQUENCE_RPC):
        self.store = store
        self.postgres_config = postgres_config
        self.rpc_name = rpc_name

    def reconcile(self, table, id_column="id"):
        """
        Lleva la secuencia de table.id_column a MAX + 1.

        Returns:
            SequenceResult: applied=True con el método usado, o applied=False
            con la sentencia a ejecutar manualmente.
        """
        try:
            max_value = int(self.store.max_value(table, id_column) or 0)
        except StoreConnectionError:
            raise
        except MigrationError as e:
            statement = setval_from_max_statement(table, id_column)
            logger.warning(
                "No se pudo leer MAX(%s) de %s (%s). Ejecutar manualmente: %s",
                id_column, table, e, statement,
            )
            return SequenceResult(
                table, id_column, None, applied=False, statement=statement,
                detail=f"max: {e}",
            )
        next_value = max_value + 1
        statement = setval_statement(table, id_column, next_value)

        errors = []
        for method, apply in (
            ("postgres", self._apply_direct),
            ("rpc", self._apply_rpc),
        ):
            try:
                if apply(table, id_column, next_value, statement):
                    logger.info("Secuencia %s.%s → %d (%s)", table, id_column, next_value, method)
                    return SequenceResult(
                        table, id_column, next_value, applied=True, method=method,
                        statement=statement,
                    )
            except SequenceReconcileError as e:
                errors.append(f"{method}: {e.detail}")

        detail = "; ".join(errors) or "sin método disponible"
        logger.warning(
            "No se pudo resetear la secuencia de %s (%s). Ejecutar manualmente: %s",
            table, detail, statement,
        )
        return SequenceResult(
            table, id_column, next_value, applied=False, statement=statement, detail=detail,
        )

    def _apply_direct(self, table, column, next_value, statement):
        if not self.postgres_config:
            return False

        query = sql.SQL(
            "SELECT setval(pg_get_serial_sequence({table}, {column}), {value}, false)"
        ).format(
            table=sql.Literal(table),
            column=sql.Literal(column),
            value=sql.Literal(next_value),
        )
        conn = None
        try:
            conn = psycopg2.connect(**self.postgres_config)
            with conn.cursor() as cursor:
                cursor.execute(query)
            conn.commit()
        except psycopg2.Error as e:
            raise SequenceReconcileError(table, statement, str(e).strip()) from e
        finally:
            if conn is not None:
                conn.close()
        return True

    def _apply_rpc(self, table, column, next_value, statement):
        try:
            self.store.rpc(
                self.rpc_name, {"p_table_name": table, "p_column_name": column}
            )
        except StoreConnectionError:
            raise
        except MigrationError as e:
            raise SequenceReconcileError(table, statement, str(e)) from e
        return True

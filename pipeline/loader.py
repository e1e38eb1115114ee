"""
Carga por lotes con aislamiento de fallas por lote.

MODOS DE IDEMPOTENCIA:
- delete-then-insert: un único DELETE incondicional antes del primer lote,
  después INSERT por lote. Re-ejecutar converge al mismo conteo.
- upsert-by-key: UPSERT por lote con on_conflict = columnas clave. Sin DELETE.

POLÍTICA DE FALLAS:
Si un lote falla, TODAS sus filas quedan registradas como 'insert-error' con
el detalle del store y se continúa con el lote siguiente. Un lote malo no
aborta la unidad.

Los lotes se escriben de a uno y en orden.
"""

import logging

from .errors import InsertError
from .report import (
    DUPLICATE_IN_BATCH,
    INSERT_ERROR,
    BatchResult,
    MigrationReport,
    SkipRecord,
)
from .resolver import normalize_key

logger = logging.getLogger(__name__)

DELETE_THEN_INSERT = "delete-then-insert"
UPSERT_BY_KEY = "upsert-by-key"
MODES = (DELETE_THEN_INSERT, UPSERT_BY_KEY)


def chunked(rows, size):
    """Parte una secuencia en bloques consecutivos de 'size' (el último puede ser menor)."""
    if size < 1:
        raise ValueError("batch_size debe ser >= 1")
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def row_key(row, key_columns):
    """Clave lógica de una fila destino (tupla si es compuesta)."""
    if len(key_columns) == 1:
        return row.get(key_columns[0])
    return tuple(row.get(col) for col in key_columns)


def dedupe(rows, key_columns):
    """
    Elimina filas con la misma clave lógica dentro de un lote (gana la última).

    Returns:
        tuple: (filas únicas en orden de primera aparición, claves descartadas)
    """
    if not key_columns:
        return list(rows), []

    unique = {}
    dropped = []
    for row in rows:
        key = row_key(row, key_columns)
        normalized = normalize_key(key)
        if normalized is None:
            # Sin clave completa no se puede deduplicar: se deja pasar
            normalized = ("__sin_clave__", id(row))
        if normalized in unique:
            dropped.append(key)
        unique[normalized] = row
    return list(unique.values()), dropped


class BatchLoader:
    """
    Escribe filas destino en lotes de tamaño fijo.

    Attributes:
        store: SupabaseStore (insert, upsert, delete_all)
        batch_size: Tamaño de lote por defecto
        on_progress: Callback opcional (tabla, filas_procesadas, total)
        dry_run: Si True, no escribe nada (solo cuenta)
    """

    def __init__(self, store, batch_size=1000, on_progress=None, dry_run=False):
        self.store = store
        self.batch_size = batch_size
        self.on_progress = on_progress
        self.dry_run = dry_run

    def load(
        self,
        table,
        rows,
        batch_size=None,
        mode=DELETE_THEN_INSERT,
        key_columns=(),
        delete_column=None,
        report=None,
        source_keys=None,
    ):
        """
        Carga 'rows' en 'table'.

        Args:
            table: Tabla destino
            rows: Lista de filas destino (dict)
            batch_size: Tamaño de lote (default: self.batch_size)
            mode: DELETE_THEN_INSERT o UPSERT_BY_KEY
            key_columns: Columnas clave (dedupe y on_conflict)
            delete_column: Columna NOT NULL usada como filtro del DELETE
            report: MigrationReport a completar (se crea uno si es None)
            source_keys: Clave origen de cada fila, en el mismo orden que
                'rows'. Identifica las filas en los reportes cuando la tabla
                no tiene columnas clave.

        Returns:
            MigrationReport

        Raises:
            QueryError / StoreConnectionError: Si falla el DELETE inicial o se
            pierde la conexión (fatales para la unidad o la corrida)
        """
        if mode not in MODES:
            raise ValueError(f"Modo desconocido '{mode}'. Opciones: {', '.join(MODES)}")
        key_columns = list(key_columns or ())
        if mode == UPSERT_BY_KEY and not key_columns:
            raise ValueError("upsert-by-key requiere columnas clave")

        batch_size = batch_size or self.batch_size
        rows = list(rows)
        total = len(rows)
        if source_keys is None:
            source_keys = [None] * total
        source_keys = list(source_keys)
        if len(source_keys) != total:
            raise ValueError(
                f"source_keys tiene {len(source_keys)} claves para {total} filas"
            )
        if report is None:
            report = MigrationReport(unit=table, attempted=total)
        report.dry_run = self.dry_run

        if mode == DELETE_THEN_INSERT and not self.dry_run:
            self.store.delete_all(table, delete_column or key_columns[0])

        done = 0
        for index, chunk in enumerate(chunked(rows, batch_size), start=1):
            start = (index - 1) * batch_size
            keys = source_keys[start:start + len(chunk)]
            result = self._load_chunk(table, index, chunk, keys, mode, key_columns)
            report.add_batch(result)
            done += len(chunk)

            if result.failed:
                logger.warning("%s: lote %d falló (%s)", table, index, result.error)
            else:
                logger.debug("%s: lote %d ok (%d filas)", table, index, result.inserted)

            if self.on_progress:
                self.on_progress(table, done, total)

        return report

    def _load_chunk(self, table, index, chunk, keys, mode, key_columns):
        result = BatchResult(index=index, attempted=len(chunk))
        # id(fila) → clave origen, para filas sin columnas clave
        origin = {id(row): key for row, key in zip(chunk, keys)}

        unique, dropped = dedupe(chunk, key_columns)
        for key in dropped:
            result.skips.append(SkipRecord(DUPLICATE_IN_BATCH, key))

        if not unique:
            return result

        if self.dry_run:
            result.inserted = len(unique)
            return result

        try:
            if mode == UPSERT_BY_KEY:
                self.store.upsert(table, unique, key_columns)
            else:
                self.store.insert(table, unique)
        except InsertError as e:
            result.error = e.detail
            for row in unique:
                key = row_key(row, key_columns) if key_columns else origin.get(id(row))
                result.skips.append(SkipRecord(INSERT_ERROR, key, str(e.detail)))
            return result

        result.inserted = len(unique)
        return result

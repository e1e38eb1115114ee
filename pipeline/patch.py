"""
Actualización de UNA columna de una tabla ya migrada, sin tocar el resto.

Caso típico: corregir socios.matricula_provincial desde socios.Matricula del
legacy. PostgREST no tiene update masivo por PK, así que cada fila es un
UPDATE ... WHERE id = X. Dentro de un lote esos updates van en paralelo
(claves distintas, sin estado compartido); los lotes se procesan en orden.
"""

import logging
import re
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

from .errors import InsertError
from .mapper import as_text
from .loader import chunked
from .report import ALREADY_SET, INSERT_ERROR, BatchResult, MigrationReport, SkipRecord
from .resolver import normalize_part

logger = logging.getLogger(__name__)

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

PatchUpdate = namedtuple("PatchUpdate", ["key", "value"])


def validate_identifier(name):
    """Los nombres de columna van interpolados en el SQL: solo identificadores simples."""
    if not name or not IDENTIFIER.match(name):
        raise ValueError(f"Nombre de columna/tabla inválido: {name!r}")
    return name


class ColumnPatcher:
    """
    Attributes:
        reader: SourceReader
        store: SupabaseStore (update)
        resolver: ReferenceResolver (valores actuales para only_missing)
        batch_size: Updates por lote
        workers: Updates concurrentes dentro de un lote
        dry_run: No escribe
        only_missing: Saltea filas que ya tienen valor en destino
        on_progress: Callback (tabla, procesados, total)
    """

    def __init__(
        self,
        reader,
        store,
        resolver,
        batch_size=50,
        workers=10,
        dry_run=False,
        only_missing=False,
        on_progress=None,
    ):
        self.reader = reader
        self.store = store
        self.resolver = resolver
        self.batch_size = batch_size
        self.workers = workers
        self.dry_run = dry_run
        self.only_missing = only_missing
        self.on_progress = on_progress

    def plan(self, source_table, source_key, source_column, target_table, target_key, target_column):
        """
        Lee el origen y arma la lista de updates.

        Returns:
            tuple: (lista de PatchUpdate, MigrationReport con attempted y omisiones)
        """
        for name in (source_table, source_key, source_column, target_table, target_key, target_column):
            validate_identifier(name)

        report = MigrationReport(unit=f"{target_table}.{target_column}", dry_run=self.dry_run)
        query = (
            f"SELECT {source_key}, {source_column} FROM {source_table} "
            f"ORDER BY {source_key}"
        )

        values = {}
        for row in self.reader.read(query):
            report.attempted += 1
            key = normalize_part(row.get(source_key))
            if key is None:
                continue
            values[key] = as_text(row.get(source_column))

        current = None
        if self.only_missing:
            current = self.resolver.build(target_table, target_key, target_column)

        updates = []
        for key, value in values.items():
            if current is not None and as_text(current.get(key)) is not None:
                report.add_skip(ALREADY_SET, key)
                continue
            updates.append(PatchUpdate(key, value))

        with_value = sum(1 for u in updates if u.value is not None)
        logger.info(
            "%s: %d updates (%d con valor, %d a NULL), %d omitidos",
            report.unit, len(updates), with_value, len(updates) - with_value, report.skipped,
        )
        return updates, report

    def apply(self, updates, target_table, target_key, target_column, report):
        """
        Ejecuta los updates por lotes.

        Un update fallido queda como 'insert-error' con su clave; el resto sigue.
        Un StoreConnectionError corta el proceso.
        """
        total = len(updates)
        done = 0

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            for index, chunk in enumerate(chunked(updates, self.batch_size), start=1):
                result = BatchResult(index=index, attempted=len(chunk))

                if self.dry_run:
                    result.inserted = len(chunk)
                else:
                    futures = [
                        executor.submit(
                            self.store.update, target_table,
                            {target_column: update.value}, target_key, update.key,
                        )
                        for update in chunk
                    ]
                    for update, future in zip(chunk, futures):
                        try:
                            future.result()
                        except InsertError as e:
                            result.skips.append(SkipRecord(INSERT_ERROR, update.key, str(e.detail)))
                        else:
                            result.inserted += 1

                report.add_batch(result)
                done += len(chunk)
                if self.on_progress:
                    self.on_progress(target_table, done, total)

        return report

    def patch(self, source_table, source_key, source_column, target_table, target_key, target_column):
        """plan() + apply() en un paso."""
        updates, report = self.plan(
            source_table, source_key, source_column, target_table, target_key, target_column
        )
        return self.apply(updates, target_table, target_key, target_column, report)

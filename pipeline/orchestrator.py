"""
Orquestador de la migración: ejecuta unidades en orden de dependencias.

MÁQUINA DE ESTADOS:
    idle → running(unidad 1) → ... → running(unidad n) → done | failed

- Errores de fila (mapeo, FK) y de lote (insert) quedan en el reporte de la
  unidad y la corrida sigue en running.
- Errores de unidad (QueryError, DependencyError) marcan la unidad como
  fallida; las unidades que dependen de ella no se ejecutan y las
  independientes siguen.
- StoreConnectionError aborta toda la corrida.

Los ReferenceMaps se construyen al inicio de cada unidad sobre el destino ya
cargado y se descartan al terminarla.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import (
    DependencyError,
    MappingError,
    MigrationError,
    StoreConnectionError,
)
from .loader import DELETE_THEN_INSERT
from .report import MigrationReport, RunResult

logger = logging.getLogger(__name__)

IDLE = "idle"
RUNNING = "running"
DONE = "done"
FAILED = "failed"


@dataclass
class MigrationUnit:
    """Trabajo tabla origen → tabla destino, definido estáticamente por corrida."""
    name: str
    migrator: object
    target_table: str
    key_columns: Tuple[str, ...] = ()
    mode: str = DELETE_THEN_INSERT
    depends_on: Tuple[str, ...] = ()
    batch_size: Optional[int] = None
    delete_column: Optional[str] = None
    unit_type: str = "entidad"
    description: str = ""


class MigrationOrchestrator:
    """
    Attributes:
        reader: SourceReader sobre SQL Server
        store: SupabaseStore (conteos de dependencias)
        resolver: ReferenceResolver
        loader: BatchLoader
        reconciler: SequenceReconciler o None
        unit_tables: Dict nombre de unidad → tabla destino, para verificar
            dependencias que no forman parte de esta corrida
        state: Estado actual de la corrida
        current_unit: Unidad en ejecución (None fuera de running)
    """

    def __init__(self, reader, store, resolver, loader, reconciler=None, unit_tables=None):
        self.reader = reader
        self.store = store
        self.resolver = resolver
        self.loader = loader
        self.reconciler = reconciler
        self.unit_tables = dict(unit_tables or {})
        self.state = IDLE
        self.current_unit = None

    @property
    def dry_run(self):
        return getattr(self.loader, "dry_run", False)

    def run(self, units):
        """
        Ejecuta las unidades en el orden recibido.

        Returns:
            RunResult con un MigrationReport por unidad
        """
        units = list(units)
        run_names = {unit.name for unit in units}
        completed = set()
        result = RunResult(state=RUNNING)
        self.state = RUNNING

        for unit in units:
            self.current_unit = unit.name
            report = MigrationReport(unit=unit.name, dry_run=self.dry_run)
            result.reports.append(report)

            try:
                self._check_dependencies(unit, run_names, completed)
                self.run_unit(unit, report)
            except StoreConnectionError as e:
                logger.error("Conexión perdida en '%s': %s", unit.name, e)
                report.fatal_error = str(e)
                result.fatal_error = str(e)
                break
            except MigrationError as e:
                logger.error("Unidad '%s' abortada: %s", unit.name, e)
                report.fatal_error = str(e)
                continue

            completed.add(unit.name)

        self.current_unit = None
        self.state = DONE if result.ok else FAILED
        result.state = self.state
        return result

    def run_unit(self, unit, report=None):
        """
        Ejecuta una unidad completa: mapas → lectura → mapeo → carga → secuencia.

        Raises:
            QueryError / DependencyError / StoreConnectionError
        """
        if report is None:
            report = MigrationReport(unit=unit.name, dry_run=self.dry_run)
        migrator = unit.migrator
        mapper = migrator.build_mapper()

        specs = migrator.get_references()
        missing = mapper.required_references() - set(specs)
        if missing:
            raise DependencyError(unit.name, sorted(missing))

        references = {
            name: self.resolver.build(spec.table, spec.key_columns, spec.value_column)
            for name, spec in specs.items()
        }

        query, params = migrator.get_source_query()
        rows = []
        source_keys = []
        for source_row in self.reader.read(query, params):
            report.attempted += 1
            key = migrator.get_primary_key_from_row(source_row)
            try:
                rows.append(mapper.map(source_row, references))
            except MappingError as e:
                report.add_skip(e.reason, key, str(e))
                continue
            source_keys.append(key)

        logger.info(
            "%s: %d filas leídas, %d para cargar", unit.name, report.attempted, len(rows)
        )

        self.loader.load(
            unit.target_table,
            rows,
            batch_size=unit.batch_size,
            mode=unit.mode,
            key_columns=unit.key_columns,
            delete_column=unit.delete_column,
            report=report,
            source_keys=source_keys,
        )

        if migrator.sequence_column and self.reconciler and not self.dry_run:
            report.sequence = self.reconciler.reconcile(
                unit.target_table, migrator.sequence_column
            )

        return report

    def _check_dependencies(self, unit, run_names, completed):
        missing = []
        for dep in unit.depends_on:
            if dep in run_names:
                if dep not in completed:
                    missing.append(dep)
                continue
            # Dependencia fuera de esta corrida: tiene que estar cargada en destino
            table = self.unit_tables.get(dep, dep)
            if self.store.count(table) == 0:
                missing.append(dep)
        if missing:
            raise DependencyError(unit.name, missing)

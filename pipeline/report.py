"""
Resultados de la migración: omisiones por fila, resultado por lote y reporte por unidad.

El core NO imprime ni persiste estos objetos: sqlmigra.py se encarga de mostrarlos.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Motivos de omisión
FK_UNRESOLVED = "fk-unresolved"
DUPLICATE_IN_BATCH = "duplicate-in-batch"
INSERT_ERROR = "insert-error"
MAPPING_ERROR = "mapping-error"
ALREADY_SET = "already-set"


@dataclass
class SkipRecord:
    """Una fila que no llegó a destino, con motivo y clave identificatoria."""
    reason: str
    key: Any
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"reason": self.reason, "key": self.key, "detail": self.detail}


@dataclass
class BatchResult:
    """Resultado de la escritura de un lote."""
    index: int
    attempted: int = 0
    inserted: int = 0
    skips: List[SkipRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class SequenceResult:
    """Resultado del ajuste de una secuencia de identidad."""
    table: str
    column: str
    next_value: Optional[int]
    applied: bool
    method: Optional[str] = None
    statement: Optional[str] = None
    detail: Optional[str] = None


@dataclass
class MigrationReport:
    """
    Totales de una unidad de migración.

    attempted: filas leídas del origen
    inserted: filas escritas (después de deduplicar)
    skipped: filas omitidas por mapeo, FK o duplicado
    errored: filas de lotes que fallaron al escribir
    """
    unit: str
    attempted: int = 0
    inserted: int = 0
    skips: List[SkipRecord] = field(default_factory=list)
    batches: List[BatchResult] = field(default_factory=list)
    sequence: Optional[SequenceResult] = None
    fatal_error: Optional[str] = None
    dry_run: bool = False

    @property
    def skipped(self) -> int:
        return sum(1 for s in self.skips if s.reason != INSERT_ERROR)

    @property
    def errored(self) -> int:
        return sum(1 for s in self.skips if s.reason == INSERT_ERROR)

    @property
    def failed(self) -> bool:
        return self.fatal_error is not None

    def add_skip(self, reason, key, detail=None):
        self.skips.append(SkipRecord(reason, key, detail))

    def add_batch(self, result: BatchResult):
        self.batches.append(result)
        self.inserted += result.inserted
        self.skips.extend(result.skips)

    def reasons(self) -> Dict[str, int]:
        """Cantidad de omisiones agrupadas por motivo."""
        return dict(Counter(s.reason for s in self.skips))

    def keys_for(self, reason) -> List[Any]:
        return [s.key for s in self.skips if s.reason == reason]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.unit,
            "attempted": self.attempted,
            "inserted": self.inserted,
            "skipped": self.skipped,
            "errored": self.errored,
            "reasons": self.reasons(),
            "fatal_error": self.fatal_error,
            "dry_run": self.dry_run,
            "skips": [s.to_dict() for s in self.skips],
        }


@dataclass
class RunResult:
    """Resultado de una corrida completa del orquestador."""
    state: str
    reports: List[MigrationReport] = field(default_factory=list)
    fatal_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.fatal_error is None and not any(r.failed for r in self.reports)

    def report_for(self, unit) -> Optional[MigrationReport]:
        for report in self.reports:
            if report.unit == unit:
                return report
        return None

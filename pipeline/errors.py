"""
Taxonomía de errores de la migración SQL Server → Supabase.

ALCANCE DE CADA ERROR:
- StoreConnectionError: aborta toda la corrida (no se puede hablar con un store)
- QueryError: aborta la unidad, las unidades independientes siguen
- DependencyError: una dependencia requerida no corrió o falló (aborta la unidad)
- MappingError / FkUnresolvedError: alcance fila, se registra y se omite la fila
- InsertError: alcance lote, se registra el lote completo y se sigue con el próximo
- SequenceReconcileError: se reporta con la sentencia SQL manual, nunca es fatal
"""


class MigrationError(Exception):
    """Clase base de todos los errores de la migración."""


class StoreConnectionError(MigrationError):
    """No se pudo conectar con SQL Server o con Supabase."""

    def __init__(self, store, detail):
        self.store = store
        self.detail = detail
        super().__init__(f"Error de conexión a {store}: {detail}")


class QueryError(MigrationError):
    """Consulta mal formada o rechazada por el store."""

    def __init__(self, query, detail):
        self.query = query
        self.detail = detail
        super().__init__(f"Error ejecutando consulta ({query}): {detail}")


class DependencyError(MigrationError):
    """Una unidad requerida no se ejecutó o terminó con error fatal."""

    def __init__(self, unit, missing):
        self.unit = unit
        self.missing = list(missing)
        super().__init__(
            f"La unidad '{unit}' requiere primero: {', '.join(self.missing)}"
        )


class MappingError(MigrationError):
    """Una fila no se pudo transformar; se omite con motivo 'mapping-error'."""

    reason = "mapping-error"

    def __init__(self, field, message):
        self.field = field
        super().__init__(f"{field}: {message}")


class FkUnresolvedError(MappingError):
    """FK sin resolver y sin default declarado; se omite con motivo 'fk-unresolved'."""

    reason = "fk-unresolved"

    def __init__(self, field, reference, key):
        self.reference = reference
        self.key = key
        super().__init__(field, f"clave {key!r} no existe en '{reference}'")


class InsertError(MigrationError):
    """Falla de escritura de un lote completo."""

    def __init__(self, table, detail):
        self.table = table
        self.detail = detail
        super().__init__(f"Error escribiendo en '{table}': {detail}")


class SequenceReconcileError(MigrationError):
    """No se pudo ajustar la secuencia; lleva la sentencia para correr a mano."""

    def __init__(self, table, statement, detail):
        self.table = table
        self.statement = statement
        self.detail = detail
        super().__init__(f"No se pudo resetear la secuencia de '{table}': {detail}")

"""
Migradores del plan de cuentas y del libro diario.

    cuentas          ← cuentas                (PK natural 'cuenta', sin id)
    asientos_header  ← AsientosDiariosHeader  (PK compuesta asiento/anio_mes/tipo_asiento)
    asientos_items   ← AsientosDiariosItems   (detalle, filtrado contra el header)

Un item solo se carga si su clave compuesta (asiento, aniomes, tipoasiento)
existe en asientos_header. Una cuenta inexistente no descarta el item: queda
con cuenta_id NULL.
"""

from pipeline.mapper import Const, Date, Exists, Flag, Number, Reference, Text

from .base import BaseMigrator, ReferenceSpec

HEADER_COLUMNS = ("asiento", "anio_mes", "tipo_asiento")
HEADER_SOURCE_COLUMNS = ("asiento", "aniomes", "tipoasiento")


class CuentasMigrator(BaseMigrator):
    source_key_columns = ("cuenta",)

    def get_source_query(self):
        query = """
            SELECT
                cuenta, descripcion, Resumida, sigla,
                tipocuentaContable, imputable, Rubro, subrubro
            FROM cuentas
            ORDER BY cuenta
        """
        return query, None

    def get_fields(self):
        return [
            Number("cuenta", "cuenta", integer=True),
            Text("descripcion", "descripcion", default=""),
            Text("descripcion_resumida", "Resumida"),
            Text("sigla", "sigla"),
            Number("tipo_cuenta_contable", "tipocuentaContable", nullable=True, integer=True),
            Flag("imputable", "imputable"),
            Number("rubro", "Rubro", nullable=True, integer=True),
            Number("subrubro", "subrubro", nullable=True, integer=True),
            # Todas empiezan activas
            Const("activo", True),
        ]


class AsientosHeaderMigrator(BaseMigrator):
    source_key_columns = HEADER_SOURCE_COLUMNS

    def get_source_query(self):
        query = """
            SELECT asiento, aniomes, tipoasiento, fecha, detalle, centrocosto
            FROM AsientosDiariosHeader
            ORDER BY asiento, aniomes, tipoasiento
        """
        return query, None

    def get_fields(self):
        return [
            Number("asiento", "asiento", integer=True),
            Number("anio_mes", "aniomes", integer=True),
            Number("tipo_asiento", "tipoasiento", integer=True),
            Date("fecha", "fecha"),
            Text("detalle", "detalle"),
            Text("centro_costo", "centrocosto"),
        ]


class AsientosItemsMigrator(BaseMigrator):
    """Items del diario. Se borran y recargan completos en cada corrida."""

    source_key_columns = HEADER_SOURCE_COLUMNS + ("item",)

    def get_source_query(self):
        query = """
            SELECT asiento, aniomes, tipoasiento, item, cuenta, debe, haber, observacion
            FROM AsientosDiariosItems
            ORDER BY asiento, aniomes, tipoasiento, item
        """
        return query, None

    def get_references(self):
        return {
            "asientos_header": ReferenceSpec("asientos_header", HEADER_COLUMNS, None),
            "cuentas": ReferenceSpec("cuentas", ("cuenta",), None),
        }

    def get_fields(self):
        return [
            Exists(HEADER_SOURCE_COLUMNS, "asientos_header"),
            Number("asiento", "asiento", integer=True),
            Number("anio_mes", "aniomes", integer=True),
            Number("tipo_asiento", "tipoasiento", integer=True),
            Number("item", "item", integer=True),
            Reference("cuenta_id", "cuenta", "cuentas", default=None),
            Number("debe", "debe"),
            Number("haber", "haber"),
            Text("observacion", "observacion"),
        ]

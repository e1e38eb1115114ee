"""
Migradores de conceptos de facturación y tablas asociadas a socios.

    conceptos             ← conceptos               (upsert por 'codigo')
    conceptos_socios      ← conceptos_socios        (delete-then-insert)
    observaciones_socios  ← observaciones_socios    (delete-then-insert)

Los códigos de concepto del legacy a veces tienen espacios al final. El mapa
'conceptos' se arma con claves normalizadas y devuelve el código tal cual
quedó guardado en destino, así la FK siempre coincide byte a byte.
"""

from datetime import datetime

from pipeline.mapper import Computed, Const, Date, Number, Reference, Text, Timestamp

from .base import BaseMigrator, ReferenceSpec

USUARIO_MIGRACION = "Migración"


class ConceptosMigrator(BaseMigrator):
    source_key_columns = ("Concepto",)

    def get_source_query(self):
        query = """
            SELECT
                Concepto, Entidad, Descripcion, Modalidad, Importe,
                mes, ano, Imputacion_Contable, Seguro, Grupo,
                Concepto_Muni, Modalidad_Muni, Importe_Muni,
                Cobertura, Comision, idCobertura
            FROM conceptos
            ORDER BY Concepto
        """
        return query, None

    def get_fields(self):
        return [
            Text("codigo", "Concepto", required=True),
            Number("entidad", "Entidad", nullable=True, integer=True),
            Text("descripcion", "Descripcion"),
            Text("modalidad", "Modalidad"),
            Number("importe", "Importe", nullable=True),
            Number("mes", "mes", nullable=True, integer=True),
            Number("ano", "ano", nullable=True, integer=True),
            Text("imputacion_contable", "Imputacion_Contable"),
            Text("seguro", "Seguro"),
            Text("grupo", "Grupo"),
            Text("concepto_muni", "Concepto_Muni"),
            Text("modalidad_muni", "Modalidad_Muni"),
            Number("importe_muni", "Importe_Muni", nullable=True),
            Text("cobertura", "Cobertura"),
            Number("comision", "Comision", nullable=True),
            Number("id_cobertura", "idCobertura", nullable=True, integer=True),
        ]


class ConceptosSociosMigrator(BaseMigrator):
    """Conceptos asignados a cada socio. Filas sin socio o concepto migrado se omiten."""

    source_key_columns = ("socio", "Concepto")

    def get_source_query(self):
        query = """
            SELECT
                socio, Concepto, FechaAlta, FecHaVigencia, Importe, FechaBaja,
                MotivoBaja, Cuotas, Moneda, idCampoTarjeta,
                Rechazos, Presentadas, TipoCambio, ValorOrigen
            FROM conceptos_socios
            ORDER BY socio, Concepto
        """
        return query, None

    def get_references(self):
        return {
            "socios": ReferenceSpec("socios", ("id",), None),
            "conceptos": ReferenceSpec("conceptos", ("codigo",), "codigo"),
        }

    def get_fields(self):
        return [
            Reference("socio_id", "socio", "socios", nullable=False),
            Reference("concepto_codigo", "Concepto", "conceptos", nullable=False),
            Date("fecha_alta", "FechaAlta"),
            Date("fecha_vigencia", "FecHaVigencia"),
            Number("importe", "Importe", nullable=True),
            Date("fecha_baja", "FechaBaja"),
            Text("motivo_baja", "MotivoBaja"),
            Computed("activo", lambda row, refs: row.get("FechaBaja") is None),
            Number("cuotas", "Cuotas", nullable=True, integer=True),
            Text("moneda", "Moneda"),
            Number("id_campo_tarjeta", "idCampoTarjeta", nullable=True, integer=True),
            Number("rechazos", "Rechazos", integer=True),
            Number("presentadas", "Presentadas", integer=True),
            Number("tipo_cambio", "TipoCambio", nullable=True),
            Number("valor_origen", "ValorOrigen", nullable=True),
        ]


class ObservacionesSociosMigrator(BaseMigrator):
    """
    Observaciones libres sobre socios.

    Las observaciones sin fecha toman la fecha de migración, fijada una sola
    vez al crear el migrador: todas las filas de la corrida llevan el mismo
    valor.
    """

    source_key_columns = ("Socio", "fecha")

    def __init__(self, table, fecha_migracion=None):
        super().__init__(table)
        if fecha_migracion is None:
            fecha_migracion = datetime.now().replace(microsecond=0).isoformat()
        self.fecha_migracion = fecha_migracion

    def get_source_query(self):
        query = """
            SELECT Socio, fecha, observacion
            FROM observaciones_socios
            WHERE Socio IS NOT NULL
            ORDER BY Socio, fecha
        """
        return query, None

    def get_references(self):
        return {"socios": ReferenceSpec("socios", ("id",), None)}

    def get_fields(self):
        return [
            Reference("socio_id", "Socio", "socios", nullable=False),
            Timestamp("fecha", "fecha", default=self.fecha_migracion),
            Text("observacion", "observacion", default=""),
            Const("usuario", USUARIO_MIGRACION),
        ]

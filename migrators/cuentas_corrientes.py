"""
Migradores de cuentas corrientes de socios y profesionales.

    cuentas_corrientes          ← cuentascorrientes         (id = IdTransaccion)
    detalle_cuentas_corrientes  ← detallecuentascorrientes  (detalle, PK lógica idtransaccion+item)

ENTIDAD:
    El legacy guarda socios y profesionales en la misma columna 'socio' y los
    distingue por 'Entidad':
        Entidad = 0 → socio_id        (debe existir en socios)
        Entidad = 1 → profesional_id  (debe existir en profesionales)
    La otra columna queda NULL. Solo se migran socio < 10000.

COMPROBANTES Y CONCEPTOS:
    tipos_comprobante_socios y conceptos tienen códigos con espacios al final
    en destino. La búsqueda ignora esos espacios y escribe el valor guardado.
"""

from pipeline.errors import FkUnresolvedError
from pipeline.mapper import Computed, Date, Exists, Number, Reference, Text
from pipeline.resolver import NOT_FOUND, normalize_part

from .base import BaseMigrator, ReferenceSpec

ENTIDAD_SOCIO = 0
ENTIDAD_PROFESIONAL = 1

DETALLE_KEY = ("idtransaccion", "item")


def titular(target, entidad, reference):
    """
    Regla para socio_id / profesional_id según la Entidad de la fila.

    Devuelve None si la fila es de la otra entidad; si es de esta entidad y el
    titular no existe en destino, la fila se descarta como 'fk-unresolved'.
    """
    def resolve(row, references):
        if normalize_part(row.get("Entidad")) != entidad:
            return None
        key = row.get("socio")
        value = references[reference].lookup(key)
        if value is NOT_FOUND:
            raise FkUnresolvedError(target, reference, key)
        return value

    return Computed(target, resolve, needs=(reference,))


class CuentasCorrientesMigrator(BaseMigrator):
    source_key_columns = ("IdTransaccion",)
    sequence_column = "idtransaccion"

    def get_source_query(self):
        query = """
            SELECT
                IdTransaccion, socio, Entidad, Fecha,
                RTRIM(LTRIM(Concepto)) AS Concepto,
                PuntodeVenta, DocumentoNumero, FechaRendicion, Rendicion,
                importe, Cancelado, vencimiento
            FROM cuentascorrientes
            WHERE socio < %s AND Entidad IN (%s, %s)
            ORDER BY IdTransaccion
        """
        return query, (10000, ENTIDAD_SOCIO, ENTIDAD_PROFESIONAL)

    def get_references(self):
        return {
            "socios": ReferenceSpec("socios", ("id",), None),
            "profesionales": ReferenceSpec("profesionales", ("id",), None),
            "tipos_comprobante": ReferenceSpec(
                "tipos_comprobante_socios", ("comprobante",), "comprobante"
            ),
        }

    def get_fields(self):
        return [
            Number("idtransaccion", "IdTransaccion", integer=True),
            titular("socio_id", ENTIDAD_SOCIO, "socios"),
            titular("profesional_id", ENTIDAD_PROFESIONAL, "profesionales"),
            Number("entidad_id", "Entidad", integer=True),
            Date("fecha", "Fecha"),
            Reference("tipo_comprobante", "Concepto", "tipos_comprobante"),
            Text("punto_venta", "PuntodeVenta"),
            Text("documento_numero", "DocumentoNumero"),
            Date("fecha_rendicion", "FechaRendicion"),
            Text("rendicion", "Rendicion"),
            Number("importe", "importe"),
            Number("cancelado", "Cancelado"),
            Date("vencimiento", "vencimiento"),
        ]


class DetalleCuentasCorrientesMigrator(BaseMigrator):
    """
    Items de cada transacción.

    El legacy tiene items repetidos (mismo idTransaccion + Item); dentro de un
    lote gana el último y los demás quedan como 'duplicate-in-batch'.

    detalle_cuentas_corrientes.id es serial y no viene del legacy; igual se
    ajusta su secuencia después de cada recarga.
    """

    source_key_columns = ("idTransaccion", "Item")
    sequence_column = "id"

    def get_source_query(self):
        query = """
            SELECT idTransaccion, Item, Concepto, Cantidad, Importe
            FROM detallecuentascorrientes
            ORDER BY idTransaccion, Item
        """
        return query, None

    def get_references(self):
        return {
            "cuentas_corrientes": ReferenceSpec("cuentas_corrientes", ("idtransaccion",), None),
            "conceptos": ReferenceSpec("conceptos", ("codigo",), "codigo"),
        }

    def get_fields(self):
        return [
            Exists("idTransaccion", "cuentas_corrientes"),
            Number("idtransaccion", "idTransaccion", integer=True),
            Number("item", "Item", integer=True),
            Reference("concepto", "Concepto", "conceptos", nullable=False),
            Number("cantidad", "Cantidad", default=1),
            Number("importe", "Importe"),
        ]

"""
Migradores de tesorería.

    conceptos_tesoreria  ← Conceptos_Tesoreria  (id = idConcepto_Tesoreria)
    valores_tesoreria    ← ValoresTesoreria     (id = idTransaccion)

Ambas tablas preservan el id del legacy y se cargan con upsert por id.
'locked' llega como buffer binario (columna timestamp/binary del legacy):
es verdadero si tiene algún byte distinto de cero.
"""

from pipeline.mapper import Flag, Number, Reference, Text, Timestamp

from .base import BaseMigrator, ReferenceSpec


class ConceptosTesoreriaMigrator(BaseMigrator):
    source_key_columns = ("idConcepto_Tesoreria",)
    sequence_column = "id"

    def get_source_query(self):
        query = """
            SELECT
                idConcepto_Tesoreria, Descripcion, Imputacion_Contable,
                Modalidad, CI, CE, Unificador, Mostrador, MonedaExtranjera
            FROM Conceptos_Tesoreria
            ORDER BY idConcepto_Tesoreria
        """
        return query, None

    def get_fields(self):
        return [
            Number("id", "idConcepto_Tesoreria", integer=True),
            Text("descripcion", "Descripcion"),
            Text("imputacion_contable", "Imputacion_Contable"),
            Number("modalidad", "Modalidad", integer=True),
            Text("ci", "CI", default="N"),
            Text("ce", "CE", default="N"),
            Text("unificador", "Unificador"),
            Number("mostrador", "Mostrador", integer=True),
            Number("moneda_extranjera", "MonedaExtranjera", integer=True),
        ]


class ValoresTesoreriaMigrator(BaseMigrator):
    """
    Cheques, transferencias y demás valores.

    Un concepto de tesorería inexistente descarta la fila; un concepto nulo
    se migra como NULL.
    """

    source_key_columns = ("idTransaccion",)
    sequence_column = "id"

    def get_source_query(self):
        query = """
            SELECT
                idTransaccion, idTransaccionOrigen, TipoMovimiento,
                idConcepto_Tesoreria, FechaEmision, Vencimiento,
                Banco, Cuenta, Sucursal, Numero, NumeroInterno, Firma,
                importe, Cancelado, idOperador, Observaciones, locked,
                cobrador, Corregido, tipocambio, base
            FROM ValoresTesoreria
            ORDER BY idTransaccion
        """
        return query, None

    def get_references(self):
        return {"conceptos_tesoreria": ReferenceSpec("conceptos_tesoreria", ("id",), None)}

    def get_fields(self):
        return [
            Number("id", "idTransaccion", integer=True),
            Number("idtransaccion_origen", "idTransaccionOrigen", nullable=True, integer=True),
            Text("tipo_movimiento", "TipoMovimiento"),
            Reference("idconcepto_tesoreria", "idConcepto_Tesoreria", "conceptos_tesoreria"),
            Timestamp("fecha_emision", "FechaEmision"),
            Timestamp("vencimiento", "Vencimiento"),
            Text("banco", "Banco"),
            Text("cuenta", "Cuenta"),
            Text("sucursal", "Sucursal"),
            Text("numero", "Numero"),
            Text("numero_interno", "NumeroInterno"),
            Text("firma", "Firma"),
            Number("importe", "importe"),
            Number("cancelado", "Cancelado"),
            Number("idoperador", "idOperador", nullable=True, integer=True),
            Text("observaciones", "Observaciones"),
            Flag("locked", "locked"),
            Text("cobrador", "cobrador"),
            Text("corregido", "Corregido"),
            Number("tipocambio", "tipocambio", nullable=True),
            Number("base", "base", nullable=True),
        ]

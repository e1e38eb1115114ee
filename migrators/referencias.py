"""
Migradores de tablas de referencia (catálogos sin FKs).

Tablas:
    provincias        ← Provincias         (id generado, clave natural 'codigo')
    paises            ← paises             (id = idPais)
    tarjetas          ← Tarjetas           (id = IdTarjeta, se preserva)
    categorias_iva    ← Categorias_Iva     (clave natural 'codigo')
    grupos_agrupados  ← Grupos_Agrupados   (clave natural 'codigo')
    sexos             ← (valores fijos)    (0 No informado, 1 Masculino, 2 Femenino)

Todas se cargan con upsert por clave: los ids generados de provincias no
cambian entre corridas y socios puede re-resolverlos sin quedar huérfano.
"""

from pipeline.mapper import Number, Text

from .base import BaseMigrator


class ProvinciasMigrator(BaseMigrator):
    """Provincias con código de 2 caracteres ('BA', 'CF', ...)."""

    source_key_columns = ("provincia",)

    def get_source_query(self):
        return "SELECT provincia, Descripcion FROM Provincias ORDER BY provincia", None

    def get_fields(self):
        return [
            Text("codigo", "provincia", required=True),
            Text("descripcion", "Descripcion"),
        ]


class PaisesMigrator(BaseMigrator):
    source_key_columns = ("idPais",)
    sequence_column = "id"

    def get_source_query(self):
        return "SELECT idPais, Nombre FROM paises ORDER BY idPais", None

    def get_fields(self):
        return [
            Number("id", "idPais", integer=True),
            Text("nombre", "Nombre"),
        ]


class TarjetasMigrator(BaseMigrator):
    """
    Tarjetas de débito automático.

    El id del legacy se preserva: socios.tarjeta_id apunta directamente a él.
    """

    source_key_columns = ("IdTarjeta",)
    sequence_column = "id"

    def get_source_query(self):
        return "SELECT IdTarjeta, Descripcion FROM Tarjetas ORDER BY IdTarjeta", None

    def get_fields(self):
        return [
            Number("id", "IdTarjeta", integer=True),
            Number("codigo", "IdTarjeta", integer=True),
            Text("descripcion", "Descripcion"),
        ]


class CategoriasIvaMigrator(BaseMigrator):
    source_key_columns = ("IdCiva",)

    def get_source_query(self):
        return (
            "SELECT IdCiva, Descripcion, Ganancias, TipoFacturaCompras, "
            "TipoFacturaVentas, Resumido FROM Categorias_Iva ORDER BY IdCiva",
            None,
        )

    def get_fields(self):
        return [
            # El código se guarda como texto en destino
            Text("codigo", "IdCiva", required=True),
            Text("descripcion", "Descripcion"),
            Text("ganancias", "Ganancias"),
            Text("tipo_factura_compras", "TipoFacturaCompras"),
            Text("tipo_factura_ventas", "TipoFacturaVentas"),
            Text("resumido", "Resumido"),
        ]


class GruposAgrupadosMigrator(BaseMigrator):
    source_key_columns = ("Grupo",)

    def get_source_query(self):
        return "SELECT Grupo, Descripcion FROM Grupos_Agrupados ORDER BY Grupo", None

    def get_fields(self):
        return [
            Text("codigo", "Grupo", required=True),
            Text("descripcion", "Descripcion"),
        ]


class SexosMigrator(BaseMigrator):
    """
    Catálogo fijo de sexos; el legacy no tiene tabla propia.

    Los valores se leen de un VALUES en el origen, así la unidad pasa por el
    mismo camino que el resto (lectura, mapeo, upsert).
    """

    SEXOS = ((0, "No informado"), (1, "Masculino"), (2, "Femenino"))

    source_key_columns = ("id",)

    def get_source_query(self):
        values = ", ".join("(%s, %s)" for _ in self.SEXOS)
        query = (
            f"SELECT id, descripcion FROM (VALUES {values}) AS Sexos (id, descripcion) "
            "ORDER BY id"
        )
        params = tuple(value for sexo in self.SEXOS for value in sexo)
        return query, params

    def get_fields(self):
        return [
            Number("id", "id", integer=True),
            Text("descripcion", "descripcion", required=True),
        ]

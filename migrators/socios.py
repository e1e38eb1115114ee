"""
Migrador de socios (entidad principal).

Preserva el número de socio como id: el resto del sistema (cuentas corrientes,
conceptos, observaciones) lo referencia directamente. Después de la carga la
secuencia de socios.id se ajusta a MAX(id) + 1.

FKs y su política ante claves no resueltas:
    provincia_id     ← provincias.codigo → id generado   (NULL)
    pais_id          ← paises.id                         (NULL)
    nacionalidad_id  ← paises.id                         (NULL)
    tarjeta_id       ← tarjetas.id                       (0 = sin tarjeta)
    sexo             ← sexos.id (M → 1, F → 2)           (0 = No informado)
"""

from pipeline.mapper import Code, Computed, Date, Flag, Number, Reference, Text

from .base import BaseMigrator, ReferenceSpec

TIPOS_DOCUMENTO = {1: "DNI", 2: "LC", 3: "LE", 4: "PAS"}

SEXOS = {"M": 1, "F": 2}

SIN_TARJETA = 0


def _sin_baja(row, references):
    return row.get("FechaBaja") is None


class SociosMigrator(BaseMigrator):
    """
    Transforma la tabla socios del legacy.

    Los booleanos 'Residente' y 'Adherido' vienen como 'S'/'N', '1'/'0' o bit
    según la época del registro; Flag los normaliza todos.
    """

    source_key_columns = ("socio",)
    sequence_column = "id"

    def get_source_query(self):
        query = """
            SELECT
                socio, Apellido, nombre, tipodocto, numedocto, cuil,
                Nacionalidad, Sexo, Nacido AS fechanac,
                Grupo, gDesde, Residente, fresidencia, nroMatricula, Matricula,
                FechaIngreso,
                Domicilio, localidad, provincia, cpostal, pais, telefono, Fax,
                Email, EmailAlt1,
                Tarjeta, numero, Adherido, Vencimiento, DebitarDesde,
                FechaBaja
            FROM socios
            WHERE socio IS NOT NULL
            ORDER BY socio
        """
        return query, None

    def get_references(self):
        return {
            "provincias": ReferenceSpec("provincias", ("codigo",), "id"),
            "paises": ReferenceSpec("paises", ("id",), None),
            "tarjetas": ReferenceSpec("tarjetas", ("id",), None),
        }

    def get_fields(self):
        return [
            Number("id", "socio", integer=True),

            # Datos personales
            Text("apellido", "Apellido", default=""),
            Text("nombre", "nombre", default=""),
            Code("tipo_documento", "tipodocto", TIPOS_DOCUMENTO, fallback="DNI"),
            Text("numero_documento", "numedocto"),
            Text("cuil", "cuil"),
            Reference("nacionalidad_id", "Nacionalidad", "paises", default=None),
            Code("sexo", "Sexo", SEXOS, fallback=0),
            Date("fecha_nacimiento", "fechanac"),

            # Datos profesionales
            Text("grupo", "Grupo"),
            Date("grupo_desde", "gDesde"),
            Flag("residente", "Residente"),
            Date("fecha_fin_residencia", "fresidencia"),
            Text("matricula_nacional", "nroMatricula"),
            Text("matricula_provincial", "Matricula"),
            Date("fecha_ingreso", "FechaIngreso"),

            # Domicilio
            Text("domicilio", "Domicilio"),
            Text("localidad", "localidad"),
            Reference("provincia_id", "provincia", "provincias", default=None),
            Text("codigo_postal", "cpostal"),
            Reference("pais_id", "pais", "paises", default=None),
            Text("telefono", "telefono"),
            Text("telefono_secundario", "Fax"),

            # Email
            Text("email", "Email"),
            Text("email_alternativo", "EmailAlt1"),

            # Débito automático
            Reference(
                "tarjeta_id", "Tarjeta", "tarjetas",
                default=SIN_TARJETA, nullable=False,
            ),
            Text("numero_tarjeta", "numero"),
            Flag("adherido_debito", "Adherido"),
            Date("vencimiento_tarjeta", "Vencimiento"),
            Date("debitar_desde", "DebitarDesde"),

            # Estado
            Computed("activo", _sin_baja),
            Date("fecha_baja", "FechaBaja"),
        ]

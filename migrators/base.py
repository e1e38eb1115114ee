"""
Módulo base para migradores de tablas SQL Server → Supabase.

Define la interfaz común (contrato) que todos los migradores específicos
deben implementar. Esto permite que el orquestador funcione con cualquier
migrador sin conocer sus detalles internos.

Patrón de diseño: Strategy Pattern
- pipeline/orchestrator.py = Contexto (orquestador)
- BaseMigrator = Estrategia abstracta
- SociosMigrator, ProvinciasMigrator, ... = Estrategias concretas

Flujo de uso:
1. sqlmigra.py carga dinámicamente un migrador (ver config.UNITS)
2. El orquestador arma los mapas de get_references() paginando el destino
3. Lee el origen con get_source_query()
4. Transforma cada fila con build_mapper() (reglas de get_fields())
5. BatchLoader escribe los lotes en la tabla destino
6. Si sequence_column está definido, se ajusta la secuencia

Ejemplo de implementación:
    class MiMigrador(BaseMigrator):
        source_key_columns = ('Codigo',)

        def get_source_query(self):
            return "SELECT Codigo, Descripcion FROM Tabla ORDER BY Codigo", None

        def get_fields(self):
            return [Text('codigo', 'Codigo'), Text('descripcion', 'Descripcion')]
"""

from abc import ABC, abstractmethod
from collections import namedtuple

from pipeline.mapper import FieldMapper

# Mapa a construir sobre una tabla destino ya migrada
ReferenceSpec = namedtuple("ReferenceSpec", ["table", "key_columns", "value_column"])


class BaseMigrator(ABC):
    """
    Clase abstracta que define la interfaz para migradores de tablas.

    Cada unidad de migración (provincias, socios, asientos_items, etc.) debe
    tener un migrador que herede de esta clase e implemente sus métodos
    abstractos.

    Attributes:
        table (str): Nombre de la tabla destino en Supabase
        source_key_columns (tuple): Columnas origen que identifican la fila
            en los reportes de omisiones
        sequence_column (str|None): Columna con PK explícita cuya secuencia
            hay que ajustar después de la carga
    """

    source_key_columns = ()
    sequence_column = None

    def __init__(self, table: str):
        """
        Constructor base que almacena la tabla destino.

        Args:
            table: Nombre de la tabla en Supabase (ej: 'socios')
        """
        self.table = table

    @abstractmethod
    def get_source_query(self) -> tuple:
        """
        Devuelve la consulta de lectura sobre SQL Server.

        Returns:
            tuple: (query, params). params puede ser None.

        Ejemplo:
            return (
                "SELECT provincia, Descripcion FROM Provincias ORDER BY provincia",
                None,
            )
        """
        pass

    @abstractmethod
    def get_fields(self) -> list:
        """
        Declara las reglas de transformación (pipeline.mapper).

        El orden de la lista es el orden de columnas de la fila destino. Los
        nombres destino son el contrato con el schema de la aplicación y
        deben coincidir EXACTAMENTE (case-sensitive).

        Returns:
            list: Reglas Field (Text, Number, Code, Flag, Reference, Exists...)
        """
        pass

    def get_references(self) -> dict:
        """
        Mapas de referencia que necesita la unidad.

        Returns:
            dict: nombre → ReferenceSpec(tabla, columnas_clave, columna_valor).
                  Vacío para tablas de referencia sin FKs.

        Ejemplo para socios:
            {'provincias': ReferenceSpec('provincias', ('codigo',), 'id')}
        """
        return {}

    def build_mapper(self) -> FieldMapper:
        return FieldMapper(self.get_fields())

    def get_primary_key_from_row(self, row):
        """
        Clave identificatoria de una fila origen para los reportes.

        Args:
            row: SourceRow

        Returns:
            Valor simple o tupla (clave compuesta); None si no hay columnas declaradas
        """
        if not self.source_key_columns:
            return None
        if len(self.source_key_columns) == 1:
            return row.get(self.source_key_columns[0])
        return tuple(row.get(col) for col in self.source_key_columns)

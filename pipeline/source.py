"""
Lectura del SQL Server legacy (origen).

La conexión se abre con open_source() como context manager: se cierra siempre,
incluso si la unidad falla a mitad de camino.

Uso:
    with open_source(config.SQLSERVER_CONFIG) as conn:
        reader = SourceReader(conn)
        for row in reader.read("SELECT provincia, Descripcion FROM Provincias"):
            ...
"""

import logging
from contextlib import contextmanager
from types import MappingProxyType

import pymssql

from .errors import QueryError, StoreConnectionError

logger = logging.getLogger(__name__)

STORE_NAME = "SQL Server"


@contextmanager
def open_source(sqlserver_config):
    """
    Abre la conexión a SQL Server y garantiza el cierre.

    Args:
        sqlserver_config: Dict con server, port, user, password, database,
                          encrypt (bool) y timeout (segundos)

    Raises:
        StoreConnectionError: Si no se puede conectar
    """
    params = {
        "server": sqlserver_config["server"],
        "port": sqlserver_config.get("port") or 1433,
        "user": sqlserver_config["user"],
        "password": sqlserver_config["password"],
        "database": sqlserver_config["database"],
        "login_timeout": sqlserver_config.get("timeout") or 30,
        "charset": "UTF-8",
    }
    # Servidores on-premise viejos no soportan TLS
    if not sqlserver_config.get("encrypt", False):
        params["encryption"] = "off"

    try:
        conn = pymssql.connect(**params)
    except (pymssql.OperationalError, pymssql.InterfaceError) as e:
        raise StoreConnectionError(STORE_NAME, e) from e

    logger.info("Conectado a SQL Server %s/%s", params["server"], params["database"])
    try:
        yield conn
    finally:
        conn.close()
        logger.info("Conexión a SQL Server cerrada")


class SourceReader:
    """
    Ejecuta consultas de lectura y devuelve filas como mappings inmutables.

    Attributes:
        connection: Conexión DB-API al origen (pymssql)
        fetch_size: Filas traídas por cada fetchmany()
    """

    def __init__(self, connection, fetch_size=1000):
        self.connection = connection
        self.fetch_size = fetch_size

    def read(self, query, params=None):
        """
        Ejecuta la consulta y devuelve las filas de forma perezosa.

        Cada invocación abre un cursor nuevo: para releer, volver a llamar.
        Una consulta sin resultados devuelve un iterador vacío.

        Args:
            query: SQL con placeholders %s
            params: Tupla de parámetros (o None)

        Yields:
            MappingProxyType: columna → valor

        Raises:
            StoreConnectionError: Si se cae la conexión
            QueryError: Si la consulta es inválida
        """
        cursor = self._execute(query, params)
        try:
            columns = [col[0] for col in cursor.description or ()]
            while True:
                try:
                    batch = cursor.fetchmany(self.fetch_size)
                except (pymssql.OperationalError, pymssql.InterfaceError) as e:
                    raise StoreConnectionError(STORE_NAME, e) from e
                if not batch:
                    break
                for values in batch:
                    yield MappingProxyType(dict(zip(columns, values)))
        finally:
            cursor.close()

    def _execute(self, query, params):
        try:
            cursor = self.connection.cursor()
        except (pymssql.OperationalError, pymssql.InterfaceError) as e:
            raise StoreConnectionError(STORE_NAME, e) from e

        try:
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)
        except (pymssql.OperationalError, pymssql.InterfaceError) as e:
            cursor.close()
            raise StoreConnectionError(STORE_NAME, e) from e
        except pymssql.Error as e:
            cursor.close()
            raise QueryError(_short(query), e) from e

        logger.debug("Consulta ejecutada: %s", _short(query))
        return cursor


def _short(query):
    return " ".join(query.split())[:120]

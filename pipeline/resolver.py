"""
Mapas de referencia clave → id construidos sobre tablas ya migradas.

PROBLEMA HISTÓRICO:
Una primera versión de la migración leía las tablas de referencia con un
único SELECT, que PostgREST corta en 1000 filas. Con más de 1000 socios o
asientos, las FKs se resolvían mal sin ningún error. build() pagina SIEMPRE
hasta agotar la tabla.

CLAVES:
- Simples: 'BA', 1234
- Compuestas: (asiento, anio_mes, tipo_asiento) → '12\x1f202401\x1f1'
Los strings se normalizan con strip() y los números enteros guardados como
Decimal/float se llevan a int, así 'BA ' y 'BA' o Decimal('5') y 5 coinciden.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "\x1f"


class _NotFound:
    def __repr__(self):
        return "NOT_FOUND"

    def __bool__(self):
        return False


NOT_FOUND = _NotFound()


def normalize_part(value):
    """Normaliza un componente de clave."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (Decimal, float)):
        try:
            if value == int(value):
                return int(value)
        except (ValueError, OverflowError, InvalidOperation):
            pass
    return value


def normalize_key(key):
    """
    Normaliza una clave simple o compuesta.

    Returns:
        Valor normalizado (clave simple) o string unido con KEY_SEPARATOR
        (clave compuesta). None si algún componente es nulo.
    """
    if isinstance(key, (tuple, list)):
        if len(key) == 1:
            return normalize_key(key[0])
        parts = [normalize_part(part) for part in key]
        if any(part is None for part in parts):
            return None
        return KEY_SEPARATOR.join(str(part) for part in parts)
    return normalize_part(key)


class ReferenceMap(Mapping):
    """
    Snapshot de solo lectura clave normalizada → valor.

    Attributes:
        table: Tabla destino de la que se leyó
        key_columns: Columnas que forman la clave
        value_column: Columna devuelta por lookup (None = la clave misma)
        pages: Páginas leídas para construirlo
    """

    def __init__(self, table, key_columns, value_column, entries, pages=0):
        self.table = table
        self.key_columns = tuple(key_columns)
        self.value_column = value_column
        self.pages = pages
        self._entries = dict(entries)

    def __getitem__(self, key):
        return self._entries[normalize_key(key)]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return normalize_key(key) in self._entries

    def lookup(self, key):
        normalized = normalize_key(key)
        if normalized is None:
            return NOT_FOUND
        return self._entries.get(normalized, NOT_FOUND)

    def value_set(self):
        return set(self._entries.values())

    def __repr__(self):
        return f"ReferenceMap({self.table}, {len(self)} claves)"


class ReferenceResolver:
    """
    Construye ReferenceMaps paginando la tabla destino completa.

    Attributes:
        store: SupabaseStore (o cualquier objeto con select_page)
        page_size: Filas por página
    """

    def __init__(self, store, page_size=1000):
        if page_size < 1:
            raise ValueError("page_size debe ser >= 1")
        self.store = store
        self.page_size = page_size

    def build(self, table, key_columns, value_column=None, page_size=None):
        """
        Lee TODA la tabla y arma el mapa clave → valor.

        Si el store informa el total exacto se pagina hasta alcanzarlo, aunque
        el servidor recorte páginas (db-max-rows); sin total, la paginación
        termina con la primera página incompleta. N filas con página P se
        leen en ceil(N/P) páginas.

        Args:
            table: Tabla destino (ej: 'provincias')
            key_columns: Columna o lista de columnas clave
            value_column: Columna a devolver; None arma un mapa de existencia
            page_size: Sobrescribe el tamaño de página del resolver

        Returns:
            ReferenceMap

        Raises:
            QueryError / StoreConnectionError: Propagados desde el store
        """
        if isinstance(key_columns, str):
            key_columns = [key_columns]
        key_columns = list(key_columns)
        page_size = page_size or self.page_size

        columns = list(key_columns)
        if value_column and value_column not in columns:
            columns.append(value_column)

        entries = {}
        duplicates = 0
        fetched = 0
        pages = 0
        start = 0

        while True:
            rows, total = self.store.select_page(
                table, columns, start, start + page_size - 1, order_by=key_columns
            )
            pages += 1
            fetched += len(rows)

            for row in rows:
                raw_key = tuple(row.get(col) for col in key_columns)
                key = normalize_key(raw_key)
                if key is None:
                    continue
                if key in entries:
                    duplicates += 1
                if value_column:
                    entries[key] = row.get(value_column)
                else:
                    entries[key] = raw_key[0] if len(raw_key) == 1 else raw_key

            if not rows:
                break
            if total is not None:
                # Con total exacto se pagina hasta alcanzarlo: PostgREST puede
                # devolver menos filas que las pedidas (db-max-rows)
                if fetched >= total:
                    break
            elif len(rows) < page_size:
                break
            start += len(rows)

        if total is not None and fetched < total:
            logger.warning(
                "%s: se leyeron %d de %d filas; el mapa puede estar incompleto",
                table, fetched, total,
            )

        if duplicates:
            logger.warning(
                "%s: %d claves duplicadas en %s (queda el último valor)",
                table, duplicates, key_columns,
            )
        logger.info("Mapa de %s: %d claves en %d páginas", table, len(entries), pages)
        return ReferenceMap(table, key_columns, value_column, entries, pages=pages)

    def lookup(self, reference_map, key):
        """Devuelve el valor de la clave o NOT_FOUND."""
        return reference_map.lookup(key)

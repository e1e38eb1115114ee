"""
Transformación declarativa fila origen → fila destino.

Cada migrador declara una lista de reglas (Text, Code, Flag, Number, Date,
Reference, Exists, ...). FieldMapper las aplica en orden y produce un dict con
las columnas EXACTAS de la tabla destino (case-sensitive).

REGLAS DE NULOS:
- Text: trim, vacío → default (None si no se declara)
- Number: nulo → default (0) salvo nullable=True, que propaga None
- Reference: clave nula → None si nullable; clave sin resolver → default
  declarado, y si no hay default → FkUnresolvedError (la fila se descarta)

Ejemplo:
    mapper = FieldMapper([
        Number('id', 'socio', integer=True),
        Text('apellido', 'Apellido', default=''),
        Code('tipo_documento', 'tipodocto', TIPOS_DOCUMENTO, fallback='DNI'),
        Flag('residente', 'Residente'),
        Reference('provincia_id', 'provincia', 'provincias'),
    ])
    fila = mapper.map(source_row, {'provincias': provincias_map})
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .errors import FkUnresolvedError, MappingError
from .resolver import NOT_FOUND, normalize_key, normalize_part

TRUTHY_CODES = {"1", "S", "TRUE"}


class _Missing:
    def __repr__(self):
        return "MISSING"


MISSING = _Missing()


def is_truthy(value):
    """
    Normaliza banderas booleanas del SQL Server legacy.

    Verdaderos: True, 1, '1', 'S', 'true' y buffers binarios con algún byte != 0.
    Todo lo demás (incluido None, 0, 'N', '') es False.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (bytes, bytearray)):
        return any(byte != 0 for byte in value)
    if isinstance(value, (int, float, Decimal)):
        return value == 1
    if isinstance(value, str):
        return value.strip().upper() in TRUTHY_CODES
    return False


def as_text(value):
    """Convierte a string recortado; vacío → None."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(normalize_part(value))
    value = value.strip()
    return value or None


class Field:
    """
    Regla base. Las subclases implementan value().

    Attributes:
        target: Columna destino (None si la regla no emite columna)
        source: Columna origen (por defecto igual a target)
        default: Valor declarado para nulos/no resueltos
    """

    emits = True

    def __init__(self, target, source=None, default=MISSING):
        self.target = target
        self.source = source if source is not None else target
        self.default = default

    def raw(self, row):
        if isinstance(self.source, (tuple, list)):
            return tuple(row.get(col) for col in self.source)
        return row.get(self.source)

    def value(self, row, references):
        raise NotImplementedError

    def references(self):
        return set()

    def __repr__(self):
        return f"{type(self).__name__}({self.target!r} ← {self.source!r})"


class Text(Field):
    """String con trim; vacío → default. required=True convierte vacío en error."""

    def __init__(self, target, source=None, default=None, required=False, max_length=None):
        super().__init__(target, source, default)
        self.required = required
        self.max_length = max_length

    def value(self, row, references):
        text = as_text(self.raw(row))
        if text is None:
            if self.required:
                raise MappingError(self.target, f"'{self.source}' vacío y es obligatorio")
            return self.default
        if self.max_length:
            text = text[: self.max_length]
        return text


class Code(Field):
    """
    Traducción de códigos por tabla fija.

    Un código desconocido (o nulo) devuelve el fallback declarado, nunca el
    código crudo sin traducir.
    """

    def __init__(self, target, source=None, mapping=None, fallback=MISSING):
        if fallback is MISSING:
            raise ValueError(f"Code('{target}') requiere un fallback declarado")
        super().__init__(target, source, fallback)
        self.mapping = dict(mapping or {})

    def value(self, row, references):
        code = normalize_part(self.raw(row))
        if code is None:
            return self.default
        if code in self.mapping:
            return self.mapping[code]
        # '1' y 1 son el mismo código en el legacy
        if isinstance(code, str) and code.isdigit() and int(code) in self.mapping:
            return self.mapping[int(code)]
        if isinstance(code, int) and str(code) in self.mapping:
            return self.mapping[str(code)]
        return self.default


class Flag(Field):
    """Booleano normalizado con is_truthy()."""

    def __init__(self, target, source=None):
        super().__init__(target, source, False)

    def value(self, row, references):
        return is_truthy(self.raw(row))


class Number(Field):
    """
    Numérico. Decimal → int (integer=True) o float.

    Nulo → default (0) salvo nullable=True, en cuyo caso propaga None.
    """

    def __init__(self, target, source=None, default=0, nullable=False, integer=False):
        super().__init__(target, source, None if nullable else default)
        self.nullable = nullable
        self.integer = integer

    def value(self, row, references):
        raw = self.raw(row)
        if isinstance(raw, str):
            raw = raw.strip() or None
        if raw is None:
            return self.default
        if isinstance(raw, bool):
            return int(raw)
        try:
            number = Decimal(str(raw))
        except InvalidOperation:
            raise MappingError(self.target, f"'{raw}' no es numérico")
        if self.integer:
            return int(number)
        if number == number.to_integral_value() and isinstance(raw, int):
            return int(number)
        return float(number)


class Date(Field):
    """Fecha ISO (YYYY-MM-DD); nulo propaga None."""

    def __init__(self, target, source=None, default=None):
        super().__init__(target, source, default)

    def value(self, row, references):
        raw = self.raw(row)
        if raw is None:
            return self.default
        if isinstance(raw, datetime):
            return raw.date().isoformat()
        if isinstance(raw, date):
            return raw.isoformat()
        return as_text(raw) or self.default


class Timestamp(Field):
    """Fecha y hora ISO-8601; nulo propaga None."""

    def __init__(self, target, source=None, default=None):
        super().__init__(target, source, default)

    def value(self, row, references):
        raw = self.raw(row)
        if raw is None:
            return self.default
        if isinstance(raw, (datetime, date)):
            return raw.isoformat()
        return as_text(raw) or self.default


class Reference(Field):
    """
    Sustitución de FK usando un ReferenceMap.

    Args:
        target: Columna destino (ej: 'provincia_id')
        source: Columna(s) origen con la clave natural
        reference: Nombre del mapa en el dict de referencias
        default: Valor para claves no resueltas (ej: 0 o None).
                 Sin default, una clave no resuelta descarta la fila.
        nullable: Si la clave origen es nula, emitir None
    """

    def __init__(self, target, source=None, reference=None, default=MISSING, nullable=True):
        if not reference:
            raise ValueError(f"Reference('{target}') requiere el nombre del mapa")
        super().__init__(target, source, default)
        self.reference = reference
        self.nullable = nullable

    def references(self):
        return {self.reference}

    def value(self, row, references):
        key = self.raw(row)
        if normalize_key(key) is None:
            if self.nullable:
                return None
            return self._unresolved(key)

        resolved = references[self.reference].lookup(key)
        if resolved is NOT_FOUND:
            return self._unresolved(key)
        return resolved

    def _unresolved(self, key):
        if self.default is MISSING:
            raise FkUnresolvedError(self.target, self.reference, key)
        return self.default


class Exists(Field):
    """
    Filtro de detalle contra el conjunto de claves del padre.

    No emite columna: si la clave (simple o compuesta) no está en el mapa, la
    fila se descarta como 'fk-unresolved'.
    """

    emits = False

    def __init__(self, source, reference):
        super().__init__(None, source)
        self.reference = reference

    def references(self):
        return {self.reference}

    def value(self, row, references):
        key = self.raw(row)
        if references[self.reference].lookup(key) is NOT_FOUND:
            raise FkUnresolvedError(
                "+".join(self.source) if isinstance(self.source, (tuple, list)) else self.source,
                self.reference,
                key,
            )
        return None


class Const(Field):
    """Valor constante."""

    def __init__(self, target, value):
        super().__init__(target, target, value)

    def value(self, row, references):
        return self.default


class Computed(Field):
    """Valor calculado con func(row, references)."""

    def __init__(self, target, func, needs=()):
        super().__init__(target, target)
        self.func = func
        self.needs = set(needs)

    def references(self):
        return set(self.needs)

    def value(self, row, references):
        return self.func(row, references)


class FieldMapper:
    """
    Aplica una lista de reglas a cada fila. Función pura (sin I/O).

    Attributes:
        fields: Reglas en el orden de las columnas destino
    """

    def __init__(self, fields):
        self.fields = list(fields)
        seen = set()
        for field in self.fields:
            if not isinstance(field, Field):
                raise TypeError(f"{field!r} no es una regla de FieldMapper")
            if not field.emits:
                continue
            if field.target in seen:
                raise ValueError(f"Columna destino duplicada: '{field.target}'")
            seen.add(field.target)

    @property
    def columns(self):
        return [f.target for f in self.fields if f.emits]

    def required_references(self):
        needed = set()
        for field in self.fields:
            needed |= field.references()
        return needed

    def map(self, source_row, references=None):
        """
        Transforma una fila origen en una fila destino.

        Raises:
            FkUnresolvedError: FK sin resolver y sin default
            MappingError: Valor inválido en una regla
        """
        references = references or {}
        target_row = {}
        for field in self.fields:
            value = field.value(source_row, references)
            if field.emits:
                target_row[field.target] = value
        return target_row

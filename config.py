"""
Configuración centralizada para la migración SQL Server → Supabase.

ARQUITECTURA:
Cada tabla destino es una UNIDAD de migración con su migrador en migrators/:
- referencia: catálogos sin FKs (provincias, paises, tarjetas, ...)
- entidad: entidades principales con FKs a referencias (socios, cuentas_corrientes)
- detalle: filas hijas filtradas contra las claves del padre (asientos_items)

FLUJO DE MIGRACIÓN:
1. Ejecutar unidades en orden de MIGRATION_ORDER
2. Cada unidad arma sus mapas de referencia sobre las tablas ya migradas
3. Las unidades con id preservado ajustan su secuencia al terminar

USO DE LAS FUNCIONES HELPER:
    # Obtener configuración de una unidad
    config = get_unit_config('socios')
    tabla = config['target_table']  # 'socios'

    # Validar dependencias antes de migrar
    deps = validate_migration_order('socios')
    if deps:
        print(f"Primero migrar: {deps}")

    # Unidades de un comando del CLI, en orden
    units = get_units_for_command('referencias')
"""

import os
from dotenv import load_dotenv

# Carga las variables del archivo .env en las variables de entorno del sistema
load_dotenv(override=True)


def _env_int(name, default):
    value = os.getenv(name)
    return int(value) if value else default


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "si", "s")


# --- Configuración de SQL Server (Origen) ---
SQLSERVER_CONFIG = {
    "server": os.getenv("SQLSERVER_SERVER") or "localhost",
    "port": _env_int("SQLSERVER_PORT", 1433),
    "user": os.getenv("SQLSERVER_USER") or "",
    "password": os.getenv("SQLSERVER_PASSWORD") or "",
    "database": os.getenv("SQLSERVER_DATABASE") or "",
    # Los servidores on-premise del legacy no tienen TLS
    "encrypt": _env_bool("SQLSERVER_ENCRYPT", False),
    "timeout": _env_int("SQLSERVER_TIMEOUT", 30),
}

# --- Configuración de Supabase (Destino) ---
# Siempre la service role key: bypassea RLS durante la carga
SUPABASE_URL = os.getenv("SUPABASE_URL") or ""
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or ""

# --- Conexión directa a Postgres (opcional) ---
# Solo se usa para setval(); sin POSTGRES_HOST se intenta la RPC de Supabase
POSTGRES_CONFIG = None
if os.getenv("POSTGRES_HOST"):
    POSTGRES_CONFIG = {
        "dbname": os.getenv("POSTGRES_DB") or "postgres",
        "user": os.getenv("POSTGRES_USER") or "postgres",
        "password": os.getenv("POSTGRES_PASSWORD") or "",
        "host": os.getenv("POSTGRES_HOST"),
        "port": os.getenv("POSTGRES_PORT") or "5432",
    }

# --- Configuración de Migración ---
BATCH_SIZE = _env_int("BATCH_SIZE", 1000)  # Filas por INSERT/UPSERT
PAGE_SIZE = _env_int("PAGE_SIZE", 1000)  # Filas por página al armar mapas de referencia
PATCH_BATCH_SIZE = _env_int("PATCH_BATCH_SIZE", 50)  # Updates por lote en update_columna.py
PATCH_WORKERS = _env_int("PATCH_WORKERS", 10)  # Updates concurrentes dentro de un lote
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

# --- Configuración de Unidades ---
# Cada unidad define:
# - target_table: Tabla destino en Supabase
# - key_columns: Columnas clave (on_conflict del upsert y deduplicación por lote)
# - mode: 'upsert-by-key' o 'delete-then-insert'
# - delete_column: Columna NOT NULL usada como filtro del DELETE (delete-then-insert)
# - unit_type: 'referencia', 'entidad' o 'detalle'
# - depends_on: Unidades que DEBEN migrarse antes (por FKs)
# - module: Módulo de migrators/ con la clase <Unidad>Migrator
# - description: Descripción de negocio de la tabla
# - batch_size (opcional): Tamaño de lote propio de la unidad

UNITS = {
    # === REFERENCIAS (sin dependencias) ===
    "provincias": {
        "target_table": "provincias",
        "key_columns": ["codigo"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "referencias",
        "description": "Provincias (id generado, clave natural de 2 caracteres)",
    },
    "paises": {
        "target_table": "paises",
        "key_columns": ["id"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "referencias",
        "description": "Países (id preservado)",
    },
    "tarjetas": {
        "target_table": "tarjetas",
        "key_columns": ["id"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "referencias",
        "description": "Tarjetas de débito automático (id preservado)",
    },
    "categorias_iva": {
        "target_table": "categorias_iva",
        "key_columns": ["codigo"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "referencias",
        "description": "Categorías frente al IVA",
    },
    "grupos_agrupados": {
        "target_table": "grupos_agrupados",
        "key_columns": ["codigo"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "referencias",
        "description": "Grupos profesionales",
    },
    "sexos": {
        "target_table": "sexos",
        "key_columns": ["id"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "referencias",
        "description": "Sexos (catálogo fijo: 0 No informado, 1 Masculino, 2 Femenino)",
    },
    "tip_vent_mod_header": {
        "target_table": "tip_vent_mod_header",
        "key_columns": ["codigo"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "clipro",
        "description": "Tipos de comprobante de ventas",
    },
    "tip_comp_mod_header": {
        "target_table": "tip_comp_mod_header",
        "key_columns": ["codigo"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "clipro",
        "description": "Tipos de comprobante de compras",
    },
    "conceptos": {
        "target_table": "conceptos",
        "key_columns": ["codigo"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "conceptos",
        "description": "Conceptos de facturación",
    },
    "cuentas": {
        "target_table": "cuentas",
        "key_columns": ["cuenta"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "cuentas",
        "description": "Plan de cuentas contable",
    },
    "conceptos_tesoreria": {
        "target_table": "conceptos_tesoreria",
        "key_columns": ["id"],
        "mode": "upsert-by-key",
        "unit_type": "referencia",
        "depends_on": [],
        "module": "tesoreria",
        "description": "Conceptos de tesorería (id preservado)",
    },
    # === ENTIDADES (referencian catálogos) ===
    "socios": {
        "target_table": "socios",
        "key_columns": ["id"],
        "mode": "upsert-by-key",
        "unit_type": "entidad",
        "depends_on": ["provincias", "paises", "tarjetas", "sexos"],
        "module": "socios",
        "description": "Socios (id = número de socio)",
    },
    "clientes": {
        "target_table": "clientes",
        "key_columns": ["codigo"],
        "mode": "upsert-by-key",
        "unit_type": "entidad",
        "depends_on": ["categorias_iva", "paises"],
        "module": "clipro",
        "description": "Clientes (sponsors, codigo preservado)",
    },
    "proveedores": {
        "target_table": "proveedores",
        "key_columns": ["codigo"],
        "mode": "upsert-by-key",
        "unit_type": "entidad",
        "depends_on": ["categorias_iva", "paises"],
        "module": "clipro",
        "description": "Proveedores (codigo preservado)",
    },
    "ven_cli_header": {
        "target_table": "ven_cli_header",
        "key_columns": ["id_transaccion"],
        "mode": "upsert-by-key",
        "unit_type": "entidad",
        "depends_on": ["clientes"],
        "module": "clipro",
        "description": "Cabecera de cuenta corriente de clientes",
    },
    "comp_prov_header": {
        "target_table": "comp_prov_header",
        "key_columns": ["id_transaccion"],
        "mode": "upsert-by-key",
        "unit_type": "entidad",
        "depends_on": ["proveedores"],
        "module": "clipro",
        "description": "Cabecera de cuenta corriente de proveedores",
    },
    "asientos_header": {
        "target_table": "asientos_header",
        "key_columns": ["asiento", "anio_mes", "tipo_asiento"],
        "mode": "upsert-by-key",
        "unit_type": "entidad",
        "depends_on": [],
        "module": "cuentas",
        "description": "Cabecera de asientos del libro diario",
    },
    "cuentas_corrientes": {
        "target_table": "cuentas_corrientes",
        "key_columns": ["idtransaccion"],
        "mode": "upsert-by-key",
        "unit_type": "entidad",
        # profesionales y tipos_comprobante_socios se cargan fuera de esta herramienta
        "depends_on": ["socios", "profesionales", "tipos_comprobante_socios"],
        "module": "cuentas_corrientes",
        "description": "Movimientos de cuenta corriente de socios y profesionales",
    },
    "valores_tesoreria": {
        "target_table": "valores_tesoreria",
        "key_columns": ["id"],
        "mode": "upsert-by-key",
        "unit_type": "entidad",
        "depends_on": ["conceptos_tesoreria"],
        "module": "tesoreria",
        "description": "Valores de tesorería (cheques, transferencias)",
        "batch_size": 100,
    },
    # === DETALLES (filtrados contra el padre) ===
    "conceptos_socios": {
        "target_table": "conceptos_socios",
        "key_columns": [],
        "mode": "delete-then-insert",
        "delete_column": "socio_id",
        "unit_type": "detalle",
        "depends_on": ["socios", "conceptos"],
        "module": "conceptos",
        "description": "Conceptos asignados a cada socio",
    },
    "observaciones_socios": {
        "target_table": "observaciones_socios",
        "key_columns": [],
        "mode": "delete-then-insert",
        "delete_column": "socio_id",
        "unit_type": "detalle",
        "depends_on": ["socios"],
        "module": "conceptos",
        "description": "Observaciones libres sobre socios",
    },
    "asientos_items": {
        "target_table": "asientos_items",
        "key_columns": ["asiento", "anio_mes", "tipo_asiento", "item"],
        "mode": "delete-then-insert",
        "delete_column": "item",
        "unit_type": "detalle",
        "depends_on": ["asientos_header", "cuentas"],
        "module": "cuentas",
        "description": "Items (debe/haber) de cada asiento",
    },
    "detalle_cuentas_corrientes": {
        "target_table": "detalle_cuentas_corrientes",
        "key_columns": ["idtransaccion", "item"],
        "mode": "delete-then-insert",
        "delete_column": "item",
        "unit_type": "detalle",
        "depends_on": ["cuentas_corrientes", "conceptos"],
        "module": "cuentas_corrientes",
        "description": "Items de cada movimiento de cuenta corriente",
    },
    "contactos_clientes": {
        "target_table": "contactos_clientes",
        "key_columns": ["id_contacto"],
        "mode": "upsert-by-key",
        "unit_type": "detalle",
        "depends_on": ["clientes"],
        "module": "clipro",
        "description": "Contactos de cada cliente",
    },
    "contactos_proveedores": {
        "target_table": "contactos_proveedores",
        "key_columns": ["id_contacto"],
        "mode": "upsert-by-key",
        "unit_type": "detalle",
        "depends_on": ["proveedores"],
        "module": "clipro",
        "description": "Contactos de cada proveedor",
    },
    "tip_vent_mod_items": {
        "target_table": "tip_vent_mod_items",
        "key_columns": ["codigo", "concepto"],
        "mode": "delete-then-insert",
        "delete_column": "codigo",
        "unit_type": "detalle",
        "depends_on": ["tip_vent_mod_header"],
        "module": "clipro",
        "description": "Conceptos de cada tipo de comprobante de ventas",
    },
    "tip_comp_mod_items": {
        "target_table": "tip_comp_mod_items",
        "key_columns": ["codigo", "concepto"],
        "mode": "delete-then-insert",
        "delete_column": "codigo",
        "unit_type": "detalle",
        "depends_on": ["tip_comp_mod_header"],
        "module": "clipro",
        "description": "Conceptos de cada tipo de comprobante de compras",
    },
    "ven_cli_items": {
        "target_table": "ven_cli_items",
        "key_columns": ["id_campo"],
        "mode": "delete-then-insert",
        "delete_column": "id_campo",
        "unit_type": "detalle",
        "depends_on": ["ven_cli_header", "cuentas"],
        "module": "clipro",
        "description": "Items de cuenta corriente de clientes",
    },
    "comp_prov_items": {
        "target_table": "comp_prov_items",
        "key_columns": ["id_campo"],
        "mode": "delete-then-insert",
        "delete_column": "id_campo",
        "unit_type": "detalle",
        "depends_on": ["comp_prov_header", "cuentas"],
        "module": "clipro",
        "description": "Items de cuenta corriente de proveedores",
    },
}

# --- Orden de Migración ---
# Derivado de las dependencias declaradas en UNITS.
# Ejecutar unidades en este orden garantiza que las FKs sean válidas.
MIGRATION_ORDER = [
    "provincias",  # Sin dependencias
    "paises",
    "tarjetas",
    "categorias_iva",
    "grupos_agrupados",
    "sexos",
    "socios",  # Depende de provincias, paises, tarjetas, sexos
    "conceptos",
    "conceptos_socios",  # Depende de socios, conceptos
    "observaciones_socios",  # Depende de socios
    "cuentas",
    "asientos_header",
    "asientos_items",  # Depende de asientos_header, cuentas
    "cuentas_corrientes",  # Depende de socios
    "detalle_cuentas_corrientes",  # Depende de cuentas_corrientes, conceptos
    "conceptos_tesoreria",
    "valores_tesoreria",  # Depende de conceptos_tesoreria
    "clientes",  # Depende de categorias_iva, paises
    "contactos_clientes",  # Depende de clientes
    "proveedores",  # Depende de categorias_iva, paises
    "contactos_proveedores",  # Depende de proveedores
    "tip_vent_mod_header",
    "tip_vent_mod_items",  # Depende de tip_vent_mod_header
    "tip_comp_mod_header",
    "tip_comp_mod_items",  # Depende de tip_comp_mod_header
    "ven_cli_header",  # Depende de clientes
    "ven_cli_items",  # Depende de ven_cli_header, cuentas
    "comp_prov_header",  # Depende de proveedores
    "comp_prov_items",  # Depende de comp_prov_header, cuentas
]

# --- Comandos del CLI ---
# Cada comando agrupa unidades; se ejecutan en el orden de MIGRATION_ORDER.
COMMANDS = {
    "referencias": [
        "provincias", "paises", "tarjetas", "categorias_iva", "grupos_agrupados", "sexos",
    ],
    "socios": ["socios"],
    "conceptos": ["conceptos", "conceptos_socios", "observaciones_socios"],
    "cuentas": ["cuentas", "asientos_header", "asientos_items"],
    "cuentas_corrientes": ["cuentas_corrientes", "detalle_cuentas_corrientes"],
    "tesoreria": ["conceptos_tesoreria", "valores_tesoreria"],
    "clipro_maestros": [
        "clientes", "contactos_clientes", "proveedores", "contactos_proveedores",
        "tip_vent_mod_header", "tip_vent_mod_items",
        "tip_comp_mod_header", "tip_comp_mod_items",
    ],
    "clipro": [
        "clientes", "contactos_clientes", "proveedores", "contactos_proveedores",
        "tip_vent_mod_header", "tip_vent_mod_items",
        "tip_comp_mod_header", "tip_comp_mod_items",
        "ven_cli_header", "ven_cli_items", "comp_prov_header", "comp_prov_items",
    ],
    "all": MIGRATION_ORDER,
}

# --- Secuencias ---
# Tablas cargadas con id explícito: tabla → columna serial.
SEQUENCE_TABLES = {
    "valores_tesoreria": "id",
    "cuentas_corrientes": "idtransaccion",
    "detalle_cuentas_corrientes": "id",
    "socios": "id",
    "tarjetas": "id",
    "paises": "id",
    "conceptos_tesoreria": "id",
    "clientes": "codigo",
    "contactos_clientes": "id_contacto",
    "proveedores": "codigo",
    "contactos_proveedores": "id_contacto",
    "tip_vent_mod_header": "codigo",
    "tip_vent_mod_items": "id",
    "tip_comp_mod_header": "codigo",
    "tip_comp_mod_items": "id",
    "ven_cli_header": "id_transaccion",
    "ven_cli_items": "id_campo",
    "comp_prov_header": "id_transaccion",
    "comp_prov_items": "id_campo",
}


# --- Funciones Helper ---


def get_unit_config(unit_name: str) -> dict:
    """
    Obtiene la configuración de una unidad por nombre.

    Args:
        unit_name: Nombre de la unidad (ej: 'socios')

    Returns:
        dict: Configuración de la unidad con keys:
              - target_table, key_columns, mode, delete_column
              - unit_type: 'referencia', 'entidad' o 'detalle'
              - depends_on: Lista de unidades requeridas
              - module, description

    Raises:
        KeyError: Si la unidad no está configurada

    Ejemplo:
        >>> config = get_unit_config('socios')
        >>> print(config['target_table'])
        'socios'
    """
    if unit_name not in UNITS:
        available = ", ".join(UNITS.keys())
        raise KeyError(
            f"Unidad '{unit_name}' no está configurada.\n"
            f"Unidades disponibles: {available}"
        )
    return UNITS[unit_name]


def validate_migration_order(unit_name: str) -> list:
    """
    Dependencias declaradas de una unidad.

    Returns:
        list: Unidades (o tablas externas) que deben estar migradas antes.
              Lista vacía si no hay dependencias.

    Ejemplo:
        >>> validate_migration_order('asientos_items')
        ['asientos_header', 'cuentas']
    """
    config = get_unit_config(unit_name)
    return config.get("depends_on", [])


def get_units_for_command(command: str) -> list:
    """
    Resuelve un comando del CLI (o el nombre de una unidad) a la lista de
    unidades a ejecutar, en orden de MIGRATION_ORDER.

    Raises:
        KeyError: Si no es ni comando ni unidad
    """
    if command in COMMANDS:
        selected = set(COMMANDS[command])
    elif command in UNITS:
        selected = {command}
    else:
        available = ", ".join(list(COMMANDS.keys()) + list(UNITS.keys()))
        raise KeyError(
            f"Comando '{command}' no reconocido.\n"
            f"Opciones disponibles: {available}"
        )
    return [name for name in MIGRATION_ORDER if name in selected]


def is_reference_unit(unit_name: str) -> bool:
    """
    Verifica si una unidad es un catálogo de referencia.

    Las referencias no tienen FKs: no arman mapas y pueden correr primero.
    """
    config = get_unit_config(unit_name)
    return config.get("unit_type") == "referencia"


def get_target_table(unit_name: str) -> str:
    """
    Tabla destino en Supabase para una unidad.

    Ejemplo:
        >>> get_target_table('detalle_cuentas_corrientes')
        'detalle_cuentas_corrientes'
    """
    config = get_unit_config(unit_name)
    return config["target_table"]

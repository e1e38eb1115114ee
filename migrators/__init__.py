"""
Migradores para transformar tablas SQL Server a tablas Supabase.

Cada migrador implementa la interfaz BaseMigrator y se carga dinámicamente
en runtime según la unidad seleccionada.

Estructura:
    base.py: Clase abstracta BaseMigrator y ReferenceSpec
    referencias.py: provincias, paises, tarjetas, categorias_iva, grupos_agrupados, sexos
    socios.py: socios
    conceptos.py: conceptos, conceptos_socios, observaciones_socios
    cuentas.py: cuentas, asientos_header, asientos_items
    cuentas_corrientes.py: cuentas_corrientes, detalle_cuentas_corrientes
    tesoreria.py: conceptos_tesoreria, valores_tesoreria
    clipro.py: clientes, proveedores y sus contactos, tipos de comprobante,
        cuentas corrientes de clientes (ven_cli_*) y proveedores (comp_prov_*)

Los migradores son instanciados por load_unit() en sqlmigra.py usando
importlib.import_module() con el módulo declarado en config.UNITS.

Convención de nombres:
    unidad 'asientos_items' → clase AsientosItemsMigrator

Tipos de unidades:
    - referencia: catálogos sin FKs (ej: provincias)
    - entidad: entidades principales con FKs a referencias (ej: socios)
    - detalle: filas hijas filtradas contra las claves del padre (ej: asientos_items)

Interfaz requerida (ver BaseMigrator):
    - get_source_query()
    - get_fields()
    - get_references() (opcional)
    - get_primary_key_from_row(row)
"""

r"""
Script principal de migración de tablas SQL Server a Supabase.

Arquitectura con carga dinámica de migradores:
- sqlmigra.py: Punto de entrada (argumentos, conexiones, progreso, resumen)
- pipeline/: Infraestructura genérica (lectura, mapas de FKs, lotes, secuencias)
- migrators/*.py: Lógica específica por tabla (implementan BaseMigrator)
- config.py: Configuración centralizada de unidades

Flujo de ejecución:
1. Usuario indica comando o unidad (argumento o menú interactivo)
2. Sistema carga dinámicamente el migrador de cada unidad
3. Validación de dependencias (en la corrida o ya cargadas en destino)
4. Por unidad: mapas de referencia → lectura → mapeo → lotes → secuencia
5. Resumen por unidad con omisiones y sus claves

Prerrequisitos:
- Tablas destino creadas en Supabase (schema de la aplicación)
- Variables SQLSERVER_* y SUPABASE_* en .env
- Función RPC reset_sequence en Supabase o POSTGRES_* para ajustar secuencias

Uso:
    python sqlmigra.py referencias
    python sqlmigra.py socios --dry-run
    python sqlmigra.py all
    python sqlmigra.py asientos_items

    # Sin argumentos muestra el menú interactivo
    python sqlmigra.py

Exit codes:
    0: Todas las unidades terminaron sin error fatal
    1: Alguna unidad falló, o error de conexión
"""

from pathlib import Path
import argparse
import importlib
import io
import logging
import sys

# Asegurar que el directorio raíz esté en sys.path para imports dinámicos
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import config
from migrators.base import BaseMigrator
from pipeline.errors import StoreConnectionError
from pipeline.loader import BatchLoader
from pipeline.orchestrator import MigrationOrchestrator, MigrationUnit
from pipeline.resolver import ReferenceResolver
from pipeline.sequences import SequenceReconciler
from pipeline.source import SourceReader, open_source
from pipeline.target import connect_to_supabase

# Cantidad de claves omitidas que se muestran por motivo en el resumen
MAX_KEYS_SHOWN = 10


def configure_output():
    """Fuerza UTF-8 en stdout/stderr (emojis en consolas Windows) y configura logging."""
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8")
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8")
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx loguea cada request en INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def class_name_for_unit(unit_name):
    """
    Convención de nombres: asientos_items → AsientosItemsMigrator
    """
    return "".join(word.capitalize() for word in unit_name.split("_")) + "Migrator"


def load_migrator_for_unit(unit_name):
    """
    Carga dinámicamente el migrador de una unidad.

    El sistema:
    1. Lee el módulo de config.UNITS (ej: socios → migrators.socios)
    2. Construye el nombre de clase en PascalCase (socios → SociosMigrator)
    3. Importa el módulo dinámicamente
    4. Instancia la clase con la tabla destino

    Args:
        unit_name: Nombre de la unidad (ej: 'asientos_items')

    Returns:
        BaseMigrator: Instancia del migrador específico

    Raises:
        SystemExit: Si no existe el módulo o la clase
    """
    unit_config = config.get_unit_config(unit_name)
    module_name = unit_config.get("module", unit_name)
    class_name = class_name_for_unit(unit_name)

    try:
        module = importlib.import_module(f"migrators.{module_name}")
        migrator_class = getattr(module, class_name)
    except ModuleNotFoundError:
        print(f"❌ No existe migrador para '{unit_name}'", file=sys.stderr)
        print(f"   Se esperaba: migrators/{module_name}.py", file=sys.stderr)
        sys.exit(1)
    except AttributeError:
        print(
            f"❌ El módulo migrators.{module_name} no tiene la clase '{class_name}'",
            file=sys.stderr,
        )
        sys.exit(1)

    # Verificar que hereda de BaseMigrator (type safety en runtime)
    if not issubclass(migrator_class, BaseMigrator):
        print(f"❌ {class_name} no hereda de BaseMigrator", file=sys.stderr)
        sys.exit(1)

    return migrator_class(table=unit_config["target_table"])


def build_unit(unit_name):
    """Arma la MigrationUnit a partir de config.UNITS y su migrador."""
    unit_config = config.get_unit_config(unit_name)
    return MigrationUnit(
        name=unit_name,
        migrator=load_migrator_for_unit(unit_name),
        target_table=unit_config["target_table"],
        key_columns=tuple(unit_config.get("key_columns", [])),
        mode=unit_config["mode"],
        depends_on=tuple(unit_config.get("depends_on", [])),
        batch_size=unit_config.get("batch_size"),
        delete_column=unit_config.get("delete_column"),
        unit_type=unit_config.get("unit_type", "entidad"),
        description=unit_config.get("description", ""),
    )


def select_command():
    """
    Muestra menú interactivo para elegir comando o unidad.

    Returns:
        str: Comando (ej: 'referencias') o nombre de unidad

    Raises:
        SystemExit: Si el usuario cancela
    """
    options = list(config.COMMANDS.keys()) + list(config.MIGRATION_ORDER)

    print("\n" + "=" * 70)
    print("📚 COMANDOS Y UNIDADES DISPONIBLES")
    print("=" * 70)

    for i, name in enumerate(options, 1):
        if name in config.COMMANDS:
            units = config.get_units_for_command(name)
            print(f"\n{i}. [{name}]")
            print(f"   └─ {', '.join(units)}")
        else:
            unit_config = config.get_unit_config(name)
            print(f"\n{i}. {name}")
            print(f"   └─ {unit_config.get('description', 'Sin descripción')}")
            print(
                f"   └─ Tabla: {unit_config['target_table']} | "
                f"Tipo: {unit_config.get('unit_type', 'entidad')} | "
                f"Modo: {unit_config['mode']}"
            )
            depends_on = unit_config.get("depends_on", [])
            if depends_on:
                print(f"   └─ Requiere: {', '.join(depends_on)}")

    print("\n" + "=" * 70)

    # Loop hasta obtener selección válida
    while True:
        try:
            choice = input("Seleccione el número a migrar (0 para salir): ").strip()

            if choice == "0":
                print("\n👋 Migración cancelada por usuario")
                sys.exit(0)

            idx = int(choice) - 1

            if 0 <= idx < len(options):
                return options[idx]
            print("❌ Número fuera de rango. Intente nuevamente.")
        except ValueError:
            print("❌ Entrada inválida. Ingrese un número.")
        except (KeyboardInterrupt, EOFError):
            print("\n\n👋 Migración cancelada por usuario")
            sys.exit(0)


def print_progress(table, done, total):
    # \033[K limpia la línea para evitar basura visual
    percent = done * 100 // total if total else 100
    print(f"\r\033[K⏳ {table}: {done:,}/{total:,} ({percent}%)", end="", flush=True)
    if done >= total:
        print()


def print_report(report):
    """Resumen de una unidad: totales, omisiones por motivo y secuencia."""
    icon = "❌" if report.failed else "✅"
    suffix = " (dry-run)" if report.dry_run else ""
    print(f"\n{icon} {report.unit}{suffix}")
    print(f"   📊 Leídas: {report.attempted:,}")
    print(f"   💾 Insertadas: {report.inserted:,}")
    print(f"   ⏭️  Omitidas: {report.skipped:,}")
    print(f"   ⚠️  Con error: {report.errored:,}")

    for reason, count in sorted(report.reasons().items()):
        keys = report.keys_for(reason)[:MAX_KEYS_SHOWN]
        more = "..." if count > len(keys) else ""
        print(f"   └─ {reason}: {count:,} → {', '.join(repr(k) for k in keys)}{more}")

    for batch in report.batches:
        if batch.failed:
            print(f"   └─ lote {batch.index}: {batch.error}")

    if report.sequence is not None:
        seq = report.sequence
        if seq.applied:
            print(f"   🔧 Secuencia {seq.table}.{seq.column} → {seq.next_value} ({seq.method})")
        else:
            print("   ⚠️  IMPORTANTE: ejecutar manualmente en el SQL Editor de Supabase:")
            print(f"      {seq.statement}")

    if report.fatal_error:
        print(f"   💥 {report.fatal_error}")


def run_migration(unit_names, dry_run=False):
    """
    Conecta a ambos stores y ejecuta las unidades en orden.

    Returns:
        RunResult

    Raises:
        StoreConnectionError: Si no se puede conectar a algún store
    """
    units = [build_unit(name) for name in unit_names]
    unit_tables = {name: cfg["target_table"] for name, cfg in config.UNITS.items()}

    print("🔌 Conectando a Supabase...")
    store = connect_to_supabase(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
    print("✅ Cliente de Supabase listo")

    print("🔌 Conectando a SQL Server...")
    with open_source(config.SQLSERVER_CONFIG) as connection:
        print("✅ Conexión a SQL Server exitosa")

        orchestrator = MigrationOrchestrator(
            reader=SourceReader(connection),
            store=store,
            resolver=ReferenceResolver(store, page_size=config.PAGE_SIZE),
            loader=BatchLoader(
                store,
                batch_size=config.BATCH_SIZE,
                on_progress=print_progress,
                dry_run=dry_run,
            ),
            reconciler=SequenceReconciler(store, config.POSTGRES_CONFIG),
            unit_tables=unit_tables,
        )
        return orchestrator.run(units)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Migración SQL Server → Supabase por lotes con resolución de FKs",
    )
    parser.add_argument(
        "command",
        nargs="?",
        help=f"Comando ({' | '.join(config.COMMANDS)}) o nombre de unidad",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Mapea y cuenta sin escribir en Supabase",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """
    Función principal que coordina el flujo completo de migración.

    Returns:
        int: 0 si todas las unidades terminaron, 1 si alguna falló
    """
    args = parse_args(argv)
    configure_output()

    print("=" * 70)
    print("🚀 SISTEMA DE MIGRACIÓN SQL SERVER → SUPABASE")
    print("=" * 70)
    print(f"📍 SQL Server: {config.SQLSERVER_CONFIG['server']}/{config.SQLSERVER_CONFIG['database']}")
    print(f"📍 Supabase: {config.SUPABASE_URL}")

    command = args.command or select_command()
    try:
        unit_names = config.get_units_for_command(command)
    except KeyError as e:
        print(f"❌ {e.args[0]}", file=sys.stderr)
        return 1

    print("\n" + "=" * 70)
    print(f"📦 Unidades: {', '.join(unit_names)}")
    if args.dry_run:
        print("🧪 Modo dry-run: no se escribe en Supabase")
    print("=" * 70)

    try:
        result = run_migration(unit_names, dry_run=args.dry_run)
    except StoreConnectionError as e:
        print(f"\n❌ {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 70)
    print("📋 RESUMEN")
    print("=" * 70)
    for report in result.reports:
        print_report(report)

    skipped_units = [name for name in unit_names if result.report_for(name) is None]
    if skipped_units:
        print(f"\n⏹️  No ejecutadas: {', '.join(skipped_units)}")

    print("\n" + "=" * 70)
    if result.ok:
        print("✅ PROCESO COMPLETADO EXITOSAMENTE")
        print("=" * 70)
        return 0

    print("❌ PROCESO TERMINADO CON ERRORES")
    if result.fatal_error:
        print(f"   {result.fatal_error}")
    print("=" * 70)
    return 1


if __name__ == "__main__":
    sys.exit(main())

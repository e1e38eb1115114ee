r"""
Actualiza UNA columna de socios en Supabase desde SQL Server, sin tocar el resto.

Útil cuando socios ya está migrado y hay que corregir una sola columna
(ej: matricula_provincial) sin volver a correr la unidad completa.

Uso:
    python update_columna.py
    python update_columna.py --columna-sql NroMatricula2 --columna-supa matricula_provincial
    python update_columna.py --columna-sql Matricula --dry-run
    python update_columna.py --only-missing

Flags:
    --columna-sql   Columna en SQL Server (default: Matricula)
    --columna-supa  Columna en Supabase   (default: matricula_provincial)
    --dry-run       Solo muestra qué haría, sin escribir
    --only-missing  Solo actualiza socios que en Supabase tienen NULL/vacío
"""

from pathlib import Path
import argparse
import sys

project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import config
from pipeline.errors import MigrationError
from pipeline.patch import ColumnPatcher
from pipeline.report import INSERT_ERROR
from pipeline.resolver import ReferenceResolver
from pipeline.source import SourceReader, open_source
from pipeline.target import connect_to_supabase
from sqlmigra import configure_output, print_progress

SOURCE_TABLE = "socios"
SOURCE_KEY = "socio"
TARGET_TABLE = "socios"
TARGET_KEY = "id"

PREVIEW_SIZE = 10


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Actualiza una columna de socios desde SQL Server",
    )
    parser.add_argument("--columna-sql", default="Matricula", help="Columna en SQL Server")
    parser.add_argument(
        "--columna-supa", default="matricula_provincial", help="Columna en Supabase"
    )
    parser.add_argument("--dry-run", action="store_true", help="No escribe en Supabase")
    parser.add_argument(
        "--only-missing",
        "--solo-vacios",
        dest="only_missing",
        action="store_true",
        help="Solo filas que en destino tienen NULL/vacío",
    )
    return parser.parse_args(argv)


def print_preview(updates, column):
    print(f"Preview (primeros {PREVIEW_SIZE}):")
    for update in updates[:PREVIEW_SIZE]:
        value = "NULL" if update.value is None else f'"{update.value}"'
        print(f"  Socio {update.key}: {column} = {value}")
    if len(updates) > PREVIEW_SIZE:
        print(f"  ... y {len(updates) - PREVIEW_SIZE} más")


def main(argv=None):
    args = parse_args(argv)
    configure_output()

    print("=" * 40)
    print("  Actualización parcial de socios")
    print("=" * 40)
    print(f"  SQL Server:  {SOURCE_TABLE}.{args.columna_sql}")
    print(f"  Supabase:    {TARGET_TABLE}.{args.columna_supa}")
    print(f"  Dry run:     {'SÍ (no escribe)' if args.dry_run else 'NO (escribe en Supabase)'}")
    print(f"  Solo vacíos: {'SÍ' if args.only_missing else 'NO'}")
    print("=" * 40 + "\n")

    try:
        store = connect_to_supabase(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
        with open_source(config.SQLSERVER_CONFIG) as connection:
            patcher = ColumnPatcher(
                reader=SourceReader(connection),
                store=store,
                resolver=ReferenceResolver(store, page_size=config.PAGE_SIZE),
                batch_size=config.PATCH_BATCH_SIZE,
                workers=config.PATCH_WORKERS,
                dry_run=args.dry_run,
                only_missing=args.only_missing,
                on_progress=print_progress,
            )

            print(f"📖 Leyendo {SOURCE_KEY} + {args.columna_sql} de SQL Server...")
            updates, report = patcher.plan(
                SOURCE_TABLE, SOURCE_KEY, args.columna_sql,
                TARGET_TABLE, TARGET_KEY, args.columna_supa,
            )
            print(f"   {report.attempted:,} registros leídos")
            if report.skipped:
                print(f"   {report.skipped:,} socios ya tienen valor en Supabase (se saltean)")
            print(f"   {len(updates):,} registros a actualizar\n")

            if not updates:
                print("Nada que actualizar.")
                return 0

            print_preview(updates, args.columna_supa)

            if args.dry_run:
                print("\n-- DRY RUN: no se escribió nada en Supabase --")
                return 0

            print("\n🔄 Actualizando Supabase...")
            patcher.apply(updates, TARGET_TABLE, TARGET_KEY, args.columna_supa, report)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except MigrationError as e:
        print(f"❌ Error durante la actualización: {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 40)
    print("  Resultado")
    print("=" * 40)
    print(f"  Actualizados: {report.inserted:,}")
    print(f"  Errores:      {report.errored:,}")
    for key in report.keys_for(INSERT_ERROR)[:PREVIEW_SIZE]:
        print(f"    └─ socio {key}")
    print("=" * 40)
    return 0


if __name__ == "__main__":
    sys.exit(main())

# reset_sequences.py
"""
Script para ajustar las secuencias de las tablas migradas con id explícito.

Lleva cada secuencia a MAX(id) + 1. Si ni la conexión directa (POSTGRES_*)
ni la RPC reset_sequence están disponibles, imprime las sentencias setval
para ejecutar a mano en el SQL Editor de Supabase.

Uso:
    python reset_sequences.py                 (todas las de config.SEQUENCE_TABLES)
    python reset_sequences.py socios tarjetas
"""

from pathlib import Path
import argparse
import sys

project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import config
from pipeline.errors import MigrationError, StoreConnectionError
from pipeline.sequences import SequenceReconciler
from pipeline.target import connect_to_supabase
from sqlmigra import configure_output


def reset_sequences(reconciler, tables):
    """
    Ajusta la secuencia de cada tabla.

    Returns:
        list: SequenceResult de las tablas que NO se pudieron ajustar
    """
    pending = []
    for table in tables:
        column = config.SEQUENCE_TABLES[table]
        print(f"\n🔧 {table}.{column}...")
        try:
            result = reconciler.reconcile(table, column)
        except StoreConnectionError:
            raise
        except MigrationError as e:
            print(f"   ⚠️  Error leyendo MAX({column}): {e}")
            continue

        if result.applied:
            print(f"   ✅ Próximo valor: {result.next_value} ({result.method})")
        else:
            print(f"   ⚠️  No se pudo aplicar ({result.detail})")
            pending.append(result)
    return pending


def main(argv=None):
    parser = argparse.ArgumentParser(description="Ajusta secuencias a MAX(id) + 1")
    parser.add_argument("tables", nargs="*", help="Tablas (default: todas)")
    args = parser.parse_args(argv)
    configure_output()

    tables = args.tables or list(config.SEQUENCE_TABLES)
    unknown = [t for t in tables if t not in config.SEQUENCE_TABLES]
    if unknown:
        available = ", ".join(config.SEQUENCE_TABLES)
        print(f"❌ Tablas sin secuencia configurada: {', '.join(unknown)}", file=sys.stderr)
        print(f"   Tablas disponibles: {available}", file=sys.stderr)
        return 1

    print("=" * 70)
    print("🔢 AJUSTE DE SECUENCIAS")
    print("=" * 70)

    try:
        store = connect_to_supabase(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
        pending = reset_sequences(SequenceReconciler(store, config.POSTGRES_CONFIG), tables)
    except StoreConnectionError as e:
        print(f"\n❌ {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 70)
    if not pending:
        print("✅ SECUENCIAS AJUSTADAS")
        print("=" * 70)
        return 0

    print("⚠️  IMPORTANTE: ejecutar manualmente en el SQL Editor de Supabase:")
    print("=" * 70)
    for result in pending:
        print(result.statement)
    return 1


if __name__ == "__main__":
    sys.exit(main())

"""
Test de validación para config.py.

Verifica que:
- Configuración de unidades carga correctamente
- Funciones helper funcionan según lo documentado
- Manejo de errores es apropiado
"""

import os
import sys

import pytest

# === RESOLUCIÓN DE PATH ===
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from pipeline.loader import MODES

UNIT_TYPES = ["referencia", "entidad", "detalle"]


# === TESTS ===


def test_get_unit_config():
    """Verifica que get_unit_config retorna estructura correcta para TODAS las unidades."""
    print("\n=== TEST 1: get_unit_config ===")

    errors = []
    for unit_name in config.UNITS:
        cfg = config.get_unit_config(unit_name)

        for key in ["target_table", "key_columns", "mode", "unit_type", "depends_on", "module", "description"]:
            if key not in cfg:
                errors.append(f"{unit_name}: Falta key '{key}'")

        if not isinstance(cfg.get("depends_on"), list):
            errors.append(f"{unit_name}: depends_on debe ser lista")

        if cfg.get("unit_type") not in UNIT_TYPES:
            errors.append(f"{unit_name}: unit_type inválido '{cfg.get('unit_type')}'")

        if cfg.get("mode") not in MODES:
            errors.append(f"{unit_name}: mode inválido '{cfg.get('mode')}'")

        if cfg.get("mode") == "upsert-by-key" and not cfg.get("key_columns"):
            errors.append(f"{unit_name}: upsert-by-key requiere key_columns")

        if cfg.get("mode") == "delete-then-insert" and not (
            cfg.get("delete_column") or cfg.get("key_columns")
        ):
            errors.append(f"{unit_name}: delete-then-insert requiere delete_column")

    for error in errors:
        print(f"   ❌ {error}")
    assert not errors


def test_get_unit_config_invalid():
    """Una unidad inexistente levanta KeyError listando las disponibles."""
    print("\n=== TEST 2: get_unit_config con nombre inválido ===")

    with pytest.raises(KeyError) as excinfo:
        config.get_unit_config("clientes_inexistente")

    message = str(excinfo.value)
    assert "clientes_inexistente" in message
    assert "socios" in message


def test_migration_order_covers_all_units():
    """MIGRATION_ORDER incluye cada unidad exactamente una vez."""
    print("\n=== TEST 3: MIGRATION_ORDER completo ===")

    assert sorted(config.MIGRATION_ORDER) == sorted(config.UNITS)
    assert len(config.MIGRATION_ORDER) == len(set(config.MIGRATION_ORDER))


def test_dependencies_come_first():
    """Toda dependencia que es unidad aparece antes en MIGRATION_ORDER."""
    print("\n=== TEST 4: Orden de dependencias ===")

    position = {name: i for i, name in enumerate(config.MIGRATION_ORDER)}
    errors = []
    for unit_name in config.MIGRATION_ORDER:
        for dep in config.validate_migration_order(unit_name):
            if dep in position and position[dep] > position[unit_name]:
                errors.append(f"{unit_name} corre antes que su dependencia {dep}")

    for error in errors:
        print(f"   ❌ {error}")
    assert not errors


def test_reference_units_have_no_dependencies():
    print("\n=== TEST 5: Referencias sin dependencias ===")

    for unit_name in config.UNITS:
        if config.is_reference_unit(unit_name):
            assert config.validate_migration_order(unit_name) == [], unit_name


def test_get_units_for_command():
    """Los comandos del CLI se resuelven a unidades en orden de migración."""
    print("\n=== TEST 6: get_units_for_command ===")

    assert config.get_units_for_command("referencias") == [
        "provincias", "paises", "tarjetas", "categorias_iva", "grupos_agrupados", "sexos",
    ]
    assert config.get_units_for_command("socios") == ["socios"]
    assert config.get_units_for_command("cuentas") == [
        "cuentas", "asientos_header", "asientos_items",
    ]
    assert config.get_units_for_command("all") == config.MIGRATION_ORDER
    # Una unidad suelta también es válida
    assert config.get_units_for_command("asientos_items") == ["asientos_items"]


def test_get_units_for_command_invalid():
    with pytest.raises(KeyError) as excinfo:
        config.get_units_for_command("clientes_viejos")
    assert "referencias" in str(excinfo.value)


def test_command_units_exist():
    print("\n=== TEST 7: Comandos referencian unidades existentes ===")

    for command, units in config.COMMANDS.items():
        for unit_name in units:
            assert unit_name in config.UNITS, f"{command}: {unit_name}"


def test_sequence_tables_are_migrated_tables():
    """Cada tabla con secuencia es destino de alguna unidad."""
    targets = {config.get_target_table(name) for name in config.UNITS}
    for table in config.SEQUENCE_TABLES:
        assert table in targets


def test_get_target_table():
    assert config.get_target_table("detalle_cuentas_corrientes") == "detalle_cuentas_corrientes"
    assert config.get_target_table("asientos_header") == "asientos_header"


def test_defaults():
    """Valores por defecto sin variables de entorno especiales."""
    print("\n=== TEST 8: Valores por defecto ===")

    assert config.PATCH_BATCH_SIZE > 0
    assert config.PATCH_WORKERS > 0
    assert config.BATCH_SIZE > 0
    assert config.PAGE_SIZE > 0
    assert isinstance(config.SQLSERVER_CONFIG["encrypt"], bool)
    assert isinstance(config.SQLSERVER_CONFIG["port"], int)


def test_serial_detail_tables_have_sequences():
    """Los detalles con id serial también ajustan su secuencia."""
    assert config.SEQUENCE_TABLES["detalle_cuentas_corrientes"] == "id"
    assert config.SEQUENCE_TABLES["tip_vent_mod_items"] == "id"


def test_clipro_commands():
    maestros = config.get_units_for_command("clipro_maestros")
    clipro = config.get_units_for_command("clipro")

    assert set(maestros) < set(clipro)
    assert "ven_cli_header" not in maestros
    assert clipro.index("clientes") < clipro.index("ven_cli_header") < clipro.index("ven_cli_items")
    assert clipro.index("proveedores") < clipro.index("comp_prov_header")
    assert "sexos" in config.get_unit_config("socios")["depends_on"]

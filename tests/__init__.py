"""
Suite de tests para la migración SQL Server → Supabase.

Los tests NO se conectan a ninguna base real, solo validan:
- Configuración de unidades y helpers de config.py
- Implementación correcta de la interfaz BaseMigrator
- Mapeo, mapas de referencia, lotes, secuencias y orquestación
  contra stores en memoria (tests/helpers.py)
"""

"""
Infraestructura genérica de la migración SQL Server → Supabase.

Estructura:
    errors.py: Taxonomía de errores (conexión, consulta, mapeo, FK, insert, secuencia)
    report.py: SkipRecord, BatchResult, MigrationReport, SequenceResult, RunResult
    source.py: SourceReader y open_source() sobre SQL Server (pymssql)
    target.py: SupabaseStore, único punto de contacto con supabase-py
    resolver.py: ReferenceResolver / ReferenceMap con paginación completa
    mapper.py: FieldMapper y reglas declarativas (Text, Code, Flag, Reference...)
    loader.py: BatchLoader (delete-then-insert | upsert-by-key)
    sequences.py: SequenceReconciler (setval o sentencia manual)
    orchestrator.py: MigrationUnit y MigrationOrchestrator
    patch.py: ColumnPatcher (actualización de una sola columna)

Los migradores concretos viven en migrators/ y los scripts de entrada en la raíz
(sqlmigra.py, update_columna.py, reset_sequences.py).
"""

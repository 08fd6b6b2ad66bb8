"""
recordsync

Serializes interdependent records (typed attributes, translations and
references between records) to portable YAML files, and later re-materializes
or re-synchronizes them against a live record store.

Key components:
- core/: Serialized record model, collections, canonical form, exceptions, logging
- discovery/: File discovery and dependency-ordered sorting
- sync/: Import (materializer), export, status resolution and pruning
- store/: Live record store interface and backends (memory, SQLite, SQL Server)
- handlers/: Attribute transform handlers
- options/: Per-record option plugins (file assets)
- sources/: Source directories that hold exports
- config/: Settings loading
"""

__version__ = "0.1.0"

from .base import AddColumn, Migration, load_migrations
from .engine import MigrationEngine, MigrationReport, ShardMigrationStatus

__all__ = [
    "AddColumn",
    "Migration",
    "MigrationEngine",
    "MigrationReport",
    "ShardMigrationStatus",
    "load_migrations",
]

from __future__ import annotations

import importlib
import pkgutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import ModuleType
from typing import Optional, Union

from sqlalchemy import inspect
from sqlalchemy.engine import Connection

from ..core.errors import ConfigurationError
from ..core.shards import Shard


@dataclass(frozen=True)
class AddColumn:
    """``ALTER TABLE ... ADD COLUMN`` that is skipped when the column exists."""

    table: str
    column: str
    ddl: str

    def render(self, conn: Connection) -> Optional[str]:
        existing = {col["name"] for col in inspect(conn).get_columns(self.table)}
        if self.column in existing:
            return None
        return f"ALTER TABLE {self.table} ADD COLUMN {self.column} {self.ddl}"


Statement = Union[str, AddColumn]


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    upgrade: Mapping[Shard, Sequence[Statement]]
    downgrade: Mapping[Shard, Sequence[Statement]] = field(default_factory=dict)

    @property
    def shards(self) -> list[Shard]:
        return [shard for shard in Shard if shard in self.upgrade]

    @property
    def label(self) -> str:
        return f"{self.version:04d}_{self.name}"


def run_statement(conn: Connection, statement: Statement) -> None:
    if isinstance(statement, AddColumn):
        sql = statement.render(conn)
        if sql is None:
            return
    else:
        sql = statement
    conn.exec_driver_sql(sql)


def load_migrations(package: Optional[ModuleType] = None) -> list[Migration]:
    """Import every module of ``package`` and collect its ``migration``."""
    if package is None:
        from . import versions as package

    found: dict[int, Migration] = {}
    for info in pkgutil.iter_modules(package.__path__):
        module = importlib.import_module(f"{package.__name__}.{info.name}")
        migration = getattr(module, "migration", None)
        if not isinstance(migration, Migration):
            raise ConfigurationError(f"Module '{info.name}' does not define a migration")
        if migration.version in found:
            raise ConfigurationError(
                f"Duplicate migration version {migration.version}: "
                f"'{found[migration.version].name}' and '{migration.name}'"
            )
        found[migration.version] = migration
    return [found[version] for version in sorted(found)]

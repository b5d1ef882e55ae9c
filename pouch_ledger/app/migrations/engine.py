from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import ConfigurationError, LedgerError, MigrationError
from ..core.executor import ShardExecutor
from ..core.shards import Shard
from .base import Migration, load_migrations, run_statement


logger = logging.getLogger(__name__)

STATE_TABLE_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migrations ("
    "version INTEGER PRIMARY KEY, "
    "name TEXT NOT NULL, "
    "applied_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
)

ShardSelector = Optional[Iterable[Union[Shard, str]]]


@dataclass
class MigrationReport:
    applied: list[tuple[str, int]] = field(default_factory=list)
    skipped: list[tuple[str, int]] = field(default_factory=list)
    rolled_back: list[tuple[str, int]] = field(default_factory=list)
    errors: list[MigrationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise self.errors[0]


@dataclass
class ShardMigrationStatus:
    shard: str
    current_version: int
    applied: list[int]
    pending: list[int]
    total: int


class MigrationEngine:
    """Applies and reverts numbered schema units shard by shard.

    Each {shard, version} unit runs in one database transaction together with
    its ``schema_migrations`` row, so a failure leaves that shard exactly as it
    was. A failure on one shard never stops the others.
    """

    def __init__(
        self, executor: ShardExecutor, migrations: Optional[list[Migration]] = None
    ) -> None:
        self.executor = executor
        units = load_migrations() if migrations is None else migrations
        self.migrations = sorted(units, key=lambda m: m.version)
        versions = [m.version for m in self.migrations]
        if len(set(versions)) != len(versions):
            raise ConfigurationError("Duplicate migration versions registered")
        self._by_version = {m.version: m for m in self.migrations}
        self._locks = {shard: threading.Lock() for shard in executor.shards}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _select_shards(self, shards: ShardSelector) -> list[Shard]:
        if shards is None:
            return list(self.executor.shards)
        selected: list[Shard] = []
        for item in shards:
            try:
                shard = Shard(item)
            except ValueError as exc:
                raise ConfigurationError(f"Unknown shard '{item}'") from exc
            if shard not in self.executor.shards:
                raise ConfigurationError(f"Shard '{shard.value}' is not configured")
            if shard not in selected:
                selected.append(shard)
        return sorted(selected, key=list(Shard).index)

    def ensure_state_table(self, shard: Shard) -> None:
        with self.executor.engine(shard).begin() as conn:
            conn.exec_driver_sql(STATE_TABLE_DDL)

    def _applied(self, conn: Connection) -> set[int]:
        rows = conn.exec_driver_sql("SELECT version FROM schema_migrations")
        return {row[0] for row in rows}

    def applied_versions(self, shard: Shard) -> list[int]:
        self.ensure_state_table(shard)
        with self.executor.engine(shard).connect() as conn:
            return sorted(self._applied(conn))

    def current_version(self, shard: Shard) -> int:
        return max(self.applied_versions(shard), default=0)

    # ------------------------------------------------------------------
    # Forward
    # ------------------------------------------------------------------
    def _apply_unit(self, shard: Shard, migration: Migration) -> bool:
        with self._locks[shard]:
            with self.executor.engine(shard).begin() as conn:
                if migration.version in self._applied(conn):
                    return False
                for statement in migration.upgrade[shard]:
                    run_statement(conn, statement)
                conn.execute(
                    text("INSERT INTO schema_migrations (version, name) VALUES (:version, :name)"),
                    {"version": migration.version, "name": migration.name},
                )
        return True

    def apply_migrations(
        self, target_version: Optional[int] = None, shards: ShardSelector = None
    ) -> MigrationReport:
        selected = self._select_shards(shards)
        for shard in selected:
            self.ensure_state_table(shard)

        report = MigrationReport()
        failed: set[Shard] = set()
        for migration in self.migrations:
            if target_version is not None and migration.version > target_version:
                break
            for shard in selected:
                if shard not in migration.upgrade or shard in failed:
                    continue
                try:
                    applied = self._apply_unit(shard, migration)
                except (SQLAlchemyError, LedgerError) as exc:
                    failed.add(shard)
                    report.errors.append(MigrationError(shard.value, migration.version, exc))
                    logger.error(
                        "migration.failed",
                        extra={"shard": shard.value, "version": migration.version, "error": str(exc)},
                    )
                    continue
                entry = (shard.value, migration.version)
                if applied:
                    report.applied.append(entry)
                    logger.info(
                        "migration.applied",
                        extra={"shard": shard.value, "version": migration.version, "migration": migration.name},
                    )
                else:
                    report.skipped.append(entry)
        return report

    # ------------------------------------------------------------------
    # Backward
    # ------------------------------------------------------------------
    def _rollback_unit(self, shard: Shard) -> Optional[int]:
        version = 0
        with self._locks[shard]:
            try:
                with self.executor.engine(shard).begin() as conn:
                    applied = self._applied(conn)
                    if not applied:
                        return None
                    version = max(applied)
                    migration = self._by_version.get(version)
                    if migration is None:
                        raise MigrationError(
                            shard.value, version, LookupError("no migration unit with this version")
                        )
                    for statement in migration.downgrade.get(shard, ()):
                        run_statement(conn, statement)
                    conn.execute(
                        text("DELETE FROM schema_migrations WHERE version = :version"),
                        {"version": version},
                    )
            except SQLAlchemyError as exc:
                raise MigrationError(shard.value, version, exc) from exc
        return version

    def rollback_one(self, shards: ShardSelector = None) -> MigrationReport:
        """Revert the highest applied version on each selected shard, one step only."""
        report = MigrationReport()
        for shard in self._select_shards(shards):
            self.ensure_state_table(shard)
            try:
                version = self._rollback_unit(shard)
            except MigrationError as exc:
                report.errors.append(exc)
                logger.error("migration.rollback_failed", extra={"shard": shard.value, "error": str(exc)})
                continue
            if version is None:
                logger.info("migration.nothing_to_rollback", extra={"shard": shard.value})
                continue
            report.rolled_back.append((shard.value, version))
            logger.info("migration.rolled_back", extra={"shard": shard.value, "version": version})
        return report

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def status(self) -> dict[str, ShardMigrationStatus]:
        result: dict[str, ShardMigrationStatus] = {}
        for shard in self.executor.shards:
            known = [m.version for m in self.migrations if shard in m.upgrade]
            applied = self.applied_versions(shard)
            result[shard.value] = ShardMigrationStatus(
                shard=shard.value,
                current_version=max(applied, default=0),
                applied=applied,
                pending=[v for v in known if v not in applied],
                total=len(known),
            )
        return result

    def head(self) -> int:
        return max(self._by_version, default=0)

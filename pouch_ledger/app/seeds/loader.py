from __future__ import annotations

import importlib
import logging
import pkgutil
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import ModuleType
from typing import Any, NamedTuple, Optional, Union

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..core.errors import ConfigurationError, ConstraintError, LedgerError, SeedError
from ..core.executor import ShardExecutor
from ..core.shards import Collection, Shard


logger = logging.getLogger(__name__)

STATE_TABLE_DDL = (
    "CREATE TABLE IF NOT EXISTS seed_batches ("
    "number INTEGER PRIMARY KEY, "
    "name TEXT NOT NULL, "
    "executed_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
)


class SeedRecord(NamedTuple):
    collection: Collection
    values: Mapping[str, Any]


def seeded_at(*parts: int) -> datetime:
    """Fixed UTC timestamp for seed rows, matching what the services write."""
    return datetime(*parts, tzinfo=UTC)


def record(collection: Collection, **values: Any) -> SeedRecord:
    return SeedRecord(collection, values)


@dataclass(frozen=True)
class SeedBatch:
    number: int
    name: str
    shards: Sequence[Shard]
    records: Sequence[SeedRecord]


@dataclass
class SeedReport:
    executed: list[tuple[str, int]] = field(default_factory=list)
    skipped: list[tuple[str, int]] = field(default_factory=list)
    duplicates: int = 0


@dataclass
class ShardSeedStatus:
    shard: str
    executed: list[int]
    pending: list[int]
    total: int


def load_batches(package: Optional[ModuleType] = None) -> list[SeedBatch]:
    if package is None:
        from . import batches as package

    found: dict[int, SeedBatch] = {}
    for info in pkgutil.iter_modules(package.__path__):
        module = importlib.import_module(f"{package.__name__}.{info.name}")
        batch = getattr(module, "batch", None)
        if not isinstance(batch, SeedBatch):
            raise ConfigurationError(f"Module '{info.name}' does not define a seed batch")
        if batch.number in found:
            raise ConfigurationError(f"Duplicate seed batch number {batch.number}")
        found[batch.number] = batch
    return [found[number] for number in sorted(found)]


class SeedLoader:
    """Runs numbered baseline data batches, at most once per shard.

    Data rows carry fixed identifiers, so re-running a batch after its state
    row was forgotten only reports duplicates.
    """

    def __init__(
        self, executor: ShardExecutor, batches: Optional[list[SeedBatch]] = None
    ) -> None:
        self.executor = executor
        self.batches = sorted(
            load_batches() if batches is None else batches, key=lambda b: b.number
        )
        for batch in self.batches:
            self._check_batch(batch)

    def _check_batch(self, batch: SeedBatch) -> None:
        for seed in batch.records:
            shard = self.executor.resolve(seed.collection)
            if shard not in batch.shards:
                raise ConfigurationError(
                    f"Seed batch {batch.number} writes '{seed.collection.value}' "
                    f"on shard '{shard.value}', which it does not declare"
                )

    def _select_shards(self, shards: Optional[Iterable[Union[Shard, str]]]) -> list[Shard]:
        if shards is None:
            return list(self.executor.shards)
        selected = []
        for item in shards:
            try:
                shard = Shard(item)
            except ValueError as exc:
                raise ConfigurationError(f"Unknown shard '{item}'") from exc
            if shard not in self.executor.shards:
                raise ConfigurationError(f"Shard '{shard.value}' is not configured")
            selected.append(shard)
        return selected

    def ensure_state_table(self, shard: Shard) -> None:
        with self.executor.engine(shard).begin() as conn:
            conn.exec_driver_sql(STATE_TABLE_DDL)

    def executed(self, shard: Shard) -> list[int]:
        self.ensure_state_table(shard)
        with self.executor.engine(shard).connect() as conn:
            rows = conn.exec_driver_sql("SELECT number FROM seed_batches ORDER BY number")
            return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------
    def _insert_records(self, session: Session, batch: SeedBatch, shard: Shard) -> int:
        duplicates = 0
        for seed in batch.records:
            if self.executor.resolve(seed.collection) is not shard:
                continue
            try:
                self.executor.insert_row(session, seed.collection, seed.values)
            except ConstraintError:
                duplicates += 1
                logger.info(
                    "seed.skipped_duplicate",
                    extra={
                        "batch": batch.number,
                        "collection": seed.collection.value,
                        "record_id": seed.values.get("id"),
                        "reason": "already seeded",
                    },
                )
        return duplicates

    def _run_unit(self, batch: SeedBatch, shard: Shard, report: SeedReport) -> None:
        try:
            with self.executor.session(shard) as session:
                already = session.execute(
                    text("SELECT 1 FROM seed_batches WHERE number = :number"),
                    {"number": batch.number},
                ).first()
                if already is not None:
                    report.skipped.append((shard.value, batch.number))
                    return
                report.duplicates += self._insert_records(session, batch, shard)
                session.execute(
                    text("INSERT INTO seed_batches (number, name) VALUES (:number, :name)"),
                    {"number": batch.number, "name": batch.name},
                )
        except (SQLAlchemyError, LedgerError) as exc:
            logger.error(
                "seed.failed",
                extra={"batch": batch.number, "shard": shard.value, "error": str(exc)},
            )
            raise SeedError(batch.number, shard.value, exc) from exc
        report.executed.append((shard.value, batch.number))
        logger.info(
            "seed.executed",
            extra={"batch": batch.number, "batch_name": batch.name, "shard": shard.value},
        )

    def run_seeds(
        self,
        shards: Optional[Iterable[Union[Shard, str]]] = None,
        number: Optional[int] = None,
    ) -> SeedReport:
        """Run pending batches in ascending order; the first failure stops the run."""
        selected = self._select_shards(shards)
        for shard in selected:
            self.ensure_state_table(shard)

        report = SeedReport()
        for batch in self.batches:
            if number is not None and batch.number != number:
                continue
            for shard in selected:
                if shard in batch.shards:
                    self._run_unit(batch, shard, report)
        return report

    def reset_seeds(self, shard: Union[Shard, str]) -> int:
        """Forget which batches ran on ``shard``; data rows are left in place."""
        (target,) = self._select_shards([shard])
        self.ensure_state_table(target)
        with self.executor.engine(target).begin() as conn:
            removed = conn.exec_driver_sql("DELETE FROM seed_batches").rowcount
        logger.info("seed.reset", extra={"shard": target.value, "removed": removed})
        return removed

    def refresh_seeds(self, shard: Union[Shard, str]) -> SeedReport:
        self.reset_seeds(shard)
        return self.run_seeds(shards=[shard])

    def seed_status(self) -> dict[str, ShardSeedStatus]:
        result: dict[str, ShardSeedStatus] = {}
        for shard in self.executor.shards:
            known = [b.number for b in self.batches if shard in b.shards]
            done = self.executed(shard)
            result[shard.value] = ShardSeedStatus(
                shard=shard.value,
                executed=[n for n in done if n in known],
                pending=[n for n in known if n not in done],
                total=len(known),
            )
        return result

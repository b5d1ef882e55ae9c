from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import insert, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from ..models.db import COLLECTION_MODELS, MODEL_COLLECTIONS
from .errors import ConfigurationError, ConstraintError, LedgerError, ValidationError
from .shards import Collection, Shard, ShardMap, shard_order


logger = logging.getLogger(__name__)

_UNIQUE_MARKERS = ("UNIQUE constraint failed", "duplicate key", "Duplicate entry")


def is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return any(marker in message for marker in _UNIQUE_MARKERS)


def translate_integrity_error(exc: IntegrityError) -> LedgerError:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    if is_unique_violation(exc):
        return ConstraintError(message)
    return ValidationError(message)


def model_for(collection: Collection) -> type[SQLModel]:
    return COLLECTION_MODELS[collection]


class UnitOfWork:
    """One lazily-opened session per touched shard.

    ``commit`` flushes every session before committing any of them, so
    constraint failures surface before a single shard is made durable. Shards
    are still committed one after the other; there is no cross-shard atomic
    commit.
    """

    def __init__(self, executor: "ShardExecutor") -> None:
        self._executor = executor
        self._sessions: dict[Shard, Session] = {}

    def session(self, collection: Collection) -> Session:
        shard = self._executor.resolve(collection)
        if shard not in self._sessions:
            self._sessions[shard] = Session(
                self._executor.engine(shard), expire_on_commit=False
            )
        return self._sessions[shard]

    # Generic record access ----------------------------------------------
    def get(self, collection: Collection, record_id: str) -> Optional[Any]:
        return self.session(collection).get(model_for(collection), record_id)

    def add(self, record: SQLModel) -> SQLModel:
        collection = MODEL_COLLECTIONS[type(record)]
        self.session(collection).add(record)
        return record

    def remove(self, record: SQLModel) -> None:
        collection = MODEL_COLLECTIONS[type(record)]
        self.session(collection).delete(record)

    def query(self, collection: Collection, **filters: Any) -> list[Any]:
        model = model_for(collection)
        stmt = select(model)
        for key, value in filters.items():
            column = getattr(model, key, None)
            if column is None:
                raise ValidationError(f"Unknown filter field '{key}' for {collection.value}")
            stmt = stmt.where(column == value)
        return list(self.session(collection).exec(stmt))

    # Lifecycle ----------------------------------------------------------
    def _ordered(self) -> list[tuple[Shard, Session]]:
        return sorted(self._sessions.items(), key=lambda item: shard_order(item[0]))

    def flush(self) -> None:
        try:
            for _, session in self._ordered():
                session.flush()
        except IntegrityError as exc:
            raise translate_integrity_error(exc) from exc

    def commit(self) -> None:
        self.flush()
        committed: list[str] = []
        for shard, session in self._ordered():
            try:
                session.commit()
            except SQLAlchemyError:
                if committed:
                    logger.error(
                        "unit_of_work.partial_commit",
                        extra={"committed_shards": committed, "failed_shard": shard.value},
                    )
                raise
            committed.append(shard.value)

    def rollback(self) -> None:
        for _, session in self._ordered():
            session.rollback()

    def close(self) -> None:
        for _, session in self._ordered():
            session.close()
        self._sessions.clear()


class ShardExecutor:
    """Per-shard engines plus generic CRUD primitives.

    Every primitive touches exactly one shard, resolved statically from the
    collection through the shard map.
    """

    def __init__(self, shard_map: ShardMap, engines: Mapping[Shard, Engine]) -> None:
        missing = [s.value for s in shard_map.shards if s not in engines]
        if missing:
            raise ConfigurationError(f"No engine configured for shards: {', '.join(missing)}")
        self.shard_map = shard_map
        self._engines = dict(engines)

    @property
    def shards(self) -> list[Shard]:
        return self.shard_map.shards

    def resolve(self, collection: Collection) -> Shard:
        return self.shard_map.resolve(collection)

    def engine(self, shard: Shard) -> Engine:
        try:
            return self._engines[shard]
        except KeyError as exc:
            raise ConfigurationError(f"Shard '{shard.value}' is not configured") from exc

    # Session scopes -----------------------------------------------------
    @contextmanager
    def session(self, shard: Shard) -> Iterator[Session]:
        with Session(self.engine(shard), expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise translate_integrity_error(exc) from exc
            except BaseException:
                session.rollback()
                raise

    @contextmanager
    def unit_of_work(self) -> Iterator[UnitOfWork]:
        uow = UnitOfWork(self)
        try:
            yield uow
            uow.commit()
        except BaseException:
            uow.rollback()
            raise
        finally:
            uow.close()

    # Generic CRUD -------------------------------------------------------
    def create(self, collection: Collection, values: Mapping[str, Any]) -> Any:
        with self.unit_of_work() as uow:
            record = model_for(collection)(**values)
            uow.add(record)
        return record

    def read(self, collection: Collection, record_id: str) -> Optional[Any]:
        with self.unit_of_work() as uow:
            return uow.get(collection, record_id)

    def update(
        self, collection: Collection, record_id: str, values: Mapping[str, Any]
    ) -> Optional[Any]:
        with self.unit_of_work() as uow:
            record = uow.get(collection, record_id)
            if record is None:
                return None
            for key, value in values.items():
                if not hasattr(record, key):
                    raise ValidationError(f"Unknown field '{key}' for {collection.value}")
                setattr(record, key, value)
        return record

    def delete(self, collection: Collection, record_id: str) -> bool:
        with self.unit_of_work() as uow:
            record = uow.get(collection, record_id)
            if record is None:
                return False
            uow.remove(record)
        return True

    def query(self, collection: Collection, **filters: Any) -> list[Any]:
        with self.unit_of_work() as uow:
            return uow.query(collection, **filters)

    def insert_row(self, session: Session, collection: Collection, values: Mapping[str, Any]) -> None:
        """Insert one raw row inside a savepoint of ``session``.

        A failure only discards the savepoint, leaving the surrounding
        transaction usable.
        """
        model = model_for(collection)
        row = model(**values).model_dump()
        try:
            with session.begin_nested():
                session.execute(insert(model).values(**row))
        except IntegrityError as exc:
            raise translate_integrity_error(exc) from exc

    # Raw statements -----------------------------------------------------
    def execute(
        self, shard: Shard, statement: str, params: Optional[Mapping[str, Any]] = None
    ) -> list[Any]:
        with self.engine(shard).begin() as conn:
            result = conn.execute(text(statement), dict(params or {}))
            return list(result) if result.returns_rows else []

    def health_check(self) -> dict[str, str]:
        health: dict[str, str] = {}
        for shard in self.shards:
            try:
                with self.engine(shard).connect() as conn:
                    conn.exec_driver_sql("SELECT 1")
                health[shard.value] = "healthy"
            except SQLAlchemyError:
                logger.exception("shard.unhealthy", extra={"shard": shard.value})
                health[shard.value] = "unhealthy"
        return health

    def dispose(self) -> None:
        for engine in self._engines.values():
            engine.dispose()

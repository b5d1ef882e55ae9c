from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlmodel import create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .config import Settings, get_settings
from .executor import ShardExecutor
from .shards import ShardMap


logger = logging.getLogger(__name__)


def _enable_sqlite_transactions(engine: Engine, *, file_backed: bool) -> None:
    # pysqlite never emits BEGIN before DDL; take over so migrations roll back as a whole
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if file_backed:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_engine_for_url(database_url: str) -> Engine:
    connect_args: dict[str, Any] = {}
    url = make_url(database_url)
    is_sqlite = url.get_backend_name() == "sqlite"
    file_backed = is_sqlite and url.database not in (None, "", ":memory:")
    if is_sqlite:
        connect_args = {"check_same_thread": False, "timeout": 30}
        if file_backed:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if is_sqlite:
        _enable_sqlite_transactions(engine, file_backed=file_backed)
    return engine


def build_executor(settings: Optional[Settings] = None) -> ShardExecutor:
    settings = settings or get_settings()
    # migrations and seed batches are written against the default layout
    shard_map = ShardMap.default()
    engines = {
        shard: create_engine_for_url(settings.shard_url(shard.value))
        for shard in shard_map.shards
    }
    logger.info(
        "shards.initialized",
        extra={"shards": [shard.value for shard in shard_map.shards]},
    )
    return ShardExecutor(shard_map, engines)


executor: Optional[ShardExecutor] = None


def init_db(settings: Optional[Settings] = None) -> ShardExecutor:
    global executor
    if executor is None:
        executor = build_executor(settings)
    return executor


def get_executor() -> ShardExecutor:
    return init_db()


def set_executor(new_executor: Optional[ShardExecutor]) -> None:
    global executor
    executor = new_executor

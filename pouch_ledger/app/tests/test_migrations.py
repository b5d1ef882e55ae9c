import pytest

from ..core.errors import ConfigurationError, MigrationError
from ..core.shards import Shard
from ..migrations import AddColumn, Migration, MigrationEngine, load_migrations


def _tables(executor, shard: Shard) -> set[str]:
    rows = executor.execute(shard, "SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row[0] for row in rows}


def _columns(executor, shard: Shard, table: str) -> set[str]:
    return {row[1] for row in executor.execute(shard, f"PRAGMA table_info({table})")}


def test_versions_are_loaded_in_order() -> None:
    migrations = load_migrations()
    assert [m.version for m in migrations] == [1, 2, 3]
    assert migrations[0].shards == list(Shard)
    assert migrations[2].shards == [Shard.TRANSACTIONS]
    assert migrations[2].label == "0003_transaction_activity"


def test_apply_everything_from_scratch(bare_executor) -> None:
    engine = MigrationEngine(bare_executor)

    report = engine.apply_migrations()

    assert report.ok
    assert len(report.applied) == 11
    assert ("transactions", 3) in report.applied
    assert ("users", 3) not in report.applied
    assert {"transactions", "transaction_splits"} <= _tables(bare_executor, Shard.TRANSACTIONS)
    assert "transactions" not in _tables(bare_executor, Shard.USERS)
    assert "deleted_at" in _columns(bare_executor, Shard.TRANSACTIONS, "transactions")

    status = engine.status()
    assert status["transactions"].current_version == 3
    assert status["users"].current_version == 2
    assert status["users"].total == 2
    assert all(not state.pending for state in status.values())
    assert engine.head() == 3


def test_second_run_is_a_no_op(executor) -> None:
    report = MigrationEngine(executor).apply_migrations()

    assert report.applied == []
    assert len(report.skipped) == 11


def test_target_version_stops_early(bare_executor) -> None:
    engine = MigrationEngine(bare_executor)

    report = engine.apply_migrations(target_version=1)

    assert {version for _, version in report.applied} == {1}
    assert engine.status()["accounts"].pending == [2]


def test_shard_selection(bare_executor) -> None:
    engine = MigrationEngine(bare_executor)

    report = engine.apply_migrations(shards=["users"])

    assert report.applied == [("users", 1), ("users", 2)]
    assert engine.current_version(Shard.ACCOUNTS) == 0
    with pytest.raises(ConfigurationError):
        engine.apply_migrations(shards=["ledger"])


def test_rollback_one_step(executor) -> None:
    engine = MigrationEngine(executor)

    report = engine.rollback_one(shards=[Shard.TRANSACTIONS])

    assert report.rolled_back == [("transactions", 3)]
    assert engine.current_version(Shard.TRANSACTIONS) == 2
    assert engine.current_version(Shard.USERS) == 2
    indexes = executor.execute(
        Shard.TRANSACTIONS,
        "SELECT name FROM sqlite_master WHERE type = 'index' AND name LIKE '%_active'",
    )
    assert indexes == []
    # additive columns survive a downgrade
    assert "deleted_at" in _columns(executor, Shard.TRANSACTIONS, "transactions")

    again = engine.apply_migrations()
    assert again.applied == [("transactions", 3)]


def test_rollback_to_empty_drops_tables(executor) -> None:
    engine = MigrationEngine(executor)

    engine.rollback_one(shards=["users"])
    engine.rollback_one(shards=["users"])
    report = engine.rollback_one(shards=["users"])

    assert report.rolled_back == []
    assert report.ok
    assert engine.current_version(Shard.USERS) == 0
    assert _tables(executor, Shard.USERS) == {"schema_migrations"}


def test_failed_unit_rolls_back_and_blocks_only_its_shard(executor) -> None:
    broken = Migration(
        version=4,
        name="broken",
        upgrade={
            Shard.TRANSACTIONS: (
                "CREATE TABLE audit_log (id TEXT PRIMARY KEY)",
                "INSERT INTO no_such_table VALUES (1)",
            ),
        },
    )
    follow_up = Migration(
        version=5,
        name="notes",
        upgrade={
            Shard.TRANSACTIONS: ("CREATE TABLE notes (id TEXT PRIMARY KEY)",),
            Shard.USERS: ("CREATE TABLE notes (id TEXT PRIMARY KEY)",),
        },
    )
    engine = MigrationEngine(executor, load_migrations() + [broken, follow_up])

    report = engine.apply_migrations()

    assert not report.ok
    assert [(e.shard, e.version) for e in report.errors] == [("transactions", 4)]
    assert report.applied == [("users", 5)]
    assert "audit_log" not in _tables(executor, Shard.TRANSACTIONS)
    assert "notes" not in _tables(executor, Shard.TRANSACTIONS)
    assert engine.status()["transactions"].pending == [4, 5]
    with pytest.raises(MigrationError) as excinfo:
        report.raise_for_errors()
    assert excinfo.value.cause is not None


def test_add_column_is_skipped_when_present(executor) -> None:
    repeat = Migration(
        version=4,
        name="repeat_deleted_at",
        upgrade={Shard.TRANSACTIONS: (AddColumn("transactions", "deleted_at", "DATETIME"),)},
    )
    engine = MigrationEngine(executor, load_migrations() + [repeat])

    report = engine.apply_migrations()

    assert report.applied == [("transactions", 4)]


def test_duplicate_versions_are_rejected(bare_executor) -> None:
    first = Migration(version=1, name="a", upgrade={Shard.USERS: ()})
    second = Migration(version=1, name="b", upgrade={Shard.USERS: ()})

    with pytest.raises(ConfigurationError):
        MigrationEngine(bare_executor, [first, second])


def test_rollback_of_unknown_version_is_reported(executor) -> None:
    executor.execute(
        Shard.POUCHES,
        "INSERT INTO schema_migrations (version, name) VALUES (99, 'from_the_future')",
    )
    engine = MigrationEngine(executor)

    report = engine.rollback_one(shards=[Shard.POUCHES, Shard.TRANSFERS])

    assert [(e.shard, e.version) for e in report.errors] == [("pouches", 99)]
    assert report.rolled_back == [("transfers", 2)]


def test_failed_downgrade_keeps_the_version_applied(executor, monkeypatch) -> None:
    audited = Migration(
        version=4,
        name="audit_log",
        upgrade={Shard.TRANSACTIONS: ("CREATE TABLE audit_log (id TEXT PRIMARY KEY)",)},
        downgrade={
            Shard.TRANSACTIONS: (
                "DROP TABLE audit_log",
                "DELETE FROM no_such_table",
            ),
        },
    )
    engine = MigrationEngine(executor, load_migrations() + [audited])
    engine.apply_migrations().raise_for_errors()

    def unreachable(shard):
        raise AssertionError("the failing shard must not be queried again")

    monkeypatch.setattr(engine, "current_version", unreachable)
    report = engine.rollback_one(shards=[Shard.TRANSACTIONS])
    monkeypatch.undo()

    assert [(e.shard, e.version) for e in report.errors] == [("transactions", 4)]
    assert report.rolled_back == []
    assert "audit_log" in _tables(executor, Shard.TRANSACTIONS)
    assert engine.current_version(Shard.TRANSACTIONS) == 4

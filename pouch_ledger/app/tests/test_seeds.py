from datetime import UTC, datetime
from decimal import Decimal

import pytest

from ..core.errors import ConfigurationError, SeedError
from ..core.shards import Collection, Shard
from ..seeds import SeedBatch, SeedLoader, load_batches, record
from ..services import LedgerService


def test_seeded_timestamps_are_utc() -> None:
    stamps = [
        value
        for batch in load_batches()
        for item in batch.records
        for value in item.values.values()
        if isinstance(value, datetime)
    ]

    assert len(stamps) == 11
    assert all(value.tzinfo is UTC for value in stamps)


def test_first_run_executes_every_batch(executor) -> None:
    loader = SeedLoader(executor)

    report = loader.run_seeds()

    assert report.executed == [
        ("users", 1),
        ("accounts", 2),
        ("pouches", 3),
        ("transactions", 4),
        ("transfers", 5),
    ]
    assert report.duplicates == 0
    assert executor.read(Collection.USERS, "demo-user-1").email == "demo@pouchledger.dev"
    assert len(executor.query(Collection.USER_PREFERENCES, user_id="jane-smith-1")) == 4
    assert executor.read(Collection.TRANSFERS, "demo-transfer-1").reference_number == "TXN-001"
    splits = executor.query(Collection.TRANSACTION_SPLITS, transaction_id="demo-txn-7")
    assert sorted(split.id for split in splits) == ["demo-split-1", "demo-split-2"]


def test_rerun_skips_executed_batches(seeded_executor) -> None:
    report = SeedLoader(seeded_executor).run_seeds()

    assert report.executed == []
    assert len(report.skipped) == 5


def test_refresh_reports_existing_rows_as_duplicates(seeded_executor) -> None:
    loader = SeedLoader(seeded_executor)

    report = loader.refresh_seeds("users")

    assert report.executed == [("users", 1)]
    assert report.duplicates == 15
    assert len(seeded_executor.query(Collection.USERS)) == 3


def test_reset_only_forgets_state(seeded_executor) -> None:
    loader = SeedLoader(seeded_executor)

    removed = loader.reset_seeds(Shard.ACCOUNTS)

    assert removed == 1
    assert loader.seed_status()["accounts"].pending == [2]
    assert seeded_executor.read(Collection.ACCOUNTS, "demo-account-1") is not None


def test_single_batch_filter(executor) -> None:
    loader = SeedLoader(executor)

    report = loader.run_seeds(number=1)

    assert report.executed == [("users", 1)]
    status = loader.seed_status()
    assert status["users"].executed == [1]
    assert status["accounts"].pending == [2]


def test_seeded_balances_agree_with_ledger_records(seeded_executor) -> None:
    ledger = LedgerService(seeded_executor)

    result = ledger.verify_balances()

    assert result.discrepancies == []
    assert ledger.get_account("demo-account-1").current_balance == Decimal("6163.94")
    assert ledger.get_account("demo-account-2").current_balance == Decimal("-1156.78")
    assert ledger.get_pouch("demo-pouch-1").balance == Decimal("-85.67")


def test_failing_batch_stops_the_run(executor) -> None:
    bad = SeedBatch(
        number=6,
        name="bad_accounts",
        shards=(Shard.ACCOUNTS,),
        records=(
            record(
                Collection.ACCOUNTS,
                id="ok-account",
                user_id="u-1",
                name="Fine",
                type="cash",
                initial_balance=Decimal("1.00"),
                current_balance=Decimal("1.00"),
            ),
            record(
                Collection.ACCOUNTS,
                id="bad-account",
                user_id="u-1",
                name="Odd",
                type="piggy-bank",
            ),
        ),
    )
    later = SeedBatch(
        number=7,
        name="more_users",
        shards=(Shard.USERS,),
        records=(record(Collection.USERS, id="late-user", email="late@example.com", password_hash="h"),),
    )
    loader = SeedLoader(executor, load_batches() + [bad, later])

    with pytest.raises(SeedError) as excinfo:
        loader.run_seeds()

    assert (excinfo.value.number, excinfo.value.shard) == (6, "accounts")
    assert executor.read(Collection.ACCOUNTS, "ok-account") is None
    assert executor.read(Collection.USERS, "late-user") is None
    assert loader.executed(Shard.ACCOUNTS) == [2]
    assert loader.executed(Shard.USERS) == [1]


def test_batch_must_declare_the_shards_it_writes(executor) -> None:
    stray = SeedBatch(
        number=9,
        name="stray",
        shards=(Shard.USERS,),
        records=(record(Collection.POUCHES, id="p-1", user_id="u-1", name="Fun"),),
    )

    with pytest.raises(ConfigurationError):
        SeedLoader(executor, [stray])

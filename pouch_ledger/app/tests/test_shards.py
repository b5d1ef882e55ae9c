from decimal import Decimal

import pytest
from sqlalchemy import inspect

from ..core.config import Settings
from ..core.db import build_executor
from ..core.errors import ConfigurationError, ConstraintError, ValidationError
from ..core.shards import DEFAULT_SHARD_LAYOUT, Collection, Shard, ShardMap


def test_default_map_binds_every_collection() -> None:
    shard_map = ShardMap.default()

    assert shard_map.resolve(Collection.TRANSACTIONS) is Shard.TRANSACTIONS
    assert shard_map.resolve(Collection.TRANSACTION_SPLITS) is Shard.TRANSACTIONS
    assert shard_map.resolve(Collection.GOALS) is Shard.POUCHES
    assert shard_map.resolve(Collection.ACCOUNT_BALANCES) is Shard.ACCOUNTS
    assert shard_map.resolve(Collection.USER_SESSIONS) is Shard.USERS
    assert shard_map.shards == list(Shard)
    assert set(shard_map.collections(Shard.POUCHES)) == {
        Collection.POUCHES,
        Collection.GOALS,
        Collection.POUCH_SHARES,
    }


def test_bindings_are_read_only() -> None:
    shard_map = ShardMap.default()
    with pytest.raises(TypeError):
        shard_map.bindings[Collection.USERS] = Shard.ACCOUNTS  # type: ignore[index]


@pytest.mark.parametrize(
    "layout",
    [
        {**DEFAULT_SHARD_LAYOUT, "archive": ["users"]},
        {**DEFAULT_SHARD_LAYOUT, "transfers": ["transfers", "ledgers"]},
        {**DEFAULT_SHARD_LAYOUT, "transfers": ["transfers", "users"]},
        {k: v for k, v in DEFAULT_SHARD_LAYOUT.items() if k != "transfers"},
    ],
    ids=["unknown-shard", "unknown-collection", "bound-twice", "unbound"],
)
def test_invalid_layouts_fail_at_construction(layout) -> None:
    with pytest.raises(ConfigurationError):
        ShardMap.from_layout(layout)


def test_layout_is_not_configurable(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("POUCH_LEDGER_SHARD_LAYOUT", '{"accounts": ["goals"]}')
    settings = Settings(shard_url_template=f"sqlite:///{tmp_path}/{{shard}}.db", _env_file=None)

    executor = build_executor(settings)
    try:
        assert executor.resolve(Collection.GOALS) is Shard.POUCHES
        assert dict(executor.shard_map.bindings) == dict(ShardMap.default().bindings)
    finally:
        executor.dispose()


def test_migrations_create_every_collection_on_its_shard(executor) -> None:
    for shard in executor.shards:
        tables = set(inspect(executor.engine(shard)).get_table_names())
        expected = {collection.value for collection in executor.shard_map.collections(shard)}

        assert expected <= tables, shard


def test_shard_url_overrides_win_over_template() -> None:
    settings = Settings(
        shard_url_template="sqlite:///data/{shard}.db",
        shard_urls={"users": "sqlite:///elsewhere/users.db"},
        _env_file=None,
    )
    assert settings.shard_url("users") == "sqlite:///elsewhere/users.db"
    assert settings.shard_url("accounts") == "sqlite:///data/accounts.db"


def test_executor_crud_round_trip(executor) -> None:
    created = executor.create(
        Collection.USERS,
        {"id": "u-1", "email": "a@example.com", "password_hash": "opaque"},
    )
    assert created.id == "u-1"

    fetched = executor.read(Collection.USERS, "u-1")
    assert fetched.email == "a@example.com"

    updated = executor.update(Collection.USERS, "u-1", {"first_name": "Ada"})
    assert updated.first_name == "Ada"
    assert executor.query(Collection.USERS, first_name="Ada")[0].id == "u-1"

    assert executor.delete(Collection.USERS, "u-1") is True
    assert executor.read(Collection.USERS, "u-1") is None


def test_absent_records_are_not_errors(executor) -> None:
    assert executor.read(Collection.ACCOUNTS, "missing") is None
    assert executor.update(Collection.ACCOUNTS, "missing", {"name": "x"}) is None
    assert executor.delete(Collection.ACCOUNTS, "missing") is False
    assert executor.query(Collection.ACCOUNTS, user_id="nobody") == []


def test_unknown_fields_are_rejected(executor) -> None:
    with pytest.raises(ValidationError):
        executor.query(Collection.USERS, nickname="x")

    executor.create(Collection.USERS, {"id": "u-2", "email": "b@example.com", "password_hash": "h"})
    with pytest.raises(ValidationError):
        executor.update(Collection.USERS, "u-2", {"nickname": "x"})


def test_integrity_failures_are_translated(executor) -> None:
    executor.create(Collection.USERS, {"id": "u-1", "email": "dup@example.com", "password_hash": "h"})
    with pytest.raises(ConstraintError):
        executor.create(
            Collection.USERS, {"id": "u-2", "email": "dup@example.com", "password_hash": "h"}
        )

    with pytest.raises(ValidationError):
        executor.create(
            Collection.ACCOUNTS,
            {"user_id": "u-1", "name": "Odd", "type": "piggy-bank", "initial_balance": Decimal("1")},
        )


def test_collections_land_on_their_own_shard(executor) -> None:
    executor.create(Collection.POUCHES, {"id": "p-1", "user_id": "u-1", "name": "Fun"})

    pouch_rows = executor.execute(Shard.POUCHES, "SELECT id FROM pouches")
    assert [row[0] for row in pouch_rows] == ["p-1"]
    tables = executor.execute(
        Shard.ACCOUNTS, "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'pouches'"
    )
    assert tables == []


def test_health_check_reports_every_shard(executor) -> None:
    assert executor.health_check() == {shard.value: "healthy" for shard in Shard}

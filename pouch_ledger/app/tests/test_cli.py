import pytest

from ..cli import build_parser, main
from ..core.errors import ConfigurationError
from ..core.shards import Collection
from ..migrations import MigrationEngine


def test_migrate_then_status(bare_executor, capsys) -> None:
    assert main(["migrate", "--shard", "users"], executor=bare_executor) == 0
    out = capsys.readouterr().out
    assert "applied    users         0001" in out
    assert "applied    users         0002" in out

    assert main(["migrate", "--shard", "users"], executor=bare_executor) == 0
    assert capsys.readouterr().out.strip() == "nothing to do"

    assert main(["status"], executor=bare_executor) == 0
    status = capsys.readouterr().out
    assert "users         version 0002  applied 2/2  pending -" in status
    assert "transactions  version 0000  applied 0/3  pending 0001, 0002, 0003" in status


def test_rollback(executor, capsys) -> None:
    assert main(["rollback", "--shard", "transactions"], executor=executor) == 0

    assert "rolled back transactions 0003" in capsys.readouterr().out


def test_setup_and_seed_commands(bare_executor, capsys) -> None:
    assert main(["setup"], executor=bare_executor) == 0
    out = capsys.readouterr().out
    assert "seeded     transfers     005" in out

    assert main(["seed-status"], executor=bare_executor) == 0
    assert "users         executed 1/1  pending -" in capsys.readouterr().out

    assert main(["seed-reset", "--shard", "users"], executor=bare_executor) == 0
    assert "forgot 1 seed batch record(s) on users" in capsys.readouterr().out

    assert main(["seed", "--shard", "users"], executor=bare_executor) == 0
    assert "15 record(s) already seeded" in capsys.readouterr().out

    assert main(["seed-refresh", "--shard", "users"], executor=bare_executor) == 0
    refreshed = capsys.readouterr().out
    assert "seeded     users         001" in refreshed
    assert "15 record(s) already seeded" in refreshed

    assert main(["verify"], executor=bare_executor) == 0
    assert capsys.readouterr().out.strip() == "all balances consistent"


def test_verify_reports_and_repairs(seeded_executor, capsys) -> None:
    seeded_executor.update(Collection.POUCHES, "demo-pouch-3", {"balance": 0})

    assert main(["verify", "--owner", "demo-user-1"], executor=seeded_executor) == 1
    assert "demo-pouch-3" in capsys.readouterr().out

    assert main(["verify", "--repair"], executor=seeded_executor) == 0
    capsys.readouterr()
    assert main(["verify"], executor=seeded_executor) == 0
    assert "all balances consistent" in capsys.readouterr().out


def test_health(executor, capsys) -> None:
    assert main(["health"], executor=executor) == 0
    assert capsys.readouterr().out.count("healthy") == 5


def test_failed_rollback_is_listed(executor, capsys) -> None:
    executor.execute(
        executor.resolve(Collection.USERS),
        "INSERT INTO schema_migrations (version, name) VALUES (42, 'unknown')",
    )

    assert main(["rollback", "--shard", "users"], executor=executor) == 1
    assert "FAILED     users         0042" in capsys.readouterr().out


def test_ledger_errors_exit_with_two(executor, capsys, monkeypatch) -> None:
    def refuse(self, *args, **kwargs):
        raise ConfigurationError("Shard 'users' is not configured")

    monkeypatch.setattr(MigrationEngine, "apply_migrations", refuse)

    assert main(["migrate"], executor=executor) == 2
    assert "error: Shard 'users' is not configured" in capsys.readouterr().err


def test_unknown_shard_is_rejected_by_the_parser() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["migrate", "--shard", "ledger"])

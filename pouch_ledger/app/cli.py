"""Operator commands for schema migrations, baseline data and balance checks."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import Optional

from .core.config import get_settings
from .core.db import build_executor
from .core.errors import LedgerError, SeedError
from .core.executor import ShardExecutor
from .core.shards import Shard
from .migrations import MigrationEngine, MigrationReport
from .seeds import SeedLoader, SeedReport
from .services import LedgerService


logger = logging.getLogger(__name__)

SHARD_CHOICES = [shard.value for shard in Shard]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pouch-ledger", description=__doc__)
    commands = parser.add_subparsers(dest="command", required=True)

    migrate = commands.add_parser("migrate", help="Apply pending migrations")
    migrate.add_argument("--target", type=int, default=None, help="Highest version to apply")
    migrate.add_argument(
        "--shard", action="append", choices=SHARD_CHOICES, help="Limit to a shard (repeatable)"
    )

    rollback = commands.add_parser("rollback", help="Revert the latest migration on each shard")
    rollback.add_argument("--shard", action="append", choices=SHARD_CHOICES)

    commands.add_parser("status", help="Show migration state per shard")

    seed = commands.add_parser("seed", help="Run pending seed batches")
    seed.add_argument("--shard", action="append", choices=SHARD_CHOICES)
    seed.add_argument("--batch", type=int, default=None, help="Run only this batch number")

    for name, text in (
        ("seed-reset", "Forget executed seed batches on a shard"),
        ("seed-refresh", "Reset and re-run seed batches on a shard"),
    ):
        sub = commands.add_parser(name, help=text)
        sub.add_argument("--shard", required=True, choices=SHARD_CHOICES)

    commands.add_parser("seed-status", help="Show seed batch state per shard")
    commands.add_parser("health", help="Check every shard connection")
    commands.add_parser("setup", help="Migrate every shard, then seed")

    verify = commands.add_parser("verify", help="Check derived balances against ledger records")
    verify.add_argument("--owner", default=None, help="Only check this user's accounts and pouches")
    verify.add_argument("--repair", action="store_true", help="Overwrite wrong balances")
    return parser


def _print_migrations(report: MigrationReport) -> None:
    for shard, version in report.applied:
        print(f"applied    {shard:<13} {version:04d}")
    for shard, version in report.rolled_back:
        print(f"rolled back {shard:<12} {version:04d}")
    for error in report.errors:
        print(f"FAILED     {error.shard:<13} {error.version:04d}  {error.cause}")
    if not (report.applied or report.rolled_back or report.errors):
        print("nothing to do")


def _print_seeds(report: SeedReport) -> None:
    for shard, number in report.executed:
        print(f"seeded     {shard:<13} {number:03d}")
    for shard, number in report.skipped:
        print(f"skipped    {shard:<13} {number:03d}")
    if report.duplicates:
        print(f"{report.duplicates} record(s) already seeded")


def _run_seeds(run, **kwargs) -> int:
    try:
        report = run(**kwargs)
    except SeedError as exc:
        print(f"FAILED     {exc.shard:<13} {exc.number:03d}  {exc.cause}")
        return 1
    _print_seeds(report)
    return 0


def run_command(args: argparse.Namespace, executor: ShardExecutor) -> int:
    if args.command == "migrate":
        report = MigrationEngine(executor).apply_migrations(target_version=args.target, shards=args.shard)
        _print_migrations(report)
        return 0 if report.ok else 1

    if args.command == "rollback":
        report = MigrationEngine(executor).rollback_one(shards=args.shard)
        _print_migrations(report)
        return 0 if report.ok else 1

    if args.command == "status":
        for shard, state in MigrationEngine(executor).status().items():
            pending = ", ".join(f"{v:04d}" for v in state.pending) or "-"
            print(
                f"{shard:<13} version {state.current_version:04d}  "
                f"applied {len(state.applied)}/{state.total}  pending {pending}"
            )
        return 0

    if args.command == "seed":
        return _run_seeds(SeedLoader(executor).run_seeds, shards=args.shard, number=args.batch)

    if args.command == "seed-reset":
        removed = SeedLoader(executor).reset_seeds(args.shard)
        print(f"forgot {removed} seed batch record(s) on {args.shard}")
        return 0

    if args.command == "seed-refresh":
        return _run_seeds(SeedLoader(executor).refresh_seeds, shard=args.shard)

    if args.command == "seed-status":
        for shard, state in SeedLoader(executor).seed_status().items():
            pending = ", ".join(f"{n:03d}" for n in state.pending) or "-"
            print(f"{shard:<13} executed {len(state.executed)}/{state.total}  pending {pending}")
        return 0

    if args.command == "health":
        shards = executor.health_check()
        for shard, state in shards.items():
            print(f"{shard:<13} {state}")
        return 0 if all(state == "healthy" for state in shards.values()) else 1

    if args.command == "setup":
        report = MigrationEngine(executor).apply_migrations()
        _print_migrations(report)
        if not report.ok:
            return 1
        return _run_seeds(SeedLoader(executor).run_seeds)

    if args.command == "verify":
        result = LedgerService(executor).verify_balances(args.owner, repair=args.repair)
        for item in result.discrepancies:
            print(
                f"{item.collection:<9} {item.record_id}  stored {item.stored}  expected {item.expected}"
            )
        if not result.discrepancies:
            print("all balances consistent")
            return 0
        return 0 if result.repaired else 1

    raise ValueError(f"Unknown command {args.command}")


def main(argv: Optional[Sequence[str]] = None, executor: Optional[ShardExecutor] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    owns_executor = executor is None
    try:
        executor = executor or build_executor(settings)
        return run_command(args, executor)
    except LedgerError as exc:
        logger.error("cli.failed", extra={"command": args.command, "error": str(exc)})
        print(f"error: {exc}", file=sys.stderr)
        return 2
    finally:
        if owns_executor and executor is not None:
            executor.dispose()


if __name__ == "__main__":
    sys.exit(main())

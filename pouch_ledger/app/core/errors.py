from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base class for every error raised by the persistence core."""


class ConfigurationError(LedgerError):
    """Raised at startup when the shard layout or a registry is inconsistent."""


class NotFoundError(LedgerError):
    """Raised when a specific record id is absent."""


class AccountNotFoundError(NotFoundError):
    pass


class PouchNotFoundError(NotFoundError):
    pass


class TransactionNotFoundError(NotFoundError):
    pass


class TransferNotFoundError(NotFoundError):
    pass


class GoalNotFoundError(NotFoundError):
    pass


class ValidationError(LedgerError):
    """Raised when input is rejected before any write is attempted."""


class ConstraintError(LedgerError):
    """Raised when a write violates a uniqueness constraint."""


class MigrationError(LedgerError):
    """A migration version failed on one shard; sibling shards are unaffected."""

    def __init__(self, shard: str, version: int, cause: Optional[BaseException] = None) -> None:
        self.shard = shard
        self.version = version
        self.cause = cause
        super().__init__(f"Migration {version} failed on shard '{shard}': {cause}")


class SeedError(LedgerError):
    """A seed batch failed on one shard with something other than a duplicate."""

    def __init__(self, number: int, shard: str, cause: Optional[BaseException] = None) -> None:
        self.number = number
        self.shard = shard
        self.cause = cause
        super().__init__(f"Seed batch {number} failed on shard '{shard}': {cause}")

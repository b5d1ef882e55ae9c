"""Soft-delete timestamp and active-row indexes on the transactions shard."""

from ...core.shards import Shard
from ..base import AddColumn, Migration


migration = Migration(
    version=3,
    name="transaction_activity",
    upgrade={
        Shard.TRANSACTIONS: (
            AddColumn("transactions", "deleted_at", "DATETIME"),
            "CREATE INDEX IF NOT EXISTS idx_transactions_account_active "
            "ON transactions(account_id, is_deleted)",
            "CREATE INDEX IF NOT EXISTS idx_transactions_pouch_active "
            "ON transactions(pouch_id, is_deleted)",
        ),
    },
    downgrade={
        Shard.TRANSACTIONS: (
            "DROP INDEX IF EXISTS idx_transactions_account_active",
            "DROP INDEX IF EXISTS idx_transactions_pouch_active",
        ),
    },
)

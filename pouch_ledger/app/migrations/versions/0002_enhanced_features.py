"""Profile, account, transaction, pouch and transfer enhancements.

SQLite cannot drop columns, so the downgrade only removes the indexes; the
added columns stay and are skipped when the upgrade runs again.
"""

from ...core.shards import Shard
from ..base import AddColumn, Migration


migration = Migration(
    version=2,
    name="enhanced_features",
    upgrade={
        Shard.USERS: (
            AddColumn("users", "phone", "TEXT"),
            AddColumn("users", "avatar_url", "TEXT"),
            AddColumn("users", "timezone", "TEXT DEFAULT 'UTC'"),
            AddColumn("users", "is_active", "BOOLEAN DEFAULT 1"),
            AddColumn("users", "last_login", "DATETIME"),
            AddColumn("user_preferences", "category", "TEXT DEFAULT 'general'"),
            AddColumn("user_preferences", "is_public", "BOOLEAN DEFAULT 0"),
            "CREATE INDEX IF NOT EXISTS idx_users_phone ON users(phone)",
            "CREATE INDEX IF NOT EXISTS idx_users_is_active ON users(is_active)",
            "CREATE INDEX IF NOT EXISTS idx_users_last_login ON users(last_login)",
            "CREATE INDEX IF NOT EXISTS idx_user_preferences_category ON user_preferences(category)",
        ),
        Shard.ACCOUNTS: (
            AddColumn("accounts", "account_number", "TEXT"),
            AddColumn("accounts", "bank_name", "TEXT"),
            AddColumn("accounts", "interest_rate", "DECIMAL(5,4) DEFAULT 0"),
            AddColumn("accounts", "credit_limit", "DECIMAL(15,2)"),
            AddColumn("accounts", "last_transaction_date", "DATETIME"),
            AddColumn(
                "account_balances",
                "balance_type",
                "TEXT DEFAULT 'actual' CHECK (balance_type IN ('actual', 'available', 'pending'))",
            ),
            AddColumn("account_balances", "notes", "TEXT"),
            "CREATE INDEX IF NOT EXISTS idx_accounts_account_number ON accounts(account_number)",
            "CREATE INDEX IF NOT EXISTS idx_accounts_last_transaction ON accounts(last_transaction_date)",
            "CREATE INDEX IF NOT EXISTS idx_account_balances_type ON account_balances(balance_type)",
        ),
        Shard.TRANSACTIONS: (
            AddColumn("transactions", "reference_number", "TEXT"),
            AddColumn("transactions", "merchant_name", "TEXT"),
            AddColumn("transactions", "payment_method", "TEXT"),
            AddColumn("transactions", "notes", "TEXT"),
            AddColumn("transactions", "is_verified", "BOOLEAN DEFAULT 0"),
            AddColumn("transaction_splits", "percentage", "DECIMAL(5,2)"),
            "CREATE INDEX IF NOT EXISTS idx_transactions_reference ON transactions(reference_number)",
            "CREATE INDEX IF NOT EXISTS idx_transactions_merchant ON transactions(merchant_name)",
            "CREATE INDEX IF NOT EXISTS idx_transactions_is_verified ON transactions(is_verified)",
        ),
        Shard.POUCHES: (
            AddColumn("pouches", "parent_pouch_id", "TEXT"),
            AddColumn("pouches", "sort_order", "INTEGER DEFAULT 0"),
            AddColumn("pouches", "alert_threshold", "DECIMAL(5,2) DEFAULT 80.0"),
            AddColumn("goals", "category", "TEXT"),
            AddColumn("goals", "notes", "TEXT"),
            AddColumn("pouch_shares", "permissions", "TEXT DEFAULT 'read,write'"),
            "CREATE INDEX IF NOT EXISTS idx_pouches_parent ON pouches(parent_pouch_id)",
            "CREATE INDEX IF NOT EXISTS idx_pouches_sort_order ON pouches(sort_order)",
            "CREATE INDEX IF NOT EXISTS idx_goals_category ON goals(category)",
        ),
        Shard.TRANSFERS: (
            AddColumn(
                "transfers",
                "transfer_type",
                "TEXT DEFAULT 'internal' CHECK (transfer_type IN ('internal', 'external', 'wire', 'ach'))",
            ),
            AddColumn("transfers", "scheduled_date", "DATE"),
            AddColumn("transfers", "confirmation_code", "TEXT"),
            AddColumn("transfers", "notes", "TEXT"),
            "CREATE INDEX IF NOT EXISTS idx_transfers_type ON transfers(transfer_type)",
            "CREATE INDEX IF NOT EXISTS idx_transfers_scheduled_date ON transfers(scheduled_date)",
            "CREATE INDEX IF NOT EXISTS idx_transfers_confirmation ON transfers(confirmation_code)",
        ),
    },
    downgrade={
        Shard.USERS: (
            "DROP INDEX IF EXISTS idx_users_phone",
            "DROP INDEX IF EXISTS idx_users_is_active",
            "DROP INDEX IF EXISTS idx_users_last_login",
            "DROP INDEX IF EXISTS idx_user_preferences_category",
        ),
        Shard.ACCOUNTS: (
            "DROP INDEX IF EXISTS idx_accounts_account_number",
            "DROP INDEX IF EXISTS idx_accounts_last_transaction",
            "DROP INDEX IF EXISTS idx_account_balances_type",
        ),
        Shard.TRANSACTIONS: (
            "DROP INDEX IF EXISTS idx_transactions_reference",
            "DROP INDEX IF EXISTS idx_transactions_merchant",
            "DROP INDEX IF EXISTS idx_transactions_is_verified",
        ),
        Shard.POUCHES: (
            "DROP INDEX IF EXISTS idx_pouches_parent",
            "DROP INDEX IF EXISTS idx_pouches_sort_order",
            "DROP INDEX IF EXISTS idx_goals_category",
        ),
        Shard.TRANSFERS: (
            "DROP INDEX IF EXISTS idx_transfers_type",
            "DROP INDEX IF EXISTS idx_transfers_scheduled_date",
            "DROP INDEX IF EXISTS idx_transfers_confirmation",
        ),
    },
)

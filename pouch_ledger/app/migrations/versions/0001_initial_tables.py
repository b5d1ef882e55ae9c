"""Initial tables for every shard."""

from ...core.shards import Shard
from ..base import Migration


USERS = (
    """
    CREATE TABLE users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        first_name TEXT,
        last_name TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX idx_users_email ON users(email)",
    """
    CREATE TABLE user_sessions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        token TEXT NOT NULL,
        expires_at DATETIME NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX idx_user_sessions_token ON user_sessions(token)",
    "CREATE INDEX idx_user_sessions_user_id ON user_sessions(user_id)",
    """
    CREATE TABLE user_preferences (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        key TEXT NOT NULL,
        value TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
        UNIQUE (user_id, key)
    )
    """,
    "CREATE INDEX idx_user_preferences_user_id ON user_preferences(user_id)",
)

ACCOUNTS = (
    """
    CREATE TABLE accounts (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('cash', 'savings', 'credit', 'loan', 'crypto', 'investment')),
        currency TEXT NOT NULL DEFAULT 'USD',
        initial_balance DECIMAL(15,2) DEFAULT 0,
        current_balance DECIMAL(15,2) DEFAULT 0,
        is_active BOOLEAN DEFAULT 1,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX idx_accounts_user_id ON accounts(user_id)",
    "CREATE INDEX idx_accounts_type ON accounts(type)",
    """
    CREATE TABLE account_balances (
        id TEXT PRIMARY KEY,
        account_id TEXT NOT NULL,
        balance DECIMAL(15,2) NOT NULL,
        balance_date DATE NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (account_id) REFERENCES accounts(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX idx_account_balances_account_id ON account_balances(account_id)",
    "CREATE INDEX idx_account_balances_date ON account_balances(balance_date)",
)

TRANSACTIONS = (
    """
    CREATE TABLE transactions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        account_id TEXT NOT NULL,
        amount DECIMAL(15,2) NOT NULL CHECK (amount > 0),
        currency TEXT NOT NULL DEFAULT 'USD',
        type TEXT NOT NULL CHECK (type IN ('INCOME', 'EXPENSE')),
        pouch_id TEXT,
        description TEXT,
        category TEXT,
        tags TEXT,
        transaction_date DATETIME NOT NULL,
        is_recurring BOOLEAN DEFAULT 0,
        recurring_pattern TEXT,
        is_deleted BOOLEAN DEFAULT 0,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX idx_transactions_user_id ON transactions(user_id)",
    "CREATE INDEX idx_transactions_account_id ON transactions(account_id)",
    "CREATE INDEX idx_transactions_pouch_id ON transactions(pouch_id)",
    "CREATE INDEX idx_transactions_date ON transactions(transaction_date)",
    "CREATE INDEX idx_transactions_category ON transactions(category)",
    """
    CREATE TABLE transaction_splits (
        id TEXT PRIMARY KEY,
        transaction_id TEXT NOT NULL,
        pouch_id TEXT NOT NULL,
        amount DECIMAL(15,2) NOT NULL CHECK (amount > 0),
        description TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (transaction_id) REFERENCES transactions(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX idx_transaction_splits_transaction_id ON transaction_splits(transaction_id)",
    "CREATE INDEX idx_transaction_splits_pouch_id ON transaction_splits(pouch_id)",
)

POUCHES = (
    """
    CREATE TABLE pouches (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT,
        type TEXT DEFAULT 'private' CHECK (type IN ('private', 'shared')),
        budget_amount DECIMAL(15,2),
        budget_period TEXT CHECK (budget_period IN ('weekly', 'monthly', 'yearly')),
        color TEXT,
        icon TEXT,
        balance DECIMAL(15,2) NOT NULL DEFAULT 0,
        is_active BOOLEAN DEFAULT 1,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX idx_pouches_user_id ON pouches(user_id)",
    "CREATE INDEX idx_pouches_type ON pouches(type)",
    """
    CREATE TABLE goals (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        pouch_id TEXT,
        title TEXT NOT NULL,
        description TEXT,
        target_amount DECIMAL(15,2) NOT NULL,
        current_amount DECIMAL(15,2) DEFAULT 0,
        target_date DATE,
        monthly_contribution DECIMAL(15,2) DEFAULT 0,
        priority INTEGER DEFAULT 1,
        is_achieved BOOLEAN DEFAULT 0,
        is_active BOOLEAN DEFAULT 1,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (pouch_id) REFERENCES pouches(id) ON DELETE SET NULL
    )
    """,
    "CREATE INDEX idx_goals_user_id ON goals(user_id)",
    "CREATE INDEX idx_goals_pouch_id ON goals(pouch_id)",
    "CREATE INDEX idx_goals_target_date ON goals(target_date)",
    """
    CREATE TABLE pouch_shares (
        id TEXT PRIMARY KEY,
        pouch_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        role TEXT NOT NULL CHECK (role IN ('owner', 'editor', 'viewer')),
        invited_by TEXT,
        invited_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        accepted_at DATETIME,
        is_active BOOLEAN DEFAULT 1,
        FOREIGN KEY (pouch_id) REFERENCES pouches(id) ON DELETE CASCADE,
        UNIQUE (pouch_id, user_id)
    )
    """,
    "CREATE INDEX idx_pouch_shares_pouch_id ON pouch_shares(pouch_id)",
    "CREATE INDEX idx_pouch_shares_user_id ON pouch_shares(user_id)",
)

TRANSFERS = (
    """
    CREATE TABLE transfers (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        from_account_id TEXT NOT NULL,
        to_account_id TEXT NOT NULL,
        amount DECIMAL(15,2) NOT NULL CHECK (amount > 0),
        currency TEXT NOT NULL DEFAULT 'USD',
        exchange_rate DECIMAL(10,6) DEFAULT 1.0,
        fee DECIMAL(15,2) DEFAULT 0,
        description TEXT,
        transfer_date DATETIME NOT NULL,
        status TEXT DEFAULT 'completed' CHECK (status IN ('pending', 'completed', 'failed', 'cancelled')),
        reference_number TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX idx_transfers_user_id ON transfers(user_id)",
    "CREATE INDEX idx_transfers_from_account ON transfers(from_account_id)",
    "CREATE INDEX idx_transfers_to_account ON transfers(to_account_id)",
    "CREATE INDEX idx_transfers_date ON transfers(transfer_date)",
    "CREATE INDEX idx_transfers_status ON transfers(status)",
)


migration = Migration(
    version=1,
    name="initial_tables",
    upgrade={
        Shard.USERS: USERS,
        Shard.ACCOUNTS: ACCOUNTS,
        Shard.TRANSACTIONS: TRANSACTIONS,
        Shard.POUCHES: POUCHES,
        Shard.TRANSFERS: TRANSFERS,
    },
    downgrade={
        Shard.USERS: (
            "DROP TABLE IF EXISTS user_preferences",
            "DROP TABLE IF EXISTS user_sessions",
            "DROP TABLE IF EXISTS users",
        ),
        Shard.ACCOUNTS: (
            "DROP TABLE IF EXISTS account_balances",
            "DROP TABLE IF EXISTS accounts",
        ),
        Shard.TRANSACTIONS: (
            "DROP TABLE IF EXISTS transaction_splits",
            "DROP TABLE IF EXISTS transactions",
        ),
        Shard.POUCHES: (
            "DROP TABLE IF EXISTS pouch_shares",
            "DROP TABLE IF EXISTS goals",
            "DROP TABLE IF EXISTS pouches",
        ),
        Shard.TRANSFERS: ("DROP TABLE IF EXISTS transfers",),
    },
)

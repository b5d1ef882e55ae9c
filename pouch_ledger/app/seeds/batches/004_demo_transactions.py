from decimal import Decimal

from ...core.shards import Collection, Shard
from ..loader import SeedBatch, record, seeded_at


TRANSACTIONS = (
    ("demo-txn-1", "demo-account-1", "EXPENSE", "45.67", "Grocery Store Purchase", "Groceries", "demo-pouch-1", seeded_at(2026, 1, 13, 18, 30)),
    ("demo-txn-2", "demo-account-1", "EXPENSE", "12.50", "Coffee Shop", "Entertainment", "demo-pouch-2", seeded_at(2026, 1, 14, 8, 15)),
    ("demo-txn-3", "demo-account-1", "EXPENSE", "85.00", "Gas Station Fill-up", "Transportation", "demo-pouch-3", seeded_at(2026, 1, 12, 17, 0)),
    ("demo-txn-4", "demo-account-1", "INCOME", "2500.00", "Monthly Salary", "Income", None, seeded_at(2026, 1, 10, 9, 0)),
    ("demo-txn-5", "demo-account-2", "EXPENSE", "156.78", "Online Shopping", "Shopping", "demo-pouch-2", seeded_at(2026, 1, 11, 20, 45)),
    ("demo-txn-6", "demo-account-1", "EXPENSE", "25.00", "Movie Theater", "Entertainment", "demo-pouch-2", seeded_at(2026, 1, 9, 21, 0)),
    ("demo-txn-7", "demo-account-1", "EXPENSE", "67.89", "Restaurant Dinner", "Food & Dining", None, seeded_at(2026, 1, 8, 19, 30)),
)

SPLITS = (
    ("demo-split-1", "demo-txn-7", "demo-pouch-1", "40.00", "Dinner share"),
    ("demo-split-2", "demo-txn-7", "demo-pouch-2", "27.89", "Drinks"),
)

records = [
    record(
        Collection.TRANSACTIONS,
        id=txn_id,
        user_id="demo-user-1",
        account_id=account_id,
        amount=Decimal(amount),
        currency="USD",
        type=tx_type,
        pouch_id=pouch_id,
        description=description,
        category=category,
        transaction_date=when,
    )
    for txn_id, account_id, tx_type, amount, description, category, pouch_id, when in TRANSACTIONS
]
records += [
    record(
        Collection.TRANSACTION_SPLITS,
        id=split_id,
        transaction_id=txn_id,
        pouch_id=pouch_id,
        amount=Decimal(amount),
        description=description,
    )
    for split_id, txn_id, pouch_id, amount, description in SPLITS
]

batch = SeedBatch(
    number=4, name="demo_transactions", shards=(Shard.TRANSACTIONS,), records=tuple(records)
)

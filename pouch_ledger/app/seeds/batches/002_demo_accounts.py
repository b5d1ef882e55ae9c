"""Demo accounts.

``current_balance`` already includes the seeded transactions (batch 4) and
transfers (batch 5).
"""

from datetime import date
from decimal import Decimal

from ...core.shards import Collection, Shard
from ..loader import SeedBatch, record


SEEDED_ON = date(2026, 1, 15)

ACCOUNTS = (
    ("demo-account-1", "Main Checking", "savings", "5000.00", "6163.94"),
    ("demo-account-2", "Credit Card", "credit", "-1200.00", "-1156.78"),
    ("demo-account-3", "Emergency Fund", "savings", "10000.00", "10800.00"),
    ("demo-account-4", "Cash Wallet", "cash", "200.00", "300.00"),
)

records = []
for account_id, name, account_type, initial, current in ACCOUNTS:
    records.append(
        record(
            Collection.ACCOUNTS,
            id=account_id,
            user_id="demo-user-1",
            name=name,
            type=account_type,
            currency="USD",
            initial_balance=Decimal(initial),
            current_balance=Decimal(current),
        )
    )
    records.append(
        record(
            Collection.ACCOUNT_BALANCES,
            id=f"{account_id}-balance-1",
            account_id=account_id,
            balance=Decimal(current),
            balance_date=SEEDED_ON,
        )
    )

batch = SeedBatch(number=2, name="demo_accounts", shards=(Shard.ACCOUNTS,), records=tuple(records))

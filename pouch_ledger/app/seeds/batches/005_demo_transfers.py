from decimal import Decimal

from ...core.shards import Collection, Shard
from ..loader import SeedBatch, record, seeded_at


TRANSFERS = (
    ("demo-transfer-1", "demo-account-1", "demo-account-3", "500.00", "Monthly Emergency Fund Contribution", seeded_at(2026, 1, 5, 10, 0), "TXN-001"),
    ("demo-transfer-2", "demo-account-1", "demo-account-4", "100.00", "Cash Withdrawal for Weekend", seeded_at(2026, 1, 7, 12, 0), "TXN-002"),
    ("demo-transfer-3", "demo-account-1", "demo-account-2", "200.00", "Credit Card Payment", seeded_at(2025, 12, 31, 9, 0), "TXN-003"),
    ("demo-transfer-4", "demo-account-1", "demo-account-3", "300.00", "Additional Emergency Savings", seeded_at(2025, 12, 26, 9, 0), "TXN-004"),
)

batch = SeedBatch(
    number=5,
    name="demo_transfers",
    shards=(Shard.TRANSFERS,),
    records=tuple(
        record(
            Collection.TRANSFERS,
            id=transfer_id,
            user_id="demo-user-1",
            from_account_id=source,
            to_account_id=dest,
            amount=Decimal(amount),
            currency="USD",
            description=description,
            transfer_date=when,
            status="completed",
            reference_number=reference,
        )
        for transfer_id, source, dest, amount, description, when, reference in TRANSFERS
    ),
)

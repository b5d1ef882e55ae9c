from datetime import date
from decimal import Decimal

from ...core.shards import Collection, Shard
from ...services.goals import seeded_contribution
from ..loader import SeedBatch, record


POUCHES = (
    ("demo-pouch-1", "Groceries", "Monthly grocery budget", "private", "800.00", "monthly", "#4CAF50", "basket", "-85.67"),
    ("demo-pouch-2", "Entertainment", "Movies, games, and fun activities", "private", "300.00", "monthly", "#FF9800", "game-controller", "-222.17"),
    ("demo-pouch-3", "Transportation", "Gas, public transport, car maintenance", "private", "400.00", "monthly", "#2196F3", "car", "-85.00"),
    ("demo-pouch-4", "Family Vacation", "Shared vacation fund", "shared", "5000.00", "yearly", "#E91E63", "airplane", "0.00"),
)

GOALS = (
    ("demo-goal-1", "demo-pouch-4", "Summer Trip", "Family vacation to Europe", "5000.00", "1200.00", date(2027, 7, 1), 1),
    ("demo-goal-2", "demo-pouch-2", "Gaming Setup", "New gaming console and accessories", "800.00", "250.00", date(2027, 3, 1), 2),
)

records = []
for pouch_id, name, description, visibility, budget, period, color, icon, balance in POUCHES:
    records.append(
        record(
            Collection.POUCHES,
            id=pouch_id,
            user_id="demo-user-1",
            name=name,
            description=description,
            type=visibility,
            budget_amount=Decimal(budget),
            budget_period=period,
            color=color,
            icon=icon,
            balance=Decimal(balance),
        )
    )

for goal_id, pouch_id, title, description, target, current, target_date, priority in GOALS:
    records.append(
        record(
            Collection.GOALS,
            id=goal_id,
            user_id="demo-user-1",
            pouch_id=pouch_id,
            title=title,
            description=description,
            target_amount=Decimal(target),
            current_amount=Decimal(current),
            target_date=target_date,
            monthly_contribution=seeded_contribution(target, current, target_date),
            priority=priority,
        )
    )

records.append(
    record(
        Collection.POUCH_SHARES,
        id="demo-share-1",
        pouch_id="demo-pouch-4",
        user_id="jane-smith-1",
        role="editor",
        invited_by="demo-user-1",
    )
)

batch = SeedBatch(number=3, name="demo_pouches", shards=(Shard.POUCHES,), records=tuple(records))

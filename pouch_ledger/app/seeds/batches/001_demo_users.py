from ...core.shards import Collection, Shard
from ..loader import SeedBatch, record


USERS = (
    ("demo-user-1", "demo@pouchledger.dev", "Demo", "User"),
    ("john-doe-1", "john.doe@example.com", "John", "Doe"),
    ("jane-smith-1", "jane.smith@example.com", "Jane", "Smith"),
)

PREFERENCES = (
    ("currency", "USD"),
    ("theme", "light"),
    ("notifications", "true"),
    ("language", "en"),
)

records = []
for user_id, email, first_name, last_name in USERS:
    records.append(
        record(
            Collection.USERS,
            id=user_id,
            email=email,
            # opaque placeholder; credentials are issued elsewhere
            password_hash=f"seeded-hash:{user_id}",
            first_name=first_name,
            last_name=last_name,
        )
    )
    for key, value in PREFERENCES:
        records.append(
            record(
                Collection.USER_PREFERENCES,
                id=f"{user_id}-pref-{key}",
                user_id=user_id,
                key=key,
                value=value,
            )
        )

batch = SeedBatch(number=1, name="demo_users", shards=(Shard.USERS,), records=tuple(records))

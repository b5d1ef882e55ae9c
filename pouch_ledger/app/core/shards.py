from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from .errors import ConfigurationError


class Shard(str, Enum):
    USERS = "users"
    ACCOUNTS = "accounts"
    TRANSACTIONS = "transactions"
    POUCHES = "pouches"
    TRANSFERS = "transfers"


class Collection(str, Enum):
    USERS = "users"
    USER_SESSIONS = "user_sessions"
    USER_PREFERENCES = "user_preferences"
    ACCOUNTS = "accounts"
    ACCOUNT_BALANCES = "account_balances"
    TRANSACTIONS = "transactions"
    TRANSACTION_SPLITS = "transaction_splits"
    POUCHES = "pouches"
    GOALS = "goals"
    POUCH_SHARES = "pouch_shares"
    TRANSFERS = "transfers"


DEFAULT_SHARD_LAYOUT: dict[str, list[str]] = {
    Shard.USERS.value: ["users", "user_sessions", "user_preferences"],
    Shard.ACCOUNTS.value: ["accounts", "account_balances"],
    Shard.TRANSACTIONS.value: ["transactions", "transaction_splits"],
    Shard.POUCHES.value: ["pouches", "goals", "pouch_shares"],
    Shard.TRANSFERS.value: ["transfers"],
}


def shard_order(shard: Shard) -> int:
    return list(Shard).index(shard)


@dataclass(frozen=True)
class ShardMap:
    """Immutable collection -> shard binding, validated once at startup."""

    bindings: Mapping[Collection, Shard] = field(default_factory=dict)

    @classmethod
    def from_layout(cls, layout: Mapping[str, Sequence[str]]) -> "ShardMap":
        bindings: dict[Collection, Shard] = {}
        for shard_name, collection_names in layout.items():
            try:
                shard = Shard(shard_name)
            except ValueError as exc:
                raise ConfigurationError(f"Unknown shard '{shard_name}'") from exc
            for name in collection_names:
                try:
                    collection = Collection(name)
                except ValueError as exc:
                    raise ConfigurationError(
                        f"Unknown collection '{name}' in shard '{shard_name}'"
                    ) from exc
                if collection in bindings:
                    raise ConfigurationError(
                        f"Collection '{name}' is bound to both "
                        f"'{bindings[collection].value}' and '{shard_name}'"
                    )
                bindings[collection] = shard

        unbound = [c.value for c in Collection if c not in bindings]
        if unbound:
            raise ConfigurationError(f"Collections without a shard: {', '.join(unbound)}")
        return cls(bindings=MappingProxyType(bindings))

    @classmethod
    def default(cls) -> "ShardMap":
        return cls.from_layout(DEFAULT_SHARD_LAYOUT)

    def resolve(self, collection: Collection) -> Shard:
        return self.bindings[collection]

    def collections(self, shard: Shard) -> list[Collection]:
        return [c for c, s in self.bindings.items() if s is shard]

    @property
    def shards(self) -> list[Shard]:
        present = set(self.bindings.values())
        return [s for s in Shard if s in present]

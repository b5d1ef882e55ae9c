from __future__ import annotations
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional
from uuid import uuid4
from sqlmodel import Field, SQLModel

from ..core.shards import Collection


def _new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


# users shard

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=_new_id, primary_key=True)
    email: str = Field(unique=True)
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

class UserSession(SQLModel, table=True):
    __tablename__ = "user_sessions"
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    token: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=_now)

class UserPreference(SQLModel, table=True):
    __tablename__ = "user_preferences"
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    key: str
    value: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

# accounts shard

class Account(SQLModel, table=True):
    __tablename__ = "accounts"
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    type: str
    currency: str = "USD"
    initial_balance: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    current_balance: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    is_active: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

class AccountBalance(SQLModel, table=True):
    __tablename__ = "account_balances"
    id: str = Field(default_factory=_new_id, primary_key=True)
    account_id: str = Field(foreign_key="accounts.id", index=True)
    balance: Decimal = Field(max_digits=15, decimal_places=2)
    balance_date: date = Field(default_factory=date.today)
    created_at: datetime = Field(default_factory=_now)

# transactions shard

class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    account_id: str = Field(index=True)
    amount: Decimal = Field(max_digits=15, decimal_places=2)
    currency: str = "USD"
    type: str
    pouch_id: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    transaction_date: datetime = Field(default_factory=_now)
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

class TransactionSplit(SQLModel, table=True):
    __tablename__ = "transaction_splits"
    id: str = Field(default_factory=_new_id, primary_key=True)
    transaction_id: str = Field(foreign_key="transactions.id", index=True)
    pouch_id: str = Field(index=True)
    amount: Decimal = Field(max_digits=15, decimal_places=2)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)

# pouches shard

class Pouch(SQLModel, table=True):
    __tablename__ = "pouches"
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    description: Optional[str] = None
    type: str = "private"
    budget_amount: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=2)
    budget_period: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    balance: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    is_active: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

class Goal(SQLModel, table=True):
    __tablename__ = "goals"
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    pouch_id: Optional[str] = Field(default=None, foreign_key="pouches.id")
    title: str
    description: Optional[str] = None
    target_amount: Decimal = Field(max_digits=15, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    target_date: date
    monthly_contribution: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    priority: int = 1
    is_achieved: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

class PouchShare(SQLModel, table=True):
    __tablename__ = "pouch_shares"
    id: str = Field(default_factory=_new_id, primary_key=True)
    pouch_id: str = Field(foreign_key="pouches.id", index=True)
    user_id: str = Field(index=True)
    role: str
    invited_by: Optional[str] = None
    invited_at: datetime = Field(default_factory=_now)
    accepted_at: Optional[datetime] = None
    is_active: bool = True

# transfers shard

class Transfer(SQLModel, table=True):
    __tablename__ = "transfers"
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    from_account_id: str = Field(index=True)
    to_account_id: str = Field(index=True)
    amount: Decimal = Field(max_digits=15, decimal_places=2)
    currency: str = "USD"
    description: Optional[str] = None
    transfer_date: datetime = Field(default_factory=_now)
    status: str = "completed"
    reference_number: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


COLLECTION_MODELS: dict[Collection, type[SQLModel]] = {
    Collection.USERS: User,
    Collection.USER_SESSIONS: UserSession,
    Collection.USER_PREFERENCES: UserPreference,
    Collection.ACCOUNTS: Account,
    Collection.ACCOUNT_BALANCES: AccountBalance,
    Collection.TRANSACTIONS: Transaction,
    Collection.TRANSACTION_SPLITS: TransactionSplit,
    Collection.POUCHES: Pouch,
    Collection.GOALS: Goal,
    Collection.POUCH_SHARES: PouchShare,
    Collection.TRANSFERS: Transfer,
}

MODEL_COLLECTIONS: dict[type[SQLModel], Collection] = {
    model: collection for collection, model in COLLECTION_MODELS.items()
}

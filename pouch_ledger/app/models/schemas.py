from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransferStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


AccountType = Literal["cash", "savings", "credit", "loan", "crypto", "investment"]
PouchVisibility = Literal["private", "shared"]
BudgetPeriod = Literal["weekly", "monthly", "yearly"]
ShareRole = Literal["owner", "editor", "viewer"]

Money = Decimal


# Accounts ---------------------------------------------------------------

class AccountCreate(BaseModel):
    user_id: str = Field(..., min_length=1, description="Owner of the account")
    name: str = Field(..., min_length=1)
    type: AccountType
    currency: str = Field(default="USD", min_length=3, max_length=3)
    initial_balance: Money = Field(default=Decimal("0"), max_digits=15, decimal_places=2)

class AccountResponse(BaseModel):
    id: str
    user_id: str
    name: str
    type: str
    currency: str
    initial_balance: Money
    current_balance: Money
    is_active: bool
    created_at: datetime

class BalanceHistoryEntry(BaseModel):
    id: str
    account_id: str
    balance: Money
    balance_date: date
    created_at: datetime


# Pouches ----------------------------------------------------------------

class PouchCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: PouchVisibility = "private"
    budget_amount: Optional[Money] = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    budget_period: Optional[BudgetPeriod] = None
    color: Optional[str] = None
    icon: Optional[str] = None

class PouchResponse(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    type: str
    budget_amount: Optional[Money] = None
    budget_period: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    balance: Money
    is_active: bool

class PouchShareCreate(BaseModel):
    user_id: str = Field(..., min_length=1, description="User the pouch is shared with")
    role: ShareRole = "viewer"
    invited_by: Optional[str] = None

class PouchShareResponse(BaseModel):
    id: str
    pouch_id: str
    user_id: str
    role: str
    invited_by: Optional[str] = None
    invited_at: datetime
    is_active: bool


# Transactions -----------------------------------------------------------

class SplitInput(BaseModel):
    id: Optional[str] = Field(default=None, description="Existing split to keep or change")
    pouch_id: str
    amount: Money = Field(..., gt=0, max_digits=15, decimal_places=2)
    description: Optional[str] = None

class SplitResponse(BaseModel):
    id: str
    pouch_id: str
    amount: Money
    description: Optional[str] = None

class TransactionCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    account_id: str
    amount: Money = Field(..., gt=0, max_digits=15, decimal_places=2)
    type: TransactionType
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    transaction_date: Optional[datetime] = None
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    pouch_id: Optional[str] = None
    splits: list[SplitInput] = Field(default_factory=list)

class TransactionUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    account_id: Optional[str] = None
    amount: Optional[Money] = Field(default=None, gt=0, max_digits=15, decimal_places=2)
    type: Optional[TransactionType] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    transaction_date: Optional[datetime] = None
    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[str] = None
    pouch_id: Optional[str] = None
    splits: Optional[list[SplitInput]] = None

class TransactionResponse(BaseModel):
    id: str
    user_id: str
    account_id: str
    amount: Money
    currency: str
    type: TransactionType
    pouch_id: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    transaction_date: datetime
    is_recurring: bool
    recurring_pattern: Optional[str] = None
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    splits: list[SplitResponse] = Field(default_factory=list)

class TransactionPage(BaseModel):
    items: list[TransactionResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


# Transfers --------------------------------------------------------------

class TransferCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    from_account_id: str
    to_account_id: str
    amount: Money = Field(..., gt=0, max_digits=15, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    description: Optional[str] = None
    transfer_date: Optional[datetime] = None
    reference_number: Optional[str] = None

class TransferResponse(BaseModel):
    id: str
    user_id: str
    from_account_id: str
    to_account_id: str
    amount: Money
    currency: str
    description: Optional[str] = None
    transfer_date: datetime
    status: TransferStatus
    reference_number: Optional[str] = None


# Goals ------------------------------------------------------------------

class GoalCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    target_amount: Money = Field(..., gt=0, max_digits=15, decimal_places=2)
    current_amount: Money = Field(default=Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    target_date: date
    pouch_id: Optional[str] = None
    description: Optional[str] = None
    priority: int = Field(default=1, ge=1)

class GoalUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    target_amount: Optional[Money] = Field(default=None, gt=0, max_digits=15, decimal_places=2)
    current_amount: Optional[Money] = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    target_date: Optional[date] = None
    pouch_id: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None

class GoalResponse(BaseModel):
    id: str
    user_id: str
    pouch_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    target_amount: Money
    current_amount: Money
    target_date: date
    monthly_contribution: Money
    priority: int
    is_achieved: bool
    is_active: bool
    progress_percentage: Decimal
    is_behind_schedule: bool
    days_remaining: int


# Maintenance ------------------------------------------------------------

class BalanceDiscrepancy(BaseModel):
    collection: str
    record_id: str
    stored: Money
    expected: Money

class VerificationReport(BaseModel):
    discrepancies: list[BalanceDiscrepancy]
    repaired: bool

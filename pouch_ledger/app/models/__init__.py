from .db import Account as AccountModel
from .db import AccountBalance as AccountBalanceModel
from .db import Goal as GoalModel
from .db import Pouch as PouchModel
from .db import PouchShare as PouchShareModel
from .db import Transaction as TransactionModel
from .db import TransactionSplit as TransactionSplitModel
from .db import Transfer as TransferModel
from .schemas import (
    AccountCreate,
    AccountResponse,
    BalanceDiscrepancy,
    BalanceHistoryEntry,
    GoalCreate,
    GoalResponse,
    GoalUpdate,
    PouchCreate,
    PouchResponse,
    PouchShareCreate,
    PouchShareResponse,
    SplitInput,
    SplitResponse,
    TransactionCreate,
    TransactionPage,
    TransactionResponse,
    TransactionType,
    TransactionUpdate,
    TransferCreate,
    TransferResponse,
    TransferStatus,
    VerificationReport,
)

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "BalanceDiscrepancy",
    "BalanceHistoryEntry",
    "GoalCreate",
    "GoalResponse",
    "GoalUpdate",
    "PouchCreate",
    "PouchResponse",
    "PouchShareCreate",
    "PouchShareResponse",
    "SplitInput",
    "SplitResponse",
    "TransactionCreate",
    "TransactionPage",
    "TransactionResponse",
    "TransactionType",
    "TransactionUpdate",
    "TransferCreate",
    "TransferResponse",
    "TransferStatus",
    "VerificationReport",
    "AccountModel",
    "AccountBalanceModel",
    "GoalModel",
    "PouchModel",
    "PouchShareModel",
    "TransactionModel",
    "TransactionSplitModel",
    "TransferModel",
]

from .goals import GoalService
from .ledger import LedgerService
from .repository import LedgerRepository

__all__ = ["GoalService", "LedgerRepository", "LedgerService"]

from fastapi import Depends

from ..migrations import MigrationEngine
from ..seeds import SeedLoader
from ..services import GoalService, LedgerService
from .db import get_executor
from .executor import ShardExecutor
from .locks import RowLocks

row_locks = RowLocks()

def get_row_locks() -> RowLocks:
    return row_locks

def get_ledger_service(
    executor: ShardExecutor = Depends(get_executor),
    locks: RowLocks = Depends(get_row_locks),
) -> LedgerService:
    return LedgerService(executor, locks)

def get_goal_service(executor: ShardExecutor = Depends(get_executor)) -> GoalService:
    return GoalService(executor)

def get_migration_engine(executor: ShardExecutor = Depends(get_executor)) -> MigrationEngine:
    return MigrationEngine(executor)

def get_seed_loader(executor: ShardExecutor = Depends(get_executor)) -> SeedLoader:
    return SeedLoader(executor)

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..core.dependencies import (
    get_goal_service,
    get_ledger_service,
    get_migration_engine,
    get_seed_loader,
)
from ..migrations import MigrationEngine
from ..models import (
    AccountCreate,
    AccountResponse,
    BalanceHistoryEntry,
    GoalCreate,
    GoalResponse,
    GoalUpdate,
    PouchCreate,
    PouchResponse,
    PouchShareCreate,
    PouchShareResponse,
    TransactionCreate,
    TransactionPage,
    TransactionResponse,
    TransactionType,
    TransactionUpdate,
    TransferCreate,
    TransferResponse,
    VerificationReport,
)
from ..seeds import SeedLoader
from ..services import GoalService, LedgerService


router = APIRouter(prefix="/accounts", tags=["accounts"])

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.create_account(payload)

@router.get("", response_model=list[AccountResponse])
def list_accounts(
    user_id: str,
    include_inactive: bool = False,
    service: LedgerService = Depends(get_ledger_service),
) -> list[AccountResponse]:
    return service.list_accounts(user_id, include_inactive=include_inactive)

@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.get_account(account_id)

@router.post("/{account_id}/deactivate", response_model=AccountResponse)
def deactivate_account(
    account_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.deactivate_account(account_id)

@router.get("/{account_id}/balances", response_model=list[BalanceHistoryEntry])
def balance_history(
    account_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> list[BalanceHistoryEntry]:
    return service.balance_history(account_id)

pouch_router = APIRouter(prefix="/pouches", tags=["pouches"])

@pouch_router.post("", response_model=PouchResponse, status_code=status.HTTP_201_CREATED)
def create_pouch(
    payload: PouchCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> PouchResponse:
    return service.create_pouch(payload)

@pouch_router.get("", response_model=list[PouchResponse])
def list_pouches(
    user_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> list[PouchResponse]:
    return service.list_pouches(user_id)

@pouch_router.get("/{pouch_id}", response_model=PouchResponse)
def get_pouch(
    pouch_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> PouchResponse:
    return service.get_pouch(pouch_id)

@pouch_router.post(
    "/{pouch_id}/shares",
    response_model=PouchShareResponse,
    status_code=status.HTTP_201_CREATED,
)
def share_pouch(
    pouch_id: str,
    payload: PouchShareCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> PouchShareResponse:
    return service.share_pouch(pouch_id, payload)

transaction_router = APIRouter(prefix="/transactions", tags=["transactions"])

@transaction_router.post(
    "", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED
)
def create_transaction(
    payload: TransactionCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> TransactionResponse:
    return service.create_transaction(payload)

@transaction_router.get("", response_model=TransactionPage)
def list_transactions(
    user_id: str,
    account_id: Optional[str] = None,
    pouch_id: Optional[str] = None,
    type: Optional[TransactionType] = None,
    include_deleted: bool = False,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: LedgerService = Depends(get_ledger_service),
) -> TransactionPage:
    return service.list_transactions(
        user_id,
        account_id=account_id,
        pouch_id=pouch_id,
        tx_type=type,
        include_deleted=include_deleted,
        limit=limit,
        offset=offset,
    )

@transaction_router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    include_deleted: bool = False,
    service: LedgerService = Depends(get_ledger_service),
) -> TransactionResponse:
    return service.get_transaction(transaction_id, include_deleted=include_deleted)

@transaction_router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    service: LedgerService = Depends(get_ledger_service),
) -> TransactionResponse:
    return service.update_transaction(transaction_id, payload)

@transaction_router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> Response:
    service.delete_transaction(transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

transfer_router = APIRouter(prefix="/transfers", tags=["transfers"])

@transfer_router.post("", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    payload: TransferCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> TransferResponse:
    return service.create_transfer(payload)

@transfer_router.get("", response_model=list[TransferResponse])
def list_transfers(
    user_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> list[TransferResponse]:
    return service.list_transfers(user_id)

@transfer_router.get("/{transfer_id}", response_model=TransferResponse)
def get_transfer(
    transfer_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> TransferResponse:
    return service.get_transfer(transfer_id)

@transfer_router.post("/{transfer_id}/cancel", response_model=TransferResponse)
def cancel_transfer(
    transfer_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> TransferResponse:
    return service.cancel_transfer(transfer_id)

goal_router = APIRouter(prefix="/goals", tags=["goals"])

@goal_router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
def create_goal(
    payload: GoalCreate,
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    return service.create_goal(payload)

@goal_router.get("", response_model=list[GoalResponse])
def list_goals(
    user_id: str,
    include_inactive: bool = False,
    service: GoalService = Depends(get_goal_service),
) -> list[GoalResponse]:
    return service.list_goals(user_id, include_inactive=include_inactive)

@goal_router.get("/{goal_id}", response_model=GoalResponse)
def get_goal(
    goal_id: str,
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    return service.get_goal(goal_id)

@goal_router.patch("/{goal_id}", response_model=GoalResponse)
def update_goal(
    goal_id: str,
    payload: GoalUpdate,
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    return service.update_goal(goal_id, payload)

@goal_router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(
    goal_id: str,
    service: GoalService = Depends(get_goal_service),
) -> Response:
    service.delete_goal(goal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

admin_router = APIRouter(prefix="/admin", tags=["admin"])

@admin_router.get("/migrations")
def migration_status(engine: MigrationEngine = Depends(get_migration_engine)) -> dict:
    return {shard: asdict(state) for shard, state in engine.status().items()}

@admin_router.get("/seeds")
def seed_status(loader: SeedLoader = Depends(get_seed_loader)) -> dict:
    return {shard: asdict(state) for shard, state in loader.seed_status().items()}

@admin_router.post("/verify", response_model=VerificationReport)
def verify_balances(
    user_id: Optional[str] = None,
    repair: bool = False,
    service: LedgerService = Depends(get_ledger_service),
) -> VerificationReport:
    return service.verify_balances(user_id, repair=repair)

__all__ = [
    "admin_router",
    "goal_router",
    "pouch_router",
    "router",
    "transaction_router",
    "transfer_router",
]

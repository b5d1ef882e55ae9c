from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from sqlalchemy import func, or_
from sqlmodel import SQLModel, select

from ..core.executor import UnitOfWork
from ..core.shards import Collection
from ..models import (
    AccountBalanceModel,
    AccountModel,
    GoalModel,
    PouchModel,
    PouchShareModel,
    TransactionModel,
    TransactionSplitModel,
    TransferModel,
)


class LedgerRepository:
    """Thin data access layer around a multi-shard unit of work.

    Each query targets the single shard owning its collection; joins across
    shards happen in the service.
    """

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    def add(self, record: SQLModel) -> SQLModel:
        return self.uow.add(record)

    def remove(self, record: SQLModel) -> None:
        self.uow.remove(record)

    # Accounts -----------------------------------------------------------
    def get_account(self, account_id: str) -> Optional[AccountModel]:
        return self.uow.get(Collection.ACCOUNTS, account_id)

    def list_accounts(
        self, user_id: Optional[str] = None, include_inactive: bool = True
    ) -> list[AccountModel]:
        stmt = select(AccountModel).order_by(AccountModel.created_at, AccountModel.id)
        if user_id is not None:
            stmt = stmt.where(AccountModel.user_id == user_id)
        if not include_inactive:
            stmt = stmt.where(AccountModel.is_active == True)  # noqa: E712
        return list(self.uow.session(Collection.ACCOUNTS).exec(stmt))

    def balance_history(self, account_id: str) -> list[AccountBalanceModel]:
        stmt = (
            select(AccountBalanceModel)
            .where(AccountBalanceModel.account_id == account_id)
            .order_by(AccountBalanceModel.created_at.desc())
        )
        return list(self.uow.session(Collection.ACCOUNT_BALANCES).exec(stmt))

    # Pouches ------------------------------------------------------------
    def get_pouch(self, pouch_id: str) -> Optional[PouchModel]:
        return self.uow.get(Collection.POUCHES, pouch_id)

    def list_pouches(self, user_id: Optional[str] = None) -> list[PouchModel]:
        stmt = select(PouchModel).order_by(PouchModel.created_at, PouchModel.id)
        if user_id is not None:
            shared = select(PouchShareModel.pouch_id).where(
                PouchShareModel.user_id == user_id,
                PouchShareModel.is_active == True,  # noqa: E712
            )
            stmt = stmt.where(or_(PouchModel.user_id == user_id, PouchModel.id.in_(shared)))
        return list(self.uow.session(Collection.POUCHES).exec(stmt))

    def get_share(self, pouch_id: str, user_id: str) -> Optional[PouchShareModel]:
        stmt = select(PouchShareModel).where(
            PouchShareModel.pouch_id == pouch_id,
            PouchShareModel.user_id == user_id,
            PouchShareModel.is_active == True,  # noqa: E712
        )
        return self.uow.session(Collection.POUCH_SHARES).exec(stmt).first()

    # Transactions -------------------------------------------------------
    def get_transaction(self, transaction_id: str) -> Optional[TransactionModel]:
        return self.uow.get(Collection.TRANSACTIONS, transaction_id)

    def splits_for(self, transaction_id: str) -> list[TransactionSplitModel]:
        stmt = (
            select(TransactionSplitModel)
            .where(TransactionSplitModel.transaction_id == transaction_id)
            .order_by(TransactionSplitModel.created_at, TransactionSplitModel.id)
        )
        return list(self.uow.session(Collection.TRANSACTION_SPLITS).exec(stmt))

    def splits_by_transaction(
        self, transaction_ids: Iterable[str]
    ) -> dict[str, list[TransactionSplitModel]]:
        ids = list(transaction_ids)
        grouped: dict[str, list[TransactionSplitModel]] = {tid: [] for tid in ids}
        if not ids:
            return grouped
        stmt = (
            select(TransactionSplitModel)
            .where(TransactionSplitModel.transaction_id.in_(ids))
            .order_by(TransactionSplitModel.created_at, TransactionSplitModel.id)
        )
        for split in self.uow.session(Collection.TRANSACTION_SPLITS).exec(stmt):
            grouped[split.transaction_id].append(split)
        return grouped

    def active_transactions(self) -> list[TransactionModel]:
        stmt = select(TransactionModel).where(TransactionModel.is_deleted == False)  # noqa: E712
        return list(self.uow.session(Collection.TRANSACTIONS).exec(stmt))

    def page_transactions(
        self,
        *,
        user_id: str,
        account_id: Optional[str] = None,
        pouch_id: Optional[str] = None,
        tx_type: Optional[str] = None,
        include_deleted: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[TransactionModel], int]:
        stmt = select(TransactionModel).where(TransactionModel.user_id == user_id)
        if account_id is not None:
            stmt = stmt.where(TransactionModel.account_id == account_id)
        if pouch_id is not None:
            split_owners = select(TransactionSplitModel.transaction_id).where(
                TransactionSplitModel.pouch_id == pouch_id
            )
            stmt = stmt.where(
                or_(TransactionModel.pouch_id == pouch_id, TransactionModel.id.in_(split_owners))
            )
        if tx_type is not None:
            stmt = stmt.where(TransactionModel.type == tx_type)
        if not include_deleted:
            stmt = stmt.where(TransactionModel.is_deleted == False)  # noqa: E712

        session = self.uow.session(Collection.TRANSACTIONS)
        total = session.exec(select(func.count()).select_from(stmt.subquery())).one()
        page = stmt.order_by(
            TransactionModel.transaction_date.desc(), TransactionModel.id
        ).offset(offset).limit(limit)
        return list(session.exec(page)), total

    # Transfers ----------------------------------------------------------
    def get_transfer(self, transfer_id: str) -> Optional[TransferModel]:
        return self.uow.get(Collection.TRANSFERS, transfer_id)

    def list_transfers(
        self, user_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[TransferModel]:
        stmt = select(TransferModel).order_by(TransferModel.transfer_date.desc(), TransferModel.id)
        if user_id is not None:
            stmt = stmt.where(TransferModel.user_id == user_id)
        if status is not None:
            stmt = stmt.where(TransferModel.status == status)
        return list(self.uow.session(Collection.TRANSFERS).exec(stmt))

    # Goals --------------------------------------------------------------
    def get_goal(self, goal_id: str) -> Optional[GoalModel]:
        return self.uow.get(Collection.GOALS, goal_id)

    def list_goals(self, user_id: str, include_inactive: bool = False) -> list[GoalModel]:
        stmt = (
            select(GoalModel)
            .where(GoalModel.user_id == user_id)
            .order_by(GoalModel.priority, GoalModel.target_date, GoalModel.id)
        )
        if not include_inactive:
            stmt = stmt.where(GoalModel.is_active == True)  # noqa: E712
        return list(self.uow.session(Collection.GOALS).exec(stmt))

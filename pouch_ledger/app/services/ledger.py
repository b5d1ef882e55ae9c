from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import Optional

from ..core.errors import (
    AccountNotFoundError,
    PouchNotFoundError,
    TransactionNotFoundError,
    TransferNotFoundError,
    ValidationError,
)
from ..core.executor import ShardExecutor
from ..core.locks import LockKey, RowLocks
from ..core.shards import Collection
from ..models import (
    AccountBalanceModel,
    AccountCreate,
    AccountModel,
    AccountResponse,
    BalanceDiscrepancy,
    BalanceHistoryEntry,
    PouchCreate,
    PouchModel,
    PouchResponse,
    PouchShareCreate,
    PouchShareModel,
    PouchShareResponse,
    SplitInput,
    SplitResponse,
    TransactionCreate,
    TransactionModel,
    TransactionPage,
    TransactionResponse,
    TransactionSplitModel,
    TransactionType,
    TransactionUpdate,
    TransferCreate,
    TransferModel,
    TransferResponse,
    TransferStatus,
    VerificationReport,
)
from .balances import (
    ZERO,
    Effects,
    account_key,
    diff_effects,
    negate,
    pouch_key,
    to_money,
    transaction_effects,
    transfer_effects,
    validate_splits,
)
from .repository import LedgerRepository


logger = logging.getLogger(__name__)

WRITER_ROLES = ("owner", "editor")
MAX_PAGE_SIZE = 500


def _now() -> datetime:
    return datetime.now(UTC)


def _allocations(splits: Iterable) -> list[tuple[str, Decimal]]:
    return [(split.pouch_id, to_money(split.amount)) for split in splits]


class LedgerService:
    """Ledger records and the derived balances they drive.

    Every mutation computes the signed effect of the old and new state of a
    record, locks the touched accounts and pouches, then writes the record and
    the balance deltas in one unit of work.
    """

    def __init__(self, executor: ShardExecutor, locks: Optional[RowLocks] = None) -> None:
        self.executor = executor
        self.locks = locks or RowLocks()

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    @contextmanager
    def _locked_unit(self, keys: Iterable[LockKey]) -> Iterator[LedgerRepository]:
        with self.locks.hold(keys):
            with self.executor.unit_of_work() as uow:
                yield LedgerRepository(uow)

    @contextmanager
    def _unit(self) -> Iterator[LedgerRepository]:
        with self.executor.unit_of_work() as uow:
            yield LedgerRepository(uow)

    def _get_account(self, repo: LedgerRepository, account_id: str) -> AccountModel:
        account = repo.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def _writable_account(
        self, repo: LedgerRepository, account_id: str, user_id: str
    ) -> AccountModel:
        account = self._get_account(repo, account_id)
        if account.user_id != user_id:
            raise ValidationError(f"Account {account_id} does not belong to user {user_id}")
        if not account.is_active:
            raise ValidationError(f"Account {account_id} is inactive")
        return account

    def _get_pouch(self, repo: LedgerRepository, pouch_id: str) -> PouchModel:
        pouch = repo.get_pouch(pouch_id)
        if pouch is None:
            raise PouchNotFoundError(f"Pouch {pouch_id} not found")
        return pouch

    def _writable_pouch(self, repo: LedgerRepository, pouch_id: str, user_id: str) -> PouchModel:
        pouch = self._get_pouch(repo, pouch_id)
        if not pouch.is_active:
            raise ValidationError(f"Pouch {pouch_id} is inactive")
        if pouch.user_id != user_id:
            share = repo.get_share(pouch_id, user_id)
            if share is None or share.role not in WRITER_ROLES:
                raise ValidationError(f"User {user_id} cannot record against pouch {pouch_id}")
        return pouch

    def _get_transaction(
        self, repo: LedgerRepository, transaction_id: str, include_deleted: bool = False
    ) -> TransactionModel:
        txn = repo.get_transaction(transaction_id)
        if txn is None or (txn.is_deleted and not include_deleted):
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        return txn

    def _get_transfer(self, repo: LedgerRepository, transfer_id: str) -> TransferModel:
        transfer = repo.get_transfer(transfer_id)
        if transfer is None:
            raise TransferNotFoundError(f"Transfer {transfer_id} not found")
        return transfer

    def _apply_effects(self, repo: LedgerRepository, effects: Mapping[LockKey, Decimal]) -> None:
        now = _now()
        for key in sorted(effects, key=lambda k: (k.collection.value, k.record_id)):
            delta = effects[key]
            if key.collection is Collection.ACCOUNTS:
                account = self._get_account(repo, key.record_id)
                account.current_balance = to_money(account.current_balance + delta)
                account.updated_at = now
                repo.add(
                    AccountBalanceModel(
                        account_id=account.id,
                        balance=account.current_balance,
                        balance_date=now.date(),
                    )
                )
            else:
                pouch = self._get_pouch(repo, key.record_id)
                pouch.balance = to_money(pouch.balance + delta)
                pouch.updated_at = now

    def _effects_of(
        self, txn: TransactionModel, splits: Sequence[TransactionSplitModel]
    ) -> Effects:
        return transaction_effects(
            txn.type, txn.amount, txn.account_id, txn.pouch_id, _allocations(splits)
        )

    def _sync_splits(
        self,
        repo: LedgerRepository,
        transaction_id: str,
        wanted: Sequence[SplitInput],
    ) -> list[TransactionSplitModel]:
        remaining = repo.splits_for(transaction_id)
        final: list[TransactionSplitModel] = []
        for item in wanted:
            amount = to_money(item.amount)
            if item.id is not None:
                match = next((row for row in remaining if row.id == item.id), None)
                if match is None:
                    raise ValidationError(
                        f"Split {item.id} does not belong to transaction {transaction_id}"
                    )
            else:
                match = next(
                    (r for r in remaining if r.pouch_id == item.pouch_id and r.amount == amount),
                    None,
                )
            if match is None:
                row = TransactionSplitModel(
                    transaction_id=transaction_id,
                    pouch_id=item.pouch_id,
                    amount=amount,
                    description=item.description,
                )
                repo.add(row)
                final.append(row)
                continue
            remaining.remove(match)
            description = item.description if item.description is not None else match.description
            if (match.pouch_id, match.amount, match.description) != (item.pouch_id, amount, description):
                match.pouch_id = item.pouch_id
                match.amount = amount
                match.description = description
            final.append(match)
        for row in remaining:
            repo.remove(row)
        return final

    def _account_to_response(self, account: AccountModel) -> AccountResponse:
        return AccountResponse(
            id=account.id,
            user_id=account.user_id,
            name=account.name,
            type=account.type,
            currency=account.currency,
            initial_balance=account.initial_balance,
            current_balance=account.current_balance,
            is_active=account.is_active,
            created_at=account.created_at,
        )

    def _pouch_to_response(self, pouch: PouchModel) -> PouchResponse:
        return PouchResponse(
            id=pouch.id,
            user_id=pouch.user_id,
            name=pouch.name,
            description=pouch.description,
            type=pouch.type,
            budget_amount=pouch.budget_amount,
            budget_period=pouch.budget_period,
            color=pouch.color,
            icon=pouch.icon,
            balance=pouch.balance,
            is_active=pouch.is_active,
        )

    def _transaction_to_response(
        self, txn: TransactionModel, splits: Sequence[TransactionSplitModel]
    ) -> TransactionResponse:
        return TransactionResponse(
            id=txn.id,
            user_id=txn.user_id,
            account_id=txn.account_id,
            amount=txn.amount,
            currency=txn.currency,
            type=TransactionType(txn.type),
            pouch_id=txn.pouch_id,
            description=txn.description,
            category=txn.category,
            tags=txn.tags,
            transaction_date=txn.transaction_date,
            is_recurring=txn.is_recurring,
            recurring_pattern=txn.recurring_pattern,
            is_deleted=txn.is_deleted,
            deleted_at=txn.deleted_at,
            splits=[
                SplitResponse(
                    id=split.id,
                    pouch_id=split.pouch_id,
                    amount=split.amount,
                    description=split.description,
                )
                for split in splits
            ],
        )

    def _transfer_to_response(self, transfer: TransferModel) -> TransferResponse:
        return TransferResponse(
            id=transfer.id,
            user_id=transfer.user_id,
            from_account_id=transfer.from_account_id,
            to_account_id=transfer.to_account_id,
            amount=transfer.amount,
            currency=transfer.currency,
            description=transfer.description,
            transfer_date=transfer.transfer_date,
            status=TransferStatus(transfer.status),
            reference_number=transfer.reference_number,
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def create_account(self, payload: AccountCreate) -> AccountResponse:
        initial = to_money(payload.initial_balance)
        with self._unit() as repo:
            account = AccountModel(
                user_id=payload.user_id,
                name=payload.name,
                type=payload.type,
                currency=payload.currency.upper(),
                initial_balance=initial,
                current_balance=initial,
            )
            repo.add(account)
            repo.add(AccountBalanceModel(account_id=account.id, balance=initial))
        logger.info(
            "account.created",
            extra={"account_id": account.id, "user_id": account.user_id},
        )
        return self._account_to_response(account)

    def get_account(self, account_id: str) -> AccountResponse:
        with self._unit() as repo:
            account = self._get_account(repo, account_id)
        return self._account_to_response(account)

    def list_accounts(self, user_id: str, include_inactive: bool = False) -> list[AccountResponse]:
        with self._unit() as repo:
            accounts = repo.list_accounts(user_id, include_inactive=include_inactive)
        return [self._account_to_response(account) for account in accounts]

    def deactivate_account(self, account_id: str) -> AccountResponse:
        with self._locked_unit([account_key(account_id)]) as repo:
            account = self._get_account(repo, account_id)
            account.is_active = False
            account.updated_at = _now()
        logger.info("account.deactivated", extra={"account_id": account_id})
        return self._account_to_response(account)

    def balance_history(self, account_id: str) -> list[BalanceHistoryEntry]:
        with self._unit() as repo:
            self._get_account(repo, account_id)
            rows = repo.balance_history(account_id)
        return [
            BalanceHistoryEntry(
                id=row.id,
                account_id=row.account_id,
                balance=row.balance,
                balance_date=row.balance_date,
                created_at=row.created_at,
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Pouches
    # ------------------------------------------------------------------
    def create_pouch(self, payload: PouchCreate) -> PouchResponse:
        with self._unit() as repo:
            pouch = PouchModel(
                user_id=payload.user_id,
                name=payload.name,
                description=payload.description,
                type=payload.type,
                budget_amount=(
                    to_money(payload.budget_amount) if payload.budget_amount is not None else None
                ),
                budget_period=payload.budget_period,
                color=payload.color,
                icon=payload.icon,
                balance=ZERO,
            )
            repo.add(pouch)
        logger.info("pouch.created", extra={"pouch_id": pouch.id, "user_id": pouch.user_id})
        return self._pouch_to_response(pouch)

    def get_pouch(self, pouch_id: str) -> PouchResponse:
        with self._unit() as repo:
            pouch = self._get_pouch(repo, pouch_id)
        return self._pouch_to_response(pouch)

    def list_pouches(self, user_id: str) -> list[PouchResponse]:
        """Pouches the user owns plus pouches shared with them."""
        with self._unit() as repo:
            pouches = repo.list_pouches(user_id)
        return [self._pouch_to_response(pouch) for pouch in pouches]

    def share_pouch(self, pouch_id: str, payload: PouchShareCreate) -> PouchShareResponse:
        with self._unit() as repo:
            pouch = self._get_pouch(repo, pouch_id)
            if pouch.user_id == payload.user_id:
                raise ValidationError("A pouch cannot be shared with its owner")
            share = PouchShareModel(
                pouch_id=pouch_id,
                user_id=payload.user_id,
                role=payload.role,
                invited_by=payload.invited_by or pouch.user_id,
            )
            repo.add(share)
            if pouch.type != "shared":
                pouch.type = "shared"
                pouch.updated_at = _now()
        logger.info(
            "pouch.shared",
            extra={"pouch_id": pouch_id, "user_id": payload.user_id, "role": payload.role},
        )
        return PouchShareResponse(
            id=share.id,
            pouch_id=share.pouch_id,
            user_id=share.user_id,
            role=share.role,
            invited_by=share.invited_by,
            invited_at=share.invited_at,
            is_active=share.is_active,
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def create_transaction(self, payload: TransactionCreate) -> TransactionResponse:
        amount = to_money(payload.amount)
        allocations = _allocations(payload.splits)
        validate_splits(amount, allocations)
        effects = transaction_effects(
            payload.type, amount, payload.account_id, payload.pouch_id, allocations
        )

        with self._locked_unit(effects) as repo:
            account = self._writable_account(repo, payload.account_id, payload.user_id)
            pouch_ids = {pouch_id for pouch_id, _ in allocations}
            if payload.pouch_id is not None:
                pouch_ids.add(payload.pouch_id)
            for pouch_id in sorted(pouch_ids):
                self._writable_pouch(repo, pouch_id, payload.user_id)

            txn = TransactionModel(
                user_id=payload.user_id,
                account_id=payload.account_id,
                amount=amount,
                currency=(payload.currency or account.currency).upper(),
                type=payload.type.value,
                pouch_id=payload.pouch_id,
                description=payload.description,
                category=payload.category,
                tags=payload.tags,
                transaction_date=payload.transaction_date or _now(),
                is_recurring=payload.is_recurring,
                recurring_pattern=payload.recurring_pattern,
            )
            repo.add(txn)
            splits = []
            for item in payload.splits:
                split = TransactionSplitModel(
                    transaction_id=txn.id,
                    pouch_id=item.pouch_id,
                    amount=to_money(item.amount),
                    description=item.description,
                )
                repo.add(split)
                splits.append(split)
            self._apply_effects(repo, effects)

        logger.info(
            "transaction.created",
            extra={
                "transaction_id": txn.id,
                "account_id": txn.account_id,
                "amount": str(amount),
                "type": txn.type,
            },
        )
        return self._transaction_to_response(txn, splits)

    def update_transaction(
        self, transaction_id: str, payload: TransactionUpdate
    ) -> TransactionResponse:
        changes = payload.model_dump(exclude_unset=True, exclude={"splits"})
        wanted_splits = payload.splits
        for field_name in ("account_id", "amount", "type", "transaction_date", "is_recurring"):
            if field_name in changes and changes[field_name] is None:
                raise ValidationError(f"Field '{field_name}' cannot be cleared")
        if "amount" in changes:
            changes["amount"] = to_money(changes["amount"])
        if "type" in changes:
            changes["type"] = TransactionType(changes["type"]).value

        with self.locks.hold([LockKey(Collection.TRANSACTIONS, transaction_id)]):
            with self._unit() as repo:
                current = self._get_transaction(repo, transaction_id)
                old_splits = repo.splits_for(transaction_id)

            new_amount = changes.get("amount", current.amount)
            new_account = changes.get("account_id", current.account_id)
            new_pouch = changes["pouch_id"] if "pouch_id" in changes else current.pouch_id
            new_allocations = _allocations(old_splits if wanted_splits is None else wanted_splits)
            validate_splits(new_amount, new_allocations)
            delta = diff_effects(
                transaction_effects(
                    changes.get("type", current.type),
                    new_amount,
                    new_account,
                    new_pouch,
                    new_allocations,
                ),
                self._effects_of(current, old_splits),
            )

            with self._locked_unit(delta) as repo:
                txn = self._get_transaction(repo, transaction_id)
                if new_account != txn.account_id:
                    self._writable_account(repo, new_account, txn.user_id)
                known_pouches = {split.pouch_id for split in old_splits} | {txn.pouch_id}
                added_pouches = {pouch_id for pouch_id, _ in new_allocations} | {new_pouch}
                for pouch_id in sorted(p for p in added_pouches - known_pouches if p):
                    self._writable_pouch(repo, pouch_id, txn.user_id)

                if wanted_splits is not None:
                    splits = self._sync_splits(repo, transaction_id, wanted_splits)
                else:
                    splits = repo.splits_for(transaction_id)
                for field_name, value in changes.items():
                    setattr(txn, field_name, value)
                txn.updated_at = _now()
                self._apply_effects(repo, delta)

        logger.info(
            "transaction.updated",
            extra={
                "transaction_id": transaction_id,
                "fields": sorted(payload.model_fields_set),
                "balance_keys": len(delta),
            },
        )
        return self._transaction_to_response(txn, splits)

    def delete_transaction(self, transaction_id: str) -> None:
        """Soft delete: the record stays, its balance effect is reversed."""
        with self.locks.hold([LockKey(Collection.TRANSACTIONS, transaction_id)]):
            with self._unit() as repo:
                current = self._get_transaction(repo, transaction_id)
                splits = repo.splits_for(transaction_id)
            reversal = negate(self._effects_of(current, splits))

            with self._locked_unit(reversal) as repo:
                txn = self._get_transaction(repo, transaction_id)
                now = _now()
                txn.is_deleted = True
                txn.deleted_at = now
                txn.updated_at = now
                self._apply_effects(repo, reversal)

        logger.info("transaction.deleted", extra={"transaction_id": transaction_id})

    def get_transaction(
        self, transaction_id: str, include_deleted: bool = False
    ) -> TransactionResponse:
        with self._unit() as repo:
            txn = self._get_transaction(repo, transaction_id, include_deleted=include_deleted)
            splits = repo.splits_for(transaction_id)
        return self._transaction_to_response(txn, splits)

    def list_transactions(
        self,
        user_id: str,
        account_id: Optional[str] = None,
        pouch_id: Optional[str] = None,
        tx_type: Optional[TransactionType] = None,
        include_deleted: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> TransactionPage:
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationError("offset must not be negative")

        with self._unit() as repo:
            rows, total = repo.page_transactions(
                user_id=user_id,
                account_id=account_id,
                pouch_id=pouch_id,
                tx_type=TransactionType(tx_type).value if tx_type is not None else None,
                include_deleted=include_deleted,
                limit=limit,
                offset=offset,
            )
            splits = repo.splits_by_transaction(row.id for row in rows)

        return TransactionPage(
            items=[self._transaction_to_response(row, splits[row.id]) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(rows) < total,
        )

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------
    def create_transfer(self, payload: TransferCreate) -> TransferResponse:
        if payload.from_account_id == payload.to_account_id:
            raise ValidationError("Source and destination accounts must differ")
        amount = to_money(payload.amount)
        effects = transfer_effects(payload.from_account_id, payload.to_account_id, amount)

        with self._locked_unit(effects) as repo:
            source = self._writable_account(repo, payload.from_account_id, payload.user_id)
            dest = self._writable_account(repo, payload.to_account_id, payload.user_id)
            if source.currency != dest.currency:
                raise ValidationError(
                    f"Cannot transfer between {source.currency} and {dest.currency} accounts"
                )
            currency = (payload.currency or source.currency).upper()
            if currency != source.currency:
                raise ValidationError(f"Transfer currency must be {source.currency}")

            transfer = TransferModel(
                user_id=payload.user_id,
                from_account_id=source.id,
                to_account_id=dest.id,
                amount=amount,
                currency=currency,
                description=payload.description,
                transfer_date=payload.transfer_date or _now(),
                status=TransferStatus.COMPLETED.value,
                reference_number=payload.reference_number
                or f"TRF-{uuid.uuid4().hex[:10].upper()}",
            )
            repo.add(transfer)
            self._apply_effects(repo, effects)

        logger.info(
            "transfer.completed",
            extra={
                "transfer_id": transfer.id,
                "from_account_id": transfer.from_account_id,
                "to_account_id": transfer.to_account_id,
                "amount": str(amount),
            },
        )
        return self._transfer_to_response(transfer)

    def cancel_transfer(self, transfer_id: str) -> TransferResponse:
        with self.locks.hold([LockKey(Collection.TRANSFERS, transfer_id)]):
            with self._unit() as repo:
                current = self._get_transfer(repo, transfer_id)
            if current.status != TransferStatus.COMPLETED.value:
                raise ValidationError(
                    f"Only completed transfers can be cancelled (status: {current.status})"
                )
            reversal = negate(
                transfer_effects(current.from_account_id, current.to_account_id, current.amount)
            )

            with self._locked_unit(reversal) as repo:
                transfer = self._get_transfer(repo, transfer_id)
                transfer.status = TransferStatus.CANCELLED.value
                transfer.updated_at = _now()
                self._apply_effects(repo, reversal)

        logger.info("transfer.cancelled", extra={"transfer_id": transfer_id})
        return self._transfer_to_response(transfer)

    def get_transfer(self, transfer_id: str) -> TransferResponse:
        with self._unit() as repo:
            transfer = self._get_transfer(repo, transfer_id)
        return self._transfer_to_response(transfer)

    def list_transfers(self, user_id: str) -> list[TransferResponse]:
        with self._unit() as repo:
            transfers = repo.list_transfers(user_id)
        return [self._transfer_to_response(transfer) for transfer in transfers]

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------
    def verify_balances(
        self, user_id: Optional[str] = None, repair: bool = False
    ) -> VerificationReport:
        """Recompute derived balances from active records and compare.

        With ``repair`` the stored values are overwritten with the expected
        ones; this is the recovery path after a partially committed unit of
        work.
        """
        with self._unit() as repo:
            account_ids = [a.id for a in repo.list_accounts(user_id)]
            pouch_ids = [
                p.id for p in repo.list_pouches(user_id) if user_id is None or p.user_id == user_id
            ]
        keys = [account_key(a) for a in account_ids] + [pouch_key(p) for p in pouch_ids]

        discrepancies: list[BalanceDiscrepancy] = []
        with self._locked_unit(keys) as repo:
            accounts = [self._get_account(repo, a) for a in account_ids]
            pouches = [self._get_pouch(repo, p) for p in pouch_ids]

            expected: dict[LockKey, Decimal] = {
                account_key(a.id): to_money(a.initial_balance) for a in accounts
            }
            expected.update({pouch_key(p.id): ZERO for p in pouches})

            transactions = repo.active_transactions()
            splits = repo.splits_by_transaction(t.id for t in transactions)
            for txn in transactions:
                for key, delta in self._effects_of(txn, splits[txn.id]).items():
                    if key in expected:
                        expected[key] += delta
            for transfer in repo.list_transfers(status=TransferStatus.COMPLETED.value):
                effects = transfer_effects(
                    transfer.from_account_id, transfer.to_account_id, transfer.amount
                )
                for key, delta in effects.items():
                    if key in expected:
                        expected[key] += delta

            now = _now()
            for account in accounts:
                want = to_money(expected[account_key(account.id)])
                have = to_money(account.current_balance)
                if want == have:
                    continue
                discrepancies.append(
                    BalanceDiscrepancy(
                        collection=Collection.ACCOUNTS.value,
                        record_id=account.id,
                        stored=have,
                        expected=want,
                    )
                )
                if repair:
                    account.current_balance = want
                    account.updated_at = now
                    repo.add(
                        AccountBalanceModel(
                            account_id=account.id, balance=want, balance_date=now.date()
                        )
                    )
            for pouch in pouches:
                want = to_money(expected[pouch_key(pouch.id)])
                have = to_money(pouch.balance)
                if want == have:
                    continue
                discrepancies.append(
                    BalanceDiscrepancy(
                        collection=Collection.POUCHES.value,
                        record_id=pouch.id,
                        stored=have,
                        expected=want,
                    )
                )
                if repair:
                    pouch.balance = want
                    pouch.updated_at = now

        if discrepancies:
            logger.warning(
                "balances.discrepancies",
                extra={"count": len(discrepancies), "repaired": repair},
            )
        else:
            logger.info("balances.verified", extra={"accounts": len(accounts), "pouches": len(pouches)})
        return VerificationReport(discrepancies=discrepancies, repaired=repair and bool(discrepancies))

"""Signed balance effects of ledger records.

An effect map assigns a signed delta to every account and pouch a record
touches. Applying ``diff_effects(new, old)`` moves stored balances from the
old state of a record to its new one in a single step.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from ..core.errors import ValidationError
from ..core.locks import LockKey
from ..core.shards import Collection
from ..models.schemas import TransactionType


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Effects = dict[LockKey, Decimal]
SplitAllocation = tuple[str, Decimal]


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def account_key(account_id: str) -> LockKey:
    return LockKey(Collection.ACCOUNTS, account_id)


def pouch_key(pouch_id: str) -> LockKey:
    return LockKey(Collection.POUCHES, pouch_id)


def signed_effect(tx_type: Union[TransactionType, str], amount: Decimal) -> Decimal:
    amount = to_money(amount)
    if tx_type == TransactionType.INCOME:
        return amount
    if tx_type == TransactionType.EXPENSE:
        return -amount
    raise ValidationError(f"Unknown transaction type '{tx_type}'")


def _accumulate(effects: Effects, key: LockKey, delta: Decimal) -> None:
    effects[key] = effects.get(key, ZERO) + delta


def transaction_effects(
    tx_type: Union[TransactionType, str],
    amount: Decimal,
    account_id: str,
    pouch_id: Optional[str] = None,
    splits: Sequence[SplitAllocation] = (),
) -> Effects:
    # splits replace the direct pouch attribution entirely
    effects: Effects = {}
    _accumulate(effects, account_key(account_id), signed_effect(tx_type, amount))
    if splits:
        for split_pouch, split_amount in splits:
            _accumulate(effects, pouch_key(split_pouch), signed_effect(tx_type, split_amount))
    elif pouch_id:
        _accumulate(effects, pouch_key(pouch_id), signed_effect(tx_type, amount))
    return effects


def transfer_effects(from_account_id: str, to_account_id: str, amount: Decimal) -> Effects:
    amount = to_money(amount)
    return {account_key(from_account_id): -amount, account_key(to_account_id): amount}


def negate(effects: Mapping[LockKey, Decimal]) -> Effects:
    return {key: -delta for key, delta in effects.items()}


def diff_effects(new: Mapping[LockKey, Decimal], old: Mapping[LockKey, Decimal]) -> Effects:
    delta: Effects = {}
    for key in set(new) | set(old):
        change = new.get(key, ZERO) - old.get(key, ZERO)
        if change != 0:
            delta[key] = change
    return delta


def validate_splits(amount: Decimal, splits: Iterable[SplitAllocation]) -> None:
    total = ZERO
    for pouch_id, split_amount in splits:
        if split_amount <= 0:
            raise ValidationError(f"Split for pouch {pouch_id} must be positive")
        if split_amount > amount:
            raise ValidationError(f"Split for pouch {pouch_id} exceeds the transaction amount")
        total += split_amount
    if total > amount:
        raise ValidationError(
            f"Splits total {total} exceeds the transaction amount {amount}"
        )

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from ..models import TransactionUpdate
from .factories import OWNER, balance_of, make_account, make_pouch, pouch_balance, record_transaction


def test_parallel_writes_on_one_account_serialize(ledger) -> None:
    account = make_account(ledger, "1000.00")
    pouch = make_pouch(ledger)
    existing = [record_transaction(ledger, account.id, "5.00", pouch_id=pouch.id).id for _ in range(10)]
    to_update, to_delete = existing[:5], existing[5:]

    def spend(count: int) -> None:
        for _ in range(count):
            record_transaction(ledger, account.id, "1.00", pouch_id=pouch.id)

    def raise_amounts() -> None:
        for txn_id in to_update:
            ledger.update_transaction(txn_id, TransactionUpdate(amount=Decimal("7.00")))

    def remove() -> None:
        for txn_id in to_delete:
            ledger.delete_transaction(txn_id)

    with ThreadPoolExecutor(max_workers=6) as pool:
        futures = [pool.submit(spend, 10) for _ in range(4)]
        futures += [pool.submit(raise_amounts), pool.submit(remove)]
        for future in futures:
            future.result()

    assert balance_of(ledger, account.id) == Decimal("925.00")
    assert pouch_balance(ledger, pouch.id) == Decimal("-75.00")
    assert ledger.list_transactions(OWNER, account_id=account.id).total == 45
    assert ledger.verify_balances(OWNER).discrepancies == []

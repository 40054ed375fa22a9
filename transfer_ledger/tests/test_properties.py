from concurrent.futures import ThreadPoolExecutor

from hypothesis import given, settings, strategies as st

from ..core.errors import InsufficientBalanceError
from ..models import TransferEffect
from ..services import InMemoryAccountStore, InMemoryTransferRecordStore, TransferLedger

ACCOUNTS = 4

steps = st.lists(
    st.tuples(
        st.sampled_from(["create", "update", "delete"]),
        st.integers(0, ACCOUNTS - 1),
        st.integers(0, ACCOUNTS - 1),
        st.one_of(st.integers(1, 150), st.just("all")),
        st.integers(0, 50),
    ),
    max_size=40,
)


def _build(balances):
    accounts = InMemoryAccountStore()
    ids = [accounts.add_account(amount).id for amount in balances]
    records = InMemoryTransferRecordStore()
    return accounts, records, TransferLedger(accounts, records), ids


@settings(max_examples=75, deadline=None)
@given(initial=st.lists(st.integers(0, 200), min_size=ACCOUNTS, max_size=ACCOUNTS), plan=steps)
def test_random_sequences_conserve_and_stay_non_negative(initial, plan) -> None:
    accounts, records, ledger, ids = _build(initial)
    total = accounts.total()
    live = []

    for op, a, b, amount, pick in plan:
        if amount == "all":
            amount = max(accounts.fetch_account(ids[a]).balance, 1)
        try:
            if op == "create":
                live.append(ledger.create_transfer(ids[a], ids[b], amount).id)
            elif op == "update" and live:
                ledger.update_transfer(live[pick % len(live)], ids[b], amount)
            elif op == "delete" and live:
                transfer_id = live[pick % len(live)]
                ledger.delete_transfer(transfer_id)
                live.remove(transfer_id)
        except InsufficientBalanceError:
            pass

        assert accounts.total() == total
        assert all(balance >= 0 for balance in accounts.balances().values())

    # every live record contributes exactly one effect
    expected = dict(zip(ids, initial))
    for transfer_id in live:
        record = records.fetch_record(transfer_id)
        assert record.applied == TransferEffect(record.sender_id, record.receiver_id, record.amount)
        expected[record.sender_id] -= record.amount
        expected[record.receiver_id] += record.amount
    assert accounts.balances() == expected


def test_concurrent_disjoint_transfers_conserve_each_pair() -> None:
    accounts, records, ledger, (a, b, c, d) = _build([1000, 1000, 1000, 1000])

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(ledger.create_transfer, a, b, 7) for _ in range(50)]
        futures += [pool.submit(ledger.create_transfer, c, d, 3) for _ in range(50)]
        for future in futures:
            future.result(timeout=10)

    balances = accounts.balances()
    assert balances[a] + balances[b] == 2000
    assert balances[c] + balances[d] == 2000
    assert balances[a] == 1000 - 50 * 7
    assert balances[c] == 1000 - 50 * 3
    assert len(records) == 100


def test_opposite_direction_transfers_do_not_deadlock() -> None:
    accounts, records, ledger, (a, b) = _build([500, 500])

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = []
        for _ in range(100):
            futures.append(pool.submit(ledger.create_transfer, a, b, 1))
            futures.append(pool.submit(ledger.create_transfer, b, a, 1))
        for future in futures:
            future.result(timeout=10)

    assert accounts.balances() == {a: 500, b: 500}
    assert len(records) == 200


def test_concurrent_debits_never_overdraw() -> None:
    accounts, records, ledger, ids = _build([100, 0, 0, 0])
    sender, receivers = ids[0], ids[1:]

    def attempt(index):
        try:
            ledger.create_transfer(sender, receivers[index % len(receivers)], 10)
            return True
        except InsufficientBalanceError:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(30)))

    assert results.count(True) == 10
    assert accounts.fetch_account(sender).balance == 0
    assert accounts.total() == 100


def test_concurrent_updates_of_one_transfer_keep_single_effect() -> None:
    accounts, records, ledger, (a, b, c, d) = _build([1000, 0, 0, 0])
    record = ledger.create_transfer(a, b, 100)

    with ThreadPoolExecutor(max_workers=6) as pool:
        futures = [
            pool.submit(ledger.update_transfer, record.id, receiver, amount)
            for receiver, amount in [(b, 10), (c, 20), (d, 30)] * 10
        ]
        for future in futures:
            future.result(timeout=10)

    final = records.fetch_record(record.id)
    balances = accounts.balances()
    assert balances[a] == 1000 - final.amount
    assert balances[final.receiver_id] == final.amount
    assert sum(balances.values()) == 1000

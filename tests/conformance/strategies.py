"""
Shared hypothesis strategies for locker conformance tests.

An operation is a tuple whose first element names it:

    ("deposit", account, amount, rank_id, consolidate)
    ("withdraw", account, amount, rank_id)
    ("sweep", account)
    ("advance", days)
"""

from datetime import timedelta
from typing import Any, Tuple

from hypothesis import strategies as st

from ranklock import RankLocker


ACCOUNTS = ["alice", "bob", "carol"]


def account_name():
    return st.sampled_from(ACCOUNTS)


def deposit_op():
    return st.tuples(
        st.just("deposit"),
        account_name(),
        st.integers(min_value=1, max_value=600),
        st.integers(min_value=0, max_value=3),   # 3 is past the standard table
        st.booleans(),
    )


def withdraw_op():
    return st.tuples(
        st.just("withdraw"),
        account_name(),
        st.integers(min_value=1, max_value=600),
        st.integers(min_value=0, max_value=2),
    )


def operation():
    return st.one_of(
        deposit_op(),
        withdraw_op(),
        st.tuples(st.just("sweep"), account_name()),
        st.tuples(st.just("advance"), st.integers(min_value=0, max_value=15)),
    )


def operations(min_size=1, max_size=30):
    return st.lists(operation(), min_size=min_size, max_size=max_size)


def apply_op(locker: RankLocker, op: Tuple[Any, ...]):
    """Run one operation; returns the OperationResult (None for advance)."""
    kind = op[0]
    if kind == "deposit":
        _, account, amount, rank_id, consolidate = op
        return locker.deposit(account, amount, rank_id, consolidate=consolidate)
    if kind == "withdraw":
        _, account, amount, rank_id = op
        return locker.withdraw(account, amount, rank_id)
    if kind == "sweep":
        return locker.sweep_expired(op[1])
    if kind == "advance":
        locker.advance_time(locker.current_time + timedelta(days=op[1]))
        return None
    raise ValueError(f"Unknown operation: {kind}")

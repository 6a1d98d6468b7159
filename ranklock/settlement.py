"""
settlement.py - Balance migration between lock records and rank buckets

Three algorithms move value inside one account's AccountLedger:

    sweep_expired  expired records -> unlocked, same rank
    promote        every record below a rank -> unlocked, in its own rank
    consolidate    every balance below a rank -> pulled up into that rank

Each one runs to completion on the ledger it is given and returns a
SettlementReport describing what moved. None of them changes the account's
total value (locked + unlocked over all ranks); deposits and withdrawals are
the only operations that do.

peek_expired is the read-only counterpart of sweep_expired.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from .core import LockRecord, Rank
from .timelocks import AccountLedger


SETTLEMENT_SWEEP = "sweep"
SETTLEMENT_PROMOTE = "promote"
SETTLEMENT_CONSOLIDATE = "consolidate"


@dataclass(frozen=True, slots=True)
class SettlementReport:
    """
    What a settlement pass moved.

    Attributes:
        kind: SETTLEMENT_SWEEP, SETTLEMENT_PROMOTE or SETTLEMENT_CONSOLIDATE
        account: Account the pass ran on
        rank_id: Target rank (None for a sweep)
        released: (rank_id, amount) pairs, sorted by rank. For sweep and promote
            this is what moved from locked to unlocked; for consolidate it is
            what was pulled out of each lower rank.
        records_removed: Lock records deleted by the pass
        created: Lock record opened by consolidation, if any
        remainder: Consolidated value credited straight to the target's unlocked bucket
    """
    kind: str
    account: str
    rank_id: Optional[int] = None
    released: Tuple[Tuple[int, int], ...] = ()
    records_removed: int = 0
    created: Optional[LockRecord] = None
    remainder: int = 0

    @property
    def total_released(self) -> int:
        return sum(amount for _, amount in self.released)

    @property
    def released_dict(self) -> Dict[int, int]:
        return dict(self.released)

    def is_empty(self) -> bool:
        return not self.released and not self.records_removed and self.created is None

    def __repr__(self) -> str:
        moved = ", ".join(f"r{rank_id}:{amount}" for rank_id, amount in self.released)
        return f"SettlementReport({self.kind} {self.account}: [{moved}], removed={self.records_removed})"


def _drain_locks(
    ledger: AccountLedger,
    predicate: Callable[[LockRecord], bool],
) -> Tuple[Dict[int, int], int]:
    """
    Remove every record matching `predicate`.

    Returns:
        (per-rank totals of the removed amounts, number of records removed)
    """
    totals: Dict[int, int] = {}
    removed = 0
    i = 0
    while i < len(ledger.locks):
        record = ledger.locks[i]
        if predicate(record):
            totals[record.rank_id] = totals.get(record.rank_id, 0) + record.amount
            # swap-remove puts an unseen record at i
            ledger.remove_lock(i)
            removed += 1
        else:
            i += 1
    return totals, removed


def _unlock(ledger: AccountLedger, totals: Dict[int, int]) -> Tuple[Tuple[int, int], ...]:
    """Move each rank's total from locked to unlocked."""
    for rank_id, amount in totals.items():
        bal = ledger.balance(rank_id)
        bal.locked -= amount
        bal.unlocked += amount
    return tuple(sorted(totals.items()))


def sweep_expired(ledger: AccountLedger, now: datetime) -> SettlementReport:
    """
    Convert every expired lock record (expires_at <= now) into unlocked value.

    Value stays in the record's own rank. Running it twice in a row is a no-op
    the second time, since no expired records remain.
    """
    totals, removed = _drain_locks(ledger, lambda r: r.is_expired(now))
    return SettlementReport(
        kind=SETTLEMENT_SWEEP,
        account=ledger.account,
        released=_unlock(ledger, totals),
        records_removed=removed,
    )


def peek_expired(ledger: Optional[AccountLedger], rank_id: int, now: datetime) -> int:
    """Amount a sweep would release at `rank_id` right now. Does not mutate."""
    if ledger is None:
        return 0
    return sum(
        r.amount for r in ledger.locks
        if r.rank_id == rank_id and r.is_expired(now)
    )


def promote(ledger: AccountLedger, rank_id: int) -> SettlementReport:
    """
    Release every holding below `rank_id`, expired or not.

    Called when a deposit brings the account's total at `rank_id` to the
    rank's goal. Each lower rank's locked value moves to its own unlocked
    bucket; the lock records are removed.
    """
    totals, removed = _drain_locks(ledger, lambda r: r.rank_id < rank_id)
    return SettlementReport(
        kind=SETTLEMENT_PROMOTE,
        account=ledger.account,
        rank_id=rank_id,
        released=_unlock(ledger, totals),
        records_removed=removed,
    )


def consolidate(
    ledger: AccountLedger,
    rank: Rank,
    incoming_amount: int,
    now: datetime,
) -> SettlementReport:
    """
    Pull every lower rank's holdings up into `rank`.

    needed = goal - locked - unlocked - incoming_amount is the shortfall left
    after the pending deposit. All lower balances (locked and unlocked) are
    summed into total_below, zeroed, and their lock records removed. Then:

        total_below > needed:  lock `needed` at `rank`, the rest goes to unlocked
        otherwise:             lock all of total_below at `rank`

    The new record expires at now + rank.min_duration. The incoming deposit
    itself is not locked here; the caller locks it separately.
    """
    target = ledger.balance(rank.id)
    needed = rank.goal_amount - target.locked - target.unlocked - incoming_amount
    if needed <= 0:
        # goal already met; promote() is the right path
        return SettlementReport(kind=SETTLEMENT_CONSOLIDATE, account=ledger.account, rank_id=rank.id)

    _, removed = _drain_locks(ledger, lambda r: r.rank_id < rank.id)

    pulled = []
    total_below = 0
    for lower_id in sorted(r for r in ledger.balances if r < rank.id):
        bal = ledger.balances[lower_id]
        if bal.total:
            pulled.append((lower_id, bal.total))
            total_below += bal.total
            bal.locked = 0
            bal.unlocked = 0

    created = None
    remainder = 0
    if total_below > 0:
        if total_below > needed:
            lock_amount = needed
            remainder = total_below - needed
        else:
            lock_amount = total_below
        created = LockRecord(expires_at=now + rank.min_duration, amount=lock_amount, rank_id=rank.id)
        ledger.add_lock(created)
        target.locked += lock_amount
        target.unlocked += remainder

    return SettlementReport(
        kind=SETTLEMENT_CONSOLIDATE,
        account=ledger.account,
        rank_id=rank.id,
        released=tuple(pulled),
        records_removed=removed,
        created=created,
        remainder=remainder,
    )

"""
timelocks.py - Per-account lock records and rank balances

An AccountLedger is one account's state:
    - an unordered list of LockRecords (removal swaps with the last element,
      so list order carries no meaning)
    - a RankBalance (locked / unlocked) for every rank the account has touched

The TimelockStore owns one AccountLedger per account id. Settlement functions
operate on an AccountLedger directly; the locker hands them a copy and
commits it back with replace() once the whole operation has succeeded.
"""

from __future__ import annotations
from typing import Dict, Iterator, List, Optional, Tuple

from .core import LockRecord, RankBalance, MAX_LOCKS_PER_ACCOUNT


class AccountLedger:
    """Lock records and rank balances for a single account."""

    def __init__(self, account: str):
        self.account = account
        self.locks: List[LockRecord] = []
        self.balances: Dict[int, RankBalance] = {}

    # ========================================================================
    # LOCK LIST
    # ========================================================================

    @property
    def lock_count(self) -> int:
        return len(self.locks)

    def add_lock(self, record: LockRecord) -> None:
        self.locks.append(record)

    def remove_lock(self, index: int) -> LockRecord:
        """
        Remove the record at `index` by swapping in the last record.

        The record previously at the end now sits at `index`, so callers
        scanning the list must re-examine `index` after a removal.
        """
        record = self.locks[index]
        last = self.locks.pop()
        if index < len(self.locks):
            self.locks[index] = last
        return record

    # ========================================================================
    # BALANCES
    # ========================================================================

    def balance(self, rank_id: int) -> RankBalance:
        """Mutable balance for a rank, created empty on first access."""
        bal = self.balances.get(rank_id)
        if bal is None:
            bal = RankBalance()
            self.balances[rank_id] = bal
        return bal

    def peek_balance(self, rank_id: int) -> RankBalance:
        """Copy of a rank's balance. Does not create an entry."""
        bal = self.balances.get(rank_id)
        return bal.copy() if bal is not None else RankBalance()

    def total_value(self) -> int:
        """locked + unlocked summed over every rank."""
        return sum(b.total for b in self.balances.values())

    def locked_by_records(self) -> Dict[int, int]:
        """Sum of lock record amounts per rank."""
        totals: Dict[int, int] = {}
        for record in self.locks:
            totals[record.rank_id] = totals.get(record.rank_id, 0) + record.amount
        return totals

    def copy(self) -> AccountLedger:
        """Independent copy. LockRecords are frozen and can be shared."""
        cloned = AccountLedger(self.account)
        cloned.locks = list(self.locks)
        cloned.balances = {rank_id: bal.copy() for rank_id, bal in self.balances.items()}
        return cloned

    def __repr__(self) -> str:
        return f"AccountLedger({self.account}: {self.lock_count} locks, value={self.total_value()})"


class TimelockStore:
    """
    Account id -> AccountLedger.

    Args:
        max_locks_per_account: Cap on outstanding lock records per account
    """

    def __init__(self, max_locks_per_account: int = MAX_LOCKS_PER_ACCOUNT):
        self.max_locks_per_account = max_locks_per_account
        self._accounts: Dict[str, AccountLedger] = {}

    def __contains__(self, account: str) -> bool:
        return account in self._accounts

    def __iter__(self) -> Iterator[Tuple[str, AccountLedger]]:
        return iter(sorted(self._accounts.items()))

    def get(self, account: str) -> Optional[AccountLedger]:
        return self._accounts.get(account)

    def account(self, account: str) -> AccountLedger:
        """AccountLedger for `account`, created empty on first access."""
        ledger = self._accounts.get(account)
        if ledger is None:
            ledger = AccountLedger(account)
            self._accounts[account] = ledger
        return ledger

    def working_copy(self, account: str) -> AccountLedger:
        """Copy of the account's ledger (empty if unknown). Not registered until replace()."""
        ledger = self._accounts.get(account)
        return ledger.copy() if ledger is not None else AccountLedger(account)

    def replace(self, ledger: AccountLedger) -> None:
        """Commit a working copy."""
        self._accounts[ledger.account] = ledger

    def lock_count(self, account: str) -> int:
        ledger = self._accounts.get(account)
        return ledger.lock_count if ledger is not None else 0

    def at_capacity(self, account: str) -> bool:
        return self.lock_count(account) >= self.max_locks_per_account

    def accounts(self) -> List[str]:
        return sorted(self._accounts)

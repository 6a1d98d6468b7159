"""
builders.py - Test helpers for constructing funded lockers

Provides plain functions (usable from hypothesis tests, where function-scoped
fixtures are not allowed) that build a TokenLedger with funded wallets and a
RankLocker wired to it.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from ranklock import (
    RankLocker, TokenLedger, LedgerValueToken, LedgerReceiptToken,
    Move, build_transaction, value_token_unit, receipt_token_unit,
    SYSTEM_WALLET,
)


T0 = datetime(2025, 1, 1)
OPERATOR = "admin"
LOCKER_NAME = "locker"
VALUE = "VAL"
RECEIPT = "rVAL"

# (min_duration, goal_amount), lowest rank first
STANDARD_RANKS: List[Tuple[timedelta, int]] = [
    (timedelta(days=10), 100),
    (timedelta(days=20), 300),
    (timedelta(days=30), 1000),
]

DEFAULT_FUNDING: Dict[str, int] = {
    "alice": 1_000_000,
    "bob": 1_000_000,
    "carol": 1_000_000,
}


def make_token_ledger(funding: Optional[Dict[str, int]] = None) -> TokenLedger:
    """TokenLedger with VAL and rVAL registered and each wallet funded with VAL."""
    if funding is None:
        funding = DEFAULT_FUNDING
    tokens = TokenLedger("tokens", T0, verbose=False)
    tokens.register_unit(value_token_unit(VALUE, "Value Token"))
    tokens.register_unit(receipt_token_unit(RECEIPT, "Locked Value Receipt"))
    moves = []
    for wallet, amount in sorted(funding.items()):
        tokens.register_wallet(wallet)
        if amount > 0:
            moves.append(Move(Decimal(amount), VALUE, SYSTEM_WALLET, wallet, f"faucet_{wallet}"))
    if moves:
        tokens.execute(build_transaction(moves, tokens.current_time))
    return tokens


def make_locker(
    ranks: Optional[List[Tuple[timedelta, int]]] = None,
    funding: Optional[Dict[str, int]] = None,
    **kwargs,
) -> Tuple[RankLocker, TokenLedger]:
    """
    Build a RankLocker over a fresh TokenLedger.

    Args:
        ranks: Ranks to add, lowest first (default: STANDARD_RANKS)
        funding: VAL per wallet (default: DEFAULT_FUNDING)
        **kwargs: Passed to RankLocker

    Returns:
        (locker, token_ledger)
    """
    tokens = make_token_ledger(funding)
    kwargs.setdefault("initial_time", T0)
    kwargs.setdefault("verbose", False)
    locker = RankLocker(
        LOCKER_NAME,
        OPERATOR,
        LedgerValueToken(tokens, VALUE),
        LedgerReceiptToken(tokens, RECEIPT, minter=LOCKER_NAME),
        **kwargs,
    )
    for min_duration, goal in (STANDARD_RANKS if ranks is None else ranks):
        result = locker.add_rank(OPERATOR, min_duration, goal)
        assert result.ok, result
    return locker, tokens


def value_of(tokens: TokenLedger, wallet: str) -> int:
    return int(tokens.get_balance(wallet, VALUE))


def receipts_of(tokens: TokenLedger, wallet: str) -> int:
    return int(tokens.get_balance(wallet, RECEIPT))


def account_total(locker: RankLocker, account: str) -> int:
    """locked + unlocked over every defined rank."""
    return sum(locker.balance_of(account, r.id).total for r in locker.ranks())

"""
ranklock - Tiered Commitment Ledger

Accounts lock value at ranks. Each rank has a minimum lock duration and a
cumulative goal; reaching a goal releases everything the account holds below
that rank, and falling short the account may consolidate lower ranks upward.

Usage:
    from datetime import datetime, timedelta
    from decimal import Decimal
    from ranklock import (
        RankLocker, TokenLedger, LedgerValueToken, LedgerReceiptToken,
        value_token_unit, receipt_token_unit, Move, build_transaction, SYSTEM_WALLET,
    )

    tokens = TokenLedger("tokens", datetime(2025, 1, 1), verbose=False)
    tokens.register_unit(value_token_unit("VAL", "Value Token"))
    tokens.register_unit(receipt_token_unit("rVAL", "Locked Value Receipt"))
    tokens.register_wallet("alice")
    tokens.execute(build_transaction(
        [Move(Decimal("1000"), "VAL", SYSTEM_WALLET, "alice", "faucet")],
        tokens.current_time,
    ))

    locker = RankLocker(
        "locker", "admin",
        LedgerValueToken(tokens, "VAL"),
        LedgerReceiptToken(tokens, "rVAL", minter="locker"),
        initial_time=datetime(2025, 1, 1),
    )
    locker.add_rank("admin", timedelta(days=10), 100)
    locker.deposit("alice", 60, 0)
"""

# Core types
from .core import (
    Rank,
    LockRecord,
    RankBalance,
    LockerEvent,
    ExecuteResult,
    ErrorKind,
    OperationResult,
    TokenUnit,
    Move,
    PendingTransaction,
    Transaction,
    build_transaction,
    value_token_unit,
    receipt_token_unit,
    LockerError,
    UnitNotRegistered,
    WalletNotRegistered,
    MAX_RANKS,
    MAX_LOCKS_PER_ACCOUNT,
    SYSTEM_WALLET,
    CUSTODY_WALLET,
    EVENT_DEPOSIT,
    EVENT_WITHDRAW,
    EVENT_NEW_RANK,
    EVENT_MODIFY_RANK,
    UNIT_TYPE_VALUE,
    UNIT_TYPE_RECEIPT,
)

# Rank table
from .rank_table import RankTable, validate_rank_order, validate_rank_values

# Timelocks
from .timelocks import AccountLedger, TimelockStore

# Settlement
from .settlement import (
    SettlementReport,
    sweep_expired,
    peek_expired,
    promote,
    consolidate,
    SETTLEMENT_SWEEP,
    SETTLEMENT_PROMOTE,
    SETTLEMENT_CONSOLIDATE,
)

# Tokens
from .token_ledger import TokenLedger
from .tokens import ValueToken, ReceiptToken, LedgerValueToken, LedgerReceiptToken

# Orchestrator
from .locker import RankLocker

__all__ = [
    # Core
    'Rank', 'LockRecord', 'RankBalance', 'LockerEvent',
    'ExecuteResult', 'ErrorKind', 'OperationResult',
    'TokenUnit', 'Move', 'PendingTransaction', 'Transaction', 'build_transaction',
    'value_token_unit', 'receipt_token_unit',
    'LockerError', 'UnitNotRegistered', 'WalletNotRegistered',
    'MAX_RANKS', 'MAX_LOCKS_PER_ACCOUNT', 'SYSTEM_WALLET', 'CUSTODY_WALLET',
    'EVENT_DEPOSIT', 'EVENT_WITHDRAW', 'EVENT_NEW_RANK', 'EVENT_MODIFY_RANK',
    'UNIT_TYPE_VALUE', 'UNIT_TYPE_RECEIPT',
    # Rank table
    'RankTable', 'validate_rank_order', 'validate_rank_values',
    # Timelocks
    'AccountLedger', 'TimelockStore',
    # Settlement
    'SettlementReport', 'sweep_expired', 'peek_expired', 'promote', 'consolidate',
    'SETTLEMENT_SWEEP', 'SETTLEMENT_PROMOTE', 'SETTLEMENT_CONSOLIDATE',
    # Tokens
    'TokenLedger', 'ValueToken', 'ReceiptToken', 'LedgerValueToken', 'LedgerReceiptToken',
    # Orchestrator
    'RankLocker',
]

"""
Core types for the ranked timelock ledger.

This module provides the foundational data structures shared by every other module:
1. Ranks and lock records: Rank, LockRecord, RankBalance
2. Outcomes: ExecuteResult, ErrorKind, OperationResult
3. Events: LockerEvent and the event kind constants
4. Token movement types: TokenUnit, Move, PendingTransaction, Transaction
5. Exceptions: LockerError and token-ledger error types

Nothing in this module mutates ledger state. Validation failures that a caller
is expected to handle are reported through OperationResult, never raised.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
import hashlib
from typing import Dict, List, Optional, Any, Tuple, FrozenSet


# ============================================================================
# CONSTANTS
# ============================================================================

# Rank ids must fit an 8-bit identifier.
MAX_RANKS = 256

# Outstanding lock records per account. Bounds per-account state and sweep cost.
MAX_LOCKS_PER_ACCOUNT = 600

# Reserved wallet for receipt issuance and redemption.
SYSTEM_WALLET = "system"

# Wallet that holds deposited value while it is locked.
CUSTODY_WALLET = "custody"

# Event kinds (strings, like the token unit types).
EVENT_DEPOSIT = "DEPOSIT"
EVENT_WITHDRAW = "WITHDRAW"
EVENT_NEW_RANK = "NEW_RANK"
EVENT_MODIFY_RANK = "MODIFY_RANK"

# Token unit types.
UNIT_TYPE_VALUE = "VALUE"
UNIT_TYPE_RECEIPT = "RECEIPT"


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of an execution attempt.

    APPLIED: The operation was validated and applied.
    ALREADY_APPLIED: A token transaction with the same intent_id was already processed.
    REJECTED: Validation failed; no state was changed.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class ErrorKind(Enum):
    """Reasons a locker operation can be rejected."""
    INVALID_AMOUNT = "invalid_amount"
    INVALID_RANK = "invalid_rank"
    NO_RANKS_DEFINED = "no_ranks_defined"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    TOO_MANY_LOCKS = "too_many_locks"
    ORDERING_VIOLATION = "ordering_violation"
    NOT_FOUND = "not_found"
    INSUFFICIENT_UNLOCKED = "insufficient_unlocked"
    UNAUTHORIZED = "unauthorized"
    TRANSFER_REJECTED = "transfer_rejected"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LockerError(Exception):
    """Base exception for API misuse. Business rule failures use OperationResult instead."""
    pass


class UnitNotRegistered(LockerError):
    """Raised when a token unit has not been registered with the token ledger."""
    pass


class WalletNotRegistered(LockerError):
    """Raised when a wallet has not been registered with the token ledger."""
    pass


# ============================================================================
# RANKS AND LOCKS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Rank:
    """
    One tier of the rank table.

    Attributes:
        id: Position in the rank table (0 = lowest tier).
        min_duration: How long a deposit at this rank stays locked.
        goal_amount: Cumulative amount that, once reached, releases every lower rank.
    """
    id: int
    min_duration: timedelta
    goal_amount: int

    def __repr__(self) -> str:
        return f"Rank({self.id}: {self.min_duration}, goal={self.goal_amount})"


@dataclass(frozen=True, slots=True)
class LockRecord:
    """A single deposit's amount, rank and expiry. Position in a lock list carries no meaning."""
    expires_at: datetime
    amount: int
    rank_id: int

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass(slots=True)
class RankBalance:
    """Two-bucket balance for one (rank, account) pair."""
    locked: int = 0
    unlocked: int = 0

    @property
    def total(self) -> int:
        return self.locked + self.unlocked

    def copy(self) -> RankBalance:
        return RankBalance(self.locked, self.unlocked)


# ============================================================================
# OUTCOMES
# ============================================================================

@dataclass(frozen=True, slots=True)
class OperationResult:
    """
    Outcome of a public locker operation.

    Attributes:
        status: APPLIED or REJECTED
        error: Why the operation was rejected (None when applied)
        reason: Human-readable detail
        payload: Operation-specific data (new Rank, SettlementReport, ...)
    """
    status: ExecuteResult
    error: Optional[ErrorKind] = None
    reason: str = ""
    payload: Any = None

    @property
    def ok(self) -> bool:
        return self.status == ExecuteResult.APPLIED

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            return "OperationResult(APPLIED)"
        return f"OperationResult(REJECTED {self.error.value}: {self.reason})"


def applied(payload: Any = None) -> OperationResult:
    return OperationResult(ExecuteResult.APPLIED, payload=payload)


def rejected(error: ErrorKind, reason: str) -> OperationResult:
    return OperationResult(ExecuteResult.REJECTED, error=error, reason=reason)


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LockerEvent:
    """
    Immutable record of an observable locker event.

    Attributes:
        kind: EVENT_DEPOSIT, EVENT_WITHDRAW, EVENT_NEW_RANK or EVENT_MODIFY_RANK
        timestamp: Locker time when the event was emitted
        sequence: Monotonic position in the locker's event log
        params: Event fields as frozen (key, value) pairs
    """
    kind: str
    timestamp: datetime
    sequence: int
    params: Tuple[Tuple[str, Any], ...] = ()

    @property
    def params_dict(self) -> Dict[str, Any]:
        return dict(self.params)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v}" for k, v in self.params)
        return f"{self.kind}({fields})"


# ============================================================================
# TOKEN MOVEMENT TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class TokenUnit:
    """
    A token held in the token ledger.

    Attributes:
        symbol: Short identifier (e.g., "VAL", "rLOCK")
        name: Human-readable name
        unit_type: UNIT_TYPE_VALUE or UNIT_TYPE_RECEIPT
        min_balance: Lowest balance any non-system wallet may hold
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: Decimal = Decimal("0")


def value_token_unit(symbol: str, name: str) -> TokenUnit:
    """Create the transferable value token."""
    return TokenUnit(symbol=symbol, name=name, unit_type=UNIT_TYPE_VALUE)


def receipt_token_unit(symbol: str, name: str) -> TokenUnit:
    """Create the receipt token issued 1:1 against locked deposits."""
    return TokenUnit(symbol=symbol, name=name, unit_type=UNIT_TYPE_RECEIPT)


@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of a token between two wallets.

    All fields are validated in __post_init__.
    """
    quantity: Decimal
    unit_symbol: str
    source: str
    dest: str
    contract_id: str

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if not isinstance(self.quantity, Decimal):
            raise ValueError(f"Move quantity must be Decimal, got {type(self.quantity)}")
        if not self.quantity.is_finite() or self.quantity <= 0:
            raise ValueError(f"Move quantity must be finite and positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _compute_intent_id(moves: Tuple[Move, ...]) -> str:
    """
    Deterministic content hash of a set of moves.

    Same moves always give the same id, regardless of order.
    """
    parts = sorted(
        f"{m.quantity.normalize()}|{m.unit_symbol}|{m.source}|{m.dest}|{m.contract_id}"
        for m in moves
    )
    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    Token moves to be applied together, before execution.

    intent_id is computed from the moves when not supplied; the token ledger
    uses it to refuse applying the same intent twice.
    """
    moves: Tuple[Move, ...]
    timestamp: datetime
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            object.__setattr__(self, 'intent_id', _compute_intent_id(self.moves))

    def is_empty(self) -> bool:
        return not self.moves

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, intent={self.intent_id})"


def build_transaction(moves: List[Move], timestamp: datetime) -> PendingTransaction:
    """Build a PendingTransaction from a list of moves."""
    return PendingTransaction(moves=tuple(moves), timestamp=timestamp)


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of token moves.

    Attributes:
        moves: Value transfers that were applied
        timestamp: When the PendingTransaction was created
        intent_id: Content hash from the PendingTransaction
        exec_id: Unique execution identifier (ledger + sequence)
        ledger_name: Name of the ledger that executed it
        execution_time: Ledger time at execution
        sequence_number: Monotonic within the ledger
    """
    moves: Tuple[Move, ...]
    timestamp: datetime
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    contract_ids: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def __repr__(self) -> str:
        moves = "; ".join(repr(m) for m in self.moves)
        return f"Transaction({self.exec_id}: {moves})"

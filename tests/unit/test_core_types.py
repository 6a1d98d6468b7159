"""
Tests for core.py - ranks, lock records, outcomes, events and token moves
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from ranklock import (
    Rank, LockRecord, RankBalance, LockerEvent,
    ExecuteResult, ErrorKind, OperationResult,
    Move, PendingTransaction, Transaction, build_transaction,
    value_token_unit, receipt_token_unit,
    UNIT_TYPE_VALUE, UNIT_TYPE_RECEIPT, EVENT_DEPOSIT,
)
from ranklock.core import applied, rejected


T0 = datetime(2025, 1, 1)


class TestRanksAndLocks:

    def test_rank_is_immutable(self):
        rank = Rank(id=0, min_duration=timedelta(days=10), goal_amount=100)
        with pytest.raises(AttributeError):
            rank.goal_amount = 200

    def test_lock_record_expires_at_boundary(self):
        """A record is expired once now reaches expires_at, not after."""
        record = LockRecord(expires_at=T0 + timedelta(days=10), amount=50, rank_id=0)
        assert not record.is_expired(T0 + timedelta(days=10) - timedelta(seconds=1))
        assert record.is_expired(T0 + timedelta(days=10))
        assert record.is_expired(T0 + timedelta(days=11))

    def test_rank_balance_total_and_copy(self):
        bal = RankBalance(locked=70, unlocked=30)
        assert bal.total == 100
        copied = bal.copy()
        copied.locked = 0
        assert bal.locked == 70


class TestOperationResult:

    def test_applied_is_truthy(self):
        result = applied("payload")
        assert result.ok
        assert bool(result)
        assert result.status == ExecuteResult.APPLIED
        assert result.error is None
        assert result.payload == "payload"

    def test_rejected_carries_error(self):
        result = rejected(ErrorKind.INVALID_AMOUNT, "zero")
        assert not result
        assert result.status == ExecuteResult.REJECTED
        assert result.error == ErrorKind.INVALID_AMOUNT
        assert "invalid_amount" in repr(result)


class TestLockerEvent:

    def test_params_dict(self):
        event = LockerEvent(EVENT_DEPOSIT, T0, 0, (("account", "alice"), ("amount", 60)))
        assert event.params_dict == {"account": "alice", "amount": 60}
        assert repr(event) == "DEPOSIT(account=alice, amount=60)"


class TestMove:

    def test_rejects_non_decimal(self):
        with pytest.raises(ValueError, match="must be Decimal"):
            Move(100, "VAL", "alice", "custody", "deposit")

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError, match="finite and positive"):
            Move(Decimal("0"), "VAL", "alice", "custody", "deposit")
        with pytest.raises(ValueError, match="finite and positive"):
            Move(Decimal("-5"), "VAL", "alice", "custody", "deposit")

    def test_rejects_self_transfer(self):
        with pytest.raises(ValueError, match="must be different"):
            Move(Decimal("5"), "VAL", "alice", "alice", "deposit")

    def test_rejects_empty_fields(self):
        with pytest.raises(ValueError, match="source cannot be empty"):
            Move(Decimal("5"), "VAL", " ", "bob", "deposit")
        with pytest.raises(ValueError, match="contract_id cannot be empty"):
            Move(Decimal("5"), "VAL", "alice", "bob", "")


class TestPendingTransaction:

    def test_intent_id_ignores_move_order(self):
        a = Move(Decimal("5"), "VAL", "alice", "bob", "x")
        b = Move(Decimal("7"), "VAL", "bob", "carol", "y")
        assert build_transaction([a, b], T0).intent_id == build_transaction([b, a], T0).intent_id

    def test_intent_id_normalizes_decimal(self):
        a = Move(Decimal("5"), "VAL", "alice", "bob", "x")
        b = Move(Decimal("5.00"), "VAL", "alice", "bob", "x")
        assert build_transaction([a], T0).intent_id == build_transaction([b], T0).intent_id

    def test_different_contract_ids_are_different_intents(self):
        a = Move(Decimal("5"), "VAL", "alice", "bob", "deposit:1")
        b = Move(Decimal("5"), "VAL", "alice", "bob", "deposit:2")
        assert build_transaction([a], T0).intent_id != build_transaction([b], T0).intent_id

    def test_empty(self):
        assert PendingTransaction(moves=(), timestamp=T0).is_empty()

    def test_transaction_requires_moves(self):
        with pytest.raises(ValueError, match="must have moves"):
            Transaction((), T0, "id", "exec", "tokens", T0, 0)


class TestTokenUnits:

    def test_factories(self):
        assert value_token_unit("VAL", "Value").unit_type == UNIT_TYPE_VALUE
        receipt = receipt_token_unit("rVAL", "Receipt")
        assert receipt.unit_type == UNIT_TYPE_RECEIPT
        assert receipt.min_balance == Decimal("0")

"""
Conservation Conformance Tests

INVARIANT: For every account a, at all times t:
    wallet_value(a, t) + Σ_r (locked(a, r, t) + unlocked(a, r, t)) = funding(a)
    receipts(a, t) = Σ_r (locked(a, r, t) + unlocked(a, r, t))

Deposits, promotions, consolidations, sweeps and withdrawals move value
between buckets, custody and wallets, but never create or destroy it.
"""

from datetime import timedelta

from hypothesis import given, settings, note
from hypothesis import strategies as st

from tests.builders import DEFAULT_FUNDING, make_locker, value_of, receipts_of, account_total
from tests.conformance.strategies import ACCOUNTS, operations, apply_op


def assert_conserved(locker, tokens):
    for account in ACCOUNTS:
        held = account_total(locker, account)
        assert value_of(tokens, account) + held == DEFAULT_FUNDING[account]
        assert receipts_of(tokens, account) == held
        assert locker.verify_account(account)['valid']
    assert locker.verify_custody()['valid']
    assert tokens.verify_double_entry()['valid']


class TestConservationProperties:

    @given(operations())
    @settings(max_examples=100, deadline=None)
    def test_conservation_holds_for_arbitrary_sequences(self, ops):
        """
        PROPERTY: After every operation, accepted or rejected, value is conserved
        and each locked bucket equals the sum of its lock records.
        """
        locker, tokens = make_locker()
        for op in ops:
            result = apply_op(locker, op)
            note(f"{op} -> {result!r}")
            assert_conserved(locker, tokens)

    @given(operations(), st.integers(min_value=0, max_value=60))
    @settings(max_examples=50, deadline=None)
    def test_everything_withdrawable_eventually(self, ops, extra_days):
        """
        PROPERTY: Once every lock has expired, an account can withdraw its
        entire holding and the locker ends empty.
        """
        locker, tokens = make_locker()
        for op in ops:
            apply_op(locker, op)

        # longest rank is 30 days
        locker.advance_time(locker.current_time + timedelta(days=30 + extra_days))
        for account in ACCOUNTS:
            locker.sweep_expired(account)
            for rank in locker.ranks():
                unlocked = locker.balance_of(account, rank.id).unlocked
                if unlocked:
                    assert locker.withdraw(account, unlocked, rank.id).ok

        for account in ACCOUNTS:
            assert locker.total_value(account) == 0
            assert value_of(tokens, account) == DEFAULT_FUNDING[account]
        assert locker.verify_custody()['ledger_total'] == 0

    @given(operations())
    @settings(max_examples=50, deadline=None)
    def test_no_negative_buckets(self, ops):
        locker, _ = make_locker()
        for op in ops:
            apply_op(locker, op)
            for account in ACCOUNTS:
                for rank in locker.ranks():
                    bal = locker.balance_of(account, rank.id)
                    assert bal.locked >= 0
                    assert bal.unlocked >= 0

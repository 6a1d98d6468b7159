"""
conftest.py - Shared pytest fixtures for ranklock tests

Provides:
- Funded token ledgers
- Lockers with the standard three-rank table, or no ranks at all
- Lockers over fake token collaborators (for failure injection)
"""

import pytest
from datetime import timedelta

from ranklock import RankLocker, AccountLedger

from tests.builders import (
    T0, OPERATOR, LOCKER_NAME, make_locker, make_token_ledger,
)
from tests.fake_tokens import FakeValueToken, FakeReceiptToken


# =============================================================================
# TOKEN FIXTURES
# =============================================================================

@pytest.fixture
def token_ledger():
    """TokenLedger with alice, bob and carol each holding 1,000,000 VAL."""
    return make_token_ledger()


# =============================================================================
# LOCKER FIXTURES
# =============================================================================

@pytest.fixture
def locker_and_tokens():
    """Locker with ranks (10d, 100), (20d, 300), (30d, 1000) and its token ledger."""
    return make_locker()


@pytest.fixture
def locker(locker_and_tokens):
    return locker_and_tokens[0]


@pytest.fixture
def empty_locker():
    """Locker with no ranks defined."""
    return make_locker(ranks=[])[0]


@pytest.fixture
def fake_tokens():
    """(FakeValueToken, FakeReceiptToken) with alice funded."""
    return FakeValueToken({"alice": 10_000}), FakeReceiptToken(minter=LOCKER_NAME)


@pytest.fixture
def fake_locker(fake_tokens):
    """Locker over fake tokens with ranks (10d, 100) and (20d, 300)."""
    value, receipt = fake_tokens
    locker = RankLocker(LOCKER_NAME, OPERATOR, value, receipt, initial_time=T0, verbose=False)
    locker.add_rank(OPERATOR, timedelta(days=10), 100)
    locker.add_rank(OPERATOR, timedelta(days=20), 300)
    return locker


# =============================================================================
# ACCOUNT LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def account():
    """Empty AccountLedger for alice."""
    return AccountLedger("alice")

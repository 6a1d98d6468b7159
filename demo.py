#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Rank Locker Step by Step

A pedagogical walkthrough of the tiered commitment ledger. Each step builds on
the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Setup         - Tokens, the locker, the rank table
  4-7:   Depositing    - Locks, reaching a goal, promotion, consolidation
  8-9:   Time          - Expiry, sweeps, withdrawals
  10-11: Guarantees    - All-or-nothing operations, events, audits

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Tuple
import sys

from ranklock import (
    RankLocker, TokenLedger, LedgerValueToken, LedgerReceiptToken,
    Move, build_transaction, value_token_unit, receipt_token_unit,
    SYSTEM_WALLET, CUSTODY_WALLET,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    locker_name: str = "locker"
    operator: str = "admin"
    value_symbol: str = "VAL"
    receipt_symbol: str = "rVAL"

    funding: Dict[str, int] = field(default_factory=lambda: {
        "alice": 5_000,
        "bob": 5_000,
        "carol": 20,
    })

    # (name, min_duration, goal_amount), lowest first
    ranks: List[Tuple[str, timedelta, int]] = field(default_factory=lambda: [
        ("Bronze", timedelta(days=10), 100),
        ("Silver", timedelta(days=20), 300),
        ("Gold", timedelta(days=30), 1000),
    ])


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_account(locker: RankLocker, account: str):
    print(f"{account}:")
    for rank in locker.ranks():
        bal = locker.balance_of(account, rank.id)
        print(f"  rank {rank.id}: locked={bal.locked:>6}  unlocked={bal.unlocked:>6}")
    print(f"  lock records: {locker.lock_count(account)}")


# ============================================================================
# PHASE 1: SETUP (Steps 1-3)
# ============================================================================

def step_01_tokens():
    """Create the token ledger holding both tokens."""
    step_header(1, "The Tokens",
        "The locker moves two tokens: the value deposited and a receipt minted 1:1.")

    print("""
    Both tokens live as units on a double-entry TokenLedger:

    - VAL   the value token users deposit and withdraw
    - rVAL  the receipt token, minted on deposit and burned on withdrawal

    Deposited VAL sits in a custody wallet. Receipts are issued from and
    retired to the SYSTEM wallet, so circulating receipts = value locked up.
    """)

    wait_for_enter()

    tokens = TokenLedger("tokens", CONFIG.start_time, verbose=True)
    tokens.register_unit(value_token_unit(CONFIG.value_symbol, "Value Token"))
    tokens.register_unit(receipt_token_unit(CONFIG.receipt_symbol, "Locked Value Receipt"))

    moves = []
    for wallet, amount in CONFIG.funding.items():
        tokens.register_wallet(wallet)
        moves.append(Move(Decimal(amount), CONFIG.value_symbol, SYSTEM_WALLET, wallet, f"faucet_{wallet}"))
    tokens.execute(build_transaction(moves, tokens.current_time))

    section_header("Wallet Balances")
    for wallet in CONFIG.funding:
        print(f"{wallet:<8} {tokens.get_balance(wallet, CONFIG.value_symbol):>8} VAL")

    tokens.verbose = False
    return tokens


def step_02_locker(tokens: TokenLedger):
    """Wire a locker to the two tokens."""
    step_header(2, "The Locker",
        "The locker owns custody and the receipt's mint authority. Only the operator edits ranks.")

    print(f"""
>>> value = LedgerValueToken(tokens, "{CONFIG.value_symbol}")
>>> receipt = LedgerReceiptToken(tokens, "{CONFIG.receipt_symbol}", minter="{CONFIG.locker_name}")
>>> locker = RankLocker("{CONFIG.locker_name}", "{CONFIG.operator}", value, receipt)
""")

    wait_for_enter()

    value = LedgerValueToken(tokens, CONFIG.value_symbol)
    receipt = LedgerReceiptToken(tokens, CONFIG.receipt_symbol, minter=CONFIG.locker_name)
    locker = RankLocker(
        CONFIG.locker_name, CONFIG.operator, value, receipt,
        initial_time=CONFIG.start_time, verbose=True,
    )

    section_header("Initial State")
    print(f"Operator:       {locker.operator}")
    print(f"Current time:   {locker.current_time}")
    print(f"Ranks:          {locker.rank_count}")
    print(f"Custody wallet: {CUSTODY_WALLET}")

    return locker


def step_03_ranks(locker: RankLocker):
    """Define the rank table."""
    step_header(3, "The Rank Table",
        "Ranks are ordered: each one needs at least the duration and goal of the one below.")

    wait_for_enter()

    for name, min_duration, goal in CONFIG.ranks:
        print(f">>> locker.add_rank('{CONFIG.operator}', timedelta(days={min_duration.days}), {goal})   # {name}")
        locker.add_rank(CONFIG.operator, min_duration, goal)

    section_header("Out-of-order rank is refused")
    result = locker.add_rank(CONFIG.operator, timedelta(days=5), 5000)
    print(f"Result: {result!r}")

    section_header("Only the operator may edit ranks")
    result = locker.add_rank("alice", timedelta(days=60), 5000)
    print(f"Result: {result!r}")

    return locker


# ============================================================================
# PHASE 2: DEPOSITING (Steps 4-7)
# ============================================================================

def step_04_first_deposit(locker: RankLocker, tokens: TokenLedger):
    step_header(4, "First Deposit",
        "A deposit is locked at its rank for the rank's min_duration.")

    wait_for_enter()

    print(">>> locker.deposit('alice', 60, 0)")
    locker.deposit("alice", 60, 0)

    section_header("Books")
    show_account(locker, "alice")
    (record,) = locker.locks_of("alice")
    print(f"  expires at: {record.expires_at}")
    print(f"\nalice VAL:  {tokens.get_balance('alice', CONFIG.value_symbol)}")
    print(f"alice rVAL: {tokens.get_balance('alice', CONFIG.receipt_symbol)}")


def step_05_reaching_goal(locker: RankLocker):
    step_header(5, "Reaching a Goal",
        "Once locked + unlocked + deposit reaches the goal, the account is promoted.")

    print("""
    alice holds 60 at Bronze (goal 100). Depositing 50 more brings her to 110.
    Promotion releases everything below the rank; Bronze is the lowest rank,
    so there is nothing to release yet.
    """)

    wait_for_enter()

    print(">>> locker.deposit('alice', 50, 0)")
    result = locker.deposit("alice", 50, 0)
    print(f"Report: {result.payload!r}")
    show_account(locker, "alice")


def step_06_promotion(locker: RankLocker):
    step_header(6, "Promotion",
        "Meeting a higher goal frees every lower holding, locked or not.")

    wait_for_enter()

    print(">>> locker.deposit('alice', 300, 1)")
    result = locker.deposit("alice", 300, 1)
    print(f"Report: {result.payload!r}")
    show_account(locker, "alice")

    section_header("Key Insight")
    print("""
    alice's 110 at Bronze is now UNLOCKED although its 10 days have not passed.
    Committing to Silver's goal bought her lower ranks their freedom.
    """)


def step_07_consolidation(locker: RankLocker):
    step_header(7, "Consolidation",
        "Short of a goal, a depositor may pull lower ranks up into the target rank.")

    print("""
    bob locks 100 at Bronze, then deposits 50 at Silver with consolidate=True:

        needed = 300 - 0 - 0 - 50 = 250
        below  = 100  (all of Bronze)

    All 100 is relocked at Silver for Silver's duration, then the 50 is locked.
    """)

    wait_for_enter()

    locker.deposit("bob", 100, 0)
    print(">>> locker.deposit('bob', 50, 1, consolidate=True)")
    result = locker.deposit("bob", 50, 1, consolidate=True)
    print(f"Report: {result.payload!r}")
    show_account(locker, "bob")


# ============================================================================
# PHASE 3: TIME (Steps 8-9)
# ============================================================================

def step_08_expiry(locker: RankLocker):
    step_header(8, "Expiry and Sweeps",
        "Expired locks become unlocked value at the same rank when swept.")

    wait_for_enter()

    for days in (10, 20):
        now = CONFIG.start_time + timedelta(days=days)
        locker.advance_time(now)
        print(f"\n>>> locker.advance_time({now})")
        print(f"alice expired at Silver: {locker.peek_expired('alice', 1)}")

    print("\n>>> locker.sweep_expired('alice')")
    locker.sweep_expired("alice")
    show_account(locker, "alice")

    section_header("Key Insight")
    print("""
    peek_expired() only looks. sweep_expired() converts. Withdrawals sweep
    on their own, so an explicit sweep is never required.
    """)


def step_09_withdrawals(locker: RankLocker, tokens: TokenLedger):
    step_header(9, "Withdrawals",
        "Only unlocked value leaves. Receipts are burned 1:1.")

    wait_for_enter()

    print(">>> locker.withdraw('alice', 110, 0)     # exactly what is unlocked")
    locker.withdraw("alice", 110, 0)
    print(">>> locker.withdraw('alice', 1, 0)       # nothing left")
    locker.withdraw("alice", 1, 0)
    print(">>> locker.withdraw('alice', 300, 1)")
    locker.withdraw("alice", 300, 1)

    show_account(locker, "alice")
    print(f"\nalice VAL:  {tokens.get_balance('alice', CONFIG.value_symbol)}")
    print(f"alice rVAL: {tokens.get_balance('alice', CONFIG.receipt_symbol)}")


# ============================================================================
# PHASE 4: GUARANTEES (Steps 10-11)
# ============================================================================

def step_10_atomicity(locker: RankLocker):
    step_header(10, "All or Nothing",
        "A rejected operation leaves no trace, not even the sweep it ran.")

    wait_for_enter()

    section_header("Overdrawn withdrawal")
    before = locker.lock_count("bob")
    print(">>> locker.withdraw('bob', 151, 1)")
    locker.withdraw("bob", 151, 1)
    print(f"bob lock records before: {before}, after: {locker.lock_count('bob')}")

    section_header("Underfunded deposit")
    print(">>> locker.deposit('carol', 50, 0)       # carol holds 20 VAL")
    locker.deposit("carol", 50, 0)
    print(f"carol accounts on the locker: {'carol' in locker.accounts()}")


def step_11_audit(locker: RankLocker, tokens: TokenLedger):
    step_header(11, "Events and Audits",
        "Every change is an event; custody, receipts and the books always agree.")

    wait_for_enter()

    section_header("Event Log")
    for event in locker.event_log:
        print(f"  [{event.sequence:>2}] {event.timestamp:%Y-%m-%d}  {event!r}")

    section_header("Audits")
    print(f"verify_custody():       {locker.verify_custody()}")
    for account in locker.accounts():
        print(f"verify_account({account!r}): {locker.verify_account(account)['valid']}")
    print(f"verify_double_entry():  {tokens.verify_double_entry()['valid']}")


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       RANK LOCKER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    tokens = step_01_tokens()
    wait_for_enter()

    locker = step_02_locker(tokens)
    wait_for_enter()

    step_03_ranks(locker)
    wait_for_enter()

    step_04_first_deposit(locker, tokens)
    wait_for_enter()

    step_05_reaching_goal(locker)
    wait_for_enter()

    step_06_promotion(locker)
    wait_for_enter()

    step_07_consolidation(locker)
    wait_for_enter()

    step_08_expiry(locker)
    wait_for_enter()

    step_09_withdrawals(locker, tokens)
    wait_for_enter()

    step_10_atomicity(locker)
    wait_for_enter()

    step_11_audit(locker, tokens)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    You've learned:

      - Deposits lock value at a rank for its min_duration
      - Reaching a goal releases every lower rank
      - Consolidation pulls lower ranks up toward a goal
      - Expired locks become withdrawable; locked value never leaves
      - Rejections change nothing

    Next steps:
      - See ranklock/settlement.py for the settlement rules
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()

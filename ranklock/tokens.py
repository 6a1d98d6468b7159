"""
tokens.py - Token collaborators consumed by the locker

The locker only depends on two small protocols:

    ValueToken     transfer_in(source, amount) / transfer_out(dest, amount)
    ReceiptToken   mint(caller, to, amount) / burn(caller, source, amount), minter only

Both return an ExecuteResult; anything other than APPLIED means the token
refused and nothing moved. LedgerValueToken and LedgerReceiptToken implement
them on top of a shared TokenLedger, one unit per token.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Protocol, runtime_checkable

from .core import (
    Move, ExecuteResult, build_transaction,
    SYSTEM_WALLET, CUSTODY_WALLET,
    UnitNotRegistered,
)
from .token_ledger import TokenLedger


@runtime_checkable
class ValueToken(Protocol):
    """Transferable token deposited into and withdrawn from custody."""

    def transfer_in(self, source: str, amount: int, reference: str = "deposit") -> ExecuteResult:
        """Pull `amount` from `source` into custody."""
        ...

    def transfer_out(self, dest: str, amount: int, reference: str = "withdraw") -> ExecuteResult:
        """Return `amount` from custody to `dest`."""
        ...

    def custody_balance(self) -> int:
        """Value currently held in custody."""
        ...


@runtime_checkable
class ReceiptToken(Protocol):
    """Receipt issued 1:1 against locked value. Only `minter` may mint or burn."""

    @property
    def minter(self) -> str:
        ...

    def mint(self, caller: str, to: str, amount: int, reference: str = "mint") -> ExecuteResult:
        """Issue `amount` to `to`. REJECTED unless `caller` is the minter."""
        ...

    def burn(self, caller: str, source: str, amount: int, reference: str = "burn") -> ExecuteResult:
        """Retire `amount` held by `source`. REJECTED unless `caller` is the minter."""
        ...

    def supply(self) -> int:
        """Receipt units in circulation."""
        ...


class _LedgerToken:
    """Shared plumbing: one unit of a TokenLedger, single-move transactions."""

    def __init__(self, ledger: TokenLedger, symbol: str):
        if symbol not in ledger.units:
            raise UnitNotRegistered(f"Unit {symbol} not registered")
        self.ledger = ledger
        self.symbol = symbol
        self._nonce = 0

    def _move(self, amount: int, source: str, dest: str, reference: str) -> ExecuteResult:
        if not self.ledger.is_registered(source) or not self.ledger.is_registered(dest):
            return ExecuteResult.REJECTED
        # nonce keeps repeated identical transfers distinct intents
        self._nonce += 1
        move = Move(
            quantity=Decimal(amount),
            unit_symbol=self.symbol,
            source=source,
            dest=dest,
            contract_id=f"{reference}:{self.symbol}:{self._nonce}",
        )
        return self.ledger.execute(build_transaction([move], self.ledger.current_time))

    def balance_of(self, wallet: str) -> int:
        if not self.ledger.is_registered(wallet):
            return 0
        return int(self.ledger.get_balance(wallet, self.symbol))


class LedgerValueToken(_LedgerToken):
    """
    Value token backed by a TokenLedger unit.

    Args:
        ledger: Token ledger holding the unit
        symbol: Registered unit symbol
        custody_wallet: Wallet that holds deposited value (created if missing)
    """

    def __init__(self, ledger: TokenLedger, symbol: str, custody_wallet: str = CUSTODY_WALLET):
        super().__init__(ledger, symbol)
        self.custody_wallet = ledger.ensure_wallet(custody_wallet)

    def transfer_in(self, source: str, amount: int, reference: str = "deposit") -> ExecuteResult:
        return self._move(amount, source, self.custody_wallet, reference)

    def transfer_out(self, dest: str, amount: int, reference: str = "withdraw") -> ExecuteResult:
        return self._move(amount, self.custody_wallet, dest, reference)

    def custody_balance(self) -> int:
        return self.balance_of(self.custody_wallet)


class LedgerReceiptToken(_LedgerToken):
    """
    Receipt token backed by a TokenLedger unit.

    Minting moves units out of SYSTEM_WALLET, burning moves them back, so the
    circulating supply is everything held outside the system wallet.

    Args:
        ledger: Token ledger holding the unit
        symbol: Registered unit symbol
        minter: Identity holding mint/burn authority (the locker's name)
    """

    def __init__(self, ledger: TokenLedger, symbol: str, minter: str):
        super().__init__(ledger, symbol)
        self._minter = minter

    @property
    def minter(self) -> str:
        return self._minter

    def mint(self, caller: str, to: str, amount: int, reference: str = "mint") -> ExecuteResult:
        if not self._is_minter(caller):
            return ExecuteResult.REJECTED
        return self._move(amount, SYSTEM_WALLET, to, reference)

    def burn(self, caller: str, source: str, amount: int, reference: str = "burn") -> ExecuteResult:
        if not self._is_minter(caller):
            return ExecuteResult.REJECTED
        return self._move(amount, source, SYSTEM_WALLET, reference)

    def _is_minter(self, caller: str) -> bool:
        if caller != self._minter:
            if self.ledger.verbose:
                print(f"✗ REJECTED: {caller} has no mint authority over {self.symbol}")
            return False
        return True

    def supply(self) -> int:
        return int(self.ledger.circulating_supply(self.symbol))

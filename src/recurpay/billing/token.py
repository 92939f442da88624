"""Fungible token interface and an in-memory ledger implementing it.

Billing contracts only depend on ``TokenLedger``: they check balances and
allowances and move funds with ``transfer_from``, treating its result as a
plain success flag.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from recurpay.billing.fees import validate_amount
from recurpay.runtime import Contract, Runtime, external, normalize_address, view

MAX_UINT256 = 2**256 - 1


@runtime_checkable
class TokenLedger(Protocol):
    """Transferable balances with allowances."""

    def transfer_from(self, holder: str, recipient: str, amount: int, *, sender: str) -> bool: ...

    def balance_of(self, account: str) -> int: ...

    def allowance(self, holder: str, spender: str) -> int: ...


class InMemoryToken(Contract):
    """Runtime-hosted token with a fixed supply minted to the deployer.

    Transfers that exceed the holder's balance or the spender's allowance
    return ``False`` and leave balances untouched. An allowance of
    ``MAX_UINT256`` is never decremented.
    """

    _state_fields = ("_balances", "_allowances")

    def __init__(
        self,
        runtime: Runtime,
        initial_supply: int,
        *,
        deployer: str,
        symbol: str = "USDC",
        decimals: int = 6,
    ) -> None:
        with runtime.transaction():
            super().__init__(runtime, deployer=deployer)
            self.symbol = symbol
            self.decimals = decimals
            self.total_supply = validate_amount(initial_supply, "initial_supply")
            self._balances: dict[str, int] = {self.deployer: initial_supply}
            self._allowances: dict[tuple[str, str], int] = {}
            self.emit("Transfer", sender=None, recipient=self.deployer, amount=initial_supply)

    @view
    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    @view
    def allowance(self, holder: str, spender: str) -> int:
        return self._allowances.get((normalize_address(holder), normalize_address(spender)), 0)

    @external
    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        spender = normalize_address(spender)
        self._allowances[(sender, spender)] = validate_amount(amount)
        self.emit("Approval", holder=sender, spender=spender, amount=amount)
        return True

    @external
    def transfer(self, recipient: str, amount: int, *, sender: str) -> bool:
        return self._move(sender, normalize_address(recipient), validate_amount(amount))

    @external
    def transfer_from(self, holder: str, recipient: str, amount: int, *, sender: str) -> bool:
        holder = normalize_address(holder)
        validate_amount(amount)
        allowed = self._allowances.get((holder, sender), 0)
        if allowed < amount:
            self.logger.debug(
                "transfer_rejected",
                reason="allowance",
                holder=holder,
                spender=sender,
                amount=amount,
                allowance=allowed,
            )
            return False
        if not self._move(holder, normalize_address(recipient), amount):
            return False
        if allowed != MAX_UINT256:
            self._allowances[(holder, sender)] = allowed - amount
        return True

    def _move(self, holder: str, recipient: str, amount: int) -> bool:
        balance = self._balances.get(holder, 0)
        if balance < amount:
            self.logger.debug(
                "transfer_rejected",
                reason="balance",
                holder=holder,
                amount=amount,
                balance=balance,
            )
            return False
        self._balances[holder] = balance - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount
        self.emit("Transfer", sender=holder, recipient=recipient, amount=amount)
        return True

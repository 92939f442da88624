"""Serialized, all-or-nothing execution environment for billing contracts.

The ``Runtime`` hosts contracts by address and runs every external call as
a transaction: the outermost call snapshots the state of every hosted
contract, the contract index and the event log, and restores all of it if
the call raises. Nested calls (a factory deploying a billing contract, a
billing contract moving tokens) join the enclosing transaction.

Snapshots are taken eagerly: every outermost transaction and every
savepoint shallow-copies the state fields of every hosted contract,
including the token's whole balance map. The cost of a call therefore
grows with the total state on the runtime, not with what the call touches.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from recurpay.core.exceptions import (
    ContractDestroyedError,
    ContractNotFoundError,
    RecurPayException,
)
from recurpay.core.logging import LoggerMixin, correlation_id_ctx, get_correlation_id
from recurpay.core.metrics import track_revert
from recurpay.runtime.addresses import derive_contract_address, normalize_address
from recurpay.runtime.clock import Clock, SystemClock

if TYPE_CHECKING:
    from recurpay.runtime.contract import Contract


@dataclass(frozen=True)
class Event:
    """Log entry emitted by a contract.

    Attributes:
        contract: Address of the emitting contract
        name: Event name (e.g. 'Paused', 'PaymentProcessed')
        args: Event arguments
        timestamp: Clock time at emission
        tx_id: Transaction the event belongs to
    """

    contract: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0
    tx_id: str | None = None


@dataclass
class _Snapshot:
    contracts: dict[str, Contract]
    tombstones: set[str]
    nonces: dict[str, int]
    event_count: int
    states: dict[str, dict[str, Any]]


class Runtime(LoggerMixin):
    """Host for contracts, their event log and the shared clock."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()
        self._contracts: dict[str, Contract] = {}
        self._tombstones: set[str] = set()
        self._nonces: dict[str, int] = {}
        self._events: list[Event] = []
        self._depth = 0

    @property
    def now(self) -> int:
        return self.clock.now()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # ------------------------------------------------------------------
    # Contract index
    # ------------------------------------------------------------------

    def allocate_address(self, deployer: str) -> str:
        nonce = self._nonces.get(deployer, 0)
        self._nonces[deployer] = nonce + 1
        return derive_contract_address(deployer, nonce)

    def host(self, contract: Contract) -> None:
        if not self.in_transaction:
            raise RuntimeError("contracts can only be deployed inside a transaction")
        self._contracts[contract.address] = contract

    def contract_at(self, address: str) -> Contract:
        """Resolve a live contract.

        Raises:
            ContractDestroyedError: If the contract was torn down
            ContractNotFoundError: If nothing was ever deployed at the address
        """
        address = normalize_address(address)
        if address in self._tombstones:
            raise ContractDestroyedError(address=address)
        contract = self._contracts.get(address)
        if contract is None:
            raise ContractNotFoundError(address=address)
        return contract

    def is_live(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    def is_destroyed(self, address: str) -> bool:
        return normalize_address(address) in self._tombstones

    def destroy(self, contract: Contract) -> None:
        """Remove a contract from the index and leave a tombstone."""
        self._contracts.pop(contract.address, None)
        self._tombstones.add(contract.address)
        self.logger.info("contract_destroyed", contract=contract.address)

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    def emit(self, contract: Contract, name: str, /, **args: Any) -> Event:
        event = Event(
            contract=contract.address,
            name=name,
            args=args,
            timestamp=self.now,
            tx_id=get_correlation_id(),
        )
        self._events.append(event)
        return event

    def events(self, name: str | None = None, contract: str | None = None) -> list[Event]:
        """Return logged events, optionally filtered by name and emitter."""
        result = self._events
        if name is not None:
            result = [e for e in result if e.name == name]
        if contract is not None:
            address = normalize_address(contract)
            result = [e for e in result if e.contract == address]
        return list(result)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[str]:
        """Run a block atomically.

        Yields:
            The transaction id (shared by nested blocks)
        """
        if self._depth:
            self._depth += 1
            try:
                yield get_correlation_id() or ""
            finally:
                self._depth -= 1
            return

        snapshot = self._snapshot()
        # Join the caller's correlation id (e.g. a request id) when one is bound
        tx_id = get_correlation_id() or str(uuid.uuid4())
        token = correlation_id_ctx.set(tx_id)
        self._depth = 1
        try:
            yield tx_id
        except Exception as exc:
            self._restore(snapshot)
            error_code = (
                exc.error_code.value if isinstance(exc, RecurPayException) else "unhandled"
            )
            track_revert(error_code)
            self.logger.info(
                "transaction_reverted",
                error=type(exc).__name__,
                error_code=error_code,
            )
            raise
        finally:
            self._depth = 0
            correlation_id_ctx.reset(token)

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """Roll back only the enclosed block if it raises.

        The exception still propagates, so the caller decides whether to
        absorb it. Must be used inside a transaction.
        """
        if not self.in_transaction:
            raise RuntimeError("savepoint() requires an open transaction")
        snapshot = self._snapshot()
        try:
            yield
        except Exception:
            self._restore(snapshot)
            raise

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            contracts=dict(self._contracts),
            tombstones=set(self._tombstones),
            nonces=dict(self._nonces),
            event_count=len(self._events),
            states={
                address: contract._snapshot_state()
                for address, contract in self._contracts.items()
            },
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        self._contracts = snapshot.contracts
        self._tombstones = snapshot.tombstones
        self._nonces = snapshot.nonces
        del self._events[snapshot.event_count :]
        for address, state in snapshot.states.items():
            self._contracts[address]._restore_state(state)

"""Tests for the contract execution environment."""

import pytest

from conftest import MINTER, OUTSIDER, START_TIME, make_account
from recurpay.core.exceptions import (
    ContractDestroyedError,
    ContractNotFoundError,
    InvalidInputError,
)
from recurpay.core.logging import get_correlation_id, set_correlation_id
from recurpay.runtime import (
    Contract,
    ManualClock,
    Runtime,
    derive_contract_address,
    external,
    normalize_address,
    same_address,
    view,
)


class Tally(Contract):
    """Minimal contract with list and scalar state."""

    _state_fields = ("value", "history")

    def __init__(self, runtime: Runtime, *, deployer: str) -> None:
        with runtime.transaction():
            super().__init__(runtime, deployer=deployer)
            self.value = 0
            self.history: list[int] = []

    @external
    def add(self, amount: int, *, sender: str) -> int:
        self.value += amount
        self.history.append(amount)
        self.emit("Added", amount=amount, sender=sender)
        if self.value < 0:
            raise InvalidInputError("tally cannot go negative", field="amount", value=amount)
        return self.value

    @external
    def label(self, name: str, contract: str, *, sender: str) -> None:
        self.emit("Labelled", name=name, contract=contract, sender=sender)

    @view
    def read(self) -> int:
        return self.value


@pytest.fixture
def tally(runtime: Runtime) -> Tally:
    return Tally(runtime, deployer=MINTER)


class TestTransactions:
    """All-or-nothing execution."""

    def test_failed_call_leaves_no_trace(self, runtime: Runtime, tally: Tally) -> None:
        """State and events of a reverted call are discarded."""
        tally.add(5, sender=OUTSIDER)

        with pytest.raises(InvalidInputError):
            tally.add(-10, sender=OUTSIDER)

        assert tally.read() == 5
        assert tally.history == [5]
        assert [e.args["amount"] for e in runtime.events(name="Added")] == [5]

    def test_nested_calls_join_outer_transaction(self, runtime: Runtime, tally: Tally) -> None:
        """An exception after a nested call undoes the nested call too."""
        with pytest.raises(RuntimeError, match="boom"):
            with runtime.transaction():
                tally.add(3, sender=OUTSIDER)
                tally.add(4, sender=OUTSIDER)
                raise RuntimeError("boom")

        assert tally.read() == 0
        assert runtime.events(name="Added") == []

    def test_nested_calls_share_transaction_id(self, runtime: Runtime, tally: Tally) -> None:
        """Events from one outer call carry the same transaction id."""
        with runtime.transaction() as tx_id:
            tally.add(1, sender=OUTSIDER)
            tally.add(2, sender=OUTSIDER)

        tally.add(3, sender=OUTSIDER)

        events = runtime.events(name="Added")
        assert events[0].tx_id == tx_id
        assert events[1].tx_id == tx_id
        assert events[2].tx_id not in (None, tx_id)
        assert not runtime.in_transaction

    def test_reverted_deployment_frees_address(self, runtime: Runtime) -> None:
        """A rolled back deployment does not consume the deployer's nonce."""
        with pytest.raises(RuntimeError):
            with runtime.transaction():
                doomed = Tally(runtime, deployer=OUTSIDER)
                raise RuntimeError("abort")

        assert not runtime.is_live(doomed.address)
        with pytest.raises(ContractNotFoundError):
            runtime.contract_at(doomed.address)
        assert Tally(runtime, deployer=OUTSIDER).address == doomed.address

    def test_reverted_destroy_revives_contract(self, runtime: Runtime, tally: Tally) -> None:
        """Tombstones are part of the rolled back state."""
        with pytest.raises(RuntimeError):
            with runtime.transaction():
                runtime.destroy(tally)
                raise RuntimeError("abort")

        assert runtime.contract_at(tally.address) is tally
        assert tally.add(1, sender=OUTSIDER) == 1

    def test_deploy_outside_transaction_rejected(self, runtime: Runtime) -> None:
        """Contracts must be created inside a transaction."""
        with pytest.raises(RuntimeError, match="inside a transaction"):
            Contract(runtime, deployer=OUTSIDER)

    def test_caller_correlation_id_is_joined_and_kept(
        self, runtime: Runtime, tally: Tally
    ) -> None:
        """A request id bound by the caller tags the call and survives it."""
        set_correlation_id("request-123")

        with runtime.transaction() as tx_id:
            tally.add(1, sender=OUTSIDER)
        tally.add(2, sender=OUTSIDER)

        assert tx_id == "request-123"
        assert [e.tx_id for e in runtime.events(name="Added")] == ["request-123", "request-123"]
        assert get_correlation_id() == "request-123"

    def test_caller_correlation_id_survives_revert(self, runtime: Runtime, tally: Tally) -> None:
        """A reverted call restores the caller's id too."""
        set_correlation_id("request-456")

        with pytest.raises(InvalidInputError):
            tally.add(-1, sender=OUTSIDER)

        assert get_correlation_id() == "request-456"

    def test_generated_transaction_id_is_cleared(self, runtime: Runtime, tally: Tally) -> None:
        """Without a caller id each call gets its own, unset afterwards."""
        tally.add(1, sender=OUTSIDER)

        assert runtime.events(name="Added")[0].tx_id is not None
        assert get_correlation_id() is None


class TestSavepoint:
    """Partial rollback inside a transaction."""

    def test_savepoint_rolls_back_inner_block_only(self, runtime: Runtime, tally: Tally) -> None:
        """Work before the savepoint survives a failure inside it."""
        with runtime.transaction():
            tally.add(5, sender=OUTSIDER)
            with pytest.raises(InvalidInputError):
                with runtime.savepoint():
                    tally.add(2, sender=OUTSIDER)
                    tally.add(-20, sender=OUTSIDER)

        assert tally.read() == 5
        assert tally.history == [5]
        assert len(runtime.events(name="Added")) == 1

    def test_savepoint_requires_transaction(self, runtime: Runtime) -> None:
        """Savepoints only make sense inside a transaction."""
        with pytest.raises(RuntimeError, match="requires an open transaction"):
            with runtime.savepoint():
                pass


class TestContractIndex:
    """Address lookup and teardown."""

    def test_contract_at(self, runtime: Runtime, tally: Tally) -> None:
        """Lookups accept any address casing."""
        assert runtime.contract_at(tally.address.lower()) is tally

    def test_unknown_address(self, runtime: Runtime) -> None:
        """Nothing was ever deployed at a random address."""
        with pytest.raises(ContractNotFoundError):
            runtime.contract_at(make_account(500))

    def test_destroyed_contract_rejects_calls(self, runtime: Runtime, tally: Tally) -> None:
        """Views and external calls fail after teardown."""
        with runtime.transaction():
            runtime.destroy(tally)

        assert runtime.is_destroyed(tally.address)
        assert not runtime.is_live(tally.address)
        with pytest.raises(ContractDestroyedError):
            runtime.contract_at(tally.address)
        with pytest.raises(ContractDestroyedError):
            tally.read()
        with pytest.raises(ContractDestroyedError):
            tally.add(1, sender=OUTSIDER)

    def test_sender_is_normalized(self, runtime: Runtime, tally: Tally) -> None:
        """External calls see the checksummed sender."""
        tally.add(1, sender=OUTSIDER.lower())

        assert runtime.events(name="Added")[0].args["sender"] == OUTSIDER

    def test_event_args_may_use_contract_and_name(self, runtime: Runtime, tally: Tally) -> None:
        """Argument keys are free even where they match emit's own parameters."""
        target = make_account(600)

        tally.label("Newsletter", target, sender=OUTSIDER)
        runtime.emit(tally, "Direct", contract=target, name="raw")

        labelled = runtime.events(name="Labelled", contract=tally.address)
        direct = runtime.events(name="Direct")
        assert labelled[0].args == {"name": "Newsletter", "contract": target, "sender": OUTSIDER}
        assert direct[0].contract == tally.address
        assert direct[0].args == {"contract": target, "name": "raw"}

    def test_event_filters(self, runtime: Runtime, tally: Tally, clock: ManualClock) -> None:
        """Events can be filtered by name and emitter and carry the clock time."""
        other = Tally(runtime, deployer=OUTSIDER)
        clock.advance(10)
        tally.add(1, sender=OUTSIDER)
        other.add(2, sender=OUTSIDER)

        events = runtime.events(name="Added", contract=other.address)

        assert len(events) == 1
        assert events[0].args["amount"] == 2
        assert events[0].timestamp == START_TIME + 10


class TestAddresses:
    """Address helpers."""

    def test_derived_addresses_are_deterministic(self) -> None:
        """Same deployer and nonce give the same address."""
        assert derive_contract_address(MINTER, 0) == derive_contract_address(MINTER, 0)
        assert derive_contract_address(MINTER, 0) != derive_contract_address(MINTER, 1)
        assert derive_contract_address(MINTER, 0) != derive_contract_address(OUTSIDER, 0)

    def test_deployments_get_distinct_addresses(self, runtime: Runtime) -> None:
        """Consecutive deployments by one account never collide."""
        first = Tally(runtime, deployer=OUTSIDER)
        second = Tally(runtime, deployer=OUTSIDER)

        assert first.address == derive_contract_address(OUTSIDER, 0)
        assert second.address == derive_contract_address(OUTSIDER, 1)

    def test_normalize_address(self) -> None:
        """Lowercase input comes back checksummed."""
        assert normalize_address(OUTSIDER.lower()) == OUTSIDER
        assert same_address(OUTSIDER.lower(), OUTSIDER)

    @pytest.mark.parametrize("value", ["", "0x1234", "not an address", None])
    def test_invalid_address(self, value: object) -> None:
        """Malformed addresses are rejected."""
        with pytest.raises(InvalidInputError):
            normalize_address(value)  # type: ignore[arg-type]


class TestManualClock:
    """Externally driven time."""

    def test_advance_and_set(self) -> None:
        """The clock only moves forwards."""
        clock = ManualClock(start=100)

        assert clock.advance(50) == 150
        assert clock.set(200) == 200
        assert clock.now() == 200

    def test_cannot_move_backwards(self) -> None:
        """Negative steps and past timestamps are rejected."""
        clock = ManualClock(start=100)

        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(99)
        assert clock.now() == 100

    def test_runtime_reads_clock(self, runtime: Runtime, clock: ManualClock) -> None:
        """The runtime time is the clock time."""
        clock.advance(5)
        assert runtime.now == START_TIME + 5

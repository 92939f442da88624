"""Base class and call decorators for contracts hosted on a ``Runtime``."""

from __future__ import annotations

import copy
import functools
from collections.abc import Callable
from typing import Any, TypeVar

from recurpay.core.exceptions import ContractDestroyedError, ContractNotFoundError
from recurpay.core.logging import LoggerMixin
from recurpay.runtime.addresses import normalize_address
from recurpay.runtime.environment import Runtime

F = TypeVar("F", bound=Callable[..., Any])


class Contract(LoggerMixin):
    """A stateful object with an address on a ``Runtime``.

    Subclasses list their mutable attributes in ``_state_fields`` so the
    runtime can snapshot and restore them around a transaction. Values are
    copied shallowly; containers must hold immutable items, and references to
    other contracts are stored as addresses.

    Subclass constructors must run inside ``runtime.transaction()`` so that a
    failing constructor leaves no trace.
    """

    _state_fields: tuple[str, ...] = ()

    def __init__(self, runtime: Runtime, *, deployer: str) -> None:
        self.runtime = runtime
        self.deployer = normalize_address(deployer)
        self.address = runtime.allocate_address(self.deployer)
        runtime.host(self)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(address={self.address!r})"

    def _ensure_live(self) -> None:
        if self.runtime.is_destroyed(self.address):
            raise ContractDestroyedError(address=self.address)
        if not self.runtime.is_live(self.address):
            raise ContractNotFoundError(address=self.address)

    def _snapshot_state(self) -> dict[str, Any]:
        return {name: copy.copy(getattr(self, name)) for name in self._state_fields}

    def _restore_state(self, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)

    def emit(self, name: str, /, **args: Any) -> None:
        self.runtime.emit(self, name, **args)


def external(method: F) -> F:
    """Mark a state-changing entry point.

    The call is rejected on a destroyed contract, ``sender`` is normalized to
    its checksummed form, and the body runs inside a transaction.
    """

    @functools.wraps(method)
    def wrapper(self: Contract, *args: Any, **kwargs: Any) -> Any:
        self._ensure_live()
        if "sender" in kwargs:
            kwargs["sender"] = normalize_address(kwargs["sender"])
        with self.runtime.transaction():
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def view(method: F) -> F:
    """Mark a read-only entry point; still fails once the contract is gone."""

    @functools.wraps(method)
    def wrapper(self: Contract, *args: Any, **kwargs: Any) -> Any:
        self._ensure_live()
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]

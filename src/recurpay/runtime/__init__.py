"""Execution environment hosting the billing contracts."""

from recurpay.runtime.addresses import (
    ZERO_ADDRESS,
    derive_contract_address,
    normalize_address,
    same_address,
)
from recurpay.runtime.clock import Clock, ManualClock, SystemClock
from recurpay.runtime.contract import Contract, external, view
from recurpay.runtime.environment import Event, Runtime

__all__ = [
    "ZERO_ADDRESS",
    "Clock",
    "Contract",
    "Event",
    "ManualClock",
    "Runtime",
    "SystemClock",
    "derive_contract_address",
    "external",
    "normalize_address",
    "same_address",
    "view",
]

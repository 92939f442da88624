"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from eth_utils import to_checksum_address

from recurpay.billing import (
    MAX_UINT256,
    BillingContract,
    CreationAuthority,
    FeeRegistry,
    InMemoryToken,
    SubscriptionFactory,
)
from recurpay.core.logging import clear_contextvars, clear_correlation_id
from recurpay.runtime import ManualClock, Runtime

ONE_USDC = 1_000_000
STARTING_USDC_SUPPLY = 10_000_000_000_000
THIRTY_DAYS_IN_SECONDS = 60 * 60 * 24 * 30
START_TIME = 1_700_000_000
PRODUCT_NAME = "FakeSubscription"


def make_account(index: int) -> str:
    """Deterministic checksummed test account."""
    return to_checksum_address(f"0x{index + 0xA11CE:040x}")


MINTER = make_account(0)
PRODUCT_OWNER = make_account(1)
SUBSCRIBER = make_account(2)
THIRD_PARTY = make_account(3)
OUTSIDER = make_account(8)
CONFIG_OWNER = make_account(9)


@pytest.fixture(autouse=True)
def _clean_logging_context() -> None:
    """Make sure no correlation id leaks between tests."""
    clear_correlation_id()
    clear_contextvars()


@pytest.fixture
def clock() -> ManualClock:
    """Externally driven clock starting at a fixed timestamp."""
    return ManualClock(start=START_TIME)


@pytest.fixture
def runtime(clock: ManualClock) -> Runtime:
    """Execution environment on the manual clock."""
    return Runtime(clock=clock)


@pytest.fixture
def signer() -> CreationAuthority:
    """Randomly generated creation signer."""
    return CreationAuthority.generate()


@pytest.fixture
def token(runtime: Runtime) -> InMemoryToken:
    """Fake USDC with the whole supply held by the minter."""
    return InMemoryToken(runtime, STARTING_USDC_SUPPLY, deployer=MINTER)


@pytest.fixture
def registry(runtime: Runtime, token: InMemoryToken, signer: CreationAuthority) -> FeeRegistry:
    """Fee registry charging 3% by default."""
    return FeeRegistry(runtime, 30, token.address, signer.address, deployer=CONFIG_OWNER)


@pytest.fixture
def factory(runtime: Runtime, registry: FeeRegistry) -> SubscriptionFactory:
    """Factory with a one USDC minimum and a thirty day interval."""
    return SubscriptionFactory(
        runtime,
        registry,
        ONE_USDC,
        THIRTY_DAYS_IN_SECONDS,
        deployer=CONFIG_OWNER,
    )


@pytest.fixture
def billing(factory: SubscriptionFactory, signer: CreationAuthority) -> BillingContract:
    """Five USDC per thirty days, owned by PRODUCT_OWNER."""
    return factory.create_subscription(
        ONE_USDC * 5,
        PRODUCT_NAME,
        signer.approve(PRODUCT_OWNER, PRODUCT_NAME),
        sender=PRODUCT_OWNER,
    )


@pytest.fixture
def fund(token: InMemoryToken) -> Callable[..., None]:
    """Give an account tokens and optionally approve a spender."""

    def _fund(
        account: str,
        amount: int = 1_000 * ONE_USDC,
        spender: str | None = None,
        allowance: int = MAX_UINT256,
    ) -> None:
        if amount:
            token.transfer(account, amount, sender=MINTER)
        if spender is not None:
            token.approve(spender, allowance, sender=account)

    return _fund


@pytest.fixture
def subscribed(
    billing: BillingContract,
    fund: Callable[..., None],
) -> BillingContract:
    """Billing contract with SUBSCRIBER already subscribed at START_TIME."""
    fund(SUBSCRIBER, spender=billing.address)
    billing.subscribe(sender=SUBSCRIBER)
    return billing

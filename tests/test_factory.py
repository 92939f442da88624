"""Tests for the subscription factory."""

import pytest

from conftest import (
    CONFIG_OWNER,
    ONE_USDC,
    OUTSIDER,
    PRODUCT_NAME,
    PRODUCT_OWNER,
    THIRTY_DAYS_IN_SECONDS,
)
from recurpay.billing import (
    BillingContract,
    CreationAuthority,
    FeeRegistry,
    InMemoryToken,
    SubscriptionFactory,
)
from recurpay.core.exceptions import (
    AccessDeniedError,
    BelowMinimumCostError,
    InvalidInputError,
    InvalidSignatureError,
)
from recurpay.runtime import Runtime


class TestCreateSubscription:
    """Tests for factory-mediated creation."""

    def test_created_contracts_are_listed_in_order(
        self,
        factory: SubscriptionFactory,
        registry: FeeRegistry,
        signer: CreationAuthority,
    ) -> None:
        """Every created contract is appended and registered."""
        signature = signer.approve(PRODUCT_OWNER, PRODUCT_NAME)

        first = factory.create_subscription(ONE_USDC * 5, PRODUCT_NAME, signature, sender=PRODUCT_OWNER)
        second = factory.create_subscription(ONE_USDC * 5, PRODUCT_NAME, signature, sender=PRODUCT_OWNER)

        assert factory.all_subscriptions() == [first.address, second.address]
        assert first.address != second.address
        for address in factory.all_subscriptions():
            assert registry.is_known(address)

    def test_all_subscriptions_returns_copy(
        self,
        factory: SubscriptionFactory,
        billing: BillingContract,
    ) -> None:
        """Callers cannot mutate the creation list."""
        listing = factory.all_subscriptions()
        listing.clear()

        assert factory.all_subscriptions() == [billing.address]

    def test_below_min_cost_is_rejected(
        self,
        factory: SubscriptionFactory,
        signer: CreationAuthority,
    ) -> None:
        """Price must be at least the minimum cost."""
        signature = signer.approve(PRODUCT_OWNER, PRODUCT_NAME)

        with pytest.raises(BelowMinimumCostError, match="Below Min Cost"):
            factory.create_subscription(ONE_USDC // 2, PRODUCT_NAME, signature, sender=PRODUCT_OWNER)

        assert factory.all_subscriptions() == []

    def test_exact_min_cost_is_allowed(
        self,
        factory: SubscriptionFactory,
        signer: CreationAuthority,
    ) -> None:
        """The minimum is inclusive."""
        signature = signer.approve(PRODUCT_OWNER, PRODUCT_NAME)

        contract = factory.create_subscription(ONE_USDC, PRODUCT_NAME, signature, sender=PRODUCT_OWNER)

        assert contract.price == ONE_USDC

    def test_signature_for_other_sender_is_rejected(
        self,
        factory: SubscriptionFactory,
        registry: FeeRegistry,
        signer: CreationAuthority,
    ) -> None:
        """An approval issued to one owner cannot be used by another."""
        signature = signer.approve(PRODUCT_OWNER, PRODUCT_NAME)

        with pytest.raises(InvalidSignatureError):
            factory.create_subscription(ONE_USDC * 5, PRODUCT_NAME, signature, sender=OUTSIDER)

        assert factory.all_subscriptions() == []
        assert registry.known_contracts() == frozenset()

    def test_signature_from_wrong_signer_is_rejected(self, factory: SubscriptionFactory) -> None:
        """Only the registry signer can approve creation."""
        impostor = CreationAuthority.generate()
        signature = impostor.approve(PRODUCT_OWNER, PRODUCT_NAME)

        with pytest.raises(InvalidSignatureError):
            factory.create_subscription(ONE_USDC * 5, PRODUCT_NAME, signature, sender=PRODUCT_OWNER)

    def test_signer_rotation_invalidates_old_approvals(
        self,
        factory: SubscriptionFactory,
        registry: FeeRegistry,
        signer: CreationAuthority,
    ) -> None:
        """Approvals are checked against the signer configured at creation time."""
        signature = signer.approve(PRODUCT_OWNER, PRODUCT_NAME)
        new_signer = CreationAuthority.generate()
        registry.set_signer_address(new_signer.address, sender=CONFIG_OWNER)

        with pytest.raises(InvalidSignatureError):
            factory.create_subscription(ONE_USDC * 5, PRODUCT_NAME, signature, sender=PRODUCT_OWNER)

        contract = factory.create_subscription(
            ONE_USDC * 5,
            PRODUCT_NAME,
            new_signer.approve(PRODUCT_OWNER, PRODUCT_NAME),
            sender=PRODUCT_OWNER,
        )
        assert registry.is_known(contract.address)

    def test_creation_emits_event(
        self,
        factory: SubscriptionFactory,
        billing: BillingContract,
        runtime: Runtime,
    ) -> None:
        """The factory logs each contract it creates."""
        events = runtime.events(name="SubscriptionCreated", contract=factory.address)

        assert len(events) == 1
        assert events[0].args["contract"] == billing.address
        assert events[0].args["owner"] == PRODUCT_OWNER


class TestFactoryConfiguration:
    """Tests for owner-only factory configuration."""

    def test_only_owner_can_set_config_contract(
        self,
        runtime: Runtime,
        factory: SubscriptionFactory,
        token: InMemoryToken,
        signer: CreationAuthority,
    ) -> None:
        """Switching registries is owner-only."""
        new_registry = FeeRegistry(runtime, 5, token.address, signer.address, deployer=CONFIG_OWNER)

        with pytest.raises(AccessDeniedError, match="Ownable: caller is not the owner"):
            factory.set_config_contract(new_registry.address, sender=OUTSIDER)

        factory.set_config_contract(new_registry.address, sender=CONFIG_OWNER)
        assert factory.registry is new_registry

    def test_new_contracts_bind_to_new_registry(
        self,
        runtime: Runtime,
        factory: SubscriptionFactory,
        registry: FeeRegistry,
        token: InMemoryToken,
        signer: CreationAuthority,
    ) -> None:
        """After a switch, created contracts register with the new registry."""
        new_registry = FeeRegistry(runtime, 5, token.address, signer.address, deployer=CONFIG_OWNER)
        factory.set_config_contract(new_registry.address, sender=CONFIG_OWNER)

        contract = factory.create_subscription(
            ONE_USDC * 5,
            PRODUCT_NAME,
            signer.approve(PRODUCT_OWNER, PRODUCT_NAME),
            sender=PRODUCT_OWNER,
        )

        assert new_registry.is_known(contract.address)
        assert not registry.is_known(contract.address)
        assert contract.fee_rate() == 5

    def test_config_contract_must_be_registry(
        self,
        factory: SubscriptionFactory,
        token: InMemoryToken,
    ) -> None:
        """The factory refuses to point at a non-registry contract."""
        with pytest.raises(InvalidInputError):
            factory.set_config_contract(token.address, sender=CONFIG_OWNER)

    def test_only_owner_can_set_min_cost(
        self,
        factory: SubscriptionFactory,
        signer: CreationAuthority,
    ) -> None:
        """Minimum cost is owner-only and applies to later creations."""
        with pytest.raises(AccessDeniedError, match="Ownable: caller is not the owner"):
            factory.set_min_cost(ONE_USDC * 5, sender=OUTSIDER)

        factory.set_min_cost(ONE_USDC * 5, sender=CONFIG_OWNER)

        assert factory.min_cost == ONE_USDC * 5
        with pytest.raises(BelowMinimumCostError):
            factory.create_subscription(
                ONE_USDC * 4,
                PRODUCT_NAME,
                signer.approve(PRODUCT_OWNER, PRODUCT_NAME),
                sender=PRODUCT_OWNER,
            )

    def test_only_owner_can_set_default_interval(self, factory: SubscriptionFactory) -> None:
        """Default interval is owner-only."""
        with pytest.raises(AccessDeniedError):
            factory.set_default_interval(60, sender=OUTSIDER)

        factory.set_default_interval(60, sender=CONFIG_OWNER)
        assert factory.default_interval == 60
        assert factory.default_interval != THIRTY_DAYS_IN_SECONDS

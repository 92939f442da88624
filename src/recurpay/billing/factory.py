"""Signature-gated entry point for creating billing contracts."""

from __future__ import annotations

from recurpay.billing.contract import BillingContract, validate_interval
from recurpay.billing.fees import validate_amount
from recurpay.billing.registry import FeeRegistry
from recurpay.billing.signatures import (
    EthereumSignatureVerifier,
    SignatureVerifier,
    verify_creation_signature,
)
from recurpay.core.exceptions import (
    AccessDeniedError,
    BelowMinimumCostError,
    ConfigurationError,
    InvalidInputError,
    InvalidSignatureError,
)
from recurpay.runtime import Contract, Runtime, external, normalize_address, same_address, view


class SubscriptionFactory(Contract):
    """Deploys billing contracts for approved ``(owner, name)`` pairs.

    Every contract created here uses the factory's default billing interval
    and is bound to the registry configured at creation time.

    Attributes:
        owner: Account allowed to change the factory configuration
        min_cost: Lowest price a created contract may charge per cycle
        default_interval: Billing interval handed to new contracts
    """

    _state_fields = ("owner", "min_cost", "default_interval", "_registry_address", "_created")

    def __init__(
        self,
        runtime: Runtime,
        registry: FeeRegistry,
        min_cost: int,
        default_interval: int,
        *,
        deployer: str,
        verifier: SignatureVerifier | None = None,
    ) -> None:
        with runtime.transaction():
            super().__init__(runtime, deployer=deployer)
            self.owner = self.deployer
            self.min_cost = validate_amount(min_cost, "min_cost")
            self.default_interval = validate_interval(default_interval)
            self._registry_address = registry.address
            self._created: list[str] = []
            self._verifier = verifier or EthereumSignatureVerifier()
            self.logger.info(
                "subscription_factory_deployed",
                factory=self.address,
                registry=registry.address,
                min_cost=min_cost,
                default_interval=default_interval,
            )

    @property
    def registry(self) -> FeeRegistry:
        registry = self.runtime.contract_at(self._registry_address)
        if not isinstance(registry, FeeRegistry):
            raise ConfigurationError(
                "Configured registry address does not host a fee registry",
                details={"registry_address": self._registry_address},
            )
        return registry

    def _only_owner(self, sender: str) -> None:
        if not same_address(sender, self.owner):
            raise AccessDeniedError("Ownable: caller is not the owner", sender=sender)

    @external
    def create_subscription(
        self,
        cost: int,
        name: str,
        signature: str | bytes,
        *,
        sender: str,
    ) -> BillingContract:
        """Deploy a billing contract owned by the sender.

        Args:
            cost: Price per billing cycle in token base units
            name: Product name the approval was issued for
            signature: Signer's approval of ``(sender, name)``
            sender: Future product owner

        Returns:
            The newly deployed contract

        Raises:
            BelowMinimumCostError: If ``cost`` is below ``min_cost``
            InvalidSignatureError: If the approval was not issued by the registry signer
        """
        validate_amount(cost, "cost")
        if cost < self.min_cost:
            raise BelowMinimumCostError(
                field="cost", value=cost, constraint=f">= {self.min_cost}"
            )

        registry = self.registry
        if not verify_creation_signature(
            self._verifier, sender, name, signature, registry.signer_address
        ):
            raise InvalidSignatureError(sender=sender, details={"name": name})

        contract = BillingContract(
            self.runtime,
            registry,
            sender,
            cost,
            self.default_interval,
            name,
            signature,
            deployer=self.address,
            verifier=self._verifier,
        )
        self._created.append(contract.address)
        self.emit("SubscriptionCreated", contract=contract.address, owner=sender, name=name)
        self.logger.info(
            "subscription_created",
            factory=self.address,
            contract=contract.address,
            owner=sender,
            cost=cost,
        )
        return contract

    @external
    def set_config_contract(self, registry_address: str, *, sender: str) -> None:
        self._only_owner(sender)
        registry_address = normalize_address(registry_address)
        if not isinstance(self.runtime.contract_at(registry_address), FeeRegistry):
            raise InvalidInputError(
                "Address does not host a fee registry",
                field="registry_address",
                value=registry_address,
            )
        self._registry_address = registry_address
        self.emit("ConfigContractSet", registry=registry_address)
        self.logger.info("config_contract_set", factory=self.address, registry=registry_address)

    @external
    def set_min_cost(self, min_cost: int, *, sender: str) -> None:
        self._only_owner(sender)
        self.min_cost = validate_amount(min_cost, "min_cost")
        self.emit("MinCostSet", min_cost=min_cost)

    @external
    def set_default_interval(self, interval: int, *, sender: str) -> None:
        self._only_owner(sender)
        self.default_interval = validate_interval(interval)
        self.emit("DefaultIntervalSet", interval=interval)

    @view
    def all_subscriptions(self) -> list[str]:
        return list(self._created)

"""Platform-wide fee configuration and the set of known billing contracts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from recurpay.billing.fees import validate_fee_rate
from recurpay.core.exceptions import AccessDeniedError, InvalidInputError
from recurpay.runtime import (
    ZERO_ADDRESS,
    Contract,
    Runtime,
    external,
    normalize_address,
    same_address,
    view,
)

if TYPE_CHECKING:
    from recurpay.billing.contract import BillingContract


class FeeRegistry(Contract):
    """Single-owner configuration service shared by billing contracts.

    The registry owner is also the recipient of the platform's share of every
    payment. A contract's effective fee rate is its override if one is set,
    otherwise the default rate.

    Attributes:
        owner: Account allowed to change the configuration
        token_address: Token every billing contract charges in
        signer_address: Account whose signature approves new billing contracts
        default_fee_rate: Fee in tenths of a percent for contracts without an override
    """

    _state_fields = (
        "owner",
        "signer_address",
        "default_fee_rate",
        "_fee_overrides",
        "_known_contracts",
    )

    def __init__(
        self,
        runtime: Runtime,
        default_fee_rate: int,
        token_address: str,
        signer_address: str,
        *,
        deployer: str,
    ) -> None:
        with runtime.transaction():
            super().__init__(runtime, deployer=deployer)
            self.owner = self.deployer
            self._token_address = normalize_address(token_address)
            self.signer_address = normalize_address(signer_address)
            self.default_fee_rate = validate_fee_rate(default_fee_rate)
            self._fee_overrides: dict[str, int] = {}
            self._known_contracts: set[str] = set()
            self.logger.info(
                "fee_registry_deployed",
                registry=self.address,
                owner=self.owner,
                default_fee_rate=default_fee_rate,
            )

    @property
    def token_address(self) -> str:
        return self._token_address

    def _only_owner(self, sender: str) -> None:
        if not same_address(sender, self.owner):
            raise AccessDeniedError("Ownable: caller is not the owner", sender=sender)

    # ------------------------------------------------------------------
    # Owner-only configuration
    # ------------------------------------------------------------------

    @external
    def set_fee_for_contract(self, contract: str, rate: int, *, sender: str) -> None:
        self._only_owner(sender)
        contract = normalize_address(contract)
        self._fee_overrides[contract] = validate_fee_rate(rate)
        self.emit("FeeOverrideSet", contract=contract, rate=rate)
        self.logger.info("fee_override_set", contract=contract, rate=rate)

    @external
    def clear_fee_for_contract(self, contract: str, *, sender: str) -> None:
        self._only_owner(sender)
        contract = normalize_address(contract)
        if self._fee_overrides.pop(contract, None) is not None:
            self.emit("FeeOverrideCleared", contract=contract)

    @external
    def set_default_fee_rate(self, rate: int, *, sender: str) -> None:
        self._only_owner(sender)
        self.default_fee_rate = validate_fee_rate(rate)
        self.emit("DefaultFeeRateSet", rate=rate)
        self.logger.info("default_fee_rate_set", rate=rate)

    @external
    def set_signer_address(self, signer: str, *, sender: str) -> None:
        self._only_owner(sender)
        self.signer_address = normalize_address(signer)
        self.emit("SignerSet", signer=self.signer_address)
        self.logger.info("signer_address_set", signer=self.signer_address)

    @external
    def transfer_ownership(self, new_owner: str, *, sender: str) -> None:
        self._only_owner(sender)
        new_owner = normalize_address(new_owner)
        if new_owner == ZERO_ADDRESS:
            raise InvalidInputError(
                "Ownable: new owner is the zero address", field="new_owner", value=new_owner
            )
        previous, self.owner = self.owner, new_owner
        self.emit("OwnershipTransferred", previous_owner=previous, new_owner=new_owner)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_contract(self, contract: BillingContract) -> None:
        """Record a billing contract as created through the platform.

        Called by ``BillingContract`` during construction. Registering the
        same contract twice is a no-op.
        """
        self._ensure_live()
        if contract.registry is not self:
            raise InvalidInputError(
                "Contract is bound to a different registry",
                field="contract",
                value=contract.address,
            )
        with self.runtime.transaction():
            if contract.address in self._known_contracts:
                return
            self._known_contracts.add(contract.address)
            self.emit("ContractRegistered", contract=contract.address)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @view
    def effective_fee(self, contract: str) -> int:
        return self._fee_overrides.get(normalize_address(contract), self.default_fee_rate)

    @view
    def fee_override(self, contract: str) -> int | None:
        return self._fee_overrides.get(normalize_address(contract))

    @view
    def is_known(self, contract: str) -> bool:
        return normalize_address(contract) in self._known_contracts

    @view
    def known_contracts(self) -> frozenset[str]:
        return frozenset(self._known_contracts)

"""Per-product billing contract: subscriber ledger and payment settlement.

Contract-level state (active or paused) controls whether new subscriptions
may start. Subscriber-level state (subscribed or not) controls whether an
address can be billed. Destruction by the owner is terminal.

Failed first payments and failed renewals are handled differently on
purpose:

- ``subscribe`` raises ``FundsTransferError`` and the whole call reverts, so
  a failed first payment never creates a subscription.
- ``process_payment`` rolls back the partial payment, marks the subscriber
  as unsubscribed and returns normally, so whoever discovered the lapsed
  subscription still completes their call.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from recurpay.billing.fees import (
    FeeSplit,
    PaymentSplit,
    split_fee,
    split_payment,
    validate_amount,
)
from recurpay.billing.registry import FeeRegistry
from recurpay.billing.signatures import (
    EthereumSignatureVerifier,
    SignatureVerifier,
    verify_creation_signature,
)
from recurpay.billing.token import TokenLedger
from recurpay.core.exceptions import (
    AccessDeniedError,
    AlreadySubscribedError,
    ConfigurationError,
    ContractNotPausedError,
    ContractPausedError,
    FundsTransferError,
    InvalidSignatureError,
    NotSubscribedError,
    OwnershipError,
    PaymentNotDueError,
    ValueOutOfRangeError,
)
from recurpay.core.metrics import track_contract_created, track_fee, track_payment
from recurpay.runtime import Contract, Runtime, external, normalize_address, same_address, view


def validate_interval(interval: int) -> int:
    """Check that a billing interval is a positive number of seconds."""
    if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
        raise ValueOutOfRangeError(
            "interval must be a positive number of seconds",
            field="interval",
            value=interval,
        )
    return interval


@dataclass(frozen=True)
class SubscriberRecord:
    """Billing state of one subscriber.

    Attributes:
        is_subscribed: Whether the address is currently billed
        last_payment_date: Timestamp the latest payment covers from; kept after cancellation
    """

    is_subscribed: bool
    last_payment_date: int


@dataclass(frozen=True)
class PaymentReceipt:
    """Outcome of a ``process_payment`` call.

    A lapsed renewal moves no funds and carries zero amounts.
    """

    subscriber: str
    caller: str
    lapsed: bool
    payment: PaymentSplit | None = None
    fee_split: FeeSplit | None = None
    last_payment_date: int = 0


class BillingContract(Contract):
    """Recurring token billing for a single product.

    Args:
        runtime: Execution environment hosting the contract
        registry: Fee registry supplying the token, signer and fee rate
        owner: Product owner receiving the non-fee part of every payment
        price: Token base units charged per billing cycle
        interval: Seconds between allowed payments
        name: Product name the creation approval was issued for
        signature: Signer's approval of ``(owner, name)``
        deployer: Account or contract creating this contract
        verifier: Signature verification strategy

    Raises:
        InvalidSignatureError: If the approval was not issued by the registry signer
    """

    _state_fields = ("paused", "_subscribers")

    def __init__(
        self,
        runtime: Runtime,
        registry: FeeRegistry,
        owner: str,
        price: int,
        interval: int,
        name: str,
        signature: str | bytes,
        *,
        deployer: str,
        verifier: SignatureVerifier | None = None,
    ) -> None:
        with runtime.transaction():
            super().__init__(runtime, deployer=deployer)
            self.registry = registry
            self.owner = normalize_address(owner)
            self.price = validate_amount(price, "price")
            self.interval = validate_interval(interval)
            self.name = name
            self.created_at = runtime.now
            self.paused = False
            self._subscribers: dict[str, SubscriberRecord] = {}
            self._verifier = verifier or EthereumSignatureVerifier()

            if not verify_creation_signature(
                self._verifier, self.owner, name, signature, registry.signer_address
            ):
                raise InvalidSignatureError(sender=self.owner, details={"name": name})

            registry.register_contract(self)
            self.emit("SubscriptionContractCreated", owner=self.owner, price=price, name=name)
            track_contract_created()
            self.logger.info(
                "billing_contract_deployed",
                contract=self.address,
                owner=self.owner,
                price=price,
                interval=interval,
                name=name,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def token(self) -> TokenLedger:
        token = self.runtime.contract_at(self.registry.token_address)
        if not isinstance(token, TokenLedger):
            raise ConfigurationError(
                "Registry token address does not host a token",
                details={"token_address": self.registry.token_address},
            )
        return token

    def _ensure_funds(self, holder: str, amount: int) -> None:
        token = self.token
        if token.balance_of(holder) < amount or token.allowance(holder, self.address) < amount:
            raise FundsTransferError(holder=holder, amount=amount)

    def _collect(self, holder: str, recipient: str, amount: int) -> None:
        if amount == 0:
            return
        if not self.token.transfer_from(holder, recipient, amount, sender=self.address):
            raise FundsTransferError(holder=holder, amount=amount)

    def _only_owner(self, sender: str, error: type[AccessDeniedError] = AccessDeniedError) -> None:
        if not same_address(sender, self.owner):
            raise error(sender=sender)

    # ------------------------------------------------------------------
    # Subscriber operations
    # ------------------------------------------------------------------

    @external
    def subscribe(self, *, sender: str) -> PaymentSplit:
        """Start a subscription and take the first payment.

        The whole fee goes to the registry owner; nobody earns a kickback on a
        first payment.

        Raises:
            AlreadySubscribedError: If the sender is already subscribed
            ContractPausedError: If the contract is paused
            FundsTransferError: If the first payment cannot be collected
        """
        record = self._subscribers.get(sender)
        if record is not None and record.is_subscribed:
            raise AlreadySubscribedError(subscriber=sender)
        if self.paused:
            raise ContractPausedError(subscriber=sender)

        now = self.runtime.now
        self._subscribers[sender] = SubscriberRecord(is_subscribed=True, last_payment_date=now)

        split = split_payment(self.price, self.registry.effective_fee(self.address))
        self._ensure_funds(sender, self.price)
        self._collect(sender, self.registry.owner, split.fee)
        self._collect(sender, self.owner, split.owner_amount)

        self.emit("Subscribed", subscriber=sender, fee=split.fee, owner_amount=split.owner_amount)
        track_payment("subscribe", "settled")
        track_fee("registry", split.fee)
        self.logger.info(
            "subscription_started",
            contract=self.address,
            subscriber=sender,
            fee=split.fee,
            owner_amount=split.owner_amount,
        )
        return split

    @external
    def process_payment(self, subscriber: str, *, sender: str) -> PaymentReceipt:
        """Collect a renewal payment once the billing interval has elapsed.

        Anyone may call this. A caller other than the registry owner earns 25%
        of the fee. The next billing window starts one interval after the
        previous one, regardless of how late this call arrives.

        Raises:
            NotSubscribedError: If the address is not subscribed
            PaymentNotDueError: If the current interval has not elapsed
        """
        subscriber = normalize_address(subscriber)
        record = self._subscribers.get(subscriber)
        if record is None or not record.is_subscribed:
            raise NotSubscribedError(subscriber=subscriber)

        due_at = record.last_payment_date + self.interval
        now = self.runtime.now
        if now < due_at:
            raise PaymentNotDueError(
                subscriber=subscriber, details={"due_at": due_at, "now": now}
            )

        registry_owner = self.registry.owner
        split = split_payment(self.price, self.registry.effective_fee(self.address))
        fee_split = split_fee(
            split.fee, caller_is_registry_owner=same_address(sender, registry_owner)
        )

        try:
            with self.runtime.savepoint():
                self._subscribers[subscriber] = replace(record, last_payment_date=due_at)
                self._ensure_funds(subscriber, self.price)
                self._collect(subscriber, sender, fee_split.caller_share)
                self._collect(subscriber, registry_owner, fee_split.registry_share)
                self._collect(subscriber, self.owner, split.owner_amount)
        except FundsTransferError as exc:
            self._subscribers[subscriber] = replace(record, is_subscribed=False)
            self.emit("SubscriptionLapsed", subscriber=subscriber, caller=sender)
            track_payment("renewal", "lapsed")
            self.logger.info(
                "subscription_lapsed",
                contract=self.address,
                subscriber=subscriber,
                caller=sender,
                reason=exc.message,
            )
            return PaymentReceipt(
                subscriber=subscriber,
                caller=sender,
                lapsed=True,
                last_payment_date=record.last_payment_date,
            )

        self.emit(
            "PaymentProcessed",
            subscriber=subscriber,
            caller=sender,
            fee=split.fee,
            caller_share=fee_split.caller_share,
            registry_share=fee_split.registry_share,
            owner_amount=split.owner_amount,
        )
        track_payment("renewal", "settled")
        track_fee("caller", fee_split.caller_share)
        track_fee("registry", fee_split.registry_share)
        self.logger.info(
            "payment_processed",
            contract=self.address,
            subscriber=subscriber,
            caller=sender,
            last_payment_date=due_at,
            caller_share=fee_split.caller_share,
        )
        return PaymentReceipt(
            subscriber=subscriber,
            caller=sender,
            lapsed=False,
            payment=split,
            fee_split=fee_split,
            last_payment_date=due_at,
        )

    @external
    def cancel_subscription(self, *, sender: str) -> bool:
        """Stop billing the sender.

        Cancelling without an active subscription is a no-op.

        Returns:
            True if a subscription was cancelled, False otherwise
        """
        record = self._subscribers.get(sender)
        if record is None or not record.is_subscribed:
            self.logger.debug("cancel_ignored", contract=self.address, subscriber=sender)
            return False
        self._subscribers[sender] = replace(record, is_subscribed=False)
        self.emit("SubscriptionCancelled", subscriber=sender)
        self.logger.info("subscription_cancelled", contract=self.address, subscriber=sender)
        return True

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    @external
    def pause(self, *, sender: str) -> None:
        """Stop accepting new subscriptions. Existing subscribers are still billed."""
        self._only_owner(sender)
        if self.paused:
            raise ContractPausedError()
        self.paused = True
        self.emit("Paused", account=sender)
        self.logger.info("contract_paused", contract=self.address)

    @external
    def unpause(self, *, sender: str) -> None:
        self._only_owner(sender)
        if not self.paused:
            raise ContractNotPausedError()
        self.paused = False
        self.emit("Unpaused", account=sender)
        self.logger.info("contract_unpaused", contract=self.address)

    @external
    def delete_subscription_contract(self, *, sender: str) -> None:
        """Irreversibly tear the contract down; every later call fails."""
        self._only_owner(sender, OwnershipError)
        self.emit("SubscriptionContractDeleted", owner=sender)
        self.runtime.destroy(self)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @view
    def subscriber(self, account: str) -> SubscriberRecord | None:
        return self._subscribers.get(normalize_address(account))

    @view
    def is_subscribed(self, account: str) -> bool:
        record = self._subscribers.get(normalize_address(account))
        return record is not None and record.is_subscribed

    @view
    def last_payment_date(self, account: str) -> int:
        record = self._subscribers.get(normalize_address(account))
        return record.last_payment_date if record is not None else 0

    @view
    def next_payment_due(self, account: str) -> int | None:
        record = self._subscribers.get(normalize_address(account))
        if record is None or not record.is_subscribed:
            return None
        return record.last_payment_date + self.interval

    @view
    def is_payment_due(self, account: str) -> bool:
        due_at = self.next_payment_due(account)
        return due_at is not None and self.runtime.now >= due_at

    @view
    def fee_rate(self) -> int:
        return self.registry.effective_fee(self.address)

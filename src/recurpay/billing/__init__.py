"""Recurring token billing: fee registry, factory and per-product contracts."""

from recurpay.billing.contract import (
    BillingContract,
    PaymentReceipt,
    SubscriberRecord,
    validate_interval,
)
from recurpay.billing.factory import SubscriptionFactory
from recurpay.billing.fees import (
    FEE_DENOMINATOR,
    KICKBACK_PERCENT,
    MAX_FEE_RATE,
    FeeSplit,
    PaymentSplit,
    compute_fee,
    split_fee,
    split_payment,
    validate_amount,
    validate_fee_rate,
)
from recurpay.billing.registry import FeeRegistry
from recurpay.billing.signatures import (
    CREATION_PAYLOAD_VERSION,
    CreationAuthority,
    EthereumSignatureVerifier,
    SignatureVerifier,
    encode_creation_payload,
    verify_creation_signature,
)
from recurpay.billing.token import MAX_UINT256, InMemoryToken, TokenLedger

__all__ = [
    # Contracts
    "BillingContract",
    "FeeRegistry",
    "SubscriptionFactory",
    "PaymentReceipt",
    "SubscriberRecord",
    "validate_interval",
    # Fees
    "FEE_DENOMINATOR",
    "KICKBACK_PERCENT",
    "MAX_FEE_RATE",
    "FeeSplit",
    "PaymentSplit",
    "compute_fee",
    "split_fee",
    "split_payment",
    "validate_amount",
    "validate_fee_rate",
    # Signatures
    "CREATION_PAYLOAD_VERSION",
    "CreationAuthority",
    "EthereumSignatureVerifier",
    "SignatureVerifier",
    "encode_creation_payload",
    "verify_creation_signature",
    # Token
    "MAX_UINT256",
    "InMemoryToken",
    "TokenLedger",
]

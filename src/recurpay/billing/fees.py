"""Exact integer fee arithmetic.

Fee rates are expressed in tenths of a percent, so a rate of 30 means 3%.
Every division floors. Rounding residue is never handed to the caller or
the subscriber:

    fee          = price * rate // 1000
    owner_amount = price - fee

When a renewal is triggered by someone other than the registry owner, the
caller earns a kickback of 25% of the fee:

    caller_share   = fee * 25 // 100
    registry_share = fee - caller_share

Because each step floors independently, a nominal decimal computation of
the same amounts can differ by a base unit. That drift is accepted.

Examples:
    >>> split_payment(5_000_000, 30)
    PaymentSplit(price=5000000, fee=150000, owner_amount=4850000)
    >>> split_fee(150_000, caller_is_registry_owner=False)
    FeeSplit(caller_share=37500, registry_share=112500)
"""

from __future__ import annotations

from dataclasses import dataclass

from recurpay.core.exceptions import FeeRateOutOfRangeError, ValueOutOfRangeError

FEE_DENOMINATOR = 1000
MAX_FEE_RATE = FEE_DENOMINATOR
KICKBACK_PERCENT = 25


@dataclass(frozen=True)
class PaymentSplit:
    """How a single payment is divided between the platform and the product owner."""

    price: int
    fee: int
    owner_amount: int

    def __post_init__(self) -> None:
        if self.fee + self.owner_amount != self.price:
            raise ValueError(
                f"split does not add up: {self.fee} + {self.owner_amount} != {self.price}"
            )


@dataclass(frozen=True)
class FeeSplit:
    """How a platform fee is divided between the caller and the registry owner."""

    caller_share: int
    registry_share: int

    @property
    def total(self) -> int:
        return self.caller_share + self.registry_share


def validate_fee_rate(rate: int) -> int:
    """Check that a fee rate is an integer in [0, 1000].

    Raises:
        FeeRateOutOfRangeError: If the rate is not an integer or out of range
    """
    if isinstance(rate, bool) or not isinstance(rate, int) or not 0 <= rate <= MAX_FEE_RATE:
        raise FeeRateOutOfRangeError(
            field="fee_rate",
            value=rate,
            constraint=f"integer in [0, {MAX_FEE_RATE}]",
        )
    return rate


def validate_amount(amount: int, field: str = "amount") -> int:
    """Check that a token amount is a non-negative integer.

    Raises:
        ValueOutOfRangeError: If the amount is negative or not an integer
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValueOutOfRangeError(
            f"{field} must be a non-negative integer",
            field=field,
            value=amount,
        )
    return amount


def compute_fee(price: int, rate: int) -> int:
    """Platform fee for one payment, floored to a whole base unit."""
    validate_amount(price, "price")
    validate_fee_rate(rate)
    return price * rate // FEE_DENOMINATOR


def split_payment(price: int, rate: int) -> PaymentSplit:
    """Split a payment into the platform fee and the product owner's remainder."""
    fee = compute_fee(price, rate)
    return PaymentSplit(price=price, fee=fee, owner_amount=price - fee)


def split_fee(fee: int, *, caller_is_registry_owner: bool) -> FeeSplit:
    """Split a renewal fee between the triggering caller and the registry owner.

    Args:
        fee: Platform fee of the payment
        caller_is_registry_owner: The registry owner keeps the whole fee

    Returns:
        The caller's kickback and the registry owner's share
    """
    validate_amount(fee, "fee")
    if caller_is_registry_owner:
        return FeeSplit(caller_share=0, registry_share=fee)
    caller_share = fee * KICKBACK_PERCENT // 100
    return FeeSplit(caller_share=caller_share, registry_share=fee - caller_share)

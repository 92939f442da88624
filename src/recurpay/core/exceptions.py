"""Custom exceptions for RecurPay.

This module provides the exception hierarchy used by the billing engine:
- Structured error information
- Machine-readable error codes
- Contextual details for debugging

Every exception raised from an external contract call aborts that call and
rolls back its state changes. The one exception to this rule is a failed
renewal transfer in ``BillingContract.process_payment``, which is absorbed
and turned into an unsubscribe.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # General errors (1xxx)
    INTERNAL_ERROR = "RP1000"
    UNKNOWN_ERROR = "RP1001"
    CONFIGURATION_ERROR = "RP1002"

    # Authorization errors (3xxx)
    PERMISSION_DENIED = "RP3000"
    ACCESS_DENIED = "RP3001"
    NOT_CONTRACT_OWNER = "RP3002"
    INVALID_SIGNATURE = "RP3003"

    # Validation errors (4xxx)
    VALIDATION_ERROR = "RP4000"
    INVALID_INPUT = "RP4001"
    VALUE_OUT_OF_RANGE = "RP4004"
    BELOW_MINIMUM_COST = "RP4005"
    FEE_RATE_OUT_OF_RANGE = "RP4006"

    # Resource errors (5xxx)
    RESOURCE_NOT_FOUND = "RP5000"
    CONTRACT_NOT_FOUND = "RP5001"
    CONTRACT_DESTROYED = "RP5002"

    # Subscription state errors (6xxx)
    STATE_ERROR = "RP6000"
    ALREADY_SUBSCRIBED = "RP6001"
    NOT_SUBSCRIBED = "RP6002"
    PAYMENT_NOT_DUE = "RP6003"
    CONTRACT_PAUSED = "RP6004"
    CONTRACT_NOT_PAUSED = "RP6005"

    # Funds errors (7xxx)
    FUNDS_TRANSFER_FAILED = "RP7000"


class RecurPayException(Exception):
    """Base exception for all RecurPay errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code.
        details: Additional context for debugging.
    """

    message: str = "An unexpected error occurred"
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            details: Additional context for debugging.
        """
        self.message = message or self.__class__.message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary.

        Returns:
            Dictionary with error information.
        """
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "details": self.details if self.details else None,
            }
        }

    def __str__(self) -> str:
        """String representation including error code."""
        return f"[{self.error_code.value}] {self.message}"

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code.value}, "
            f"details={self.details!r}"
            f")"
        )


class ConfigurationError(RecurPayException):
    """Missing or invalid deployment configuration."""

    message = "Invalid configuration"
    error_code = ErrorCode.CONFIGURATION_ERROR


# ============================================================================
# Authorization Exceptions
# ============================================================================


class AuthorizationError(RecurPayException):
    """Authorization-related errors."""

    message = "Permission denied"
    error_code = ErrorCode.PERMISSION_DENIED

    def __init__(
        self,
        message: str | None = None,
        *,
        sender: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if sender:
            details["sender"] = sender
        super().__init__(message, details=details, **kwargs)


class AccessDeniedError(AuthorizationError):
    """Sender is not allowed to call an owner-only operation."""

    message = "Caller is not the owner"
    error_code = ErrorCode.ACCESS_DENIED


class OwnershipError(AccessDeniedError):
    """Sender does not own the billing contract it tried to tear down."""

    message = "Only the contract owner can delete the contract"
    error_code = ErrorCode.NOT_CONTRACT_OWNER


class InvalidSignatureError(AuthorizationError):
    """Creation signature was not produced by the registry signer."""

    message = "Invalid signature"
    error_code = ErrorCode.INVALID_SIGNATURE


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(RecurPayException):
    """Validation-related errors."""

    message = "Validation error"
    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error message.
            field: Name of the field that failed validation.
            value: The invalid value.
            constraint: Description of the constraint that was violated.
            **kwargs: Additional arguments passed to parent.
        """
        details = kwargs.pop("details", {}) or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if constraint:
            details["constraint"] = constraint

        super().__init__(message, details=details, **kwargs)


class InvalidInputError(ValidationError):
    """Invalid input data."""

    message = "Invalid input data"
    error_code = ErrorCode.INVALID_INPUT


class ValueOutOfRangeError(ValidationError):
    """Value is outside acceptable range."""

    message = "Value is outside acceptable range"
    error_code = ErrorCode.VALUE_OUT_OF_RANGE


class BelowMinimumCostError(ValidationError):
    """Requested subscription price is below the factory minimum."""

    message = "Below Min Cost"
    error_code = ErrorCode.BELOW_MINIMUM_COST


class FeeRateOutOfRangeError(ValueOutOfRangeError):
    """Fee rate is outside [0, 1000] tenths of a percent."""

    message = "Fee rate must be between 0 and 1000"
    error_code = ErrorCode.FEE_RATE_OUT_OF_RANGE


# ============================================================================
# Resource Exceptions
# ============================================================================


class NotFoundError(RecurPayException):
    """Resource not found errors."""

    message = "Resource not found"
    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(
        self,
        message: str | None = None,
        *,
        address: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if address:
            details["address"] = address
        super().__init__(message, details=details, **kwargs)


class ContractNotFoundError(NotFoundError):
    """No contract is hosted at the given address."""

    message = "No contract at address"
    error_code = ErrorCode.CONTRACT_NOT_FOUND


class ContractDestroyedError(NotFoundError):
    """Contract was torn down by its owner."""

    message = "Contract has been destroyed"
    error_code = ErrorCode.CONTRACT_DESTROYED


# ============================================================================
# Subscription State Exceptions
# ============================================================================


class StateError(RecurPayException):
    """Operation is not allowed in the current subscription state."""

    message = "Invalid subscription state"
    error_code = ErrorCode.STATE_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        subscriber: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if subscriber:
            details["subscriber"] = subscriber
        super().__init__(message, details=details, **kwargs)


class AlreadySubscribedError(StateError):
    """Subscriber already holds an active subscription."""

    message = "Already subscribed"
    error_code = ErrorCode.ALREADY_SUBSCRIBED


class NotSubscribedError(StateError):
    """Address has no active subscription."""

    message = "Not subscribed"
    error_code = ErrorCode.NOT_SUBSCRIBED


class PaymentNotDueError(StateError):
    """Billing interval has not elapsed since the last payment."""

    message = "Payment not due yet"
    error_code = ErrorCode.PAYMENT_NOT_DUE


class ContractPausedError(StateError):
    """Contract is paused and does not accept new subscriptions."""

    message = "Pausable: paused"
    error_code = ErrorCode.CONTRACT_PAUSED


class ContractNotPausedError(StateError):
    """Contract is not paused."""

    message = "Pausable: not paused"
    error_code = ErrorCode.CONTRACT_NOT_PAUSED


# ============================================================================
# Funds Exceptions
# ============================================================================


class FundsTransferError(RecurPayException):
    """Token transfer failed because of insufficient balance or allowance."""

    message = "Token transfer failed"
    error_code = ErrorCode.FUNDS_TRANSFER_FAILED

    def __init__(
        self,
        message: str | None = None,
        *,
        holder: str | None = None,
        amount: int | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if holder:
            details["holder"] = holder
        if amount is not None:
            details["amount"] = amount
        super().__init__(message, details=details, **kwargs)

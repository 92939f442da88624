"""Prometheus metrics for monitoring RecurPay billing activity."""

from prometheus_client import Counter

# Payment metrics
payments_total = Counter(
    "recurpay_payments_total",
    "Total number of billing attempts",
    ["kind", "outcome"],
)

fee_units_total = Counter(
    "recurpay_fee_units_total",
    "Token base units routed as platform fees",
    ["recipient"],
)

# Transaction metrics
transactions_reverted_total = Counter(
    "recurpay_transactions_reverted_total",
    "Total number of contract calls rolled back",
    ["error_code"],
)

# Contract lifecycle metrics
billing_contracts_created_total = Counter(
    "recurpay_billing_contracts_created_total",
    "Total number of billing contracts deployed",
)


def track_payment(kind: str, outcome: str) -> None:
    """Track a billing attempt.

    Args:
        kind: 'subscribe' or 'renewal'
        outcome: 'settled' or 'lapsed'
    """
    payments_total.labels(kind=kind, outcome=outcome).inc()


def track_fee(recipient: str, amount: int) -> None:
    """Track fee units paid out.

    Args:
        recipient: 'registry' or 'caller'
        amount: Amount in token base units
    """
    if amount > 0:
        fee_units_total.labels(recipient=recipient).inc(amount)


def track_revert(error_code: str) -> None:
    """Track a rolled back transaction.

    Args:
        error_code: Machine-readable code of the error that caused the revert
    """
    transactions_reverted_total.labels(error_code=error_code).inc()


def track_contract_created() -> None:
    """Track a billing contract deployment."""
    billing_contracts_created_total.inc()

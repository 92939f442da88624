"""Example usage of the recurring billing contracts.

This example deploys the platform on a manually driven clock, creates a
product through the factory and walks one subscriber through a first
payment, a renewal collected by a third party and a lapsed renewal.
"""

from eth_utils import to_checksum_address

from recurpay.billing import MAX_UINT256, CreationAuthority, InMemoryToken
from recurpay.core.config import Settings
from recurpay.core.logging import configure_logging
from recurpay.deploy import deploy_platform
from recurpay.runtime import ManualClock, Runtime

ONE_USDC = 1_000_000
THIRTY_DAYS = 30 * 24 * 60 * 60


def account(index: int) -> str:
    return to_checksum_address(f"0x{index + 0xBEEF:040x}")


def usdc(amount: int) -> str:
    return f"{amount / ONE_USDC:,.6f} USDC"


def example_billing_lifecycle() -> None:
    """Subscribe, renew and lapse a single subscriber."""
    print("=== Billing Lifecycle Example ===\n")

    platform_owner, product_owner, subscriber, keeper = (account(i) for i in range(4))
    clock = ManualClock(start=1_700_000_000)
    runtime = Runtime(clock=clock)
    signer = CreationAuthority.generate()

    token = InMemoryToken(runtime, 1_000_000 * ONE_USDC, deployer=platform_owner)
    settings = Settings(
        token_address=token.address,
        signer_address=signer.address,
        default_fee_rate=30,  # 3%
        default_interval_seconds=THIRTY_DAYS,
    )
    deployment = deploy_platform(runtime, deployer=platform_owner, settings=settings)

    billing = deployment.factory.create_subscription(
        5 * ONE_USDC,
        "Newsletter",
        signer.approve(product_owner, "Newsletter"),
        sender=product_owner,
    )
    print(f"Billing contract: {billing.address}")
    print(f"Fee rate: {billing.fee_rate() / 10:.1f}%\n")

    # Enough for exactly two payments
    token.transfer(subscriber, 10 * ONE_USDC, sender=platform_owner)
    token.approve(billing.address, MAX_UINT256, sender=subscriber)

    split = billing.subscribe(sender=subscriber)
    print(f"First payment: fee {usdc(split.fee)}, owner {usdc(split.owner_amount)}")

    clock.advance(THIRTY_DAYS)
    receipt = billing.process_payment(subscriber, sender=keeper)
    print(f"Renewal kickback to keeper: {usdc(receipt.fee_split.caller_share)}")
    print(f"Renewal to registry owner: {usdc(receipt.fee_split.registry_share)}")

    clock.advance(THIRTY_DAYS)
    receipt = billing.process_payment(subscriber, sender=keeper)
    print(f"Third payment lapsed: {receipt.lapsed}")
    print(f"Still subscribed: {billing.is_subscribed(subscriber)}\n")

    print(f"Product owner balance: {usdc(token.balance_of(product_owner))}")
    print(f"Keeper balance: {usdc(token.balance_of(keeper))}")


if __name__ == "__main__":
    configure_logging(json_logs=False, log_level="WARNING")
    example_billing_lifecycle()

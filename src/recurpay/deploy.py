"""Bootstrap the platform contracts from application settings.

Deploys the fee registry first and then the factory that points at it,
using the token, signer and billing defaults from ``Settings``.
"""

from __future__ import annotations

from dataclasses import dataclass

from recurpay.billing import FeeRegistry, SubscriptionFactory
from recurpay.billing.signatures import CreationAuthority, SignatureVerifier
from recurpay.core.config import Settings, get_settings
from recurpay.core.exceptions import ConfigurationError
from recurpay.core.logging import get_logger
from recurpay.runtime import Runtime

logger = get_logger(__name__)


@dataclass(frozen=True)
class Deployment:
    """Addresses and handles of a deployed platform."""

    registry: FeeRegistry
    factory: SubscriptionFactory


def deploy_platform(
    runtime: Runtime,
    *,
    deployer: str,
    settings: Settings | None = None,
    verifier: SignatureVerifier | None = None,
) -> Deployment:
    """Deploy a fee registry and a subscription factory.

    Args:
        runtime: Execution environment to deploy into
        deployer: Account that will own both contracts
        settings: Configuration; defaults to the cached application settings
        verifier: Signature verification strategy for the factory

    Returns:
        The deployed registry and factory

    Raises:
        ConfigurationError: If the token address or the signer address is missing
    """
    settings = settings or get_settings()
    if settings.token_address is None:
        raise ConfigurationError("TOKEN_ADDRESS is not configured")

    signer_address = settings.signer_address
    if signer_address is None and settings.signer_private_key is not None:
        signer_address = CreationAuthority.from_key(
            settings.signer_private_key.get_secret_value()
        ).address
    if signer_address is None:
        raise ConfigurationError("SIGNER_ADDRESS is not configured")

    with runtime.transaction():
        registry = FeeRegistry(
            runtime,
            settings.default_fee_rate,
            settings.token_address,
            signer_address,
            deployer=deployer,
        )
        factory = SubscriptionFactory(
            runtime,
            registry,
            settings.min_cost,
            settings.default_interval_seconds,
            deployer=deployer,
            verifier=verifier,
        )

    logger.info(
        "platform_deployed",
        registry=registry.address,
        factory=factory.address,
        app_env=settings.app_env,
    )
    return Deployment(registry=registry, factory=factory)

"""Off-chain creation approvals.

A would-be product owner asks the trusted signer to approve the pair
``(owner_address, product_name)``. The approval is an EIP-191 personal
message signature over the creation payload; billing contracts and the
factory recover the signer from it and compare against the registry's
configured signer address.
"""

from __future__ import annotations

from typing import Protocol

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import to_hex

from recurpay.core.logging import get_logger
from recurpay.runtime.addresses import normalize_address, same_address

logger = get_logger(__name__)

CREATION_PAYLOAD_VERSION = 1


def encode_creation_payload(owner: str, name: str, *, version: int = CREATION_PAYLOAD_VERSION) -> str:
    """Build the message a creation approval signs.

    Version 1 is the lowercase hex owner address immediately followed by the
    product name, with no separator.
    """
    if version != 1:
        raise ValueError(f"Unsupported creation payload version: {version}")
    return f"{normalize_address(owner).lower()}{name}"


class SignatureVerifier(Protocol):
    """Checks that ``signature`` over ``payload`` was produced by ``expected_signer``."""

    def verify(self, payload: str, signature: str | bytes, expected_signer: str) -> bool: ...


class EthereumSignatureVerifier:
    """Recovers the signer of an EIP-191 personal message with eth_account."""

    def recover(self, payload: str, signature: str | bytes) -> str:
        return Account.recover_message(encode_defunct(text=payload), signature=signature)

    def verify(self, payload: str, signature: str | bytes, expected_signer: str) -> bool:
        try:
            recovered = self.recover(payload, signature)
        except Exception as exc:
            # Malformed signatures (bad length, bad v value, non-hex) never verify
            logger.debug("signature_recovery_failed", error=str(exc))
            return False
        return same_address(recovered, expected_signer)


def verify_creation_signature(
    verifier: SignatureVerifier,
    owner: str,
    name: str,
    signature: str | bytes,
    expected_signer: str,
) -> bool:
    return verifier.verify(encode_creation_payload(owner, name), signature, expected_signer)


class CreationAuthority:
    """The off-chain signer that approves new billing contracts.

    Examples:
        >>> authority = CreationAuthority.generate()
        >>> signature = authority.approve("0x" + "11" * 20, "Newsletter")
        >>> EthereumSignatureVerifier().verify(
        ...     encode_creation_payload("0x" + "11" * 20, "Newsletter"),
        ...     signature,
        ...     authority.address,
        ... )
        True
    """

    def __init__(self, account: LocalAccount) -> None:
        self._account = account

    @classmethod
    def from_key(cls, private_key: str | bytes) -> CreationAuthority:
        return cls(Account.from_key(private_key))

    @classmethod
    def generate(cls) -> CreationAuthority:
        return cls(Account.create())

    @property
    def address(self) -> str:
        return self._account.address

    def approve(self, owner: str, name: str) -> str:
        """Sign the creation payload for ``(owner, name)``.

        Returns:
            0x-prefixed hex signature
        """
        payload = encode_creation_payload(owner, name)
        signed = self._account.sign_message(encode_defunct(text=payload))
        logger.info("creation_approved", owner=normalize_address(owner), name=name)
        return to_hex(signed.signature)

"""Account and contract address helpers."""

from __future__ import annotations

from eth_utils import is_address, keccak, to_checksum_address

from recurpay.core.exceptions import InvalidInputError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(value: str) -> str:
    """Return the EIP-55 checksummed form of an address.

    Raises:
        InvalidInputError: If the value is not a 20-byte hex address
    """
    if not isinstance(value, str) or not is_address(value):
        raise InvalidInputError(
            "Invalid address",
            field="address",
            value=value,
            constraint="0x-prefixed 20-byte hex string",
        )
    return to_checksum_address(value)


def same_address(a: str, b: str) -> bool:
    return str(a).lower() == str(b).lower()


def derive_contract_address(deployer: str, nonce: int) -> str:
    """Deterministic address for the ``nonce``-th contract created by ``deployer``."""
    digest = keccak(text=f"{deployer.lower()}:{nonce}")
    return to_checksum_address(digest[-20:])

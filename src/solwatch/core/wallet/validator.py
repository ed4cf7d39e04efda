"""Solana address validation.

Addresses are validated locally (no network call): base58 alphabet, length,
and a full decode into a 32-byte public key via solders.
"""

import structlog
from solders.pubkey import Pubkey

from solwatch.core.exceptions import InvalidAddressError

log = structlog.get_logger(__name__)

# Solana base58 alphabet (excludes 0, O, I, l to avoid confusion)
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

# Solana addresses are 32-44 characters
SOLANA_ADDRESS_MIN_LENGTH = 32
SOLANA_ADDRESS_MAX_LENGTH = 44


def is_valid_solana_address(address: str | None) -> bool:
    """Validate Solana address format.

    Args:
        address: Potential Solana public key.

    Returns:
        True if the string decodes to a 32-byte public key, False otherwise.

    Example:
        >>> is_valid_solana_address("9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM")
        True
        >>> is_valid_solana_address("invalid_0OIl")
        False
    """
    if address is None or not isinstance(address, str):
        return False

    address = address.strip()
    if not (SOLANA_ADDRESS_MIN_LENGTH <= len(address) <= SOLANA_ADDRESS_MAX_LENGTH):
        return False

    if not all(c in BASE58_ALPHABET for c in address):
        return False

    try:
        Pubkey.from_string(address)
    except Exception:  # solders raises its own parse error types
        return False
    return True


def require_valid_address(address: str | None) -> str:
    """Return the stripped address or raise InvalidAddressError."""
    if not is_valid_solana_address(address):
        log.warning("address_invalid", address=str(address)[:12])
        raise InvalidAddressError(address)
    return address.strip()  # type: ignore[union-attr]

"""Tests for Solana address validation."""

import pytest

from solwatch.core.exceptions import InvalidAddressError, ValidationError
from solwatch.core.wallet.validator import is_valid_solana_address, require_valid_address

VALID = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
WSOL = "So11111111111111111111111111111111111111112"


@pytest.mark.parametrize("address", [VALID, WSOL, f"  {VALID} "])
def test_valid_addresses(address: str) -> None:
    assert is_valid_solana_address(address)


@pytest.mark.parametrize(
    "address",
    [
        None,
        "",
        "short",
        "invalid_0OIl" * 4,
        VALID + "AAAA",
        12345,
    ],
)
def test_invalid_addresses(address: object) -> None:
    assert not is_valid_solana_address(address)  # type: ignore[arg-type]


def test_require_valid_address_strips() -> None:
    assert require_valid_address(f" {VALID}\n") == VALID


def test_require_valid_address_raises_validation_error() -> None:
    with pytest.raises(InvalidAddressError) as exc_info:
        require_valid_address("not-a-key")

    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.address == "not-a-key"

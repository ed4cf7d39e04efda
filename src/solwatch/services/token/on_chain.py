"""Metaplex token metadata account parsing.

Account layout (Borsh):
    key: u8
    update_authority: [u8; 32]
    mint: [u8; 32]
    name: u32 length + utf-8 bytes (null padded)
    symbol: u32 length + utf-8 bytes (null padded)
    uri: u32 length + utf-8 bytes (null padded)
"""

import base64
import struct
from typing import Any

from solders.pubkey import Pubkey

METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

_HEADER_SIZE = 1 + 32 + 32


def metadata_address(mint: str) -> str:
    """Program-derived address of the metadata account for `mint`."""
    pda, _bump = Pubkey.find_program_address(
        [b"metadata", bytes(METADATA_PROGRAM_ID), bytes(Pubkey.from_string(mint))],
        METADATA_PROGRAM_ID,
    )
    return str(pda)


def _read_string(data: bytes, offset: int) -> tuple[str, int]:
    (length,) = struct.unpack_from("<I", data, offset)
    offset += 4
    raw = data[offset : offset + length]
    if len(raw) < length:
        raise ValueError("metadata string runs past end of account")
    return raw.decode("utf-8", errors="ignore").rstrip("\x00").strip(), offset + length


def parse_metadata_account(account: dict[str, Any]) -> dict[str, str] | None:
    """Name, symbol and uri from a base64 `getAccountInfo` value.

    Returns None when the account data is absent or not decodable.
    """
    data_field = account.get("data")
    if not isinstance(data_field, list) or not data_field:
        return None

    try:
        data = base64.b64decode(data_field[0])
        if len(data) < _HEADER_SIZE + 12:
            return None
        name, offset = _read_string(data, _HEADER_SIZE)
        symbol, offset = _read_string(data, offset)
        uri, _ = _read_string(data, offset)
    except (ValueError, struct.error):
        return None

    if not name and not symbol:
        return None
    return {"name": name, "symbol": symbol, "uri": uri}

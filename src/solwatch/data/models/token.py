"""Token metadata models."""

from enum import Enum

from pydantic import BaseModel, Field


class TokenSource(str, Enum):
    """Where token metadata came from."""

    CACHE = "cache"
    DATABASE = "database"
    REGISTRY = "registry"
    METADATA_API = "metadata_api"
    ON_CHAIN = "on_chain"
    FALLBACK = "fallback"


UNKNOWN_SYMBOL = "Unknown"
UNKNOWN_NAME = "Unknown Token"


class TokenInfo(BaseModel):
    """Symbol, name and decimals for a mint.

    `decimals_confident` is True when decimals were read from the mint
    account itself (or were already stored); only then are they treated
    as append-only truth.
    """

    mint: str
    symbol: str = UNKNOWN_SYMBOL
    name: str = UNKNOWN_NAME
    decimals: int = Field(default=0, ge=0, le=255)
    logo_uri: str | None = None
    decimals_confident: bool = False
    source: TokenSource = TokenSource.FALLBACK

    @property
    def is_unknown(self) -> bool:
        return self.symbol == UNKNOWN_SYMBOL and self.name == UNKNOWN_NAME


class Token(BaseModel):
    """Durable token row."""

    id: str
    mint: str
    symbol: str | None = None
    name: str | None = None
    decimals: int | None = None
    logo_uri: str | None = None

"""Local token registry snapshot, bulk-loaded at startup."""

import json
from pathlib import Path

import structlog

from solwatch.data.models.token import TokenInfo, TokenSource

log = structlog.get_logger(__name__)

WELL_KNOWN_TOKENS = [
    TokenInfo(
        mint="So11111111111111111111111111111111111111112",
        symbol="SOL",
        name="Wrapped SOL",
        decimals=9,
        decimals_confident=True,
        source=TokenSource.REGISTRY,
    ),
    TokenInfo(
        mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        symbol="USDC",
        name="USD Coin",
        decimals=6,
        decimals_confident=True,
        source=TokenSource.REGISTRY,
    ),
    TokenInfo(
        mint="Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
        symbol="USDT",
        name="USDT",
        decimals=6,
        decimals_confident=True,
        source=TokenSource.REGISTRY,
    ),
]


def load_token_registry(path: str | None) -> dict[str, TokenInfo]:
    """Load a token list JSON file merged over the well-known tokens.

    Accepts either a bare list or `{"tokens": [...]}` with entries keyed
    `address` or `mint`. Registry decimals are not treated as confident.
    """
    registry = {token.mint: token for token in WELL_KNOWN_TOKENS}
    if not path:
        return registry

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log.warning("token_registry_load_failed", path=path, error=str(e))
        return registry

    entries = data.get("tokens", []) if isinstance(data, dict) else data
    loaded = 0
    for entry in entries:
        mint = entry.get("address") or entry.get("mint")
        if not mint or not entry.get("symbol"):
            continue
        registry.setdefault(
            mint,
            TokenInfo(
                mint=mint,
                symbol=entry["symbol"],
                name=entry.get("name") or entry["symbol"],
                decimals=int(entry.get("decimals") or 0),
                logo_uri=entry.get("logoURI") or entry.get("logo_uri"),
                source=TokenSource.REGISTRY,
            ),
        )
        loaded += 1

    log.info("token_registry_loaded", path=path, tokens=loaded)
    return registry

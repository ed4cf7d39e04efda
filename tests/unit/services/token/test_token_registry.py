"""Tests for the token registry snapshot and on-chain metadata parsing."""

import json
from pathlib import Path

from solwatch.data.models.token import TokenSource
from solwatch.services.token.on_chain import metadata_address, parse_metadata_account
from solwatch.services.token.registry import load_token_registry

USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


def test_well_known_tokens_always_present() -> None:
    registry = load_token_registry(None)

    assert registry[USDC].symbol == "USDC"
    assert registry[USDC].decimals_confident


def test_token_list_file_merged(tmp_path: Path) -> None:
    path = tmp_path / "tokens.json"
    path.write_text(
        json.dumps(
            {
                "tokens": [
                    {"address": BONK, "symbol": "Bonk", "name": "Bonk", "decimals": 5},
                    {"address": USDC, "symbol": "FAKE", "decimals": 2},
                    {"address": "nosymbol"},
                ]
            }
        )
    )

    registry = load_token_registry(str(path))

    assert registry[BONK].decimals == 5
    assert registry[BONK].source == TokenSource.REGISTRY
    assert not registry[BONK].decimals_confident
    assert registry[USDC].symbol == "USDC"
    assert "nosymbol" not in registry


def test_unreadable_file_keeps_defaults(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{")

    assert USDC in load_token_registry(str(path))
    assert USDC in load_token_registry(str(tmp_path / "missing.json"))


def test_metadata_address_is_deterministic() -> None:
    assert metadata_address(BONK) == metadata_address(BONK)
    assert metadata_address(BONK) != metadata_address(USDC)


def test_parse_metadata_account_rejects_garbage() -> None:
    assert parse_metadata_account({"data": ["AAAA", "base64"]}) is None
    assert parse_metadata_account({"data": "not-a-list"}) is None
    assert parse_metadata_account({}) is None

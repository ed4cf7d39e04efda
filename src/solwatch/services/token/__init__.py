"""Token metadata resolution."""

from solwatch.services.token.cache import TokenCache
from solwatch.services.token.metadata_resolver import TokenMetadataResolver
from solwatch.services.token.registry import load_token_registry

__all__ = ["TokenCache", "TokenMetadataResolver", "load_token_registry"]

"""Raydium pool discovery."""

from solwatch.services.raydium.client import PoolInfo, RaydiumPoolClient

__all__ = ["PoolInfo", "RaydiumPoolClient"]

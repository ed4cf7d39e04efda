"""PnL aggregation."""

from solwatch.services.pnl.aggregator import PnLAggregator, compute_snapshot, pool_positions

__all__ = ["PnLAggregator", "compute_snapshot", "pool_positions"]

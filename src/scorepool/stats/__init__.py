"""Per-user settlement statistics."""

from scorepool.stats.aggregator import StatsAggregator, apply_settlement

__all__ = ["StatsAggregator", "apply_settlement"]

"""Market registry (factory): unique market ids, market count, global fee ceiling."""

from scorepool.registry.factory import DEFAULT_MAX_TOTAL_FEE_BPS, Registry, derive_market_id

__all__ = ["DEFAULT_MAX_TOTAL_FEE_BPS", "Registry", "derive_market_id"]

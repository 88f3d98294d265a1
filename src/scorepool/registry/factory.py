"""Registry - the factory that mints market ids and enforces the platform-wide fee ceiling."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog

from scorepool.errors import AuthorizationError, DuplicateError, NotFoundError, ValidationError
from scorepool.models import MarketRecord, RegistryState
from scorepool.settlement.arithmetic import checked_add
from scorepool.settlement.validation import validate_market_params
from scorepool.storage.db import transaction
from scorepool.storage.registry import (
    get_market_record,
    get_registry,
    insert_market_record,
    insert_registry,
    update_registry,
)

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

DEFAULT_MAX_TOTAL_FEE_BPS = 1000  # 10%
_MARKET_NAMESPACE = uuid.UUID("6f1c54f2-6a3e-4b8e-9a59-0d7c2b1e4f10")


def derive_market_id(authority: str, creator: str, match_id: str) -> str:
    """Deterministic market id: one market per (registry, creator, match)."""
    return str(uuid.uuid5(_MARKET_NAMESPACE, f"{authority}/{creator}/{match_id}"))


class Registry:
    """One registry row per authority. The authority and fee ceiling come from configuration."""

    def __init__(
        self,
        conn: DuckDBPyConnection,
        authority: str,
        max_total_fee_bps: int = DEFAULT_MAX_TOTAL_FEE_BPS,
    ):
        self.conn = conn
        self.authority = authority
        self.max_total_fee_bps = max_total_fee_bps

    def _check_platform_fee(self, platform_fee_bps: int) -> None:
        if platform_fee_bps < 0 or platform_fee_bps > self.max_total_fee_bps:
            raise ValidationError(
                f"platform fee {platform_fee_bps} bps outside 0..{self.max_total_fee_bps}",
                platform_fee_bps=platform_fee_bps,
            )

    def initialize(self, platform_fee_bps: int, now: int) -> RegistryState:
        """Create the registry row. Re-initialising an existing authority returns the stored state."""
        self._check_platform_fee(platform_fee_bps)
        with transaction(self.conn):
            existing = get_registry(self.conn, self.authority)
            if existing is not None:
                return existing
            state = RegistryState(
                authority=self.authority,
                platform_fee_bps=platform_fee_bps,
                market_count=0,
                created_at=now,
            )
            insert_registry(self.conn, state)
        log.info("registry_initialized", authority=self.authority, platform_fee_bps=platform_fee_bps)
        return state

    def state(self) -> RegistryState:
        state = get_registry(self.conn, self.authority)
        if state is None:
            raise NotFoundError(f"registry {self.authority!r} is not initialized")
        return state

    def get_market_count(self) -> int:
        return self.state().market_count

    def update_platform_fee(self, caller: str, platform_fee_bps: int) -> RegistryState:
        """Authority-only. Applies to markets created afterwards."""
        if caller != self.authority:
            raise AuthorizationError(f"{caller} is not the registry authority")
        self._check_platform_fee(platform_fee_bps)
        with transaction(self.conn):
            state = self.state()
            state.platform_fee_bps = platform_fee_bps
            update_registry(self.conn, state)
        log.info("registry_fee_updated", authority=self.authority, platform_fee_bps=platform_fee_bps)
        return state

    def create_market_record(
        self,
        creator: str,
        match_id: str,
        entry_fee: int,
        kickoff_time: int,
        end_time: int,
        is_public: bool,
        creator_fee_bps: int,
        now: int,
    ) -> str:
        """Record a new market and return its id.

        Runs inside the caller's transaction (the engine creates the market in the same one).
        """
        validate_market_params(match_id, entry_fee, kickoff_time, end_time, now)
        state = self.state()
        total_bps = creator_fee_bps + state.platform_fee_bps
        if total_bps > self.max_total_fee_bps:
            raise ValidationError(
                f"total fees {total_bps} bps exceed the registry ceiling of {self.max_total_fee_bps} bps",
                creator_fee_bps=creator_fee_bps,
                platform_fee_bps=state.platform_fee_bps,
            )
        market_id = derive_market_id(self.authority, creator, match_id)
        if get_market_record(self.conn, market_id) is not None:
            raise DuplicateError(f"market for {match_id!r} by {creator} already exists", market_id=market_id)
        insert_market_record(
            self.conn,
            MarketRecord(
                market_id=market_id,
                authority=self.authority,
                creator=creator,
                match_id=match_id,
                entry_fee=entry_fee,
                kickoff_time=kickoff_time,
                end_time=end_time,
                is_public=is_public,
                created_at=now,
            ),
        )
        state.market_count = checked_add(state.market_count, 1)
        update_registry(self.conn, state)
        return market_id

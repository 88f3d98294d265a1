"""Settlement engine - per-market escrow state machine.

initialize -> join* -> resolve (once) -> withdraw (once per winner). Each operation is one
DuckDB transaction covering the ledger transfers, the record updates and the events it emits,
so a failure anywhere leaves no partial effect. An operation that loses a write-write conflict
to another connection is re-run from fresh reads, so it ends as if the two had run in order.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import duckdb
import structlog
from pydantic import ValidationError as PydanticValidationError

from scorepool.errors import (
    AlreadyWithdrawnError,
    AuthorizationError,
    DuplicateError,
    FundsError,
    NoWinnersError,
    NotAWinnerError,
    NotFoundError,
    StateError,
    TimeError,
    ValidationError,
)
from scorepool.ledger import Clock, Ledger, SystemClock
from scorepool.models import (
    EventType,
    FeeSchedule,
    FeeTiming,
    Market,
    MarketStatus,
    Outcome,
    Participant,
    SettlementEvent,
)
from scorepool.registry import Registry
from scorepool.settlement.arithmetic import U32_MAX, checked_add
from scorepool.settlement.fees import FeeBreakdown, compute_fees, compute_reward, validate_schedule
from scorepool.settlement.policies import RESOLVER_POLICIES, ResolverPolicy, get_policy
from scorepool.settlement.validation import validate_market_params
from scorepool.storage.db import run_in_transaction
from scorepool.storage.event_log import append_event
from scorepool.storage.markets import (
    get_market,
    get_participant,
    insert_market,
    insert_participant,
    list_participants,
    mark_fees_distributed,
    mark_market_resolved,
    mark_withdrawn,
    update_market_accounting,
)

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from scorepool.config import Settings

log = structlog.get_logger(__name__)

_STANDALONE_NAMESPACE = uuid.UUID("3b0f7f0e-0c55-4d43-8f43-5a3c6f0b9d21")

_COUNTER_FIELDS = {
    Outcome.HOME: "home_count",
    Outcome.DRAW: "draw_count",
    Outcome.AWAY: "away_count",
}


class SettlementEngine:
    """Owns Market and Participant records and the escrow account of each market.

    platform_fee_account, fee_timing and resolver_policy are deployment configuration; the
    latter two are copied onto each market at creation and never change under it.
    """

    def __init__(
        self,
        conn: DuckDBPyConnection,
        *,
        clock: Clock | None = None,
        registry: Registry | None = None,
        platform_fee_account: str = "platform",
        fee_timing: FeeTiming | str = FeeTiming.AT_RESOLVE,
        resolver_policy: str = "creator",
        platform_fee_bps: int = 0,
        policies: dict[str, ResolverPolicy] | None = None,
    ):
        self.conn = conn
        self.clock = clock or SystemClock()
        self.registry = registry
        self.ledger = Ledger(conn)
        self.platform_fee_account = platform_fee_account
        self.fee_timing = FeeTiming(fee_timing)
        self.policies = dict(RESOLVER_POLICIES if policies is None else policies)
        get_policy(resolver_policy, self.policies)
        self.resolver_policy = resolver_policy
        self.platform_fee_bps = platform_fee_bps

    @classmethod
    def from_settings(
        cls, conn: DuckDBPyConnection, settings: Settings, clock: Clock | None = None
    ) -> SettlementEngine:
        registry = Registry(
            conn,
            authority=settings.registry_authority,
            max_total_fee_bps=settings.max_total_fee_bps,
        )
        return cls(
            conn,
            clock=clock,
            registry=registry,
            platform_fee_account=settings.platform_fee_account,
            fee_timing=settings.fee_timing,
            resolver_policy=settings.resolver_policy,
            platform_fee_bps=settings.platform_fee_bps,
        )

    # --- reads ---

    def get_market(self, market_id: str) -> Market:
        market = get_market(self.conn, market_id)
        if market is None:
            raise NotFoundError(f"market {market_id} not found", market_id=market_id)
        return market

    def get_participant(self, market_id: str, user_id: str) -> Participant:
        participant = get_participant(self.conn, market_id, user_id)
        if participant is None:
            raise NotFoundError(
                f"{user_id} has not joined market {market_id}", market_id=market_id, user_id=user_id
            )
        return participant

    def list_participants(self, market_id: str) -> list[Participant]:
        self.get_market(market_id)
        return list_participants(self.conn, market_id)

    def escrow_balance(self, market_id: str) -> int:
        return self.ledger.balance(self.get_market(market_id).escrow_account)

    # --- operations ---

    def initialize(
        self,
        creator: str,
        match_id: str,
        entry_fee: int,
        kickoff_time: int,
        end_time: int,
        is_public: bool = True,
        creator_fee_bps: int = 0,
        platform_fee_bps: int | None = None,
    ) -> Market:
        """Create an Open market with an empty pool and an empty escrow account."""

        def body() -> Market:
            now = self.clock.now()
            validate_market_params(match_id, entry_fee, kickoff_time, end_time, now)
            platform_bps = self.platform_fee_bps if platform_fee_bps is None else platform_fee_bps
            if self.registry is not None:
                registry_bps = self.registry.state().platform_fee_bps
                if platform_fee_bps is not None and platform_fee_bps != registry_bps:
                    raise ValidationError(
                        f"platform fee is set by the registry ({registry_bps} bps)"
                    )
                platform_bps = registry_bps
            fees = _fee_schedule(creator_fee_bps, platform_bps)

            if self.registry is not None:
                market_id = self.registry.create_market_record(
                    creator,
                    match_id,
                    entry_fee,
                    kickoff_time,
                    end_time,
                    is_public,
                    creator_fee_bps,
                    now,
                )
                registry_id = self.registry.authority
            else:
                market_id = str(uuid.uuid5(_STANDALONE_NAMESPACE, f"{creator}/{match_id}"))
                registry_id = ""
            if get_market(self.conn, market_id) is not None:
                raise DuplicateError(f"market {market_id} already exists", market_id=market_id)

            market = Market(
                market_id=market_id,
                creator=creator,
                registry_id=registry_id,
                match_id=match_id,
                entry_fee=entry_fee,
                kickoff_time=kickoff_time,
                end_time=end_time,
                is_public=is_public,
                fees=fees,
                fee_timing=self.fee_timing,
                resolver_policy=self.resolver_policy,
                created_at=now,
            )
            insert_market(self.conn, market)
            self.ledger.open_account(market.escrow_account)
            self._emit(
                EventType.MARKET_CREATED,
                market_id,
                None,
                now,
                creator=creator,
                registry_id=registry_id,
                match_id=match_id,
                entry_fee=entry_fee,
                kickoff_time=kickoff_time,
                end_time=end_time,
                is_public=is_public,
                creator_fee_bps=fees.creator_fee_bps,
                platform_fee_bps=fees.platform_fee_bps,
                fee_timing=self.fee_timing.value,
                resolver_policy=self.resolver_policy,
            )
            return market

        market = run_in_transaction(self.conn, body)
        log.info(
            "market_initialized",
            market_id=market.market_id,
            creator=creator,
            match_id=match_id,
            entry_fee=entry_fee,
        )
        return market

    def join(self, market_id: str, user_id: str, prediction: Outcome | str) -> Participant:
        """Stake the entry fee on a prediction. Transfer and bookkeeping commit together."""
        prediction = _outcome(prediction)

        def body() -> tuple[Market, Participant]:
            now = self.clock.now()
            market = self.get_market(market_id)
            if market.status is not MarketStatus.OPEN:
                raise StateError(f"market {market_id} is {market.status.value}, not open")
            if now >= market.kickoff_time:
                raise StateError(f"market {market_id} closed at kickoff {market.kickoff_time}")
            if get_participant(self.conn, market_id, user_id) is not None:
                raise DuplicateError(f"{user_id} already joined market {market_id}")

            counter = _COUNTER_FIELDS[prediction]
            market.total_pool = checked_add(market.total_pool, market.entry_fee)
            market.participant_count = checked_add(market.participant_count, 1, limit=U32_MAX)
            setattr(market, counter, checked_add(getattr(market, counter), 1, limit=U32_MAX))

            self.ledger.transfer(user_id, market.escrow_account, market.entry_fee)
            participant = Participant(
                market_id=market_id, user_id=user_id, prediction=prediction, joined_at=now
            )
            try:
                insert_participant(self.conn, participant)
            except duckdb.ConstraintException as e:
                raise DuplicateError(f"{user_id} already joined market {market_id}") from e
            update_market_accounting(self.conn, market)
            self._emit(
                EventType.PREDICTION_MADE,
                market_id,
                user_id,
                now,
                prediction=prediction.value,
                amount=market.entry_fee,
                total_pool=market.total_pool,
                participant_count=market.participant_count,
            )
            return market, participant

        market, participant = run_in_transaction(self.conn, body)
        log.info(
            "prediction_made",
            market_id=market_id,
            user_id=user_id,
            prediction=prediction.value,
            total_pool=market.total_pool,
        )
        return participant

    def resolve(self, market_id: str, resolver: str, outcome: Outcome | str) -> Market:
        """Record the outcome. Succeeds exactly once per market."""
        outcome = _outcome(outcome)

        def body() -> Market:
            now = self.clock.now()
            market = self.get_market(market_id)
            if market.status is MarketStatus.RESOLVED:
                raise StateError(f"market {market_id} is already resolved")
            if now < market.end_time:
                raise TimeError(
                    f"market {market_id} ends at {market.end_time}, now is {now}",
                    end_time=market.end_time,
                    now=now,
                )
            policy = get_policy(market.resolver_policy, self.policies)

            def is_participant(user_id: str) -> bool:
                return get_participant(self.conn, market_id, user_id) is not None

            if not policy(market, resolver, is_participant):
                raise AuthorizationError(
                    f"{resolver} may not resolve market {market_id} under policy {market.resolver_policy!r}"
                )

            fees = compute_fees(market.total_pool, market.fees)
            mark_market_resolved(self.conn, market_id, outcome, now)
            market.status = MarketStatus.RESOLVED
            market.outcome = outcome
            market.resolved_at = now
            self._emit(
                EventType.MARKET_RESOLVED,
                market_id,
                resolver,
                now,
                outcome=outcome.value,
                winner_count=market.winner_count,
                total_pool=market.total_pool,
                creator_fee=fees.creator_fee,
                platform_fee=fees.platform_fee,
            )
            if market.fee_timing is FeeTiming.AT_RESOLVE:
                self._distribute_fees(market, fees, now)
            return market

        market = run_in_transaction(self.conn, body)
        log.info(
            "market_resolved",
            market_id=market_id,
            outcome=outcome.value,
            winner_count=market.winner_count,
            total_pool=market.total_pool,
        )
        return market

    def withdraw(self, market_id: str, user_id: str) -> Participant:
        """Pay a winner their share once. Every failure path moves no funds."""

        def body() -> Participant:
            now = self.clock.now()
            market = self.get_market(market_id)
            if market.status is not MarketStatus.RESOLVED:
                raise StateError(f"market {market_id} is {market.status.value}, not resolved")
            participant = self.get_participant(market_id, user_id)
            if participant.has_withdrawn:
                raise AlreadyWithdrawnError(f"{user_id} already withdrew from market {market_id}")
            winner_count = market.winner_count
            if winner_count == 0:
                raise NoWinnersError(f"nobody predicted {market.outcome.value} in market {market_id}")
            if participant.prediction is not market.outcome:
                raise NotAWinnerError(
                    f"{user_id} predicted {participant.prediction.value}, outcome was {market.outcome.value}"
                )

            breakdown = compute_reward(market.total_pool, market.fees, winner_count)
            if market.fee_timing is FeeTiming.AT_WITHDRAW and not market.fees_distributed:
                self._distribute_fees(market, compute_fees(market.total_pool, market.fees), now)
            self._pay_out(market, user_id, breakdown.reward)
            mark_withdrawn(self.conn, market_id, user_id, breakdown.reward)
            participant.has_withdrawn = True
            participant.reward = breakdown.reward
            self._emit(
                EventType.REWARD_CLAIMED,
                market_id,
                user_id,
                now,
                amount=breakdown.reward,
                winner_count=winner_count,
                prize_pool=breakdown.prize_pool,
            )
            return participant

        participant = run_in_transaction(self.conn, body)
        log.info("reward_claimed", market_id=market_id, user_id=user_id, amount=participant.reward)
        return participant

    # --- internals ---

    def _distribute_fees(self, market: Market, fees: FeeBreakdown, now: int) -> None:
        self._pay_out(market, market.creator, fees.creator_fee)
        self._pay_out(market, self.platform_fee_account, fees.platform_fee)
        mark_fees_distributed(self.conn, market.market_id)
        market.fees_distributed = True
        self._emit(
            EventType.FEES_DISTRIBUTED,
            market.market_id,
            None,
            now,
            creator=market.creator,
            creator_fee=fees.creator_fee,
            platform_account=self.platform_fee_account,
            platform_fee=fees.platform_fee,
        )
        log.info(
            "fees_distributed",
            market_id=market.market_id,
            creator_fee=fees.creator_fee,
            platform_fee=fees.platform_fee,
        )

    def _pay_out(self, market: Market, dest: str, amount: int) -> None:
        try:
            self.ledger.transfer(market.escrow_account, dest, amount)
        except FundsError:
            # Pool conservation is broken if escrow cannot cover a computed payout
            log.error(
                "escrow_integrity_fault",
                market_id=market.market_id,
                dest=dest,
                amount=amount,
                escrow_balance=self.ledger.balance(market.escrow_account),
            )
            raise

    def _emit(
        self,
        event_type: EventType,
        market_id: str,
        user_id: str | None,
        now: int,
        **payload: Any,
    ) -> None:
        append_event(
            self.conn,
            SettlementEvent(
                event_type=event_type,
                market_id=market_id,
                user_id=user_id,
                created_at=now,
                payload=payload,
            ),
        )


def _outcome(value: Outcome | str) -> Outcome:
    try:
        return Outcome(value)
    except ValueError:
        raise ValidationError(
            f"unknown outcome {value!r}, expected one of {[o.value for o in Outcome]}"
        ) from None


def _fee_schedule(creator_fee_bps: int, platform_fee_bps: int) -> FeeSchedule:
    try:
        fees = FeeSchedule(creator_fee_bps=creator_fee_bps, platform_fee_bps=platform_fee_bps)
    except PydanticValidationError as e:
        raise ValidationError(
            f"invalid fee schedule: creator {creator_fee_bps} bps, platform {platform_fee_bps} bps"
        ) from e
    validate_schedule(fees)
    return fees

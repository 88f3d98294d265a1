"""Registry: initialization, fee ceiling, market ids and count."""

import pytest

from conftest import END, KICKOFF, NOW
from scorepool.errors import AuthorizationError, DuplicateError, NotFoundError, ValidationError
from scorepool.ledger import Ledger
from scorepool.registry import Registry, derive_market_id
from scorepool.settlement.engine import SettlementEngine
from scorepool.storage.db import transaction
from scorepool.storage.registry import get_market_record


@pytest.fixture
def registry(temp_db):
    return Registry(temp_db, authority="registry", max_total_fee_bps=1000)


@pytest.fixture
def registered_engine(temp_db, clock, registry):
    registry.initialize(platform_fee_bps=100, now=NOW)
    return SettlementEngine(temp_db, clock=clock, registry=registry, platform_fee_account="treasury")


def test_initialize_is_idempotent(registry):
    state = registry.initialize(platform_fee_bps=100, now=NOW)
    assert state.market_count == 0
    again = registry.initialize(platform_fee_bps=250, now=NOW + 10)
    assert again.platform_fee_bps == 100
    assert again.created_at == NOW


def test_platform_fee_above_ceiling_is_rejected(registry):
    with pytest.raises(ValidationError):
        registry.initialize(platform_fee_bps=1001, now=NOW)
    with pytest.raises(NotFoundError):
        registry.state()


def test_engine_creates_markets_through_registry(registered_engine, registry, temp_db):
    market = registered_engine.initialize("carl", "EPL-1", 100, KICKOFF, END, creator_fee_bps=200)
    assert market.market_id == derive_market_id("registry", "carl", "EPL-1")
    assert market.registry_id == "registry"
    assert market.fees.platform_fee_bps == 100
    assert registry.get_market_count() == 1
    record = get_market_record(temp_db, market.market_id)
    assert record.creator == "carl"
    assert record.entry_fee == 100

    registered_engine.initialize("carl", "EPL-2", 100, KICKOFF, END)
    registered_engine.initialize("dana", "EPL-1", 100, KICKOFF, END)
    assert registry.get_market_count() == 3


def test_registry_fee_ceiling_applies_to_creator_plus_platform(registered_engine, registry):
    with pytest.raises(ValidationError):
        registered_engine.initialize("carl", "EPL-1", 100, KICKOFF, END, creator_fee_bps=901)
    assert registry.get_market_count() == 0
    market = registered_engine.initialize("carl", "EPL-1", 100, KICKOFF, END, creator_fee_bps=900)
    assert market.fees.total_bps == 1000


def test_platform_fee_is_owned_by_registry(registered_engine):
    with pytest.raises(ValidationError):
        registered_engine.initialize(
            "carl", "EPL-1", 100, KICKOFF, END, creator_fee_bps=0, platform_fee_bps=0
        )


def test_duplicate_match_by_same_creator(registered_engine, registry):
    registered_engine.initialize("carl", "EPL-1", 100, KICKOFF, END)
    with pytest.raises(DuplicateError):
        registered_engine.initialize("carl", "EPL-1", 500, KICKOFF, END)
    assert registry.get_market_count() == 1


def test_uninitialized_registry(temp_db, clock):
    engine = SettlementEngine(temp_db, clock=clock, registry=Registry(temp_db, authority="nobody"))
    with pytest.raises(NotFoundError):
        engine.initialize("carl", "EPL-1", 100, KICKOFF, END)


def test_create_market_record_validates_like_the_engine(registry, temp_db):
    registry.initialize(platform_fee_bps=0, now=NOW)
    with pytest.raises(ValidationError):
        with transaction(temp_db):
            registry.create_market_record("carl", "", 100, KICKOFF, END, True, 0, NOW)
    with pytest.raises(ValidationError):
        with transaction(temp_db):
            registry.create_market_record("carl", "EPL-1", 100, NOW - 1, END, True, 0, NOW)
    assert registry.get_market_count() == 0


def test_update_platform_fee_is_authority_only(registered_engine, registry):
    with pytest.raises(AuthorizationError):
        registry.update_platform_fee("carl", 50)
    with pytest.raises(ValidationError):
        registry.update_platform_fee("registry", 2000)
    first = registered_engine.initialize("carl", "EPL-1", 100, KICKOFF, END, creator_fee_bps=0)
    registry.update_platform_fee("registry", 300)
    second = registered_engine.initialize("carl", "EPL-2", 100, KICKOFF, END, creator_fee_bps=0)
    assert first.fees.platform_fee_bps == 100
    assert registered_engine.get_market(first.market_id).fees.platform_fee_bps == 100
    assert second.fees.platform_fee_bps == 300


def test_platform_fees_go_to_configured_account(registered_engine, clock, fund, temp_db):
    market = registered_engine.initialize("carl", "EPL-1", 1_000, KICKOFF, END, creator_fee_bps=0)
    fund("alice", 1_000)
    registered_engine.join(market.market_id, "alice", "home")
    clock.set(END)
    registered_engine.resolve(market.market_id, "carl", "home")
    assert Ledger(temp_db).balance("treasury") == 10
    assert registered_engine.withdraw(market.market_id, "alice").reward == 990

"""Resolver authorisation strategies, chosen by name when a market is created."""

from __future__ import annotations

from typing import Callable

from scorepool.errors import ValidationError
from scorepool.models import Market

# (market, resolver, is_participant) -> authorised
ResolverPolicy = Callable[[Market, str, Callable[[str], bool]], bool]


def creator_only(market: Market, resolver: str, is_participant: Callable[[str], bool]) -> bool:
    return resolver == market.creator


def creator_or_participant(
    market: Market, resolver: str, is_participant: Callable[[str], bool]
) -> bool:
    """Creator, or anyone holding a participant record in this market."""
    return resolver == market.creator or is_participant(resolver)


RESOLVER_POLICIES: dict[str, ResolverPolicy] = {
    "creator": creator_only,
    "creator_or_participant": creator_or_participant,
}


def get_policy(name: str, policies: dict[str, ResolverPolicy] | None = None) -> ResolverPolicy:
    table = RESOLVER_POLICIES if policies is None else policies
    try:
        return table[name]
    except KeyError:
        raise ValidationError(
            f"unknown resolver policy {name!r}, expected one of {sorted(table)}"
        ) from None

"""Input checks shared by the engine and the registry. All raise ValidationError before any write."""

from __future__ import annotations

from scorepool.errors import ValidationError
from scorepool.models import MAX_MATCH_ID_LEN
from scorepool.settlement.arithmetic import U64_MAX


def validate_match_id(match_id: str) -> None:
    if not match_id:
        raise ValidationError("match_id must not be empty")
    size = len(match_id.encode("utf-8"))
    if size > MAX_MATCH_ID_LEN:
        raise ValidationError(
            f"match_id is {size} bytes, limit is {MAX_MATCH_ID_LEN}", match_id=match_id
        )


def validate_entry_fee(entry_fee: int) -> None:
    if entry_fee <= 0:
        raise ValidationError(f"entry_fee must be positive, got {entry_fee}")
    if entry_fee > U64_MAX:
        raise ValidationError(f"entry_fee {entry_fee} exceeds u64")


def validate_schedule_times(kickoff_time: int, end_time: int, now: int) -> None:
    if kickoff_time <= now:
        raise ValidationError(
            f"kickoff_time {kickoff_time} must be in the future (now {now})",
            kickoff_time=kickoff_time,
            now=now,
        )
    if end_time <= kickoff_time:
        raise ValidationError(
            f"end_time {end_time} must be after kickoff_time {kickoff_time}",
            kickoff_time=kickoff_time,
            end_time=end_time,
        )


def validate_market_params(
    match_id: str, entry_fee: int, kickoff_time: int, end_time: int, now: int
) -> None:
    validate_match_id(match_id)
    validate_entry_fee(entry_fee)
    validate_schedule_times(kickoff_time, end_time, now)

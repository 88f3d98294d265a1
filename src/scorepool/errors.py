"""Settlement error hierarchy - every failure aborts the whole operation.

Each error carries a machine-readable ``code`` and the HTTP status the API answers with.
"""

from __future__ import annotations

from typing import Any


class SettlementError(Exception):
    """Base for all engine, registry and stats failures."""

    code = "settlement_error"
    http_status = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> dict[str, Any]:
        """Consistent error JSON: { detail, code }."""
        return {"detail": self.message, "code": self.code}


class ValidationError(SettlementError):
    """Malformed input, rejected before any mutation."""

    code = "validation_error"
    http_status = 422


class CalculationError(SettlementError, ArithmeticError):
    """Checked add/sub/mul/div overflowed, underflowed or divided by zero."""

    code = "calculation_error"
    http_status = 500


class AuthorizationError(SettlementError):
    code = "unauthorized_resolver"
    http_status = 403


class StateError(SettlementError):
    """Operation invoked outside its required lifecycle state."""

    code = "invalid_state"
    http_status = 409


class TimeError(SettlementError):
    code = "market_not_ended"
    http_status = 409


class FundsError(SettlementError):
    """Balance cannot cover a transfer. From escrow this is an integrity fault, not a retry."""

    code = "insufficient_funds"
    http_status = 402


class DuplicateError(SettlementError):
    code = "duplicate"
    http_status = 409


class NotFoundError(SettlementError):
    code = "not_found"
    http_status = 404


class AlreadyWithdrawnError(SettlementError):
    code = "already_withdrawn"
    http_status = 409


class NotAWinnerError(SettlementError):
    code = "not_a_winner"
    http_status = 403


class NoWinnersError(SettlementError):
    code = "no_winners"
    http_status = 409

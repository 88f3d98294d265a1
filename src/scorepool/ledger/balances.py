"""Account balances over DuckDB - the transfer primitive the engine settles through.

Ledger methods never open a transaction themselves; callers wrap them in
``storage.db.transaction`` or ``run_in_transaction`` so a transfer commits together with the
bookkeeping it pays for.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from scorepool.errors import FundsError, ValidationError
from scorepool.settlement.arithmetic import checked_add, checked_sub

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


class Ledger:
    """Integer balances keyed by account id (users, market escrows, fee accounts)."""

    def __init__(self, conn: DuckDBPyConnection):
        self.conn = conn

    def balance(self, account: str) -> int:
        row = self.conn.execute(
            "SELECT amount FROM balances WHERE account_id = ?", [account]
        ).fetchone()
        return int(row[0]) if row else 0

    def deposit(self, account: str, amount: int) -> int:
        """Credit account from outside the system (local faucet). Returns the new balance."""
        if amount <= 0:
            raise ValidationError(f"deposit amount must be positive, got {amount}")
        new_balance = checked_add(self.balance(account), amount)
        self._store(account, new_balance)
        return new_balance

    def transfer(self, source: str, dest: str, amount: int) -> None:
        """Move amount from source to dest. FundsError if source cannot cover it."""
        if amount < 0:
            raise ValidationError(f"transfer amount must not be negative, got {amount}")
        if amount == 0 or source == dest:
            return
        available = self.balance(source)
        if available < amount:
            raise FundsError(
                f"account {source} holds {available}, needs {amount}",
                account=source,
                available=available,
                required=amount,
            )
        credited = checked_add(self.balance(dest), amount)
        self._store(source, checked_sub(available, amount))
        self._store(dest, credited)

    def open_account(self, account: str) -> None:
        """Create account with a zero balance; an existing account is left as it is."""
        self.conn.execute(
            "INSERT INTO balances (account_id, amount) VALUES (?, 0) ON CONFLICT DO NOTHING",
            [account],
        )

    def _store(self, account: str, amount: int) -> None:
        self.conn.execute(
            """
            INSERT INTO balances (account_id, amount) VALUES (?, ?)
            ON CONFLICT (account_id) DO UPDATE SET amount = excluded.amount
            """,
            [account, amount],
        )

"""
pointkeeper.engine.errors — Ledger Exception Hierarchy
=======================================================

Every failure the ledger core can signal derives from :class:`LedgerError`
so the bot's listener edges can catch one family.  I/O failures against
Discord are wrapped into :class:`RecordLogError` / :class:`DeliveryFailure`
at the adapter boundary; the engine never sees ``discord`` exceptions.
"""

from __future__ import annotations

__all__ = [
    "BootstrapCorruption",
    "ConfigurationError",
    "DeliveryFailure",
    "InsufficientFunds",
    "InvariantViolation",
    "LedgerError",
    "MalformedRecord",
    "PersistenceInconsistency",
    "RecordLogError",
]


class LedgerError(Exception):
    """Base class for all PointKeeper errors."""


class ConfigurationError(LedgerError):
    """A required configuration value is missing or malformed."""


class MalformedRecord(LedgerError, ValueError):
    """Record content does not match ``<id> - <value>``."""

    def __init__(self, content: str, reason: str) -> None:
        super().__init__(f"{reason}: {content!r}")
        self.content = content
        self.reason = reason


class BootstrapCorruption(LedgerError):
    """A backlog record failed to parse during replay.

    No partial state is swapped into the stores when this is raised.
    """

    def __init__(self, log_name: str, record_id: int, content: str, reason: str) -> None:
        super().__init__(
            f"Corrupt record {record_id} in {log_name} log ({reason}): {content!r}"
        )
        self.log_name = log_name
        self.record_id = record_id
        self.content = content
        self.reason = reason


class InsufficientFunds(LedgerError):
    """A debit would take the balance below zero."""

    def __init__(self, user_id: int, balance: int, cost: int) -> None:
        super().__init__(
            f"User {user_id} has {balance}, needs {cost}"
        )
        self.user_id = user_id
        self.balance = balance
        self.cost = cost


class InvariantViolation(LedgerError):
    """Ledger state would become invalid (overflow, duplicate record, …)."""


class RecordLogError(LedgerError):
    """Reading or writing the durable record log failed."""


class PersistenceInconsistency(LedgerError):
    """An in-memory commit has no durable record behind it."""

    def __init__(self, user_id: int, balance: int) -> None:
        super().__init__(
            f"Balance {balance} for user {user_id} committed in memory "
            "but no durable record could be created"
        )
        self.user_id = user_id
        self.balance = balance


class DeliveryFailure(LedgerError):
    """An outbound message, DM, or reaction removal failed."""

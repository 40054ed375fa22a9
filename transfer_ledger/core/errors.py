from __future__ import annotations

from datetime import datetime


class LedgerError(Exception):
    """Base class for every failure the transfer ledger reports."""


class TransferValidationError(LedgerError, ValueError):
    """Raised when a transfer request fails a domain check before any store access."""


class AccountNotFoundError(LedgerError):
    """Raised when a sender or receiver id does not resolve to an account."""


class InsufficientBalanceError(LedgerError):
    """Raised when a ledger operation would drive a balance below zero."""


class TransactionNotFoundError(LedgerError):
    """Raised when a transfer id is unknown or not visible to the caller."""


class DuplicateIdempotencyKeyError(LedgerError):
    """Raised when the same idempotency key is reused with different input."""


class ConflictError(LedgerError):
    """Raised by a store when an account changed since it was fetched."""


class StoreFailureError(LedgerError):
    """Raised when the persistence layer fails mid-operation.

    ``partial_write`` is true when some writes of the operation could not be
    undone, i.e. balances and transfer records may disagree.
    """

    def __init__(self, message: str, *, partial_write: bool = False) -> None:
        super().__init__(message)
        self.partial_write = partial_write


class LoginBlockedError(LedgerError):
    """Raised while an account is locked out after too many failed logins."""

    def __init__(self, message: str, *, blocked_until: datetime) -> None:
        super().__init__(message)
        self.blocked_until = blocked_until

from .accounts import AccountService
from .ledger import TransferLedger
from .memory import InMemoryAccountStore, InMemoryTransferRecordStore
from .repository import LedgerRepository
from .stores import AccountStore, TransferRecordStore
from .throttle import InMemoryLoginAttemptStore, LoginAttempts, LoginThrottle

__all__ = [
    "AccountService",
    "AccountStore",
    "InMemoryAccountStore",
    "InMemoryLoginAttemptStore",
    "InMemoryTransferRecordStore",
    "LedgerRepository",
    "LoginAttempts",
    "LoginThrottle",
    "TransferLedger",
    "TransferRecordStore",
]

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from sqlmodel import Session

from ..services import AccountService, LedgerRepository, LoginThrottle, TransferLedger
from .config import get_settings
from .db import get_session
from .locks import LockRegistry

@lru_cache(maxsize=1)
def get_lock_registry() -> LockRegistry:
    return LockRegistry()

@lru_cache(maxsize=1)
def get_login_throttle() -> LoginThrottle:
    """Shared throttle for a login boundary mounted outside this app; no route here uses it."""
    settings = get_settings()
    return LoginThrottle(
        attempt_limit=settings.login_attempt_limit,
        block_for=timedelta(minutes=settings.login_block_minutes),
    )

def get_repository(session: Session = Depends(get_session)) -> LedgerRepository:
    return LedgerRepository(session)

def get_account_service(
    repository: LedgerRepository = Depends(get_repository),
) -> AccountService:
    return AccountService(repository)

def get_transfer_ledger(
    repository: LedgerRepository = Depends(get_repository),
) -> TransferLedger:
    return TransferLedger(
        accounts=repository,
        records=repository,
        locks=get_lock_registry(),
        max_conflict_retries=get_settings().conflict_retry_limit,
    )

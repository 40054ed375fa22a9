from __future__ import annotations

import logging
from uuid import UUID

from ..core.errors import AccountNotFoundError
from ..models import AccountCreate, AccountModel, AccountResponse
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, repository: LedgerRepository) -> None:
        self.repository = repository

    def _account_to_response(self, account: AccountModel) -> AccountResponse:
        return AccountResponse(
            id=account.id,
            owner_name=account.owner_name,
            created_at=account.created_at,
            balance=account.balance,
        )

    def create_account(self, payload: AccountCreate) -> AccountResponse:
        account = self.repository.add_account(payload.owner_name, payload.balance)
        logger.info(
            "account.created",
            extra={"account_id": str(account.id), "owner_name": account.owner_name},
        )
        return self._account_to_response(account)

    def get_account(self, account_id: UUID) -> AccountResponse:
        account = self.repository.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return self._account_to_response(account)

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import ConflictError, StoreFailureError, TransactionNotFoundError
from ..models import (
    Account,
    AccountModel,
    TransferDraft,
    TransferEffect,
    TransferModel,
    TransferRecord,
)


logger = logging.getLogger(__name__)


def _to_record(row: TransferModel) -> TransferRecord:
    return TransferRecord(
        id=row.id,
        sender_id=row.sender_id,
        receiver_id=row.receiver_id,
        amount=row.amount,
        type=row.type,
        description=row.description,
        created_at=row.created_at,
        applied=TransferEffect(
            sender_id=row.applied_sender_id,
            receiver_id=row.applied_receiver_id,
            amount=row.applied_amount,
        ),
        idempotency_key=row.idempotency_key,
        request_signature=row.request_signature,
    )


class LedgerRepository:
    """Thin data access layer around the SQLModel session.

    Implements both the account store and the transfer record store. Every
    write commits on its own; the ledger engine does not rely on a shared
    transaction between the two.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def _store_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.warning("store.failure", extra={"action": action, "error": str(exc)})
            raise StoreFailureError(f"Store failed to {action}") from exc

    # Account operations -------------------------------------------------
    def add_account(self, owner_name: str, balance: int = 0) -> AccountModel:
        account = AccountModel(owner_name=owner_name, balance=balance)
        with self._store_errors("create account"):
            self.session.add(account)
            self.session.commit()
            self.session.refresh(account)
        return account

    def get_account(self, account_id: UUID) -> Optional[AccountModel]:
        with self._store_errors("read account"):
            return self.session.get(AccountModel, account_id, populate_existing=True)

    def fetch_account(self, account_id: UUID) -> Optional[Account]:
        row = self.get_account(account_id)
        if row is None:
            return None
        return Account(id=row.id, balance=row.balance, version=row.version)

    def persist_account(self, account: Account) -> Account:
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account.id)
            .where(AccountModel.version == account.version)
            .values(balance=account.balance, version=account.version + 1)
        )
        with self._store_errors("persist account"):
            result = self.session.exec(stmt)
            if result.rowcount != 1:
                self.session.rollback()
                raise ConflictError(f"Account {account.id} changed since it was read")
            self.session.commit()
        return replace(account, version=account.version + 1)

    # Transfer records ---------------------------------------------------
    def insert_record(self, draft: TransferDraft) -> TransferRecord:
        row = TransferModel(
            sender_id=draft.sender_id,
            receiver_id=draft.receiver_id,
            amount=draft.amount,
            description=draft.description,
            type=draft.type,
            applied_sender_id=draft.sender_id,
            applied_receiver_id=draft.receiver_id,
            applied_amount=draft.amount,
            idempotency_key=draft.idempotency_key,
            request_signature=draft.request_signature,
        )
        with self._store_errors("insert transfer"):
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        return _to_record(row)

    def fetch_record(self, transfer_id: UUID) -> Optional[TransferRecord]:
        with self._store_errors("read transfer"):
            row = self.session.get(TransferModel, transfer_id, populate_existing=True)
        return _to_record(row) if row is not None else None

    def fetch_record_by_key(self, idempotency_key: str) -> Optional[TransferRecord]:
        stmt = select(TransferModel).where(TransferModel.idempotency_key == idempotency_key)
        with self._store_errors("read transfer"):
            row = self.session.exec(stmt).first()
        return _to_record(row) if row is not None else None

    def update_record_fields(
        self,
        transfer_id: UUID,
        *,
        receiver_id: UUID,
        amount: int,
        applied: TransferEffect,
    ) -> TransferRecord:
        with self._store_errors("update transfer"):
            row = self.session.get(TransferModel, transfer_id)
            if row is None:
                raise TransactionNotFoundError(f"Transaction {transfer_id} not found")
            row.receiver_id = receiver_id
            row.amount = amount
            row.applied_sender_id = applied.sender_id
            row.applied_receiver_id = applied.receiver_id
            row.applied_amount = applied.amount
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        return _to_record(row)

    def delete_record(self, transfer_id: UUID) -> None:
        with self._store_errors("delete transfer"):
            row = self.session.get(TransferModel, transfer_id)
            if row is None:
                raise TransactionNotFoundError(f"Transaction {transfer_id} not found")
            self.session.delete(row)
            self.session.commit()

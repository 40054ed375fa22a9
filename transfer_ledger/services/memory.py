from __future__ import annotations

import threading
from dataclasses import replace
from typing import Iterable, Optional
from uuid import UUID, uuid4

from ..core.errors import (
    ConflictError,
    StoreFailureError,
    TransactionNotFoundError,
)
from ..models import Account, TransferDraft, TransferEffect, TransferRecord


class InMemoryAccountStore:
    """Thread-safe account store with optimistic version checks."""

    def __init__(self, accounts: Iterable[Account] = ()) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[UUID, Account] = {account.id: account for account in accounts}

    def add_account(self, balance: int = 0, account_id: Optional[UUID] = None) -> Account:
        account = Account(id=account_id or uuid4(), balance=balance)
        with self._lock:
            self._accounts[account.id] = account
        return account

    def fetch_account(self, account_id: UUID) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(account_id)

    def persist_account(self, account: Account) -> Account:
        with self._lock:
            current = self._accounts.get(account.id)
            if current is None:
                raise ConflictError(f"Account {account.id} no longer exists")
            if current.version != account.version:
                raise ConflictError(f"Account {account.id} changed since it was read")
            stored = replace(account, version=account.version + 1)
            self._accounts[account.id] = stored
            return stored

    def balances(self) -> dict[UUID, int]:
        with self._lock:
            return {account_id: account.balance for account_id, account in self._accounts.items()}

    def total(self) -> int:
        return sum(self.balances().values())


class InMemoryTransferRecordStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[UUID, TransferRecord] = {}

    def insert_record(self, draft: TransferDraft) -> TransferRecord:
        record = TransferRecord(
            id=uuid4(),
            sender_id=draft.sender_id,
            receiver_id=draft.receiver_id,
            amount=draft.amount,
            type=draft.type,
            description=draft.description,
            applied=TransferEffect(draft.sender_id, draft.receiver_id, draft.amount),
            idempotency_key=draft.idempotency_key,
            request_signature=draft.request_signature,
        )
        with self._lock:
            if draft.idempotency_key is not None and any(
                existing.idempotency_key == draft.idempotency_key
                for existing in self._records.values()
            ):
                raise StoreFailureError(f"Idempotency key {draft.idempotency_key!r} already stored")
            self._records[record.id] = record
        return record

    def fetch_record(self, transfer_id: UUID) -> Optional[TransferRecord]:
        with self._lock:
            return self._records.get(transfer_id)

    def fetch_record_by_key(self, idempotency_key: str) -> Optional[TransferRecord]:
        with self._lock:
            for record in self._records.values():
                if record.idempotency_key == idempotency_key:
                    return record
        return None

    def update_record_fields(
        self,
        transfer_id: UUID,
        *,
        receiver_id: UUID,
        amount: int,
        applied: TransferEffect,
    ) -> TransferRecord:
        with self._lock:
            record = self._records.get(transfer_id)
            if record is None:
                raise TransactionNotFoundError(f"Transaction {transfer_id} not found")
            updated = replace(record, receiver_id=receiver_id, amount=amount, applied=applied)
            self._records[transfer_id] = updated
            return updated

    def delete_record(self, transfer_id: UUID) -> None:
        with self._lock:
            if self._records.pop(transfer_id, None) is None:
                raise TransactionNotFoundError(f"Transaction {transfer_id} not found")

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

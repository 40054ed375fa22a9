from __future__ import annotations

from typing import Optional, Protocol
from uuid import UUID

from ..models import Account, TransferDraft, TransferEffect, TransferRecord


class AccountStore(Protocol):
    def fetch_account(self, account_id: UUID) -> Optional[Account]:
        ...

    def persist_account(self, account: Account) -> Account:
        """Write ``account.balance`` if the stored version still equals ``account.version``.

        Returns the account with its new version. Raises ``ConflictError`` when
        another writer got there first (including removing the account) and
        ``StoreFailureError`` when the backend fails.
        """
        ...


class TransferRecordStore(Protocol):
    def insert_record(self, draft: TransferDraft) -> TransferRecord:
        ...

    def fetch_record(self, transfer_id: UUID) -> Optional[TransferRecord]:
        ...

    def fetch_record_by_key(self, idempotency_key: str) -> Optional[TransferRecord]:
        ...

    def update_record_fields(
        self,
        transfer_id: UUID,
        *,
        receiver_id: UUID,
        amount: int,
        applied: TransferEffect,
    ) -> TransferRecord:
        ...

    def delete_record(self, transfer_id: UUID) -> None:
        ...

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar, Union
from uuid import UUID

from ..core.errors import (
    AccountNotFoundError,
    ConflictError,
    DuplicateIdempotencyKeyError,
    InsufficientBalanceError,
    LedgerError,
    StoreFailureError,
    TransactionNotFoundError,
    TransferValidationError,
)
from ..core.locks import LockRegistry
from ..models import (
    Account,
    Apply,
    Revert,
    TransferDraft,
    TransferEffect,
    TransferRecord,
)
from .stores import AccountStore, TransferRecordStore


logger = logging.getLogger(__name__)

T = TypeVar("T")
Movement = Union[Apply, Revert]


class TransferLedger:
    """Moves balances between accounts and keeps transfer records in step.

    Every operation locks the accounts it touches, nets its movements into
    per-account deltas, writes the accounts and then the record. When a later
    write fails the earlier account writes are restored; if that restore also
    fails the error is reported with ``partial_write=True``.
    """

    def __init__(
        self,
        accounts: AccountStore,
        records: TransferRecordStore,
        locks: Optional[LockRegistry] = None,
        max_conflict_retries: int = 3,
    ) -> None:
        self.accounts = accounts
        self.records = records
        self.locks = locks or LockRegistry()
        self.max_conflict_retries = max(1, max_conflict_retries)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    @staticmethod
    def _validate_amount(amount: Any) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise TransferValidationError("Transfer amount must be a positive integer")

    def _encode_signature(self, signature: tuple[Any, ...]) -> str:
        return json.dumps(signature, default=str, sort_keys=True)

    def _fetch_record(self, transfer_id: UUID) -> TransferRecord:
        record = self.records.fetch_record(transfer_id)
        if record is None:
            raise TransactionNotFoundError(f"Transaction {transfer_id} not found")
        return record

    def _check_idempotency(self, idempotency_key: str, signature: str) -> Optional[TransferRecord]:
        record = self.records.fetch_record_by_key(idempotency_key)
        if record is None:
            return None
        if record.request_signature != signature:
            raise DuplicateIdempotencyKeyError(
                "Idempotency key was previously used with different parameters"
            )
        return record

    def _load_accounts(self, account_ids: Iterable[UUID]) -> dict[UUID, Account]:
        accounts: dict[UUID, Account] = {}
        for account_id in account_ids:
            account = self.accounts.fetch_account(account_id)
            if account is None:
                raise AccountNotFoundError(f"Account {account_id} not found")
            accounts[account_id] = account
        return accounts

    @staticmethod
    def _settle(accounts: dict[UUID, Account], movements: Sequence[Movement]) -> dict[UUID, int]:
        net: dict[UUID, int] = {}
        for movement in movements:
            for account_id, delta in movement.deltas().items():
                net[account_id] = net.get(account_id, 0) + delta

        balances: dict[UUID, int] = {}
        for account_id, delta in net.items():
            if delta == 0:
                continue
            balance = accounts[account_id].balance + delta
            if balance < 0:
                raise InsufficientBalanceError(f"Insufficient balance on account {account_id}")
            balances[account_id] = balance
        return balances

    def _compensate(self, written: list[tuple[Account, Account]], operation: str) -> None:
        for before, persisted in reversed(written):
            try:
                self.accounts.persist_account(replace(persisted, balance=before.balance))
            except LedgerError as exc:
                logger.error(
                    "transfer.torn_write",
                    extra={"operation": operation, "account_id": str(before.id)},
                )
                raise StoreFailureError(
                    f"{operation} left account {before.id} partially written",
                    partial_write=True,
                ) from exc
        if written:
            logger.warning(
                "transfer.compensated",
                extra={"operation": operation, "accounts": [str(before.id) for before, _ in written]},
            )

    def _persist_balances(
        self,
        accounts: dict[UUID, Account],
        balances: dict[UUID, int],
        operation: str,
    ) -> list[tuple[Account, Account]]:
        written: list[tuple[Account, Account]] = []
        for account_id in self.locks.ordered(balances):
            before = accounts[account_id]
            try:
                persisted = self.accounts.persist_account(
                    replace(before, balance=balances[account_id])
                )
            except LedgerError as exc:
                self._compensate(written, operation)
                if isinstance(exc, (ConflictError, StoreFailureError)):
                    raise
                raise StoreFailureError(
                    f"{operation} could not write account {account_id}"
                ) from exc
            written.append((before, persisted))
        return written

    def _execute(
        self,
        operation: str,
        movements: Sequence[Movement],
        write_record: Callable[[], T],
        check: Optional[Callable[[dict[UUID, Account]], None]] = None,
    ) -> T:
        """Apply ``movements`` to balances, then run ``write_record``.

        Callers must already hold the locks of every account in ``movements``.
        """
        account_ids: set[UUID] = set()
        for movement in movements:
            account_ids.update(movement.deltas())

        for attempt in range(1, self.max_conflict_retries + 1):
            accounts = self._load_accounts(self.locks.ordered(account_ids))
            if check is not None:
                check(accounts)
            balances = self._settle(accounts, movements)

            try:
                written = self._persist_balances(accounts, balances, operation)
            except ConflictError:
                logger.warning(
                    "transfer.conflict_retry",
                    extra={"operation": operation, "attempt": attempt},
                )
                continue
            except StoreFailureError as exc:
                logger.warning(
                    "transfer.store_failure",
                    extra={"operation": operation, "partial_write": exc.partial_write},
                )
                raise

            try:
                return write_record()
            except LedgerError as exc:
                # e.g. the record vanished under another process; balances must not keep the effect
                logger.warning(
                    "transfer.store_failure",
                    extra={"operation": operation, "stage": "record", "error": str(exc)},
                )
                self._compensate(written, operation)
                raise StoreFailureError(
                    f"{operation} failed to write the transfer record"
                ) from exc

        logger.error(
            "transfer.conflict_exhausted",
            extra={"operation": operation, "attempts": self.max_conflict_retries},
        )
        raise StoreFailureError(
            f"{operation} gave up after {self.max_conflict_retries} conflicting writes"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create_transfer(
        self,
        sender_id: UUID,
        receiver_id: UUID,
        amount: int,
        description: Optional[str] = None,
        transfer_type: str = "transfer",
        idempotency_key: Optional[str] = None,
    ) -> TransferRecord:
        self._validate_amount(amount)
        signature = None
        if idempotency_key is not None:
            signature = self._encode_signature(
                ("transfer", str(sender_id), str(receiver_id), amount, description, transfer_type)
            )

        effect = TransferEffect(sender_id=sender_id, receiver_id=receiver_id, amount=amount)
        draft = TransferDraft(
            sender_id=sender_id,
            receiver_id=receiver_id,
            amount=amount,
            type=transfer_type,
            description=description,
            idempotency_key=idempotency_key,
            request_signature=signature,
        )

        def check_sender(accounts: dict[UUID, Account]) -> None:
            if accounts[sender_id].balance < amount:
                raise InsufficientBalanceError("Insufficient balance for transfer")

        with self.locks.hold(sender_id, receiver_id):
            if idempotency_key is not None:
                cached = self._check_idempotency(idempotency_key, signature)
                if cached is not None:
                    logger.info(
                        "idempotent.transfer.hit",
                        extra={"transfer_id": str(cached.id), "idempotency_key": idempotency_key},
                    )
                    return cached

            record = self._execute(
                "create",
                [Apply(effect)],
                lambda: self.records.insert_record(draft),
                check=check_sender,
            )

        logger.info(
            "transfer.created",
            extra={
                "transfer_id": str(record.id),
                "sender_id": str(sender_id),
                "receiver_id": str(receiver_id),
                "amount": amount,
            },
        )
        return record

    def update_transfer(self, transfer_id: UUID, receiver_id: UUID, amount: int) -> TransferRecord:
        self._validate_amount(amount)
        while True:
            record = self._fetch_record(transfer_id)
            involved = record.participants | {receiver_id}
            with self.locks.hold(*involved):
                current = self._fetch_record(transfer_id)
                if not current.participants <= involved:
                    # a concurrent update moved the effect to an account we do not hold
                    continue
                new_effect = TransferEffect(
                    sender_id=current.sender_id,
                    receiver_id=receiver_id,
                    amount=amount,
                )
                updated = self._execute(
                    "update",
                    [Revert(current.applied), Apply(new_effect)],
                    lambda: self.records.update_record_fields(
                        transfer_id,
                        receiver_id=receiver_id,
                        amount=amount,
                        applied=new_effect,
                    ),
                )
            logger.info(
                "transfer.updated",
                extra={
                    "transfer_id": str(transfer_id),
                    "previous_receiver_id": str(current.applied.receiver_id),
                    "previous_amount": current.applied.amount,
                    "receiver_id": str(receiver_id),
                    "amount": amount,
                },
            )
            return updated

    def delete_transfer(self, transfer_id: UUID) -> None:
        while True:
            record = self._fetch_record(transfer_id)
            with self.locks.hold(*record.participants):
                current = self._fetch_record(transfer_id)
                if not current.participants <= record.participants:
                    continue
                self._execute(
                    "delete",
                    [Revert(current.applied)],
                    lambda: self.records.delete_record(transfer_id),
                )
            logger.info(
                "transfer.deleted",
                extra={
                    "transfer_id": str(transfer_id),
                    "sender_id": str(current.applied.sender_id),
                    "refunded": current.applied.amount,
                },
            )
            return

    def get_transfer(self, transfer_id: UUID, requesting_account_id: UUID) -> TransferRecord:
        record = self.records.fetch_record(transfer_id)
        # non-senders get the same answer as for a missing id
        if record is None or record.sender_id != requesting_account_id:
            raise TransactionNotFoundError(f"Transaction {transfer_id} not found")
        return record

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class Account:
    """Transient view of an account balance borrowed from an account store."""

    id: UUID
    balance: int
    version: int = 0


@dataclass(frozen=True)
class TransferEffect:
    """The (sender, receiver, amount) triple reflected in account balances."""

    sender_id: UUID
    receiver_id: UUID
    amount: int

    def deltas(self, sign: int = 1) -> dict[UUID, int]:
        result: dict[UUID, int] = {}
        result[self.sender_id] = result.get(self.sender_id, 0) - sign * self.amount
        result[self.receiver_id] = result.get(self.receiver_id, 0) + sign * self.amount
        return result


@dataclass(frozen=True)
class Apply:
    effect: TransferEffect

    def deltas(self) -> dict[UUID, int]:
        return self.effect.deltas(1)


@dataclass(frozen=True)
class Revert:
    effect: TransferEffect

    def deltas(self) -> dict[UUID, int]:
        return self.effect.deltas(-1)


@dataclass(frozen=True)
class TransferDraft:
    sender_id: UUID
    receiver_id: UUID
    amount: int
    type: str
    description: Optional[str] = None
    idempotency_key: Optional[str] = None
    request_signature: Optional[str] = None


@dataclass(frozen=True)
class TransferRecord:
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    amount: int
    type: str
    applied: TransferEffect
    description: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    idempotency_key: Optional[str] = None
    request_signature: Optional[str] = None

    @property
    def participants(self) -> set[UUID]:
        return {self.applied.sender_id, self.applied.receiver_id}

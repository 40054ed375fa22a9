from __future__ import annotations
from datetime import datetime, UTC
from typing import Optional
from uuid import UUID, uuid4
from sqlmodel import Field, SQLModel

class Account(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    owner_name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    balance: int = Field(default=0, ge=0)
    version: int = Field(default=0)

class Transfer(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
    sender_id: UUID = Field(foreign_key="account.id", index=True)
    receiver_id: UUID = Field(foreign_key="account.id", index=True)
    amount: int
    description: Optional[str] = None
    type: str
    # balance effect currently in force; equals the fields above once an update completes
    applied_sender_id: UUID = Field(foreign_key="account.id")
    applied_receiver_id: UUID = Field(foreign_key="account.id")
    applied_amount: int
    idempotency_key: Optional[str] = Field(default=None, unique=True, index=True)
    request_signature: Optional[str] = None

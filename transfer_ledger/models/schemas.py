from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

class AccountCreate(BaseModel):
    owner_name: str = Field(..., min_length=1, description="Name of the account holder")
    balance: int = Field(default=0, ge=0, description="Opening balance in minor units")

class AccountResponse(BaseModel):
    id: UUID
    owner_name: str
    created_at: datetime
    balance: int = Field(..., ge=0, description="Balance in minor units (e.g. cents)")

class TransferCreateRequest(BaseModel):
    receiver_id: UUID
    amount: int = Field(..., ge=1, description="Amount in minor units (must be >= 1)")
    description: Optional[str] = Field(default=None, description="Free-form note")
    type: str = Field(..., min_length=1, description="Caller-defined category tag")

class TransferUpdateRequest(BaseModel):
    receiver_id: UUID
    amount: int = Field(..., ge=1)

class TransferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    sender_id: UUID
    receiver_id: UUID
    amount: int
    description: Optional[str] = None
    type: str

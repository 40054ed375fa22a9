from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Response, status

from ..core.dependencies import get_account_service, get_transfer_ledger
from ..models import (
    AccountCreate,
    AccountResponse,
    TransferCreateRequest,
    TransferResponse,
    TransferUpdateRequest,
)
from ..services import AccountService, TransferLedger


router = APIRouter(prefix="/accounts", tags=["accounts"])

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.create_account(payload)

@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: UUID,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.get_account(account_id)

@router.post(
    "/{account_id}/transfers",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_transfer(
    account_id: UUID,
    payload: TransferCreateRequest,
    ledger: TransferLedger = Depends(get_transfer_ledger),
    idempotency_key: Optional[str] = Header(
        default=None, convert_underscores=False, alias="Idempotency-Key"
    ),
) -> TransferResponse:
    record = ledger.create_transfer(
        account_id,
        payload.receiver_id,
        payload.amount,
        description=payload.description,
        transfer_type=payload.type,
        idempotency_key=idempotency_key,
    )
    return TransferResponse.model_validate(record)

@router.get("/{account_id}/transfers/{transfer_id}", response_model=TransferResponse)
def get_transfer(
    account_id: UUID,
    transfer_id: UUID,
    ledger: TransferLedger = Depends(get_transfer_ledger),
) -> TransferResponse:
    return TransferResponse.model_validate(ledger.get_transfer(transfer_id, account_id))

transfer_router = APIRouter(prefix="/transfers", tags=["transfers"])

@transfer_router.put("/{transfer_id}", response_model=TransferResponse)
def update_transfer(
    transfer_id: UUID,
    payload: TransferUpdateRequest,
    ledger: TransferLedger = Depends(get_transfer_ledger),
) -> TransferResponse:
    record = ledger.update_transfer(transfer_id, payload.receiver_id, payload.amount)
    return TransferResponse.model_validate(record)

@transfer_router.delete("/{transfer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transfer(
    transfer_id: UUID,
    ledger: TransferLedger = Depends(get_transfer_ledger),
) -> Response:
    ledger.delete_transfer(transfer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

__all__ = ["router", "transfer_router"]

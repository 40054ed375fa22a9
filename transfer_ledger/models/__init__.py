from .db import Account as AccountModel
from .db import Transfer as TransferModel
from .domain import (
    Account,
    Apply,
    Revert,
    TransferDraft,
    TransferEffect,
    TransferRecord,
)
from .schemas import (
    AccountCreate,
    AccountResponse,
    TransferCreateRequest,
    TransferResponse,
    TransferUpdateRequest,
)

__all__ = [
    "Account",
    "AccountCreate",
    "AccountModel",
    "AccountResponse",
    "Apply",
    "Revert",
    "TransferCreateRequest",
    "TransferDraft",
    "TransferEffect",
    "TransferModel",
    "TransferRecord",
    "TransferResponse",
    "TransferUpdateRequest",
]

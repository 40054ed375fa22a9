from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    AccountNotFoundError,
    ConflictError,
    DuplicateIdempotencyKeyError,
    InsufficientBalanceError,
    LoginBlockedError,
    StoreFailureError,
    TransactionNotFoundError,
    TransferValidationError,
)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccountNotFoundError)
    async def account_not_found_handler(
        request: Request, exc: AccountNotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(TransactionNotFoundError)
    async def transaction_not_found_handler(
        request: Request, exc: TransactionNotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InsufficientBalanceError)
    async def insufficient_balance_handler(
        request: Request, exc: InsufficientBalanceError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(DuplicateIdempotencyKeyError)
    async def duplicate_idempotency_handler(
        request: Request, exc: DuplicateIdempotencyKeyError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(StoreFailureError)
    async def store_failure_handler(
        request: Request, exc: StoreFailureError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"detail": str(exc), "partial_write": exc.partial_write},
        )

    # raised only by a login boundary that shares this app and uses get_login_throttle
    @app.exception_handler(LoginBlockedError)
    async def login_blocked_handler(
        request: Request, exc: LoginBlockedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"detail": str(exc), "blocked_until": exc.blocked_until.isoformat()},
        )

    @app.exception_handler(TransferValidationError)
    async def validation_error_handler(
        request: Request, exc: TransferValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

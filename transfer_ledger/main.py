import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.exceptions import register_exception_handlers
from .api.routes import router as accounts_router, transfer_router
from .core.config import get_settings
from .core.db import init_db

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("app.startup", extra={"conflict_retry_limit": settings.conflict_retry_limit})
    yield

def create_app() -> FastAPI:
    application = FastAPI(title=settings.app_name, lifespan=lifespan)
    application.include_router(accounts_router)
    application.include_router(transfer_router)
    register_exception_handlers(application)

    @application.get("/health")
    def read_health() -> dict[str, str]:
        return {"status": "ok"}

    return application

app = create_app()

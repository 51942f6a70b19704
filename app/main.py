from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import init_db
from .observability import RequestTimingLoggingMiddleware, add_exception_handlers, configure_logging
from .routers import exports as exports_router
from .routers import health as health_router
from .routers import participants as participants_router
from .routers import realtime as realtime_router

# Ensure schema is present when the module is imported (tests use TestClient without lifespan)
init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    application = FastAPI(title="Event Check-in API", version="0.1.0", lifespan=lifespan)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )
    application.add_middleware(RequestTimingLoggingMiddleware)

    add_exception_handlers(application)

    application.include_router(health_router.router)
    application.include_router(participants_router.router)
    application.include_router(exports_router.router)
    application.include_router(realtime_router.router)

    return application


app = create_app()

"""FastAPI application factory and lifespan."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import api_router
from app.core.config import get_settings
from app.core.exceptions import EngineError
from app.db.session import async_session_maker, engine
from app.services.engine_registry import EngineRegistry
from app.services.notifications import EventDispatcher
from app.services.storage import InMemoryKeyValueStore, KeyValueStore, SqlKeyValueStore

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _build_store() -> KeyValueStore:
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStore()
    return SqlKeyValueStore(async_session_maker)


def _log_event(event) -> None:
    logger.debug("event %s", event.type)


def create_application(registry: EngineRegistry | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: storage and per-user engines; shutdown: flush pending writes, dispose the pool."""
        app.state.registry = registry or EngineRegistry(_build_store(), settings=settings)
        app.state.dispatcher = EventDispatcher()
        app.state.dispatcher.subscribe(_log_event)
        logger.info("Storage backend: %s", type(app.state.registry.store).__name__)
        yield
        await app.state.registry.flush_all()
        await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    # CORS: allow localhost in dev; in production use CORS_ORIGINS env (comma-separated)
    if settings.debug:
        cors_origins = ["*"]
    elif settings.environment == "development":
        cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    else:
        cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    @app.get("/")
    def root():
        return {"status": "ok", "message": "Workout Session Engine"}

    app.include_router(api_router, prefix=settings.api_v1_prefix)
    return app


app = create_application()

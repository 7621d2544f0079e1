# stockpile/main.py
from contextlib import asynccontextmanager
from typing import Optional
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from stockpile.api.v1.router import api_router
from stockpile.core.config import settings
from stockpile.core.errors import register_exception_handlers
from stockpile.core.logging import logger, request_context
from stockpile.db.database import Database


def engine_options() -> dict:
    options = {"echo": settings.DEBUG}
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(pool_size=settings.DB_POOL_SIZE, max_overflow=settings.DB_MAX_OVERFLOW)
    return options


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Stockpile API")
    database: Database = app.state.database
    await database.connect()
    if settings.DB_CREATE_ALL:
        await database.create_all()

    yield

    # Shutdown
    logger.info("Shutting down Stockpile API")
    await database.disconnect()


def create_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=("/api/docs" if settings.ENVIRONMENT == "development" else None),
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.database = database or Database(settings.DATABASE_URL, **engine_options())

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CORS_ORIGIN],
        allow_credentials=True,
        allow_methods=["GET", "PUT", "POST", "DELETE", "HEAD", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Link", "X-Request-ID"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        logger.info(
            f"{request.method} {request.url.path}",
            extra={"request_id": request_id, "method": request.method, "path": request.url.path},
        )

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        response.headers["X-Process-Time"] = str(process_time)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                **request_context(request),
                "status_code": response.status_code,
                "duration_ms": round(process_time * 1000, 2),
            },
        )
        return response

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()

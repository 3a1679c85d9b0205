"""
Chronoline - FastAPI Backend
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chronoline.config import settings
from chronoline.database.db import init_db
from chronoline.errors import AppError
from chronoline.logging import get_logger, setup_logging
from chronoline.routers import auth, images, timelines
from chronoline.services.auth import AuthService
from chronoline.services.images import ImageService
from chronoline.services.timeline import TimelineService
from chronoline.services.transfer import TimelineTransferService

logger = get_logger('main')


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Starting Chronoline API")

    await init_db(app.state.database_path)
    logger.info("Database initialized")

    yield

    logger.info("Shutting down application")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Server error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.DEBUG else "Something went wrong",
            },
        )


def create_app(database_path: str | None = None) -> FastAPI:
    db_path = database_path or settings.DATABASE_PATH

    app = FastAPI(
        title="Chronoline API",
        description="Personal timelines with events, highlights and images",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.database_path = db_path
    app.state.auth_service = AuthService(db_path=db_path)
    app.state.timeline_service = TimelineService(db_path=db_path)
    app.state.image_service = ImageService(db_path=db_path)
    app.state.transfer_service = TimelineTransferService(
        timeline_service=app.state.timeline_service,
        image_service=app.state.image_service,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
    app.include_router(timelines.router, prefix="/api/timelines", tags=["Timelines"])
    app.include_router(images.router, prefix="/api/images", tags=["Images"])

    @app.get("/api/health")
    async def health_check():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/")
    async def root():
        return {
            "name": "Chronoline API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/api/health"
        }

    return app

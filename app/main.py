# app/main.py
from contextlib import asynccontextmanager
from pathlib import Path
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.exceptions import AppError
from app.core.logging import logger
from app.db.database import init_db, close_db
from app.api.v1.router import api_router
from app.api.v1 import websocket
from app.middleware.rate_limit import build_rate_limiter
from app.services.realtime import RealtimeNotifier
from app.services.storage import LocalStorage, build_storage


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} API")
    await init_db()

    rate_limiter = build_rate_limiter()
    rate_limiter.start_sweeper(settings.RATE_LIMIT_SWEEP_SECONDS)
    app.state.rate_limiter = rate_limiter
    app.state.storage = storage
    app.state.notifier = RealtimeNotifier()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.PROJECT_NAME} API")
    await rate_limiter.shutdown()
    await close_db()


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    version=settings.VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=("/api/docs" if settings.ENVIRONMENT == "development" else None),
    redoc_url=None,
    lifespan=lifespan
)

# Storage is built at import time so local uploads can be mounted below
storage = build_storage()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    response.headers["X-Process-Time"] = str(process_time)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"{request.method} {request.url.path} {response.status_code}",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(process_time * 1000, 2),
        },
    )
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "message": "Validation failed", "details": errors},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.exception("Unhandled exception while handling request", exc_info=exc)
    content = {"success": False, "error": "Internal server error", "message": "Internal server error"}
    if settings.VERBOSE_ERRORS:
        content["message"] = f"Internal server error: {str(exc)}"
    return JSONResponse(status_code=500, content=content)


# Include routers
app.include_router(api_router, prefix=settings.API_PREFIX)
app.include_router(websocket.router, prefix=settings.API_PREFIX, tags=["websocket"])

if isinstance(storage, LocalStorage):
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount(storage.url_prefix, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }

"""Main FastAPI application for the baby sleep tracker."""

import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from . import __version__
from .api import entries
from .api.middleware import ProblemDetailsMiddleware, register_problem_handlers
from .config import config_manager, get_config, get_store_backend
from .core.enums import StoreBackend
from .utils.logging_config import get_logger

logger = get_logger('main')

config = get_config()

DEFAULT_CORS_ORIGINS = [
    "http://127.0.0.1:8000",
    "http://localhost:8000",
]

# Create FastAPI app
app = FastAPI(
    title=config.app.app_name,
    description=config.app.description,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_problem_handlers(app)
app.add_middleware(ProblemDetailsMiddleware)

if config.app.enable_cors:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors_origins or DEFAULT_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Origin", "X-Requested-With"],
    )

# Register API routers
app.include_router(entries.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "baby-sleep-tracker", "version": __version__}


@app.get("/ready")
async def readiness_check():
    """Readiness check endpoint that validates the store and configuration."""
    start_time = time.time()
    checks = {"store": False, "config": False}
    errors = []

    backend = get_store_backend()
    if backend == StoreBackend.MEMORY:
        checks["store"] = True
    else:
        from .db.database import SessionLocal

        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            checks["store"] = True
        except Exception as e:
            errors.append(f"Database check failed: {str(e)}")
        finally:
            db.close()

    issues = config_manager.validate_config()
    if issues:
        errors.extend(issues)
    else:
        checks["config"] = True

    response_time_ms = round((time.time() - start_time) * 1000, 2)
    all_ready = all(checks.values())

    response = {
        "status": "ready" if all_ready else "not_ready",
        "service": "baby-sleep-tracker",
        "version": __version__,
        "store_backend": backend.value,
        "checks": checks,
        "response_time_ms": response_time_ms,
    }

    if errors:
        response["errors"] = errors
        logger.warning(f"Readiness check failed: {errors}")

    return JSONResponse(content=response, status_code=200 if all_ready else 503)

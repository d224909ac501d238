# app/main.py
"""
FastAPI application entry point.
Registers the error handlers, request timing middleware, and all routers.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from app.routers import drivers, health
from app.database import create_tables
from app.config import settings
from app.exceptions import AppError, app_error_handler, request_validation_handler, unhandled_error_handler
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Driver Service API",
    description="Driver records and driver → vehicle assignment for the fleet platform.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(drivers.router, prefix=settings.API_PREFIX, tags=["Drivers"])
app.include_router(health.router,  prefix=settings.API_PREFIX, tags=["Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("Driver Service starting up...")
    create_tables()
    logger.info("Database tables ready")
    logger.info(f"Vehicle Service: {settings.VEHICLE_SERVICE_URL}")
    if settings.AUTH_PROVISIONING_ENABLED:
        logger.info(f"Auth Service provisioning enabled: {settings.AUTH_SERVICE_URL}")
    logger.info(f"Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("Driver Service shutting down...")

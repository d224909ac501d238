# app/exceptions.py
"""
Domain error taxonomy and the FastAPI handlers that render it.
Every error carries a stable error_code so callers (and alerting) can tell a
clean upstream failure apart from a failed rollback.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.utils.logger import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, error_code: str, status_code: int = 500,
                 details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppError):
    """Bad, missing or duplicate input. `details` maps field -> list of messages."""

    def __init__(self, errors: Dict[str, list], message: str = "Validation failed"):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"errors": errors},
        )
        self.errors = errors


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(AppError):
    """A state precondition is unmet (driver or vehicle not available)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class UpstreamError(AppError):
    """A collaborating service failed or answered with something other than success."""

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="ERR_UPSTREAM",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"service": service, **(details or {})},
        )
        self.service = service


class CompensationFailedError(AppError):
    """
    A compensating action failed after a partial commit.
    The driver store and the collaborating service now disagree and need
    manual reconciliation.
    """

    def __init__(self, step: str, cause: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Compensation '{step}' failed: {cause}",
            error_code="ERR_COMPENSATION_FAILED",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"step": step, "cause": cause, **(details or {})},
        )
        self.step = step


# ── Handlers ─────────────────────────────────────────────────────────────────

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, CompensationFailedError):
        logger.critical(f"[DATA-INCONSISTENCY] {request.method} {request.url.path}: {exc.message}")
    elif exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} → {exc.error_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error_code": exc.error_code, "message": exc.message, "details": exc.details},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body/path validation failures are reported as 400 with per-field messages."""
    errors: Dict[str, list] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "path", "query")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error_code": "ERR_VALIDATION", "message": "Validation failed",
                 "details": {"errors": errors}},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error_code": "ERR_INTERNAL_SERVER", "message": "Internal server error", "details": {}},
    )

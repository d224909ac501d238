# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + reachability of the collaborating services.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from app.config import settings
from datetime import datetime

router = APIRouter()


def _probe(url: str) -> str:
    try:
        resp = requests.get(url, timeout=3)
        return "ok" if resp.status_code < 500 else f"http_{resp.status_code}"
    except requests.exceptions.ConnectionError:
        return "unreachable"
    except requests.exceptions.RequestException as e:
        return f"error: {str(e)}"


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Vehicle Service reachability (and Auth Service when provisioning is on)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "services": {},
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    targets = {"vehicle": f"{settings.VEHICLE_SERVICE_URL.rstrip('/')}/vehicles"}
    if settings.AUTH_PROVISIONING_ENABLED:
        targets["auth"] = settings.AUTH_SERVICE_URL
    for name, url in targets.items():
        result["services"][name] = _probe(url)
        if result["services"][name] != "ok":
            result["status"] = "degraded"

    return result

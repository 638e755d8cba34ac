from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from datetime import datetime
from sqlalchemy.orm import Session

from chatops.config.settings import settings
from chatops.core.cache import MessageCache
from chatops.core.database import get_database, ping_database
from chatops.core.dependencies import get_message_cache

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str


@router.get("/", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version="1.0.0",
        environment=settings.environment
    )


@router.get("/readiness")
async def readiness_check(
    db: Session = Depends(get_database),
    cache: MessageCache = Depends(get_message_cache),
):
    """Readiness check endpoint"""
    checks = {
        "database": "ok" if ping_database(db) else "error",
        "domain_api": "ok" if settings.domain_api_base_url else "not_configured",
        "message_cache": "ok" if cache.running else "stopped",
    }

    all_ok = all(status == "ok" for status in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "cache": cache.stats(),
        "timestamp": datetime.utcnow()
    }

"""
Health check endpoints.
"""
import time
from datetime import datetime, timezone
from typing import Any, Dict
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from db_config import get_async_db
from core.config import settings
from models.models import ContentItem, ContentVersion

router = APIRouter(prefix="/health", tags=["Health"])
logger = structlog.get_logger("health")


async def check_database(db: AsyncSession) -> Dict[str, Any]:
    """Check database connectivity and the versioning tables."""
    try:
        start_time = time.time()

        await db.execute(text("SELECT 1"))
        item_count = (await db.execute(select(func.count(ContentItem.id)))).scalar()
        version_count = (await db.execute(select(func.count(ContentVersion.id)))).scalar()

        return {
            "status": "healthy",
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
            "content_item_count": item_count,
            "version_count": version_count,
        }
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": type(e).__name__,
            "details": "Database connection failed"
        }


@router.get("")
async def health_check():
    """Basic liveness check."""
    return {
        "status": "ok",
        "app": settings.app_name,
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/database")
async def database_health(db: AsyncSession = Depends(get_async_db)):
    """Database readiness check."""
    result = await check_database(db)
    status_code = 200 if result["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=result)

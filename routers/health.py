"""
Health check endpoints.
"""
import time
from datetime import datetime, timezone
from typing import Any, Dict
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import structlog

from db_config import get_db
from core.config import settings
from models.models import Category

router = APIRouter(prefix="/health", tags=["Health"])
logger = structlog.get_logger("health")


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity and that the taxonomy is present."""
    start_time = time.time()
    try:
        db.execute(text("SELECT 1")).fetchone()
        category_count = db.execute(select(func.count(Category.id))).scalar_one()
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        return {"status": "unhealthy", "details": "Database connection failed"}

    return {
        "status": "healthy",
        "response_time_ms": round((time.time() - start_time) * 1000, 2),
        "category_count": category_count,
    }


@router.get("")
async def health_check():
    """Basic liveness check."""
    return {"status": "ok", "environment": settings.environment}


@router.get("/database")
async def database_health(db: Session = Depends(get_db)):
    """Readiness check that touches the database."""
    result = check_database(db)
    result["timestamp"] = datetime.now(timezone.utc).isoformat()
    code = status.HTTP_200_OK if result["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=result)

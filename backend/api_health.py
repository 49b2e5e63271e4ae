"""
Health check endpoints for monitoring system status.
"""
import logging

from fastapi import APIRouter

from db_sqlite import execute_query
from events import get_broadcaster
from utils.timestamp import utcnow_iso

logger = logging.getLogger("people_web")

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "ok", "timestamp": utcnow_iso()}


@router.get("/detailed")
async def detailed_health_check():
    """Health check including database reachability and stream subscribers."""
    try:
        execute_query("SELECT 1 AS test")
        database = {"status": "healthy", "query_test": "passed"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = {"status": "unhealthy", "error": str(e), "query_test": "failed"}

    return {
        "status": "ok" if database["status"] == "healthy" else "degraded",
        "timestamp": utcnow_iso(),
        "database": database,
        "subscribers": get_broadcaster().subscriber_count,
    }

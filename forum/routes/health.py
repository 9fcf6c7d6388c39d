"""
Health check endpoints for monitoring system status.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from forum.db import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

COUNTED_TABLES = ("users", "posts", "questions", "categories", "schools")


def check_database_health() -> Dict[str, str]:
    """
    Check database connectivity.

    Returns:
        Dict with status and optional error details
    """
    try:
        with get_session() as db:
            result = db.execute(text("SELECT 1")).scalar()
            if result == 1:
                return {"status": "ok"}
            return {"status": "down", "error": "Unexpected query result"}
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", e)
        return {"status": "down", "error": f"Database error: {str(e)}"}


@router.get("/")
def health_check() -> Dict[str, Any]:
    """
    Liveness check.

    Returns:
        Dict containing:
        - status: "ok" | "down"
        - db: database health status
        - version: API version
        - timestamp: current UTC timestamp
    """
    db_health = check_database_health()
    return {
        "status": "ok" if db_health["status"] == "ok" else "down",
        "db": db_health,
        "version": "1.0.0",
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/db")
def database_health() -> Dict[str, Any]:
    """Database check plus row counts of the main tables."""
    health_status: Dict[str, Any] = dict(check_database_health())
    if health_status["status"] != "ok":
        return health_status

    try:
        with get_session() as db:
            health_status["tables"] = {
                table: db.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
                for table in COUNTED_TABLES
            }
    except SQLAlchemyError as e:
        health_status["error"] = f"Extended check failed: {str(e)}"
    health_status["timestamp"] = datetime.utcnow().isoformat()
    return health_status

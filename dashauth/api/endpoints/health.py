"""
Liveness and dependency checks.

The database is required: without it nobody can sign in, so a failed check
marks the service unhealthy. The broker only carries outbound email; when it
is down sign-in still works and the service reports "degraded".
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict
from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dashauth.core.celery_utils import broker_reachable
from dashauth.core.database import get_db

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _check(ok: bool, healthy: str, unhealthy: str) -> Dict[str, str]:
    if ok:
        return {"status": "healthy", "message": healthy}
    return {"status": "unhealthy", "message": unhealthy}


def _database_ok(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e.__class__.__name__}")
        return False


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """Process liveness for load balancers."""
    return {"status": "healthy", "timestamp": _timestamp()}


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
def detailed_health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Dependency status.

    Failure details go to the log only.
    """
    database = _database_ok(db)
    broker = broker_reachable()

    if not database:
        overall = "unhealthy"
    elif not broker:
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "status": overall,
        "timestamp": _timestamp(),
        "checks": {
            "database": _check(database, "Database connection successful", "Database unreachable"),
            "broker": _check(broker, "Task broker reachable", "Task broker unreachable; email delivery delayed"),
        },
    }

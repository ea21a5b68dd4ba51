"""
Health check endpoints

- /health/live  - liveness (process is up)
- /health/ready - readiness (database reachable and tables created)
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from datetime import datetime
from typing import Dict, Any
from sqlalchemy import text
import time

from feedback_app.core.config import settings
from feedback_app.core.database import get_session_local
from feedback_app.core.logging_config import logger


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Check database connectivity and that the users table exists"""
    start = time.time()
    try:
        session_factory = get_session_local()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            try:
                await session.execute(text("SELECT COUNT(*) FROM users"))
                tables_ok = True
            except Exception:
                tables_ok = False

        return {
            "status": "healthy" if tables_ok else "degraded",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "tables_ready": tables_ok,
        }
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "tables_ready": False,
            "error": str(e),
        }


@router.get("")
@router.get("/live")
async def liveness():
    return {"status": "alive", "timestamp": datetime.utcnow().isoformat()}


@router.get("/ready")
async def readiness():
    database = await check_database()
    ready = database["status"] == "healthy"
    body = {
        "status": "ready" if ready else "not_ready",
        "environment": settings.ENVIRONMENT,
        "checks": {"database": database},
        "timestamp": datetime.utcnow().isoformat(),
    }
    return JSONResponse(status_code=200 if ready else 503, content=body)

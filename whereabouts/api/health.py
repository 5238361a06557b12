"""Health check endpoints.

- /livez   - Liveness: is the process alive? Always 200.
- /healthz - Readiness: is the database reachable? 200 or 503.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from whereabouts.api.models import HealthResponse
from whereabouts.db.session import get_db

router = APIRouter(tags=["health"])
log = logging.getLogger(__name__)


@router.get("/livez")
def livez():
    """Liveness probe - always returns 200."""
    return {"status": "alive"}


@router.get("/healthz", response_model=HealthResponse)
def healthz(db: Session = Depends(get_db)):
    """Readiness probe - checks database accessibility."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        log.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content=HealthResponse(status="unhealthy", database_accessible=False).model_dump(by_alias=True),
        )
    return HealthResponse(status="ok", database_accessible=True)

"""Whereabouts FastAPI application.

Exposes the attestation login flow (identities, challenges,
attestations) and the bearer-authenticated group and location APIs.
"""
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from whereabouts import __version__
from whereabouts.db.session import init_database
from whereabouts.logging_config import configure_logging

log = logging.getLogger("whereabouts")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    configure_logging()
    log.info("Starting Whereabouts service...")

    try:
        init_database()
    except Exception as e:
        log.error(f"Failed to initialize database: {e}")
        raise

    log.info("Whereabouts service started")
    yield
    log.info("Whereabouts service stopped")


app = FastAPI(
    title="Whereabouts",
    version=__version__,
    description="OpenPGP-attested, group-scoped encrypted location sharing",
    lifespan=lifespan,
)


# -----------------------------------------------------------------------------
# Error Handling
# -----------------------------------------------------------------------------

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies and query parameters as 400."""
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# -----------------------------------------------------------------------------
# API Routers
# -----------------------------------------------------------------------------

from whereabouts.api import attestation, groups, health, identity, locations  # noqa: E402

app.include_router(health.router)
app.include_router(identity.router)
app.include_router(attestation.router)
app.include_router(groups.router)
app.include_router(locations.router)


# -----------------------------------------------------------------------------
# Version Endpoint
# -----------------------------------------------------------------------------

@app.get("/version")
def version():
    """Return service version and build commit."""
    return {
        "service": "whereabouts",
        "version": __version__,
        "git_sha": os.getenv("GIT_SHA", "unknown"),
    }


# -----------------------------------------------------------------------------
# Request Logging Middleware
# -----------------------------------------------------------------------------

@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log all requests with timing."""
    start = time.time()
    response = await call_next(request)
    duration_ms = int((time.time() - start) * 1000)

    log.info(
        f"request_complete status={response.status_code} duration_ms={duration_ms}",
        extra={
            "route": request.url.path,
            "method": request.method,
            "status": response.status_code,
        },
    )
    return response


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    from whereabouts.config import SERVICE_PORT

    uvicorn.run("whereabouts.main:app", host="0.0.0.0", port=SERVICE_PORT)

"""Bearer secret authentication for Whereabouts API routes.

Routes that need a caller identity depend on require_identity(). The
Authorization header must carry "Bearer <secret>"; the secret is
resolved through SessionResolver. Every failure produces the same 401
so callers cannot tell a missing, unknown or expired secret apart.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from whereabouts.attestation.resolver import ResolvedIdentity, SessionResolver
from whereabouts.db.session import get_db

log = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_identity(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> ResolvedIdentity:
    """FastAPI dependency resolving the caller's identity.

    Example:
        @router.get("/groups")
        def list_groups(caller: ResolvedIdentity = Depends(require_identity)):
            ...
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise _unauthorized()

    secret = authorization[len(BEARER_PREFIX):].strip()
    resolved = SessionResolver(db).resolve(secret)
    if resolved is None:
        log.info("Rejected bearer secret")
        raise _unauthorized()

    return resolved

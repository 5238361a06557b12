"""Identity registration and public key lookup endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from whereabouts.api.models import (
    PublicKeyResponse,
    RegisterIdentityRequest,
    RegisterIdentityResponse,
)
from whereabouts.attestation.registry import IdentityRegistry
from whereabouts.attestation.resolver import ResolvedIdentity
from whereabouts.auth import require_identity
from whereabouts.db.session import get_db
from whereabouts.exceptions import (
    IdentityExistsError,
    IdentityNotFoundError,
    InvalidKeyMaterialError,
)

router = APIRouter(prefix="/identities", tags=["identities"])
log = logging.getLogger(__name__)


@router.post("", response_model=RegisterIdentityResponse, status_code=201)
def register_identity(request: RegisterIdentityRequest, db: Session = Depends(get_db)):
    """Register an armored OpenPGP public key as a new identity."""
    try:
        identity = IdentityRegistry(db).register(request.public_key)
    except InvalidKeyMaterialError as e:
        raise HTTPException(status_code=400, detail=f"Invalid key: {e}")
    except IdentityExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SQLAlchemyError:
        log.exception("Failed to register identity")
        raise HTTPException(status_code=500, detail="Failed to register identity")

    return RegisterIdentityResponse(
        success=True,
        fingerprint=identity.fingerprint,
        name=identity.name,
        email=identity.email,
    )


@router.get("/{fingerprint}", response_model=PublicKeyResponse)
def get_public_key(
    fingerprint: str,
    caller: ResolvedIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Return the public key of a registered identity."""
    try:
        identity = IdentityRegistry(db).get(fingerprint)
    except IdentityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError:
        log.exception("Failed to fetch public key")
        raise HTTPException(status_code=500, detail="Failed to fetch public key")

    return PublicKeyResponse(
        fingerprint=identity.fingerprint,
        name=identity.name,
        public_key=identity.public_key,
    )

"""Challenge and attestation endpoints of the login flow.

1. POST /challenges   - get a random challenge for a registered key
2. (client cleartext-signs the challenge with its private key)
3. POST /attestations - submit the signed challenge, receive the bearer
                        secret encrypted to the registered public key
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from whereabouts.api.models import (
    AttestationRequest,
    AttestationResponse,
    ChallengeRequest,
    ChallengeResponse,
)
from whereabouts.attestation.challenge import ChallengeIssuer
from whereabouts.attestation.verifier import AttestationVerifier
from whereabouts.db.models import as_utc
from whereabouts.db.session import get_db
from whereabouts.exceptions import (
    AttestationVerificationError,
    ChallengeNotFoundError,
    IdentityNotFoundError,
    MalformedSignedMessageError,
)

router = APIRouter(tags=["attestation"])
log = logging.getLogger(__name__)


@router.post("/challenges", response_model=ChallengeResponse)
def request_challenge(request: ChallengeRequest, db: Session = Depends(get_db)):
    """Issue a login challenge for a registered identity."""
    try:
        challenge = ChallengeIssuer(db).issue(request.fingerprint)
    except IdentityNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except SQLAlchemyError:
        log.exception("Failed to issue challenge")
        raise HTTPException(status_code=500, detail="Failed to issue challenge")

    return ChallengeResponse(challenge=challenge)


@router.post("/attestations", response_model=AttestationResponse)
def submit_attestation(request: AttestationRequest, db: Session = Depends(get_db)):
    """Verify a signed challenge and return an encrypted bearer secret."""
    try:
        minted = AttestationVerifier(db).submit(request.signed_challenge_message)
    except MalformedSignedMessageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ChallengeNotFoundError:
        raise HTTPException(status_code=400, detail="Invalid challenge")
    except AttestationVerificationError:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except SQLAlchemyError:
        log.exception("Failed to submit attestation")
        raise HTTPException(status_code=500, detail="Failed to submit attestation")

    return AttestationResponse(
        encrypted_bearer_secret=minted.encrypted_secret,
        expires_at=as_utc(minted.expires_at),
    )

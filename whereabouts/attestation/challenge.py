"""Challenge issuance for the signed-challenge login flow."""
import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from whereabouts.attestation.store import AttestationStore, IdentityStore
from whereabouts.config import CHALLENGE_TTL_SECONDS
from whereabouts.db.models import utc_now
from whereabouts.exceptions import IdentityNotFoundError
from whereabouts.pgp import normalize_fingerprint
from whereabouts.tokens import generate_challenge

log = logging.getLogger(__name__)


class ChallengeIssuer:
    """Issues random challenges bound to a registered identity.

    Several challenges may be pending for the same identity at once;
    each expires on its own after CHALLENGE_TTL_SECONDS.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.identities = IdentityStore(db)
        self.attestations = AttestationStore(db)

    def issue(self, fingerprint: str) -> str:
        """Create a pending session attestation and return its challenge.

        Raises:
            IdentityNotFoundError: If the fingerprint is not registered
        """
        fingerprint = normalize_fingerprint(fingerprint)
        identity = self.identities.get(fingerprint)
        if identity is None:
            raise IdentityNotFoundError(fingerprint)

        now = self.clock()
        challenge = generate_challenge()
        attestation = self.attestations.create_pending(
            identity,
            challenge,
            expires_at=now + timedelta(seconds=CHALLENGE_TTL_SECONDS),
            created_at=now,
        )
        self.db.commit()

        log.info(f"Issued challenge attestation={attestation.id} for {fingerprint}")
        return challenge

"""Bearer-secret session resolution.

Every authenticated request goes through SessionResolver.resolve(). A
secret resolves only while its attestation is verified, fulfilled and
unexpired, and only while the owner's stored key still validates.
Every failure mode returns None so callers cannot tell them apart.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from whereabouts.attestation.store import AttestationStore
from whereabouts.db.models import Identity, utc_now
from whereabouts.exceptions import InvalidKeyMaterialError
from whereabouts.pgp import ValidatedKey, validate_public_key
from whereabouts.tokens import hash_token, verify_token

log = logging.getLogger(__name__)


@dataclass
class ResolvedIdentity:
    """The identity a bearer secret authenticates as."""

    identity: Identity
    key: ValidatedKey
    session_expires_at: datetime

    @property
    def fingerprint(self) -> str:
        return self.identity.fingerprint


class SessionResolver:
    """Maps presented bearer secrets back to identities."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.attestations = AttestationStore(db)

    def resolve(self, secret: Optional[str]) -> Optional[ResolvedIdentity]:
        """Resolve a bearer secret, or return None if it does not authenticate."""
        if not secret:
            return None

        attestation = self.attestations.find_session(hash_token(secret), self.clock())
        if attestation is None or attestation.identity is None:
            return None
        if not verify_token(secret, attestation.auth_token):
            return None

        identity = attestation.identity
        try:
            key = validate_public_key(identity.public_key)
        except InvalidKeyMaterialError as e:
            log.warning(f"Session for {identity.fingerprint} rejected: {e}")
            return None

        return ResolvedIdentity(
            identity=identity,
            key=key,
            session_expires_at=attestation.expires_at,
        )

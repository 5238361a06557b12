"""Identity registration and lookup."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from whereabouts.attestation.store import IdentityStore
from whereabouts.db.models import Identity
from whereabouts.exceptions import IdentityExistsError, IdentityNotFoundError
from whereabouts.pgp import normalize_fingerprint, validate_public_key

log = logging.getLogger(__name__)


class IdentityRegistry:
    """Registers validated public keys as identities."""

    def __init__(self, db: Session):
        self.db = db
        self.identities = IdentityStore(db)

    def register(self, armored_key: str) -> Identity:
        """Validate an armored public key and store it as a new identity.

        Raises:
            InvalidKeyMaterialError: If the key is unusable
            IdentityExistsError: If the fingerprint is already registered
        """
        validated = validate_public_key(armored_key)

        if self.identities.get(validated.fingerprint) is not None:
            raise IdentityExistsError(validated.fingerprint)

        try:
            identity = self.identities.add(validated)
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration of the same key
            self.db.rollback()
            raise IdentityExistsError(validated.fingerprint) from e

        log.info(f"Registered identity {identity.fingerprint}")
        return identity

    def get(self, fingerprint: str) -> Identity:
        """Look up an identity.

        Raises:
            IdentityNotFoundError: If no identity has this fingerprint
        """
        fingerprint = normalize_fingerprint(fingerprint)
        identity = self.identities.get(fingerprint)
        if identity is None:
            raise IdentityNotFoundError(fingerprint)
        return identity

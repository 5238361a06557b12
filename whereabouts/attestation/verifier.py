"""Signed-challenge verification and bearer-secret minting.

A client proves possession of its private key by cleartext-signing the
challenge it was issued. The challenge text is read before the
signature is trusted and used only to find the pending attestation;
the state transition is gated on the signature verifying against the
attestation owner's registered key.

On success a fresh secret is minted. Only its SHA-256 hash is stored,
and the plaintext goes back to the caller encrypted to the caller's own
public key.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from whereabouts.attestation.store import AttestationStore
from whereabouts.config import SESSION_TTL_SECONDS
from whereabouts.db.models import utc_now
from whereabouts.exceptions import (
    AttestationVerificationError,
    ChallengeNotFoundError,
    InvalidKeyMaterialError,
)
from whereabouts.pgp import (
    encrypt_to,
    message_text,
    read_cleartext_message,
    signed_by,
    validate_public_key,
)
from whereabouts.tokens import generate_secret, hash_token

log = logging.getLogger(__name__)


@dataclass
class MintedSession:
    """Result of a successful attestation.

    Attributes:
        fingerprint: Identity the session belongs to
        encrypted_secret: Armored PGP message holding {"token": <secret>}
        expires_at: When the bearer secret stops resolving
    """

    fingerprint: str
    encrypted_secret: str
    expires_at: datetime


class AttestationVerifier:
    """Verifies signed challenges and mints session credentials."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.attestations = AttestationStore(db)

    def submit(self, signed_message: str) -> MintedSession:
        """Verify a cleartext-signed challenge and mint a bearer secret.

        Raises:
            MalformedSignedMessageError: If the submission does not parse
            ChallengeNotFoundError: If no pending, unexpired attestation
                matches, or it was consumed concurrently
            AttestationVerificationError: If the signature is not a good
                signature by the attestation owner's key
        """
        message = read_cleartext_message(signed_message)
        challenge = message_text(message)

        now = self.clock()
        attestation = self.attestations.find_pending(challenge, now)
        if attestation is None:
            raise ChallengeNotFoundError()

        owner = attestation.identity
        try:
            owner_key = validate_public_key(owner.public_key)
        except InvalidKeyMaterialError as e:
            log.warning(f"Stored key for {owner.fingerprint} no longer validates: {e}")
            raise AttestationVerificationError() from e

        if not signed_by(message, owner_key) or owner_key.fingerprint != owner.fingerprint:
            log.warning(
                f"Rejected signature for attestation={attestation.id} "
                f"owner={owner.fingerprint}"
            )
            raise AttestationVerificationError()

        secret = generate_secret()
        try:
            encrypted = encrypt_to(owner_key, json.dumps({"token": secret}))
        except InvalidKeyMaterialError as e:
            log.warning(f"Cannot deliver a secret to {owner.fingerprint}: {e}")
            raise AttestationVerificationError() from e

        expires_at = now + timedelta(seconds=SESSION_TTL_SECONDS)
        if not self.attestations.fulfil(attestation.id, hash_token(secret), expires_at):
            self.db.rollback()
            raise ChallengeNotFoundError()
        self.db.commit()

        log.info(f"Attestation {attestation.id} verified for {owner.fingerprint}")
        return MintedSession(
            fingerprint=owner.fingerprint,
            encrypted_secret=encrypted,
            expires_at=expires_at,
        )

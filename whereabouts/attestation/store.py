"""Identity and attestation repositories.

Thin query layer over a caller-supplied SQLAlchemy session. The stores
never commit; the service object that owns the operation does, so each
operation is one transaction.
"""
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from whereabouts.db.models import Attestation, AttestationType, Identity
from whereabouts.pgp import ValidatedKey


class IdentityStore:
    """Lookup and insertion of identities by fingerprint."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, fingerprint: str) -> Optional[Identity]:
        return self.db.get(Identity, fingerprint)

    def add(self, validated: ValidatedKey) -> Identity:
        identity = Identity(
            fingerprint=validated.fingerprint,
            name=validated.name,
            email=validated.email,
            public_key=validated.armored,
        )
        self.db.add(identity)
        self.db.flush()
        return identity

    def existing_fingerprints(self, fingerprints: Iterable[str]) -> set[str]:
        """Return the subset of fingerprints that belong to registered identities."""
        wanted = set(fingerprints)
        if not wanted:
            return set()
        rows = (
            self.db.query(Identity.fingerprint)
            .filter(Identity.fingerprint.in_(wanted))
            .all()
        )
        return {row.fingerprint for row in rows}


class AttestationStore:
    """Persistence for challenge-response attestations."""

    def __init__(self, db: Session):
        self.db = db

    def create_pending(
        self,
        identity: Identity,
        challenge: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> Attestation:
        attestation = Attestation(
            identity_fingerprint=identity.fingerprint,
            type=AttestationType.SESSION,
            challenge=challenge,
            verified=False,
            fulfilled=False,
            created_at=created_at,
            expires_at=expires_at,
        )
        self.db.add(attestation)
        self.db.flush()
        return attestation

    def find_pending(self, challenge: str, now: datetime) -> Optional[Attestation]:
        """Find the unexpired, unfulfilled attestation issued for a challenge."""
        return (
            self.db.query(Attestation)
            .options(joinedload(Attestation.identity))
            .filter(
                Attestation.challenge == challenge,
                Attestation.fulfilled.is_(False),
                Attestation.expires_at > now,
            )
            .first()
        )

    def fulfil(self, attestation_id: int, token_hash: str, expires_at: datetime) -> bool:
        """Transition a pending attestation to verified+fulfilled.

        Single conditional UPDATE keyed on the attestation still being
        pending, so two racing submissions cannot both succeed.

        Returns:
            True if this call performed the transition
        """
        result = self.db.execute(
            update(Attestation)
            .where(
                Attestation.id == attestation_id,
                Attestation.fulfilled.is_(False),
            )
            .values(
                verified=True,
                fulfilled=True,
                auth_token=token_hash,
                expires_at=expires_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def find_session(self, token_hash: str, now: datetime) -> Optional[Attestation]:
        """Find the live session attestation holding a token hash."""
        return (
            self.db.query(Attestation)
            .options(joinedload(Attestation.identity))
            .filter(
                Attestation.auth_token == token_hash,
                Attestation.verified.is_(True),
                Attestation.fulfilled.is_(True),
                Attestation.expires_at > now,
            )
            .first()
        )

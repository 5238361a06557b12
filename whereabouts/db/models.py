"""SQLAlchemy models for Whereabouts persistence.

Identities are keyed by OpenPGP key ID. Attestations track one
challenge-response cycle each and, once fulfilled, the SHA-256 hash of
the bearer secret they produced. Location records are opaque ciphertext
scoped to one or more groups; expiry hides them at query time.
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def utc_now() -> datetime:
    """Single wall-clock source for timestamps and expiry comparisons."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Re-attach UTC to a timestamp read back from a backend that drops it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


group_members = Table(
    "group_members",
    Base.metadata,
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "identity_fingerprint",
        String(40),
        ForeignKey("identities.fingerprint", ondelete="CASCADE"),
        primary_key=True,
    ),
)

location_groups = Table(
    "location_groups",
    Base.metadata,
    Column(
        "location_id",
        Integer,
        ForeignKey("location_records.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
)


class AttestationType(str, enum.Enum):
    """Purpose of an attestation. Only session login exists today."""

    SESSION = "session"


class Identity(Base):
    """A registered OpenPGP public key."""
    __tablename__ = "identities"

    fingerprint = Column(String(40), primary_key=True)  # Uppercase hex key ID
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    public_key = Column(Text, nullable=False)  # Armored public key block
    created_at = Column(DateTime, nullable=False, default=utc_now)

    attestations = relationship("Attestation", back_populates="identity")
    groups = relationship("Group", secondary=group_members, back_populates="members")


class Attestation(Base):
    """One challenge-response cycle for an identity."""
    __tablename__ = "attestations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    identity_fingerprint = Column(
        String(40), ForeignKey("identities.fingerprint"), nullable=False, index=True
    )
    type = Column(
        Enum(AttestationType, native_enum=False, length=20),
        nullable=False,
        default=AttestationType.SESSION,
    )
    challenge = Column(String(128), nullable=False, unique=True)
    verified = Column(Boolean, default=False, nullable=False)
    fulfilled = Column(Boolean, default=False, nullable=False)
    auth_token = Column(String(64), nullable=True, index=True)  # sha256 hex, never the secret
    created_at = Column(DateTime, nullable=False, default=utc_now)
    expires_at = Column(DateTime, nullable=False)

    identity = relationship("Identity", back_populates="attestations")


class Group(Base):
    """A named set of identities sharing location visibility."""
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    members = relationship(
        "Identity",
        secondary=group_members,
        back_populates="groups",
        order_by="Identity.fingerprint",
    )


class LocationRecord(Base):
    """Opaque encrypted location update visible to a set of groups."""
    __tablename__ = "location_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_fingerprint = Column(
        String(40), ForeignKey("identities.fingerprint"), nullable=False, index=True
    )
    ciphertext = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    expires_at = Column(DateTime, nullable=False, index=True)

    sender = relationship("Identity")
    groups = relationship("Group", secondary=location_groups, order_by="Group.id")

"""Request/response models for the Whereabouts HTTP API.

JSON field names are camelCase on the wire; Python attributes are
snake_case. Both spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Largest value a 64-bit signed INTEGER column can bind
MAX_ROW_ID = 2**63 - 1

RowId = Annotated[int, Field(ge=1, le=MAX_ROW_ID)]


class ApiModel(BaseModel):
    """Base model emitting camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Identity DTOs
# =============================================================================


class RegisterIdentityRequest(ApiModel):
    """Request to register an armored OpenPGP public key."""

    public_key: str = Field(..., description="ASCII-armored OpenPGP public key")


class RegisterIdentityResponse(ApiModel):
    """Result of a successful registration."""

    success: bool = Field(True, description="Whether registration succeeded")
    fingerprint: str = Field(..., description="Uppercase hex key ID")
    name: Optional[str] = Field(None, description="Name from the key's user ID")
    email: Optional[str] = Field(None, description="Email from the key's user ID")


class PublicKeyResponse(ApiModel):
    """Public key material of a registered identity."""

    fingerprint: str = Field(..., description="Uppercase hex key ID")
    name: Optional[str] = Field(None, description="Display name")
    public_key: str = Field(..., description="ASCII-armored public key")


# =============================================================================
# Attestation DTOs
# =============================================================================


class ChallengeRequest(ApiModel):
    """Request a login challenge for a registered identity."""

    fingerprint: str = Field(..., min_length=1, description="Identity key ID")


class ChallengeResponse(ApiModel):
    """Challenge to cleartext-sign with the identity's private key."""

    challenge: str = Field(..., description="Random hex challenge")


class AttestationRequest(ApiModel):
    """Submission of a cleartext-signed challenge."""

    signed_challenge_message: str = Field(..., description="Cleartext-signed challenge")


class AttestationResponse(ApiModel):
    """Bearer secret encrypted to the caller's public key."""

    encrypted_bearer_secret: str = Field(..., description='Armored PGP message holding {"token": ...}')
    expires_at: datetime = Field(..., description="Session expiry")


# =============================================================================
# Group DTOs
# =============================================================================


class MemberResponse(ApiModel):
    fingerprint: str
    name: Optional[str] = None


class GroupResponse(ApiModel):
    """A group and its current members."""

    id: int
    name: str
    created_at: datetime
    members: list[MemberResponse] = Field(default_factory=list)


class CreateGroupRequest(ApiModel):
    name: str = Field(..., description="Group display name")
    member_fingerprints: list[str] = Field(default_factory=list, description="Initial members")


class AddMembersRequest(ApiModel):
    group_id: int = Field(..., ge=1, le=MAX_ROW_ID, description="Group to extend")
    new_fingerprints: list[str] = Field(..., description="Identities to add")


# =============================================================================
# Location DTOs
# =============================================================================


class GroupRef(ApiModel):
    id: int
    name: str


class PublishLocationRequest(ApiModel):
    """An encrypted location update for one or more groups."""

    ciphertext: str = Field(..., description="Opaque client-encrypted payload")
    group_ids: list[RowId] = Field(..., description="Groups allowed to see the update")


class LocationResponse(ApiModel):
    """A stored location update."""

    id: int
    sender_fingerprint: str
    sender_name: Optional[str] = None
    ciphertext: str
    created_at: datetime
    expires_at: datetime
    groups: list[GroupRef] = Field(default_factory=list)


# =============================================================================
# Health DTOs
# =============================================================================


class HealthResponse(ApiModel):
    status: str
    database_accessible: bool

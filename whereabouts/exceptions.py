"""Domain exceptions for the Whereabouts service.

Service-layer code raises these; the API routers translate each one to
an HTTP status code. None of them carry secret material.
"""


class WhereaboutsError(Exception):
    """Base exception for Whereabouts domain errors."""

    pass


class ValidationError(WhereaboutsError):
    """Raised when a request is well-formed JSON but semantically invalid."""

    pass


class InvalidLimitError(ValidationError):
    """Raised when a location fetch limit is outside the allowed range."""

    def __init__(self, limit: int, maximum: int):
        self.limit = limit
        self.maximum = maximum
        super().__init__(f"Limit must be between 1 and {maximum}")


class InvalidKeyMaterialError(WhereaboutsError):
    """Raised when an armored key cannot be used as an identity credential.

    This occurs when:
    - the blob does not parse as an OpenPGP key
    - the blob encodes a private key
    - the key carries a revocation signature
    - the key has no user ID
    """

    pass


class IdentityNotFoundError(WhereaboutsError):
    """Raised when no identity is registered under a fingerprint."""

    def __init__(self, fingerprint: str):
        self.fingerprint = fingerprint
        super().__init__(f"Identity not found: {fingerprint}")


class IdentityExistsError(WhereaboutsError):
    """Raised when registering a key whose fingerprint is already taken."""

    def __init__(self, fingerprint: str):
        self.fingerprint = fingerprint
        super().__init__(f"Identity already registered: {fingerprint}")


class MalformedSignedMessageError(ValidationError):
    """Raised when a submission is not an OpenPGP cleartext-signed message."""

    pass


class ChallengeNotFoundError(WhereaboutsError):
    """Raised when no pending, unexpired attestation matches a challenge."""

    def __init__(self):
        super().__init__("Invalid challenge")


class AttestationVerificationError(WhereaboutsError):
    """Raised when a signed challenge was not signed by the identity's key."""

    def __init__(self):
        super().__init__("Signature verification failed")


class GroupNotFoundError(WhereaboutsError):
    """Raised when a group ID does not exist."""

    def __init__(self, group_id: int):
        self.group_id = group_id
        super().__init__(f"Group not found: {group_id}")


class NotAMemberError(WhereaboutsError):
    """Raised when a caller acts on groups it does not belong to."""

    def __init__(self, group_ids: list[int]):
        self.group_ids = list(group_ids)
        joined = ", ".join(str(gid) for gid in self.group_ids)
        super().__init__(f"Not a member of groups: {joined}")


class UnknownMembersError(WhereaboutsError):
    """Raised when member fingerprints do not match registered identities."""

    def __init__(self, fingerprints: list[str]):
        self.fingerprints = list(fingerprints)
        super().__init__(f"Users not found: {', '.join(self.fingerprints)}")

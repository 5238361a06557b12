"""Random challenge/secret generation and bearer-secret hashing.

All randomness comes from the secrets module. Only the SHA-256 hex
digest of a bearer secret is ever stored.
"""
import hashlib
import secrets

from whereabouts.config import CHALLENGE_HEX_LENGTH, SECRET_BYTES


def generate_challenge() -> str:
    """Return a fresh hex challenge of CHALLENGE_HEX_LENGTH characters."""
    return secrets.token_hex(CHALLENGE_HEX_LENGTH // 2)


def generate_secret() -> str:
    """Return a fresh hex bearer secret."""
    return secrets.token_hex(SECRET_BYTES)


def hash_token(token: str) -> str:
    """One-way hash of a bearer secret as stored in attestations."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_token(token: str, hashed_token: str) -> bool:
    """Constant-time check of a bearer secret against a stored hash."""
    return secrets.compare_digest(hash_token(token), hashed_token)

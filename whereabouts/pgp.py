"""OpenPGP key material handling.

Wraps PGPy for the three things the attestation protocol needs:

* Validating an armored public key offered as an identity credential
  and deriving its fingerprint (the uppercase hex key ID).
* Reading a cleartext-signed challenge and checking who signed it.
* Encrypting a short payload to an identity's public key so that only
  the key holder can read it.

Nothing in here touches the database.
"""
import logging
from dataclasses import dataclass

import pgpy
from pgpy.constants import KeyFlags
from pgpy.errors import PGPError

from whereabouts.exceptions import InvalidKeyMaterialError, MalformedSignedMessageError

log = logging.getLogger(__name__)

_ENCRYPTION_FLAGS = {KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage}


@dataclass(frozen=True)
class ValidatedKey:
    """A parsed public key that may stand as an identity credential.

    Attributes:
        key: The parsed PGPy public key
        fingerprint: Uppercase hex key ID, the identity's primary key
        name: Name from the key's first user ID
        email: Email from the key's first user ID (may be empty)
        armored: The armored key text exactly as submitted
    """

    key: pgpy.PGPKey
    fingerprint: str
    name: str
    email: str | None
    armored: str


def normalize_fingerprint(value: str) -> str:
    """Canonicalize a caller-supplied fingerprint."""
    return value.strip().upper()


def _is_revoked(key: pgpy.PGPKey) -> bool:
    return any(True for _ in key.revocation_signatures)


def _first_userid(key: pgpy.PGPKey):
    userids = key.userids
    return userids[0] if userids else None


def _key_flags(key: pgpy.PGPKey) -> set:
    """Usage flags from the primary user ID or, for a subkey, its binding signature."""
    if key.is_primary:
        uid = _first_userid(key)
        if uid is None or uid.selfsig is None:
            return set()
        return set(uid.selfsig.key_flags)
    binding = next(iter(key.self_signatures), None)
    return set(binding.key_flags) if binding is not None else set()


def _can_encrypt(key: pgpy.PGPKey) -> bool:
    candidates = [key] + list(key.subkeys.values())
    return any(_key_flags(k) & _ENCRYPTION_FLAGS for k in candidates)


def validate_public_key(armored: str) -> ValidatedKey:
    """Parse and validate an armored OpenPGP public key.

    Args:
        armored: ASCII-armored key block

    Returns:
        ValidatedKey with the derived fingerprint and first user ID

    Raises:
        InvalidKeyMaterialError: If the blob does not parse, is a private
            key, is revoked, carries no user ID, or has no
            encryption-capable primary key or subkey
    """
    if not armored or not armored.strip():
        raise InvalidKeyMaterialError("Public key is empty")

    try:
        key, _ = pgpy.PGPKey.from_blob(armored)
    except Exception as e:
        raise InvalidKeyMaterialError(f"Unable to parse public key: {e}") from e

    if not key.is_public:
        raise InvalidKeyMaterialError("Private key material is not accepted")

    if _is_revoked(key):
        raise InvalidKeyMaterialError("Key has been revoked")

    uid = _first_userid(key)
    if uid is None:
        raise InvalidKeyMaterialError("Key has no user ID")

    if not _can_encrypt(key):
        raise InvalidKeyMaterialError("Key has no encryption-capable key or subkey")

    return ValidatedKey(
        key=key,
        fingerprint=key.fingerprint.keyid.upper(),
        name=uid.name,
        email=uid.email or None,
        armored=armored,
    )


def read_cleartext_message(armored: str) -> pgpy.PGPMessage:
    """Parse a cleartext-signed message without verifying it.

    Raises:
        MalformedSignedMessageError: If the blob is not a signed
            cleartext message
    """
    if not armored or not armored.strip():
        raise MalformedSignedMessageError("Signed message is empty")

    try:
        message = pgpy.PGPMessage.from_blob(armored)
    except Exception as e:
        raise MalformedSignedMessageError(f"Unable to parse signed message: {e}") from e

    if message.type != "cleartext" or not message.is_signed:
        raise MalformedSignedMessageError("Expected a cleartext-signed message")

    return message


def message_text(message: pgpy.PGPMessage) -> str:
    """Return the signed plaintext with surrounding whitespace removed."""
    text = message.message
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8")
    return text.strip()


def signed_by(message: pgpy.PGPMessage, expected: ValidatedKey) -> bool:
    """Check that a message carries a good signature from the expected key.

    Both conditions must hold: PGPy reports the signature as good, and
    the key ID recovered from that good signature equals the expected
    fingerprint.
    """
    try:
        verification = expected.key.verify(message)
    except PGPError as e:
        # Raised when no signature on the message was made by this key
        log.info(f"Signature check failed for {expected.fingerprint}: {e}")
        return False

    if not verification:
        return False

    signers = {
        sigsubj.signature.signer.upper()
        for sigsubj in verification.good_signatures
    }
    return expected.fingerprint in signers


def encrypt_to(recipient: ValidatedKey, plaintext: str) -> str:
    """Encrypt a text payload to the recipient's public key.

    Returns:
        ASCII-armored PGP message

    Raises:
        InvalidKeyMaterialError: If PGPy finds no key usable for encryption
    """
    message = pgpy.PGPMessage.new(plaintext)
    try:
        encrypted = recipient.key.encrypt(message)
    except PGPError as e:
        raise InvalidKeyMaterialError(f"Unable to encrypt to {recipient.fingerprint}: {e}") from e
    return str(encrypted)

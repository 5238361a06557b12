"""Tests for OpenPGP key validation, signature checks and encryption."""
import json

import pgpy
from pgpy.errors import PGPError
import pytest

from whereabouts.exceptions import InvalidKeyMaterialError, MalformedSignedMessageError
from whereabouts.pgp import (
    ValidatedKey,
    encrypt_to,
    message_text,
    normalize_fingerprint,
    read_cleartext_message,
    signed_by,
    validate_public_key,
)

from conftest import decrypt_secret, keyid, sign_cleartext


class TestValidatePublicKey:
    """Tests for validate_public_key()."""

    def test_valid_key_yields_fingerprint_and_uid(self, alice_key):
        validated = validate_public_key(str(alice_key.pubkey))
        assert validated.fingerprint == keyid(alice_key)
        assert validated.name == "Alice Example"
        assert validated.email == "alice@example.org"
        assert validated.key.is_public

    def test_fingerprint_is_uppercase_hex(self, alice_key):
        validated = validate_public_key(str(alice_key.pubkey))
        assert validated.fingerprint == validated.fingerprint.upper()
        int(validated.fingerprint, 16)

    def test_empty_key_rejected(self):
        with pytest.raises(InvalidKeyMaterialError, match="empty"):
            validate_public_key("   ")

    def test_garbage_rejected(self):
        with pytest.raises(InvalidKeyMaterialError):
            validate_public_key("not a key")

    def test_private_key_rejected(self, alice_key):
        with pytest.raises(InvalidKeyMaterialError, match="Private"):
            validate_public_key(str(alice_key))

    def test_revoked_key_rejected(self, revoked_public_key):
        with pytest.raises(InvalidKeyMaterialError, match="revoked"):
            validate_public_key(revoked_public_key)

    def test_key_without_uid_rejected(self, uidless_public_key):
        with pytest.raises(InvalidKeyMaterialError):
            validate_public_key(uidless_public_key)

    def test_sign_only_key_rejected(self, sign_only_key):
        with pytest.raises(InvalidKeyMaterialError, match="encryption"):
            validate_public_key(str(sign_only_key.pubkey))


def test_normalize_fingerprint():
    assert normalize_fingerprint("  abcdef0123  ") == "ABCDEF0123"


class TestCleartextMessages:
    """Tests for reading and checking cleartext-signed messages."""

    def test_reads_signed_text(self, alice_key):
        message = read_cleartext_message(sign_cleartext(alice_key, "deadbeef"))
        assert message_text(message) == "deadbeef"

    def test_empty_submission_rejected(self):
        with pytest.raises(MalformedSignedMessageError):
            read_cleartext_message("")

    def test_garbage_rejected(self):
        with pytest.raises(MalformedSignedMessageError):
            read_cleartext_message("hello, world")

    def test_encrypted_message_is_not_cleartext(self, alice_key):
        encrypted = encrypt_to(validate_public_key(str(alice_key.pubkey)), "x")
        with pytest.raises(MalformedSignedMessageError):
            read_cleartext_message(encrypted)

    def test_signed_by_owner(self, alice_key):
        validated = validate_public_key(str(alice_key.pubkey))
        message = read_cleartext_message(sign_cleartext(alice_key, "abc"))
        assert signed_by(message, validated) is True

    def test_signed_by_other_key(self, alice_key, mallory_key):
        validated = validate_public_key(str(alice_key.pubkey))
        message = read_cleartext_message(sign_cleartext(mallory_key, "abc"))
        assert signed_by(message, validated) is False


def test_encrypt_to_round_trips_through_private_key(alice_key):
    validated = validate_public_key(str(alice_key.pubkey))
    armored = encrypt_to(validated, json.dumps({"token": "s3cret"}))

    assert "BEGIN PGP MESSAGE" in armored
    assert decrypt_secret(alice_key, armored) == "s3cret"


def test_encrypted_payload_unreadable_by_other_key(alice_key, bob_key):
    validated = validate_public_key(str(alice_key.pubkey))
    armored = encrypt_to(validated, json.dumps({"token": "s3cret"}))

    with pytest.raises(PGPError):
        bob_key.decrypt(pgpy.PGPMessage.from_blob(armored))


def test_encrypt_to_key_without_encryption_usage(sign_only_key):
    """PGPy usage errors surface as InvalidKeyMaterialError, not PGPError."""
    unusable = ValidatedKey(
        key=sign_only_key.pubkey,
        fingerprint=keyid(sign_only_key),
        name="Sam Signer",
        email=None,
        armored=str(sign_only_key.pubkey),
    )

    with pytest.raises(InvalidKeyMaterialError):
        encrypt_to(unusable, "x")

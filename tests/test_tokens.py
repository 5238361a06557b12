"""Tests for challenge/secret generation and token hashing."""
import hashlib
import string

from whereabouts.config import CHALLENGE_HEX_LENGTH
from whereabouts.tokens import generate_challenge, generate_secret, hash_token, verify_token


def test_challenge_is_hex_of_fixed_length():
    challenge = generate_challenge()
    assert len(challenge) == CHALLENGE_HEX_LENGTH
    assert set(challenge) <= set(string.hexdigits.lower())


def test_challenges_are_unique():
    assert len({generate_challenge() for _ in range(50)}) == 50


def test_secrets_are_unique():
    assert generate_secret() != generate_secret()


def test_hash_token_is_sha256_hex():
    assert hash_token("abc") == hashlib.sha256(b"abc").hexdigest()
    assert len(hash_token(generate_secret())) == 64


def test_verify_token():
    secret = generate_secret()
    assert verify_token(secret, hash_token(secret))
    assert not verify_token(secret + "0", hash_token(secret))

"""Pytest fixtures for Whereabouts tests.

Provides isolated SQLite databases, real OpenPGP keys generated with
PGPy (once per session, RSA generation is slow), and helpers that play
the client side of the challenge-response login.
"""
import importlib
import json
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Generator

import pgpy
import pytest
from httpx import AsyncClient, ASGITransport
from pgpy.constants import (
    CompressionAlgorithm,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)
from sqlalchemy.orm import Session

from whereabouts.db.models import Identity


# =============================================================================
# OpenPGP key material
# =============================================================================

FULL_USAGE = {
    KeyFlags.Sign,
    KeyFlags.Certify,
    KeyFlags.EncryptCommunications,
    KeyFlags.EncryptStorage,
}


def make_key(
    name: str,
    email: str,
    with_uid: bool = True,
    usage: set | None = None,
) -> pgpy.PGPKey:
    """Generate an RSA key, by default usable for signing and encryption."""
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    if with_uid:
        uid = pgpy.PGPUID.new(name, email=email)
        key.add_uid(
            uid,
            usage=usage or FULL_USAGE,
            hashes=[HashAlgorithm.SHA256],
            ciphers=[SymmetricKeyAlgorithm.AES256],
            compression=[CompressionAlgorithm.Uncompressed],
        )
    return key


def sign_cleartext(key: pgpy.PGPKey, text: str) -> str:
    """Cleartext-sign text the way a client signs its challenge."""
    message = pgpy.PGPMessage.new(text, cleartext=True)
    message |= key.sign(message)
    return str(message)


def decrypt_secret(key: pgpy.PGPKey, armored: str) -> str:
    """Decrypt the bearer secret returned by POST /attestations."""
    decrypted = key.decrypt(pgpy.PGPMessage.from_blob(armored))
    payload = decrypted.message
    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload).decode("utf-8")
    return json.loads(payload)["token"]


@pytest.fixture(scope="session")
def alice_key() -> pgpy.PGPKey:
    return make_key("Alice Example", "alice@example.org")


@pytest.fixture(scope="session")
def bob_key() -> pgpy.PGPKey:
    return make_key("Bob Example", "bob@example.org")


@pytest.fixture(scope="session")
def mallory_key() -> pgpy.PGPKey:
    return make_key("Mallory Example", "mallory@example.org")


@pytest.fixture(scope="session")
def sign_only_key() -> pgpy.PGPKey:
    """Key that can sign challenges but cannot receive encrypted secrets."""
    return make_key("Sam Signer", "sam@example.org", usage={KeyFlags.Sign, KeyFlags.Certify})


@pytest.fixture(scope="session")
def revoked_public_key() -> str:
    """Armored public key carrying a key revocation signature."""
    key = make_key("Revoked Rita", "rita@example.org")
    key |= key.revoke(key)
    return str(key.pubkey)


@pytest.fixture(scope="session")
def uidless_public_key() -> str:
    """Armored public key with no user ID packet."""
    key = make_key("", "", with_uid=False)
    return str(key.pubkey)


def keyid(key: pgpy.PGPKey) -> str:
    return key.fingerprint.keyid.upper()


# =============================================================================
# Database
# =============================================================================

def _restore_env(key: str, original: str | None) -> None:
    """Restore an environment variable to its original value."""
    if original is not None:
        os.environ[key] = original
    elif key in os.environ:
        del os.environ[key]


@pytest.fixture
def isolated_database(tmp_path):
    """Point the service at a fresh SQLite file and create the tables."""
    original_db_url = os.environ.get("WHEREABOUTS_DATABASE_URL")
    original_data_dir = os.environ.get("WHEREABOUTS_DATA_DIR")

    os.environ["WHEREABOUTS_DATABASE_URL"] = f"sqlite:///{tmp_path}/whereabouts_test.db"
    os.environ["WHEREABOUTS_DATA_DIR"] = str(tmp_path)

    # Reload config and session to pick up new DB URL
    import whereabouts.config as config_module
    importlib.reload(config_module)
    import whereabouts.db.session as session_module
    importlib.reload(session_module)

    session_module.init_database()

    yield session_module

    session_module.engine.dispose()

    _restore_env("WHEREABOUTS_DATABASE_URL", original_db_url)
    _restore_env("WHEREABOUTS_DATA_DIR", original_data_dir)
    importlib.reload(config_module)


@pytest.fixture
def db(isolated_database) -> Generator[Session, None, None]:
    """A session on the isolated database, for service-level tests."""
    session = isolated_database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_identity(db: Session):
    """Insert a bare identity row; the key text is irrelevant to sharing tests."""

    def _make(fingerprint: str, name: str | None = None) -> Identity:
        identity = Identity(
            fingerprint=fingerprint,
            name=name or fingerprint.title(),
            email=f"{fingerprint.lower()}@example.org",
            public_key=f"-----BEGIN PGP PUBLIC KEY BLOCK-----\n{fingerprint}\n",
        )
        db.add(identity)
        db.commit()
        return identity

    return _make


class FrozenClock:
    """Settable clock for expiry tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


# =============================================================================
# HTTP client
# =============================================================================

@pytest.fixture
async def client(isolated_database) -> AsyncGenerator[AsyncClient, None]:
    """Test client bound to the isolated database."""
    from whereabouts.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as async_client:
        yield async_client


async def register(client: AsyncClient, key: pgpy.PGPKey) -> str:
    response = await client.post("/identities", json={"publicKey": str(key.pubkey)})
    assert response.status_code == 201, response.text
    return response.json()["fingerprint"]


async def login(client: AsyncClient, key: pgpy.PGPKey) -> dict:
    """Run the challenge-response flow and return bearer headers."""
    response = await client.post("/challenges", json={"fingerprint": keyid(key)})
    assert response.status_code == 200, response.text
    challenge = response.json()["challenge"]

    response = await client.post(
        "/attestations",
        json={"signedChallengeMessage": sign_cleartext(key, challenge)},
    )
    assert response.status_code == 200, response.text
    secret = decrypt_secret(key, response.json()["encryptedBearerSecret"])
    return {"Authorization": f"Bearer {secret}"}


@pytest.fixture
def auth_flow():
    """Expose register/login helpers to API tests."""

    class _Flow:
        register = staticmethod(register)
        login = staticmethod(login)

    return _Flow

"""Shared pytest fixtures.

WHAT: Throwaway signing keys and a settings factory.
WHY: Token tests need real P-256 keys; tool tests need a configured token
     without reading the developer's .env.
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from core.config import Settings


def _pkcs8_pem(key) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def _public_pem(key) -> str:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def _body(pem: str) -> str:
    """Strip the armor from a PEM, leaving the bare base64 body."""
    return "".join(line for line in pem.splitlines() if not line.startswith("-----"))


@pytest.fixture(scope="session")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_private_pem(ec_key) -> str:
    return _pkcs8_pem(ec_key)


@pytest.fixture(scope="session")
def ec_public_pem(ec_key) -> str:
    return _public_pem(ec_key)


@pytest.fixture(scope="session")
def ec_bare_key(ec_private_pem) -> str:
    return _body(ec_private_pem)


@pytest.fixture(scope="session")
def rsa_private_pem() -> str:
    return _pkcs8_pem(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def p384_private_pem() -> str:
    return _pkcs8_pem(ec.generate_private_key(ec.SECP384R1()))


@pytest.fixture
def search_ads_auth(ec_private_pem) -> dict:
    return {
        "clientId": "SEARCHADS.client-123",
        "teamId": "SEARCHADS.team-456",
        "keyId": "key-789",
        "privateKey": ec_private_pem,
    }


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        values = {"meta_access_token": "test-token"}
        values.update(overrides)
        return Settings(**values)
    return _make

# =============================================================================
# core/apple_auth.py  -  Search Ads client-secret signer
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Apple Search Ads uses an OAuth client-credentials flow where the
#   "client secret" is a JWT the caller signs with its own P-256 key:
#
#     header  = {"alg": "ES256", "kid": <keyId>, "typ": "JWT"}
#     payload = {"iss": <teamId>, "iat": now, "exp": now + 3600,
#                "aud": "https://appleid.apple.com", "sub": <clientId>}
#
#   create_client_secret() builds that token.  The private key is loaded
#   with `cryptography` first so a bad key is reported as a bad key; the
#   JWS encoding itself is done by python-jose.
#
# KEY INPUT:
#   Keys arrive pasted into a tool call, so they are often missing their
#   PEM armor or have their newlines escaped as "\n".  normalize_private_key()
#   repairs both before parsing.
# =============================================================================

import logging
import textwrap
import time
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_private_key
from jose import jwt
from jose.exceptions import JOSEError

from core.models import SearchAdsCredentials

logger = logging.getLogger(__name__)

TOKEN_AUDIENCE = "https://appleid.apple.com"
TOKEN_LIFETIME_SECONDS = 3600
ALGORITHM = "ES256"

_PEM_ARMORS = ("PRIVATE KEY", "EC PRIVATE KEY")


class TokenSigningError(Exception):
    """Base class for client-secret construction failures."""

    kind = "signing_error"


class MalformedKeyError(TokenSigningError):
    """The key material (or the credential set) cannot be used.

    Retrying with the same key will fail the same way.
    """

    kind = "malformed_key"


class SigningBackendError(TokenSigningError):
    """The key parsed, but the signing library refused to produce a token."""

    kind = "signing_backend_failure"


def _armor(body: str, label: str) -> str:
    lines = textwrap.wrap("".join(body.split()), 64)
    return "\n".join([f"-----BEGIN {label}-----", *lines, f"-----END {label}-----", ""])


def normalize_private_key(private_key: str) -> list[str]:
    """Return candidate PEM encodings of ``private_key``, most likely first.

    Already-armored input yields a single candidate.  A bare base64 body is
    wrapped as PKCS#8 first and as a SEC1 ``EC PRIVATE KEY`` second.
    """
    key = (private_key or "").replace("\\n", "\n").strip()
    if not key:
        raise MalformedKeyError("Private key is empty")
    if "-----BEGIN" in key:
        return [key + "\n"]
    return [_armor(key, label) for label in _PEM_ARMORS]


def load_signing_key(private_key: str) -> tuple[str, ec.EllipticCurvePrivateKey]:
    """Parse the key, returning the PEM text that loaded and the key object."""
    last_error: Optional[Exception] = None
    for pem in normalize_private_key(private_key):
        try:
            key = load_pem_private_key(pem.encode("ascii"), password=None)
        except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm) as exc:
            last_error = exc
            continue
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise MalformedKeyError("Private key is not an EC key; ES256 requires a P-256 key")
        if not isinstance(key.curve, ec.SECP256R1):
            raise MalformedKeyError(f"Private key uses curve {key.curve.name}; ES256 requires P-256")
        return pem, key
    raise MalformedKeyError(f"Could not parse private key: {last_error}") from last_error


def _check_credentials(credentials: SearchAdsCredentials) -> None:
    missing = [
        name
        for name, value in (
            ("clientId", credentials.client_id),
            ("teamId", credentials.team_id),
            ("keyId", credentials.key_id),
        )
        if not value
    ]
    if missing:
        raise MalformedKeyError(f"Missing credential field(s): {', '.join(missing)}")


def create_client_secret(credentials: SearchAdsCredentials, now: Optional[int] = None) -> str:
    """Sign a client-secret JWT valid for exactly one hour from ``now``.

    Raises:
        MalformedKeyError: key (or a credential field) is unusable.
        SigningBackendError: the JOSE backend failed while signing.
    """
    _check_credentials(credentials)
    pem, _ = load_signing_key(credentials.private_key)

    issued_at = int(time.time()) if now is None else int(now)
    claims = {
        "iss": credentials.team_id,
        "iat": issued_at,
        "exp": issued_at + TOKEN_LIFETIME_SECONDS,
        "aud": TOKEN_AUDIENCE,
        "sub": credentials.client_id,
    }
    headers = {"alg": ALGORITHM, "kid": credentials.key_id, "typ": "JWT"}

    try:
        token = jwt.encode(claims, pem, algorithm=ALGORITHM, headers=headers)
    except JOSEError as exc:
        raise SigningBackendError(f"ES256 signing failed: {exc}") from exc

    logger.debug("Minted client secret for client %s (kid=%s)", credentials.client_id, credentials.key_id)
    return token

"""Bearer access tokens (ES256 JWT).

Token issuance belongs to the identity service; this module verifies the
tokens it issues and, for dev and tests, can mint compatible ones.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# Dev/test: an ephemeral key pair generated on import.  A deployment
# loads the identity service's public key instead.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "auth-service"
AUDIENCE = "progress-service"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(*, sub: str, roles: list[str] | None = None) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature, expiry, issuer and audience; return the claims.

    The algorithm is pinned so a token cannot pick its own (alg=none).
    Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )

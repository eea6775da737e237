from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from progress_service.services import token_service


def test_round_trip_claims() -> None:
    token = token_service.create_access_token(sub="abc", roles=["admin"])
    claims = token_service.decode_access_token(token)
    assert claims["sub"] == "abc"
    assert claims["roles"] == ["admin"]
    assert claims["aud"] == "progress-service"


def test_default_role_is_user() -> None:
    claims = token_service.decode_access_token(token_service.create_access_token(sub="x"))
    assert claims["roles"] == ["user"]


def test_wrong_audience_rejected() -> None:
    now = datetime.now(UTC)
    token = jwt.encode(
        {
            "sub": "x",
            "iss": token_service.ISSUER,
            "aud": "someone-else",
            "exp": now + timedelta(minutes=5),
            "iat": now,
            "jti": "1",
        },
        token_service._private_key,
        algorithm="ES256",
    )
    with pytest.raises(jwt.InvalidAudienceError):
        token_service.decode_access_token(token)


def test_expired_rejected() -> None:
    now = datetime.now(UTC)
    token = jwt.encode(
        {
            "sub": "x",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "exp": now - timedelta(seconds=1),
            "iat": now - timedelta(minutes=20),
            "jti": "1",
        },
        token_service._private_key,
        algorithm="ES256",
    )
    with pytest.raises(jwt.ExpiredSignatureError):
        token_service.decode_access_token(token)


def test_unsigned_token_rejected() -> None:
    token = jwt.encode({"sub": "x"}, key=None, algorithm="none")
    with pytest.raises(jwt.InvalidTokenError):
        token_service.decode_access_token(token)

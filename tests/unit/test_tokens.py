"""JWT creation and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from plank.auth.jwt import create_access_token, create_refresh_token, verify_token
from plank.config import get_settings


class TestAccessToken:
    def test_round_trip_claims(self):
        token = create_access_token(42, 7, is_admin=True)
        payload = verify_token(token)
        assert payload["sub"] == "42"
        assert payload["company_id"] == 7
        assert payload["admin"] is True
        assert payload["type"] == "access"
        assert payload["iss"] == get_settings().jwt_issuer

    def test_admin_defaults_false(self):
        payload = verify_token(create_access_token(1, 1))
        assert payload["admin"] is False

    def test_refresh_token_rejected_as_access(self):
        token = create_refresh_token(1, token_id="abc")
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token, expected_type="access")

    def test_expired_token_rejected(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {
                "sub": "1",
                "iat": past,
                "exp": past + timedelta(minutes=1),
                "iss": settings.jwt_issuer,
                "type": "access",
            },
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_tampered_token_rejected(self):
        token = create_access_token(1, 1)
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token[:-4] + "AAAA")


class TestRefreshToken:
    def test_carries_jti(self):
        token = create_refresh_token(5, token_id="token-123")
        payload = verify_token(token, expected_type="refresh")
        assert payload["jti"] == "token-123"
        assert payload["sub"] == "5"

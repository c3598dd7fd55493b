"""
Tests for bearer token validation.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from offgrid.config import settings
from offgrid.core.security import (
    SecurityException,
    create_access_token,
    decode_token,
    extract_token_from_header,
    parse_identity_claims,
)


class TestDecodeToken:
    """Tests for decode_token()."""

    def test_valid_token(self):
        token = create_access_token({"sub": "alice", "email": "alice@example.com"})

        payload = decode_token(token)

        assert payload["sub"] == "alice"
        assert payload["aud"] == settings.auth_jwt_audience

    def test_expired_token(self):
        token = create_access_token({"sub": "alice"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(SecurityException) as exc_info:
            decode_token(token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": "alice", "aud": settings.auth_jwt_audience},
            "not-the-secret",
            algorithm=settings.auth_jwt_algorithm
        )

        with pytest.raises(SecurityException):
            decode_token(token)

    def test_wrong_audience(self):
        token = jwt.encode(
            {"sub": "alice", "aud": "someone-else"},
            settings.auth_jwt_secret,
            algorithm=settings.auth_jwt_algorithm
        )

        with pytest.raises(SecurityException):
            decode_token(token)

    def test_missing_subject(self):
        token = create_access_token({"email": "alice@example.com"})

        with pytest.raises(SecurityException) as exc_info:
            decode_token(token)

        assert exc_info.value.detail == "Token missing subject claim"


class TestParseIdentityClaims:
    """Tests for parse_identity_claims()."""

    def test_iso_confirmation(self):
        claims = parse_identity_claims({"sub": "alice", "email_confirmed_at": "2026-01-01T00:00:00Z"})

        assert claims["user_id"] == "alice"
        assert claims["email_confirmed_at"] == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_epoch_confirmation(self):
        claims = parse_identity_claims({"sub": "alice", "email_confirmed_at": 0})

        assert claims["email_confirmed_at"] == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_unconfirmed(self):
        assert parse_identity_claims({"sub": "alice"})["email_confirmed_at"] is None

    def test_malformed_confirmation(self):
        claims = parse_identity_claims({"sub": "alice", "email_confirmed_at": "yesterday"})

        assert claims["email_confirmed_at"] is None


class TestExtractToken:
    """Tests for extract_token_from_header()."""

    def test_bearer(self):
        assert extract_token_from_header("Bearer abc") == "abc"

    def test_case_insensitive_scheme(self):
        assert extract_token_from_header("bearer abc") == "abc"

    @pytest.mark.parametrize("header", ["", "abc", "Basic abc", "Bearer a b"])
    def test_invalid(self, header):
        with pytest.raises(SecurityException):
            extract_token_from_header(header)

"""Tests for API key, Supabase JWT and cron secret validation."""
import time

import jwt
import pytest
from fastapi import HTTPException

from fitness_challenge_api import auth
from fitness_challenge_api.auth import (
    get_current_user,
    require_cron_secret,
    validate_api_key,
    validate_jwt,
)

JWT_SECRET = "super-secret-jwt-token-with-at-least-32-characters"


def make_token(sub="user-1", aud="authenticated", exp_offset=3600, secret=JWT_SECRET):
    payload = {"sub": sub, "aud": aud, "exp": int(time.time()) + exp_offset, "role": "authenticated"}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr(auth.settings, "SUPABASE_JWT_SECRET", JWT_SECRET)


# ---------------------------------------------------------------------------
# API Key Auth
# ---------------------------------------------------------------------------


class TestApiKey:

    def test_key_with_user(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", "sk_test_key1,sk_test_key2")
        assert validate_api_key("sk_test_key2:user_12345") == "user_12345"

    def test_key_without_user_rejected(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", "sk_test_key1")
        with pytest.raises(HTTPException) as exc_info:
            validate_api_key("sk_test_key1")
        assert exc_info.value.status_code == 401

    def test_invalid_key(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", "sk_test_key1")
        with pytest.raises(HTTPException) as exc_info:
            validate_api_key("sk_wrong:user_1")
        assert exc_info.value.status_code == 401

    def test_not_configured(self, monkeypatch):
        monkeypatch.delenv("API_KEYS", raising=False)
        with pytest.raises(HTTPException) as exc_info:
            validate_api_key("sk_test_key1:user_1")
        assert "not configured" in exc_info.value.detail


# ---------------------------------------------------------------------------
# JWT Auth
# ---------------------------------------------------------------------------


class TestJwt:

    def test_valid_token(self, jwt_secret):
        assert validate_jwt(f"Bearer {make_token()}") == "user-1"

    def test_expired_token(self, jwt_secret):
        with pytest.raises(HTTPException) as exc_info:
            validate_jwt(f"Bearer {make_token(exp_offset=-60)}")
        assert exc_info.value.detail == "Token expired"

    def test_wrong_audience(self, jwt_secret):
        with pytest.raises(HTTPException) as exc_info:
            validate_jwt(f"Bearer {make_token(aud='anon')}")
        assert exc_info.value.status_code == 401

    def test_wrong_signature(self, jwt_secret):
        token = make_token(secret="another-secret-that-is-also-long-enough-1234")
        with pytest.raises(HTTPException) as exc_info:
            validate_jwt(f"Bearer {token}")
        assert exc_info.value.status_code == 401

    def test_missing_sub(self, jwt_secret):
        token = jwt.encode(
            {"aud": "authenticated", "exp": int(time.time()) + 60},
            JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(HTTPException) as exc_info:
            validate_jwt(f"Bearer {token}")
        assert exc_info.value.detail == "Token missing user ID"

    def test_bad_header_format(self, jwt_secret):
        with pytest.raises(HTTPException) as exc_info:
            validate_jwt(make_token())
        assert exc_info.value.status_code == 401

    def test_secret_not_configured(self, monkeypatch):
        monkeypatch.setattr(auth.settings, "SUPABASE_JWT_SECRET", None)
        monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
        with pytest.raises(HTTPException) as exc_info:
            validate_jwt(f"Bearer {make_token()}")
        assert exc_info.value.status_code == 500


class TestGetCurrentUser:

    @pytest.mark.asyncio
    async def test_no_auth_raises_401(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(authorization=None, x_api_key=None)
        assert exc_info.value.status_code == 401
        assert "Missing authentication" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_prefers_api_key(self, monkeypatch, jwt_secret):
        monkeypatch.setenv("API_KEYS", "sk_test_key1")
        user_id = await get_current_user(
            authorization=f"Bearer {make_token('jwt-user')}",
            x_api_key="sk_test_key1:key-user",
        )
        assert user_id == "key-user"

    @pytest.mark.asyncio
    async def test_jwt(self, jwt_secret):
        user_id = await get_current_user(authorization=f"Bearer {make_token('jwt-user')}", x_api_key=None)
        assert user_id == "jwt-user"


# ---------------------------------------------------------------------------
# Cron secret
# ---------------------------------------------------------------------------


class TestCronSecret:

    @pytest.mark.asyncio
    async def test_valid_secret(self):
        assert await require_cron_secret(x_cron_secret="test-cron-secret") is None

    @pytest.mark.asyncio
    async def test_wrong_secret(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_cron_secret(x_cron_secret="nope")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_secret(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_cron_secret(x_cron_secret=None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(auth.settings, "CRON_SECRET", None)
        monkeypatch.delenv("CRON_SECRET", raising=False)
        with pytest.raises(HTTPException) as exc_info:
            await require_cron_secret(x_cron_secret="anything")
        assert exc_info.value.status_code == 503

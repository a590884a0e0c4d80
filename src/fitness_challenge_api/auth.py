"""
Authentication module for Supabase JWT, API key and cron secret validation.
Provides FastAPI dependencies for securing endpoints.
"""
import hmac
import os
import jwt
from fastapi import HTTPException, Header
from typing import Optional
import logging

from fitness_challenge_api.config import settings

logger = logging.getLogger(__name__)

# Supabase signs user access tokens with the project JWT secret
SUPABASE_JWT_AUDIENCE = "authenticated"


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> str:
    """
    Authenticate via API key OR Supabase JWT.
    Returns user_id string.

    Usage:
        @app.get("/protected")
        async def protected_route(user_id: str = Depends(get_current_user)):
            return {"user_id": user_id}
    """
    # Option 1: API Key authentication
    if x_api_key:
        return validate_api_key(x_api_key)

    # Option 2: Supabase JWT authentication
    if authorization:
        return validate_jwt(authorization)

    raise HTTPException(
        status_code=401,
        detail="Missing authentication. Provide Authorization header or X-API-Key."
    )


def validate_api_key(api_key: str) -> str:
    """
    Validate API key and return user_id.

    API keys must name the user they act for: "sk_test_abc123:user_12345"
    -> "user_12345". There is no default identity, since every challenge
    endpoint works on the caller's own profile.
    """
    valid_keys = [k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()]

    if not valid_keys:
        logger.warning("No API keys configured (API_KEYS env var empty)")
        raise HTTPException(status_code=401, detail="API key authentication not configured")

    key_part, _, user_id = api_key.partition(":")

    if key_part not in valid_keys:
        raise HTTPException(status_code=401, detail="Invalid API key")

    if not user_id:
        raise HTTPException(status_code=401, detail="API key must include a user id (key:user_id)")

    return user_id


def validate_jwt(authorization: str) -> str:
    """Validate a Supabase access token and return user_id."""
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]
    secret = settings.SUPABASE_JWT_SECRET or os.getenv("SUPABASE_JWT_SECRET")

    if not secret:
        raise HTTPException(
            status_code=500,
            detail="JWT validation not configured (missing SUPABASE_JWT_SECRET)"
        )

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=SUPABASE_JWT_AUDIENCE,
        )
        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Token missing user ID")
        return user_id
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")


async def require_cron_secret(
    x_cron_secret: Optional[str] = Header(None, alias="X-Cron-Secret")
) -> None:
    """Guard for the scheduled job endpoints."""
    expected = settings.CRON_SECRET or os.getenv("CRON_SECRET")

    if not expected:
        logger.warning("CRON_SECRET not configured, refusing cron request")
        raise HTTPException(status_code=503, detail="Cron authentication not configured")

    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, expected):
        raise HTTPException(status_code=401, detail="Invalid cron secret")

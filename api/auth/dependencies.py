"""
Auth dependencies for the gateway route.
"""

from __future__ import annotations

import os

from fastapi import HTTPException, status

from .service import IdentityResolver


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format.",
        )

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization must be: Bearer <token>.",
        )
    return token


def get_identity_resolver() -> IdentityResolver:
    return IdentityResolver(
        base_url=os.environ.get("SUPABASE_URL", "").strip(),
        api_key=os.environ.get("SUPABASE_ANON_KEY", "").strip(),
        timeout_s=_env_float("AUTH_TIMEOUT_S", 10.0),
    )

"""
Auth business logic: who is calling, and may they use admin actions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import asyncpg
import httpx
from fastapi import HTTPException, status

from core import identity

from . import repository

PRIVILEGED_ROLE = "super_admin"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    subject_id: str
    is_admin: bool = False


@dataclass(frozen=True)
class IdentityResolver:
    base_url: str
    api_key: str
    timeout_s: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None

    async def resolve(self, access_token: str) -> str | None:
        """
        Ask the session authority whose token this is.

        Any failure, including the authority being down, means "unauthenticated".
        """
        try:
            user = await identity.fetch_user(
                base_url=self.base_url,
                api_key=self.api_key,
                access_token=access_token,
                timeout_s=self.timeout_s,
                transport=self.transport,
            )
        except identity.IdentityError as exc:
            logger.warning("Identity resolution failed: %s", exc)
            return None

        subject = str(user.get("id") or "").strip()
        return subject or None


async def authenticate(resolver: IdentityResolver, access_token: str) -> AuthContext:
    subject = await resolver.resolve(access_token)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return AuthContext(subject_id=subject)


async def require_privileged_role(conn: asyncpg.Connection, ctx: AuthContext) -> AuthContext:
    # Re-read on every call so a revoked role takes effect immediately.
    role = await repository.get_role(conn, ctx.subject_id)
    if role != PRIVILEGED_ROLE:
        logger.warning("Admin action denied for subject=%s role=%s", ctx.subject_id, role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: not an admin",
        )
    return replace(ctx, is_admin=True)

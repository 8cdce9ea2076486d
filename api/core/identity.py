"""
Session-authority HTTP client helpers.

Used endpoint:
- GET /auth/v1/user  -> {"id": "<uuid>", "email": "...", ...}

The authority issues and refreshes the bearer tokens; this service only asks
it who a token belongs to.
"""

from __future__ import annotations

from typing import Any

import httpx


# Identity failures are explicit and separable from other runtime errors.
class IdentityError(RuntimeError):
    pass


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise IdentityError("SUPABASE_URL is empty.")
    return base_url.rstrip("/")


async def fetch_user(
    *,
    base_url: str,
    api_key: str,
    access_token: str,
    timeout_s: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """
    Return the user record the session authority holds for `access_token`.
    """
    base_url = _normalize_base_url(base_url)
    api_key = (api_key or "").strip()
    if not api_key:
        raise IdentityError("SUPABASE_ANON_KEY is empty.")

    try:
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout_s, transport=transport) as client:
            resp = await client.get(
                "/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "apikey": api_key,
                },
            )
    except httpx.HTTPError as exc:
        raise IdentityError(f"Session authority is unreachable: {exc}") from exc

    if resp.status_code != 200:
        # Avoid dumping huge bodies; include a small snippet.
        body = resp.text[:300]
        raise IdentityError(f"Session authority rejected the token: {resp.status_code} {body}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise IdentityError("Session authority returned invalid JSON.") from exc

    if not isinstance(data, dict):
        raise IdentityError("Session authority returned an unexpected payload.")
    return data

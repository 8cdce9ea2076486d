"""
Gateway entry point: POST /external-db?action=<name>.
"""

from __future__ import annotations

import json
import logging
from typing import Any, assert_never

import asyncpg
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from auth import dependencies as auth_dependencies
from auth import service as auth_service
from core import db

from . import service
from .schemas import (
    ActionValidationError,
    BatchRequest,
    DeleteRequest,
    InsertRequest,
    SelectRequest,
    SetupRequest,
    UpdateRequest,
    UpsertRequest,
    parse_action,
)
from .tables import QueryValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body is not valid JSON") from exc


async def _request_context(
    action: str | None = Query(default=None),
    authorization: str | None = Header(default=None),
    resolver: auth_service.IdentityResolver = Depends(auth_dependencies.get_identity_resolver),
) -> auth_service.AuthContext | None:
    if action == "setup":
        return None
    token = auth_dependencies.extract_bearer_token(authorization)
    return await auth_service.authenticate(resolver, token)


@router.post("/external-db")
async def dispatch(
    request: Request,
    action: str | None = Query(default=None),
    # Resolved before the connection: an unauthenticated request never takes a pool slot.
    ctx: auth_service.AuthContext | None = Depends(_request_context),
    conn: asyncpg.Connection = Depends(db.get_connection),
) -> dict:
    try:
        payload = parse_action(action, await _read_body(request))
    except ActionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if isinstance(payload, SetupRequest):
        return await service.setup(conn)

    if ctx is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if payload.privileged:
        ctx = await auth_service.require_privileged_role(conn, ctx)

    logger.debug("action=%s subject=%s admin=%s", payload.action, ctx.subject_id, ctx.is_admin)

    try:
        match payload:
            case SelectRequest():
                return await service.select(conn, payload)
            case BatchRequest():
                return await service.batch(conn, payload)
            case InsertRequest():
                return await service.insert(conn, payload, ctx)
            case UpdateRequest():
                return await service.update(conn, payload, ctx)
            case UpsertRequest():
                return await service.upsert(conn, payload, ctx)
            case DeleteRequest():
                return await service.delete(conn, payload, ctx)
            case _:
                assert_never(payload)
    except QueryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

"""
Request models for the gateway actions.

The `action` query parameter is folded into the body and the result is
validated as one discriminated union, so every action maps to exactly one
payload shape.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

ORDINARY_ACTIONS = ("select", "insert", "update", "upsert", "delete")
ADMIN_ACTIONS = tuple(f"admin_{a}" for a in ORDINARY_ACTIONS)
ACTIONS = ("setup", "batch", *ORDINARY_ACTIONS, *ADMIN_ACTIONS)


class ActionValidationError(ValueError):
    pass


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class _Payload(_Strict):
    @property
    def privileged(self) -> bool:
        return getattr(self, "action", "").startswith("admin_")


class OrderSpec(_Strict):
    column: str = Field(..., min_length=1)
    ascending: bool = True


class _SelectFields(_Payload):
    table: str
    filters: dict[str, Any] = Field(default_factory=dict)
    order: OrderSpec | None = None
    single: bool = False
    with_steps: bool = Field(default=False, alias="withSteps")


class SelectRequest(_SelectFields):
    action: Literal["select", "admin_select"]


class BatchQuery(_SelectFields):
    action: Literal["select"] = "select"


class InsertRequest(_Payload):
    action: Literal["insert", "admin_insert"]
    table: str
    data: dict[str, Any]


class UpdateRequest(_Payload):
    action: Literal["update", "admin_update"]
    table: str
    data: dict[str, Any]
    match: dict[str, Any] = Field(default_factory=dict)


class UpsertRequest(_Payload):
    action: Literal["upsert", "admin_upsert"]
    table: str
    data: dict[str, Any]
    on_conflict: list[str] = Field(..., alias="onConflict", min_length=1)

    @field_validator("on_conflict", mode="before")
    @classmethod
    def _split_columns(cls, value: Any) -> Any:
        # The client sends "user_id,metric_key".
        if isinstance(value, str):
            return [c.strip() for c in value.split(",") if c.strip()]
        return value


class DeleteRequest(_Payload):
    action: Literal["delete", "admin_delete"]
    table: str
    match: dict[str, Any] = Field(default_factory=dict)


class BatchRequest(_Payload):
    action: Literal["batch"]
    queries: list[BatchQuery] = Field(..., min_length=1)


class SetupRequest(_Payload):
    action: Literal["setup"]


ActionRequest = Annotated[
    Union[
        SetupRequest,
        BatchRequest,
        SelectRequest,
        InsertRequest,
        UpdateRequest,
        UpsertRequest,
        DeleteRequest,
    ],
    Field(discriminator="action"),
]

_adapter: TypeAdapter[ActionRequest] = TypeAdapter(ActionRequest)


def _format_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in e['loc'][1:]) or 'body'}: {e['msg']}" for e in exc.errors()
    )


def parse_action(action: str | None, body: Any) -> ActionRequest:
    if action not in ACTIONS:
        raise ActionValidationError(f"Unknown action: {action}")
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ActionValidationError("Request body must be a JSON object")

    try:
        return _adapter.validate_python({**body, "action": action})
    except ValidationError as exc:
        raise ActionValidationError(_format_errors(exc)) from exc

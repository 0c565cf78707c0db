from __future__ import annotations

from fastapi import APIRouter

from ..role_system import RoomRoleSettings, can_join_as_role, validate_role_change
from ..schemas import (
    GridPermissionResponse,
    JoinCheckRequest,
    PermissionContextPayload,
    RoleChangeValidateRequest,
    RoomRoleSettingsPayload,
    RuleResultResponse,
)
from ..spectators import grid_permissions

router = APIRouter(prefix="/roles", tags=["roles"])


def _room_settings(payload: RoomRoleSettingsPayload | None) -> RoomRoleSettings:
    if payload is None:
        return RoomRoleSettings.from_settings()
    return payload.to_settings()


@router.get("/settings/default", response_model=RoomRoleSettingsPayload)
async def default_settings() -> RoomRoleSettingsPayload:
    defaults = RoomRoleSettings.from_settings()
    return RoomRoleSettingsPayload(
        max_collaborators=defaults.max_collaborators,
        allow_spectators=defaults.allow_spectators,
        require_premium_to_host=defaults.require_premium_to_host,
        allow_role_changes=defaults.allow_role_changes,
        default_role=defaults.default_role,
    )


@router.post("/grid", response_model=GridPermissionResponse)
async def grid(payload: PermissionContextPayload) -> GridPermissionResponse:
    result = grid_permissions(payload.to_context())
    return GridPermissionResponse(
        can_edit=result.can_edit,
        can_use_hints=result.can_use_hints,
        can_view_hints=result.can_view_hints,
        can_chat=result.can_chat,
        can_moderate=result.can_moderate,
        reason=result.reason,
    )


@router.post("/join-check", response_model=RuleResultResponse)
async def join_check(payload: JoinCheckRequest) -> RuleResultResponse:
    result = can_join_as_role(
        payload.user.to_info(),
        payload.desired_role,
        _room_settings(payload.settings),
        payload.current_collaborators,
    )
    return RuleResultResponse(allowed=result.allowed, reason=result.reason)


@router.post("/role-change/validate", response_model=RuleResultResponse)
async def role_change_validate(payload: RoleChangeValidateRequest) -> RuleResultResponse:
    result = validate_role_change(
        payload.current_role,
        payload.new_role,
        payload.user.to_info(),
        _room_settings(payload.settings),
    )
    return RuleResultResponse(allowed=result.allowed, reason=result.reason)

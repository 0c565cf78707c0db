from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .lifecycle import RoomSnapshot
from .role_system import RoomRoleSettings, SubscriptionStatus, UserRoleInfo, build_user_role_info
from .roles import PermissionContext, Role, RoomStatus


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from clients are taken as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PermissionContextPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Optional[Role] = None
    is_host: bool = False
    is_online: bool = True
    room_status: RoomStatus = RoomStatus.WAITING
    is_private: bool = False
    has_password: bool = False
    is_premium: bool = False

    def to_context(self) -> PermissionContext:
        return PermissionContext(**self.model_dump())


class PermissionCheckRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    # Free-form so unrecognized actions get a denial instead of a 422.
    action: str = Field(min_length=1, max_length=64)
    context: PermissionContextPayload


class PermissionDecisionResponse(BaseModel):
    action: str
    allowed: bool
    reason: Optional[str] = None
    denial: Optional[str] = None


class RoleActionsResponse(BaseModel):
    role: Role
    actions: list[str]


class MinimumRoleResponse(BaseModel):
    action: str
    minimum_role: Optional[Role] = None


class RoleChangeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    actor_id: str = Field(min_length=1, max_length=64)
    target_id: str = Field(min_length=1, max_length=64)
    actor_role: Role
    from_role: Role
    to_role: Role
    actor_is_host: bool = False


class KickRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    actor_id: str = Field(min_length=1, max_length=64)
    target_id: str = Field(min_length=1, max_length=64)
    actor_role: Role
    target_role: Role
    actor_is_host: bool = False


class RuleResultResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None


class GridPermissionResponse(BaseModel):
    can_edit: bool
    can_use_hints: bool
    can_view_hints: bool
    can_chat: bool
    can_moderate: bool
    reason: Optional[str] = None


class UserRoleInfoPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    user_id: str = Field(min_length=1, max_length=64)
    is_premium: bool = False
    subscription_status: SubscriptionStatus = SubscriptionStatus.EXPIRED
    trial_ends_at: Optional[datetime] = None

    def to_info(self) -> UserRoleInfo:
        return build_user_role_info(
            user_id=self.user_id,
            is_premium=self.is_premium,
            subscription_status=self.subscription_status,
            trial_ends_at=_as_utc(self.trial_ends_at) if self.trial_ends_at else None,
        )


class RoomRoleSettingsPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_collaborators: int = Field(default=5, ge=1, le=100)
    allow_spectators: bool = True
    require_premium_to_host: bool = True
    allow_role_changes: bool = True
    default_role: Role = Role.SPECTATOR

    def to_settings(self) -> RoomRoleSettings:
        return RoomRoleSettings(**self.model_dump())


class JoinCheckRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user: UserRoleInfoPayload
    desired_role: Role
    current_collaborators: int = Field(default=0, ge=0)
    settings: Optional[RoomRoleSettingsPayload] = None


class RoleChangeValidateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user: UserRoleInfoPayload
    current_role: Role
    new_role: Role
    settings: Optional[RoomRoleSettingsPayload] = None


class RoomSnapshotPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    room_code: str = Field(min_length=1, max_length=16)
    status: RoomStatus
    created_at: datetime
    updated_at: datetime
    participant_count: int = Field(ge=0)
    name: Optional[str] = Field(default=None, max_length=120)

    def to_snapshot(self) -> RoomSnapshot:
        data = self.model_dump()
        data["created_at"] = _as_utc(self.created_at)
        data["updated_at"] = _as_utc(self.updated_at)
        return RoomSnapshot(**data)


class TransitionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    room: RoomSnapshotPayload
    to_status: RoomStatus
    reason: str = Field(min_length=1, max_length=256)
    triggered_by: str = Field(default="system", min_length=1, max_length=64)


class LifecycleEventResponse(BaseModel):
    room_code: str
    from_status: RoomStatus
    to_status: RoomStatus
    reason: str
    occurred_at: datetime
    triggered_by: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    title: str
    message: str


class ExpiryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room: RoomSnapshotPayload


class ExpiryResponse(BaseModel):
    room_code: str
    should_expire: bool
    reason: Optional[str] = None

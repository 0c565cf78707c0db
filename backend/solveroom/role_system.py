from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import math
from typing import Optional

from .config import settings
from .permissions import get_actions_for_role
from .roles import Action, Role
from .spectators import RuleResult


class SubscriptionStatus(str, Enum):
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UserRoleInfo:
    user_id: str
    is_premium: bool
    subscription_status: SubscriptionStatus
    trial_ends_at: Optional[datetime] = None
    can_host: bool = False
    can_collaborate: bool = False
    can_spectate: bool = True


@dataclass(frozen=True)
class RoomRoleSettings:
    max_collaborators: int = 5
    allow_spectators: bool = True
    require_premium_to_host: bool = True
    allow_role_changes: bool = True
    default_role: Role = Role.SPECTATOR

    @classmethod
    def from_settings(cls) -> RoomRoleSettings:
        return cls(
            max_collaborators=settings.max_collaborators,
            allow_spectators=settings.allow_spectators,
            require_premium_to_host=settings.require_premium_to_host,
        )


@dataclass(frozen=True)
class RolePermission:
    can_edit_puzzle: bool
    can_send_messages: bool
    can_moderate: bool
    can_kick_users: bool
    can_change_roles: bool
    can_host: bool
    can_invite: bool


def _has_entitlement(
    is_premium: bool,
    status: SubscriptionStatus,
    trial_ends_at: Optional[datetime],
    now: datetime,
) -> bool:
    if status is SubscriptionStatus.TRIAL:
        return trial_ends_at is not None and trial_ends_at > now
    return is_premium and status is SubscriptionStatus.ACTIVE


def build_user_role_info(
    user_id: str,
    is_premium: bool,
    subscription_status: SubscriptionStatus | str,
    trial_ends_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> UserRoleInfo:
    status = SubscriptionStatus(subscription_status)
    entitled = _has_entitlement(is_premium, status, trial_ends_at, now or _utc_now())
    return UserRoleInfo(
        user_id=user_id,
        is_premium=is_premium,
        subscription_status=status,
        trial_ends_at=trial_ends_at,
        can_host=entitled,
        can_collaborate=entitled,
        can_spectate=True,
    )


def default_role_for(user_info: UserRoleInfo, room_settings: Optional[RoomRoleSettings] = None) -> Role:
    """Role given to a participant when they join a room."""
    room_settings = room_settings or RoomRoleSettings.from_settings()
    if user_info.can_collaborate:
        return Role.PLAYER
    return room_settings.default_role


def role_permissions(role: Role, is_host: bool = False) -> RolePermission:
    actions = get_actions_for_role(Role.HOST if is_host else role)
    return RolePermission(
        can_edit_puzzle=Action.UPDATE_CELL in actions,
        can_send_messages=Action.SEND_MESSAGE in actions,
        can_moderate=Action.MODERATE_CHAT in actions,
        can_kick_users=Action.KICK_PLAYER in actions,
        can_change_roles=Action.CHANGE_ROLE in actions,
        can_host=is_host or role is Role.HOST,
        can_invite=Action.INVITE_PLAYERS in actions,
    )


def _eligible_for(role: Role, user_info: UserRoleInfo, room_settings: RoomRoleSettings) -> Optional[str]:
    if role is Role.HOST:
        if room_settings.require_premium_to_host and not user_info.can_host:
            return "Premium subscription required to host rooms"
    elif role is Role.PLAYER:
        if not user_info.can_collaborate:
            return "Premium subscription required to collaborate on puzzles"
    elif role is Role.MODERATOR:
        if not user_info.can_host and not user_info.can_collaborate:
            return "Premium subscription required to moderate"
    elif role is Role.SPECTATOR:
        if not room_settings.allow_spectators:
            return "Spectators are not allowed in this room"
        if not user_info.can_spectate:
            return "Spectator access not available"
    return None


def can_join_as_role(
    user_info: UserRoleInfo,
    desired_role: Role,
    room_settings: RoomRoleSettings,
    current_collaborators: int,
) -> RuleResult:
    problem = _eligible_for(desired_role, user_info, room_settings)
    if problem:
        return RuleResult(False, problem)

    if desired_role is not Role.SPECTATOR and current_collaborators >= room_settings.max_collaborators:
        return RuleResult(
            False,
            f"Room is at maximum capacity ({room_settings.max_collaborators} collaborators)",
        )
    return RuleResult(True)


def validate_role_change(
    current_role: Role,
    new_role: Role,
    user_info: UserRoleInfo,
    room_settings: RoomRoleSettings,
) -> RuleResult:
    if not room_settings.allow_role_changes:
        return RuleResult(False, "Role changes are disabled for this room")
    if current_role is new_role:
        return RuleResult(False, "User already has this role")

    problem = _eligible_for(new_role, user_info, room_settings)
    if problem:
        return RuleResult(False, problem)
    return RuleResult(True)


def can_upgrade_to_premium(user_info: UserRoleInfo) -> bool:
    return not user_info.is_premium or user_info.subscription_status is SubscriptionStatus.EXPIRED


def upgrade_prompt(user_info: UserRoleInfo, now: Optional[datetime] = None) -> str:
    status = user_info.subscription_status
    if user_info.is_premium and status is SubscriptionStatus.ACTIVE:
        return ""

    if status is SubscriptionStatus.TRIAL and user_info.trial_ends_at:
        remaining = (user_info.trial_ends_at - (now or _utc_now())).total_seconds()
        days_left = max(0, math.ceil(remaining / 86400))
        return f"Your trial expires in {days_left} days. Upgrade to continue collaborating."

    if status is SubscriptionStatus.CANCELLED:
        return "Your subscription was cancelled. Reactivate to continue collaborating."

    return "Upgrade to Premium to collaborate on puzzles and host rooms."

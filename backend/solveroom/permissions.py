from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Optional

from .errors import PermissionDeniedError
from .roles import Action, PermissionContext, Role, RoomStatus

logger = logging.getLogger("solveroom.permissions")


class Denial(str, Enum):
    UNKNOWN_ACTION = "unknown_action"
    OFFLINE = "offline"
    ROOM_EXPIRED = "room_expired"
    ROOM_COMPLETED = "room_completed"
    INSUFFICIENT_ROLE = "insufficient_role"
    SESSION_NOT_ACTIVE = "session_not_active"
    PREMIUM_REQUIRED = "premium_required"


@dataclass(frozen=True)
class ActionRule:
    minimum_role: Optional[Role]
    moderator_eligible: bool = False
    requires_active_session: bool = False
    spectator_requires_premium: bool = False


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    reason: Optional[str] = None
    denial: Optional[Denial] = None


# minimum_role=None means any caller, including non-participants.
ACTION_RULES: dict[Action, ActionRule] = {
    Action.VIEW_ROOM: ActionRule(Role.SPECTATOR),
    Action.JOIN_ROOM: ActionRule(Role.SPECTATOR),
    Action.LEAVE_ROOM: ActionRule(Role.SPECTATOR),
    Action.VIEW_PARTICIPANTS: ActionRule(Role.SPECTATOR),
    Action.SEND_MESSAGE: ActionRule(Role.SPECTATOR, spectator_requires_premium=True),
    Action.UPDATE_CELL: ActionRule(Role.PLAYER, requires_active_session=True),
    Action.USE_HINTS: ActionRule(Role.PLAYER, requires_active_session=True),
    Action.INVITE_PLAYERS: ActionRule(Role.PLAYER),
    Action.MODERATE_CHAT: ActionRule(Role.HOST, moderator_eligible=True),
    Action.KICK_PLAYER: ActionRule(Role.HOST, moderator_eligible=True),
    Action.CHANGE_ROLE: ActionRule(Role.HOST, moderator_eligible=True),
    Action.MANAGE_SESSION: ActionRule(Role.HOST, moderator_eligible=True),
    Action.UPDATE_ROOM_SETTINGS: ActionRule(Role.HOST, moderator_eligible=True),
    Action.PROMOTE: ActionRule(Role.HOST),
    Action.DEMOTE: ActionRule(Role.HOST),
    Action.REQUEST_JOIN: ActionRule(None),
}

OFFLINE_ACTIONS = frozenset(
    {Action.VIEW_ROOM, Action.VIEW_PARTICIPANTS, Action.JOIN_ROOM, Action.LEAVE_ROOM}
)

# Rooms in these states only accept the listed actions, whatever the role.
STATUS_RESTRICTED_ACTIONS: dict[RoomStatus, frozenset[Action]] = {
    RoomStatus.EXPIRED: frozenset({Action.VIEW_ROOM, Action.VIEW_PARTICIPANTS}),
    RoomStatus.COMPLETED: frozenset(
        {Action.VIEW_ROOM, Action.VIEW_PARTICIPANTS, Action.SEND_MESSAGE}
    ),
}

_STATUS_DENIALS = {
    RoomStatus.EXPIRED: (Denial.ROOM_EXPIRED, "Room has expired; only viewing is available"),
    RoomStatus.COMPLETED: (
        Denial.ROOM_COMPLETED,
        "Room session completed; only viewing and chat are available",
    ),
}

# MODERATOR sits at PLAYER rank here and only reaches HOST rank for
# moderator-eligible actions.
_BASE_RANK = {
    Role.SPECTATOR: 0,
    Role.PLAYER: 1,
    Role.MODERATOR: 1,
    Role.HOST: 2,
}


def _coerce_role(value: Role | str | None) -> Optional[Role]:
    if value is None:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def _coerce_action(value: Action | str) -> Optional[Action]:
    try:
        return Action(value)
    except ValueError:
        return None


def _effective_role(context: PermissionContext) -> Optional[Role]:
    return Role.HOST if context.is_host else context.role


def _role_satisfies(role: Optional[Role], rule: ActionRule) -> bool:
    if rule.minimum_role is None:
        return True
    if role is None:
        return False
    rank = _BASE_RANK[role]
    if role is Role.MODERATOR and rule.moderator_eligible:
        rank = _BASE_RANK[Role.HOST]
    return rank >= _BASE_RANK[rule.minimum_role]


def _deny(denial: Denial, reason: str) -> PermissionDecision:
    return PermissionDecision(allowed=False, reason=reason, denial=denial)


def validate_action(action: Action | str, context: PermissionContext) -> PermissionDecision:
    """Decide whether the context may perform the action.

    Gates run in a fixed order and the first failing one supplies the reason:
    unknown action, offline, room status, role, active session, premium.
    """
    parsed = _coerce_action(action)
    if parsed is None:
        label = action.value if isinstance(action, Enum) else action
        return _deny(Denial.UNKNOWN_ACTION, f"Action '{label}' is not recognized")

    if not context.is_online and parsed not in OFFLINE_ACTIONS:
        return _deny(
            Denial.OFFLINE,
            "User is offline; only viewing, joining and leaving the room are available",
        )

    allowed_in_status = STATUS_RESTRICTED_ACTIONS.get(context.room_status)
    if allowed_in_status is not None and parsed not in allowed_in_status:
        denial, reason = _STATUS_DENIALS[context.room_status]
        return _deny(denial, reason)

    rule = ACTION_RULES[parsed]
    role = _effective_role(context)
    if not _role_satisfies(role, rule):
        return _deny(
            Denial.INSUFFICIENT_ROLE,
            f"Action '{parsed.value}' requires {rule.minimum_role.value} role or higher",
        )

    if rule.requires_active_session and context.room_status is not RoomStatus.ACTIVE:
        return _deny(
            Denial.SESSION_NOT_ACTIVE,
            f"Session is not active; '{parsed.value}' is only available while the room is ACTIVE",
        )

    if rule.spectator_requires_premium and role is Role.SPECTATOR and not context.is_premium:
        return _deny(
            Denial.PREMIUM_REQUIRED,
            f"Premium subscription required for spectators to use '{parsed.value}'",
        )

    return PermissionDecision(allowed=True)


def can_perform_action(action: Action | str, context: PermissionContext) -> bool:
    return validate_action(action, context).allowed


def require_action(action: Action | str, context: PermissionContext) -> None:
    decision = validate_action(action, context)
    if decision.allowed:
        return
    logger.info(
        "Permission denied",
        extra={
            "event": "permission_denied",
            "action": str(getattr(action, "value", action)),
            "role": context.role.value if context.role else None,
            "denial": decision.denial.value,
            "reason": decision.reason,
        },
    )
    raise PermissionDeniedError(decision)


def get_minimum_role_for_action(action: Action | str) -> Optional[Role]:
    """Return the static minimum role, or None when no role is required.

    Unknown actions also yield None; use validate_action to tell them apart.
    """
    parsed = _coerce_action(action)
    if parsed is None:
        return None
    return ACTION_RULES[parsed].minimum_role


def is_role_higher_or_equal(role_a: Role | str, role_b: Role | str) -> bool:
    a = _coerce_role(role_a)
    b = _coerce_role(role_b)
    if a is None or b is None:
        return False
    return _BASE_RANK[a] >= _BASE_RANK[b]


def get_actions_for_role(role: Role | str) -> frozenset[Action]:
    parsed = _coerce_role(role)
    if parsed is None:
        return frozenset()
    return frozenset(action for action, rule in ACTION_RULES.items() if _role_satisfies(parsed, rule))


def can_change_role(
    actor_role: Role | str | None,
    from_role: Role | str,
    to_role: Role | str,
    actor_is_host: bool,
) -> bool:
    # The target is another participant; self role changes are rejected by callers.
    if not actor_is_host or _coerce_role(actor_role) is not Role.HOST:
        return False
    return _coerce_role(from_role) is not None and _coerce_role(to_role) is not None


def can_kick_user(actor_role: Role | str | None, target_role: Role | str, actor_is_host: bool) -> bool:
    # Callers compare actor and target identity before asking.
    if not actor_is_host or _coerce_role(actor_role) is None:
        return False
    return _coerce_role(target_role) is not None

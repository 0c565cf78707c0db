from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from .permissions import can_perform_action
from .roles import Action, PermissionContext, Role, RoomStatus


@dataclass(frozen=True)
class GridEditPermission:
    can_edit: bool
    can_use_hints: bool
    can_view_hints: bool
    can_chat: bool
    can_moderate: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class RuleResult:
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class SpectatorRestrictions:
    show_upgrade_prompt: bool
    disable_cell_editing: bool
    disable_hint_usage: bool
    show_spectator_badge: bool
    allow_chat: bool


@dataclass(frozen=True)
class SpectatorCountInfo:
    spectator_count: int
    online_spectators: int
    player_count: int
    online_players: int


class ParticipantPresence(Protocol):
    role: Role
    is_online: bool


def grid_permissions(context: PermissionContext) -> GridEditPermission:
    """Bundle the grid-related decisions the puzzle view needs at once."""
    if not context.is_online:
        return GridEditPermission(False, False, False, False, False, reason="User is offline")

    if context.room_status is RoomStatus.EXPIRED:
        return GridEditPermission(False, False, True, False, False, reason="Room has expired")

    if context.room_status is RoomStatus.COMPLETED:
        return GridEditPermission(False, False, True, True, False, reason="Room session completed")

    can_edit = can_perform_action(Action.UPDATE_CELL, context)
    reason = None
    if context.role is Role.SPECTATOR and not context.is_host:
        reason = "Spectators have view-only access"
    elif context.role is None and not context.is_host:
        reason = "Not a participant of this room"
    elif not can_edit:
        reason = "Session not active"

    return GridEditPermission(
        can_edit=can_edit,
        can_use_hints=can_perform_action(Action.USE_HINTS, context),
        can_view_hints=True,
        can_chat=can_perform_action(Action.SEND_MESSAGE, context),
        can_moderate=can_perform_action(Action.MODERATE_CHAT, context),
        reason=reason,
    )


def can_upgrade_to_player(context: PermissionContext) -> RuleResult:
    if context.role is not Role.SPECTATOR:
        return RuleResult(False, "User is not a spectator")
    if context.room_status in {RoomStatus.COMPLETED, RoomStatus.EXPIRED}:
        return RuleResult(False, "Cannot upgrade in completed or expired rooms")
    if not context.is_premium:
        return RuleResult(False, "Premium subscription required to upgrade to player")
    return RuleResult(True)


def can_demote_to_spectator(actor: PermissionContext, target_role: Role) -> RuleResult:
    if not actor.is_host:
        return RuleResult(False, "Only hosts can change participant roles")
    if actor.role is not Role.HOST:
        return RuleResult(False, "Only hosts can demote participants")
    if target_role is Role.HOST:
        return RuleResult(False, "Cannot demote the host")
    if target_role is Role.SPECTATOR:
        return RuleResult(False, "Participant is already a spectator")
    return RuleResult(True)


def spectator_restrictions(context: PermissionContext) -> SpectatorRestrictions:
    is_spectator = context.role is Role.SPECTATOR
    outsider = context.role is None and not context.is_host
    return SpectatorRestrictions(
        show_upgrade_prompt=is_spectator and context.is_premium,
        disable_cell_editing=is_spectator or outsider,
        disable_hint_usage=is_spectator or outsider,
        show_spectator_badge=is_spectator,
        allow_chat=False if outsider else (context.is_premium if is_spectator else True),
    )


def can_view_hints(context: PermissionContext) -> bool:
    # Hints stay readable after completion, not after expiry.
    return context.room_status is not RoomStatus.EXPIRED


def spectator_count_info(participants: Iterable[ParticipantPresence]) -> SpectatorCountInfo:
    spectators = online_spectators = players = online_players = 0
    for participant in participants:
        if participant.role is Role.SPECTATOR:
            spectators += 1
            online_spectators += int(participant.is_online)
        else:
            players += 1
            online_players += int(participant.is_online)
    return SpectatorCountInfo(
        spectator_count=spectators,
        online_spectators=online_spectators,
        player_count=players,
        online_players=online_players,
    )

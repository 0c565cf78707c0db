from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    HOST = "HOST"
    MODERATOR = "MODERATOR"
    PLAYER = "PLAYER"
    SPECTATOR = "SPECTATOR"


class RoomStatus(str, Enum):
    WAITING = "WAITING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class Action(str, Enum):
    VIEW_ROOM = "view_room"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    UPDATE_CELL = "update_cell"
    USE_HINTS = "use_hints"
    SEND_MESSAGE = "send_message"
    MODERATE_CHAT = "moderate_chat"
    KICK_PLAYER = "kick_player"
    CHANGE_ROLE = "change_role"
    MANAGE_SESSION = "manage_session"
    UPDATE_ROOM_SETTINGS = "update_room_settings"
    VIEW_PARTICIPANTS = "view_participants"
    INVITE_PLAYERS = "invite_players"
    REQUEST_JOIN = "request_join"
    PROMOTE = "promote"
    DEMOTE = "demote"


@dataclass(frozen=True)
class PermissionContext:
    """Snapshot of one participant's standing in a room at check time."""

    # None for someone who is not a participant of the room.
    role: Optional[Role]
    is_host: bool = False
    is_online: bool = True
    room_status: RoomStatus = RoomStatus.WAITING
    is_private: bool = False
    has_password: bool = False
    is_premium: bool = False


def create_permission_context(
    role: Role | str | None,
    is_host: bool = False,
    is_online: bool = True,
    room_status: RoomStatus | str = RoomStatus.WAITING,
    is_private: bool = False,
    has_password: bool = False,
    is_premium: bool = False,
) -> PermissionContext:
    return PermissionContext(
        role=Role(role) if role is not None else None,
        is_host=is_host,
        is_online=is_online,
        room_status=RoomStatus(room_status),
        is_private=is_private,
        has_password=has_password,
        is_premium=is_premium,
    )

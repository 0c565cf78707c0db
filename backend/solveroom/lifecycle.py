from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Optional

from .config import settings
from .errors import InvalidTransitionError
from .logging_utils import session_logger
from .roles import RoomStatus

logger = logging.getLogger("solveroom.lifecycle")

VALID_TRANSITIONS: dict[RoomStatus, frozenset[RoomStatus]] = {
    RoomStatus.WAITING: frozenset({RoomStatus.ACTIVE, RoomStatus.EXPIRED}),
    RoomStatus.ACTIVE: frozenset({RoomStatus.WAITING, RoomStatus.COMPLETED, RoomStatus.EXPIRED}),
    RoomStatus.COMPLETED: frozenset({RoomStatus.EXPIRED}),
    RoomStatus.EXPIRED: frozenset(),
}

_OPEN_STATUSES = frozenset({RoomStatus.WAITING, RoomStatus.ACTIVE})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LifecycleConfig:
    max_inactive_minutes: int = 30
    max_room_age_days: int = 7
    auto_expire_empty_rooms: bool = True
    auto_expire_inactive_rooms: bool = True

    @classmethod
    def from_settings(cls) -> LifecycleConfig:
        return cls(
            max_inactive_minutes=settings.room_max_inactive_minutes,
            max_room_age_days=settings.room_max_age_days,
        )


@dataclass(frozen=True)
class RoomSnapshot:
    room_code: str
    status: RoomStatus
    created_at: datetime
    updated_at: datetime
    participant_count: int
    name: Optional[str] = None


@dataclass(frozen=True)
class LifecycleEvent:
    room_code: str
    from_status: RoomStatus
    to_status: RoomStatus
    reason: str
    occurred_at: datetime
    triggered_by: str = "system"
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: dict[str, Any] = field(default_factory=dict)


def is_valid_transition(from_status: RoomStatus, to_status: RoomStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, frozenset())


def expiry_reason(
    room: RoomSnapshot,
    now: Optional[datetime] = None,
    config: Optional[LifecycleConfig] = None,
) -> Optional[str]:
    """Return why an open room should expire, or None if it should stay."""
    if room.status not in _OPEN_STATUSES:
        return None

    now = now or _utc_now()
    config = config or LifecycleConfig.from_settings()

    if config.auto_expire_inactive_rooms:
        if room.created_at < now - timedelta(days=config.max_room_age_days):
            return "Room expired due to age"
        if room.updated_at < now - timedelta(minutes=config.max_inactive_minutes):
            return "Room expired due to inactivity"

    if config.auto_expire_empty_rooms and room.participant_count == 0:
        return "Room expired - no participants"
    return None


def transition(
    room: RoomSnapshot,
    to_status: RoomStatus,
    reason: str,
    now: Optional[datetime] = None,
    triggered_by: str = "system",
) -> LifecycleEvent:
    room_log = session_logger(logger, room.room_code)
    if not is_valid_transition(room.status, to_status):
        room_log.warning(
            "Invalid room transition",
            extra={"event": "invalid_transition", "status": to_status.value},
        )
        raise InvalidTransitionError(room.status, to_status)

    now = now or _utc_now()
    started_at = now if room.status is RoomStatus.WAITING and to_status is RoomStatus.ACTIVE else None
    completed_at = now if to_status in {RoomStatus.COMPLETED, RoomStatus.EXPIRED} else None

    room_log.info(
        "Room transitioned",
        extra={
            "event": "room_transition",
            "status": to_status.value,
            "reason": reason,
        },
    )
    return LifecycleEvent(
        room_code=room.room_code,
        from_status=room.status,
        to_status=to_status,
        reason=reason,
        occurred_at=now,
        triggered_by=triggered_by,
        started_at=started_at,
        completed_at=completed_at,
        metadata={"participant_count": room.participant_count},
    )


def notification_title(status: RoomStatus) -> str:
    return {
        RoomStatus.ACTIVE: "Session Started",
        RoomStatus.COMPLETED: "Session Completed",
        RoomStatus.EXPIRED: "Room Expired",
    }.get(status, "Room Status Changed")


def notification_message(status: RoomStatus, reason: str, room_name: str) -> str:
    if status is RoomStatus.ACTIVE:
        return f'The session in "{room_name}" has started!'
    if status is RoomStatus.COMPLETED:
        return f'The session in "{room_name}" has been completed.'
    if status is RoomStatus.EXPIRED:
        return f'The room "{room_name}" has expired. Reason: {reason}'
    return f'The room "{room_name}" status has changed.'

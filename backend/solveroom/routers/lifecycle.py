from __future__ import annotations

from fastapi import APIRouter

from ..lifecycle import expiry_reason, notification_message, notification_title, transition
from ..schemas import ExpiryRequest, ExpiryResponse, LifecycleEventResponse, TransitionRequest

router = APIRouter(prefix="/lifecycle", tags=["lifecycle"])


@router.post("/transition", response_model=LifecycleEventResponse)
async def transition_room(payload: TransitionRequest) -> LifecycleEventResponse:
    """Validate a status change and describe the resulting lifecycle event."""

    room = payload.room.to_snapshot()
    event = transition(room, payload.to_status, payload.reason, triggered_by=payload.triggered_by)
    room_name = room.name or room.room_code
    return LifecycleEventResponse(
        room_code=event.room_code,
        from_status=event.from_status,
        to_status=event.to_status,
        reason=event.reason,
        occurred_at=event.occurred_at,
        triggered_by=event.triggered_by,
        started_at=event.started_at,
        completed_at=event.completed_at,
        title=notification_title(event.to_status),
        message=notification_message(event.to_status, event.reason, room_name),
    )


@router.post("/expiry", response_model=ExpiryResponse)
async def room_expiry(payload: ExpiryRequest) -> ExpiryResponse:
    room = payload.room.to_snapshot()
    reason = expiry_reason(room)
    return ExpiryResponse(room_code=room.room_code, should_expire=reason is not None, reason=reason)

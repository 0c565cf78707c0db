from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .permissions import PermissionDecision
    from .roles import RoomStatus


class SolveRoomError(RuntimeError):
    """Base error for room rule violations raised on request."""


class PermissionDeniedError(SolveRoomError):
    """Raised by require_action when the decision is a denial."""

    def __init__(self, decision: PermissionDecision) -> None:
        super().__init__(decision.reason or "Permission denied")
        self.decision = decision


class InvalidTransitionError(SolveRoomError):
    """Raised when a room status change is not allowed."""

    def __init__(self, from_status: RoomStatus, to_status: RoomStatus) -> None:
        super().__init__(f"Cannot move room from {from_status.value} to {to_status.value}")
        self.from_status = from_status
        self.to_status = to_status

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .logging_utils import session_logger
from .metrics import ACTIVE_PREDICTION_SESSIONS
from .prediction import ClientPrediction

logger = logging.getLogger("solveroom.sessions")


PredictionFactory = Callable[[], ClientPrediction]


class PredictionSessionManager:
    """Owns one ClientPrediction per connected client in a room."""

    def __init__(self, factory: Optional[PredictionFactory] = None) -> None:
        self._factory = factory or ClientPrediction
        self._sessions: dict[str, dict[str, ClientPrediction]] = {}
        self._lock = asyncio.Lock()

    async def open(self, room_code: str, client_id: str) -> ClientPrediction:
        async with self._lock:
            room = self._sessions.setdefault(room_code.upper(), {})
            engine = room.get(client_id)
            if engine is None:
                engine = self._factory()
                room[client_id] = engine
                session_logger(logger, room_code, client_id).info(
                    "Prediction session opened", extra={"event": "session_opened"}
                )
            ACTIVE_PREDICTION_SESSIONS.set(self._count())
            return engine

    async def close(self, room_code: str, client_id: str) -> bool:
        async with self._lock:
            room = self._sessions.get(room_code.upper())
            if not room:
                return False

            engine = room.pop(client_id, None)
            if engine is not None:
                # Speculative state means nothing once the connection is gone.
                engine.clear_all_predictions()
            if not room:
                self._sessions.pop(room_code.upper(), None)
            ACTIVE_PREDICTION_SESSIONS.set(self._count())

        if engine is None:
            return False
        session_logger(logger, room_code, client_id).info(
            "Prediction session closed", extra={"event": "session_closed"}
        )
        return True

    def get(self, room_code: str, client_id: str) -> Optional[ClientPrediction]:
        return self._sessions.get(room_code.upper(), {}).get(client_id)

    def room_session_count(self, room_code: str) -> int:
        return len(self._sessions.get(room_code.upper(), {}))

    def _count(self) -> int:
        return sum(len(room) for room in self._sessions.values())

    def session_count(self) -> int:
        return self._count()

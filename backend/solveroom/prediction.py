from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, replace
import logging
import time
from typing import Any, Callable, Optional, Protocol

from .config import settings
from .metrics import PREDICTION_CONFIRMATIONS_TOTAL, PREDICTION_ROLLBACKS_TOTAL, PREDICTIONS_TOTAL

logger = logging.getLogger("solveroom.prediction")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """The part of an asyncio event loop the engine needs."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


@dataclass(frozen=True)
class PredictedUpdate:
    cell_id: str
    value: str
    client_id: str
    timestamp: float
    rollback_value: str = ""
    confirmed: bool = False
    confirmed_at: Optional[float] = None


@dataclass(frozen=True)
class PredictionStats:
    active_predictions: int
    total_rollbacks: int
    average_prediction_time: float


RollbackListener = Callable[[PredictedUpdate], None]


class ClientPrediction:
    """Speculative cell edits awaiting confirmation from the authoritative store.

    Owned by one client session and driven from a single event loop. Every
    pending prediction holds its own timer; when it is not confirmed in time it
    is rolled back and recorded in a bounded history.
    """

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        max_history: Optional[int] = None,
        loop: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.time,
        on_rollback: Optional[RollbackListener] = None,
    ) -> None:
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.prediction_timeout_seconds
        )
        self.max_history = max_history if max_history is not None else settings.prediction_max_history
        self._loop = loop
        self._clock = clock
        self._on_rollback = on_rollback
        self._predictions: dict[str, PredictedUpdate] = {}
        self._timers: dict[str, TimerHandle] = {}
        self._rollbacks: deque[PredictedUpdate] = deque(maxlen=self.max_history)
        self._confirmed: deque[PredictedUpdate] = deque(maxlen=self.max_history)

    def _scheduler(self) -> Scheduler:
        # Only an injected loop is pinned; otherwise use whichever loop is running now.
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def _cancel_timer(self, cell_id: str) -> None:
        handle = self._timers.pop(cell_id, None)
        if handle is not None:
            handle.cancel()

    def _on_timeout(self, prediction: PredictedUpdate) -> None:
        # A newer prediction for the same cell owns the slot now.
        if self._predictions.get(prediction.cell_id) is not prediction:
            return
        self._timers.pop(prediction.cell_id, None)
        logger.info(
            "Prediction timed out",
            extra={
                "event": "prediction_timeout",
                "cell_id": prediction.cell_id,
                "client_id": prediction.client_id,
            },
        )
        self._rollback(prediction.cell_id, cause="timeout")

    def _rollback(self, cell_id: str, cause: str) -> Optional[PredictedUpdate]:
        prediction = self._predictions.pop(cell_id, None)
        if prediction is None:
            return None

        self._cancel_timer(cell_id)
        self._rollbacks.append(prediction)
        PREDICTION_ROLLBACKS_TOTAL.labels(cause=cause).inc()

        if self._on_rollback is not None:
            try:
                self._on_rollback(prediction)
            except Exception:
                logger.exception(
                    "Rollback listener failed",
                    extra={"event": "rollback_listener_failed", "cell_id": cell_id},
                )
        return prediction

    def predict_update(
        self,
        cell_id: str,
        value: str,
        client_id: str,
        current_value: Optional[str] = None,
    ) -> PredictedUpdate:
        scheduler = self._scheduler()
        prediction = PredictedUpdate(
            cell_id=cell_id,
            value=value,
            client_id=client_id,
            timestamp=self._clock(),
            rollback_value=current_value or "",
        )

        self._cancel_timer(cell_id)
        self._predictions[cell_id] = prediction
        self._timers[cell_id] = scheduler.call_later(
            self.timeout_seconds, self._on_timeout, prediction
        )
        PREDICTIONS_TOTAL.inc()
        return prediction

    def confirm_prediction(
        self,
        cell_id: str,
        server_value: str,
        server_timestamp: Optional[float] = None,
    ) -> bool:
        """Reconcile a pending prediction with the authoritative value.

        The decision is by value equality only; server_timestamp is accepted
        for bookkeeping by callers.
        """
        prediction = self._predictions.get(cell_id)
        if prediction is None:
            return False

        if prediction.value != server_value:
            logger.debug(
                "Prediction rejected by server value",
                extra={"event": "prediction_mismatch", "cell_id": cell_id, "client_id": prediction.client_id},
            )
            self._rollback(cell_id, cause="mismatch")
            return False

        self._cancel_timer(cell_id)
        del self._predictions[cell_id]
        self._confirmed.append(replace(prediction, confirmed=True, confirmed_at=self._clock()))
        PREDICTION_CONFIRMATIONS_TOTAL.inc()
        return True

    def rollback_prediction(self, cell_id: str) -> Optional[PredictedUpdate]:
        return self._rollback(cell_id, cause="explicit")

    def get_predictions(self) -> dict[str, PredictedUpdate]:
        return dict(self._predictions)

    def get_rollbacks(self) -> list[PredictedUpdate]:
        return list(self._rollbacks)

    def clear_old_rollbacks(self, max_age_seconds: Optional[float] = None) -> None:
        max_age = max_age_seconds if max_age_seconds is not None else settings.rollback_max_age_seconds
        now = self._clock()
        kept = [item for item in self._rollbacks if now - item.timestamp < max_age]
        self._rollbacks = deque(kept, maxlen=self.max_history)

    def has_prediction(self, cell_id: str) -> bool:
        return cell_id in self._predictions

    def get_prediction(self, cell_id: str) -> Optional[PredictedUpdate]:
        return self._predictions.get(cell_id)

    def clear_all_predictions(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._predictions.clear()

    def get_stats(self) -> PredictionStats:
        confirmed = list(self._confirmed)
        average = 0.0
        if confirmed:
            average = sum(item.confirmed_at - item.timestamp for item in confirmed) / len(confirmed)
        return PredictionStats(
            active_predictions=len(self._predictions),
            total_rollbacks=len(self._rollbacks),
            average_prediction_time=average,
        )

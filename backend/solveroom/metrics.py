from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

REQUESTS_TOTAL = Counter(
    "requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
PERMISSION_CHECKS_TOTAL = Counter(
    "permission_checks_total",
    "Permission decisions by action and outcome",
    ["action", "allowed"],
)
PERMISSION_DENIALS_TOTAL = Counter(
    "permission_denials_total",
    "Denied permission checks by denial kind",
    ["denial"],
)
PREDICTIONS_TOTAL = Counter("predictions_total", "Speculative cell edits recorded")
PREDICTION_CONFIRMATIONS_TOTAL = Counter(
    "prediction_confirmations_total",
    "Speculative edits confirmed by the authoritative value",
)
PREDICTION_ROLLBACKS_TOTAL = Counter(
    "prediction_rollbacks_total",
    "Speculative edits rolled back",
    ["cause"],
)
ACTIVE_PREDICTION_SESSIONS = Gauge(
    "active_prediction_sessions",
    "Number of open client prediction sessions",
)


__all__ = [
    "CONTENT_TYPE_LATEST",
    "REQUESTS_TOTAL",
    "PERMISSION_CHECKS_TOTAL",
    "PERMISSION_DENIALS_TOTAL",
    "PREDICTIONS_TOTAL",
    "PREDICTION_CONFIRMATIONS_TOTAL",
    "PREDICTION_ROLLBACKS_TOTAL",
    "ACTIVE_PREDICTION_SESSIONS",
    "generate_latest",
]

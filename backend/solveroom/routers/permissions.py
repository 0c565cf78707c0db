from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from ..errors import PermissionDeniedError
from ..metrics import PERMISSION_CHECKS_TOTAL, PERMISSION_DENIALS_TOTAL
from ..permissions import (
    PermissionDecision,
    can_change_role,
    can_kick_user,
    get_actions_for_role,
    get_minimum_role_for_action,
    validate_action,
)
from ..roles import Action, Role
from ..schemas import (
    KickRequest,
    MinimumRoleResponse,
    PermissionCheckRequest,
    PermissionDecisionResponse,
    RoleActionsResponse,
    RoleChangeRequest,
    RuleResultResponse,
)

router = APIRouter(prefix="/permissions", tags=["permissions"])
logger = logging.getLogger("solveroom.api.permissions")

_KNOWN_ACTIONS = {action.value for action in Action}


def _record(action: str, decision: PermissionDecision) -> None:
    label = action if action in _KNOWN_ACTIONS else "unknown"
    PERMISSION_CHECKS_TOTAL.labels(action=label, allowed=str(decision.allowed).lower()).inc()
    if decision.denial is not None:
        PERMISSION_DENIALS_TOTAL.labels(denial=decision.denial.value).inc()


def _decision_response(action: str, decision: PermissionDecision) -> PermissionDecisionResponse:
    return PermissionDecisionResponse(
        action=action,
        allowed=decision.allowed,
        reason=decision.reason,
        denial=decision.denial.value if decision.denial else None,
    )


@router.post("/check", response_model=PermissionDecisionResponse)
async def check_permission(payload: PermissionCheckRequest) -> PermissionDecisionResponse:
    """Return the decision and, when denied, the first failing reason."""

    decision = validate_action(payload.action, payload.context.to_context())
    _record(payload.action, decision)
    return _decision_response(payload.action, decision)


@router.post("/enforce", response_model=PermissionDecisionResponse)
async def enforce_permission(payload: PermissionCheckRequest) -> PermissionDecisionResponse:
    """Like /check, but a denial becomes a 403 via PermissionDeniedError."""

    decision = validate_action(payload.action, payload.context.to_context())
    _record(payload.action, decision)
    if not decision.allowed:
        logger.info(
            "Permission enforcement denied",
            extra={
                "event": "permission_denied",
                "action": payload.action,
                "denial": decision.denial.value,
                "reason": decision.reason,
            },
        )
        raise PermissionDeniedError(decision)
    return _decision_response(payload.action, decision)


@router.get("/roles/{role}/actions", response_model=RoleActionsResponse)
async def actions_for_role(role: Role) -> RoleActionsResponse:
    actions = sorted(action.value for action in get_actions_for_role(role))
    return RoleActionsResponse(role=role, actions=actions)


@router.get("/actions/{action}/minimum-role", response_model=MinimumRoleResponse)
async def minimum_role(action: str) -> MinimumRoleResponse:
    if action not in _KNOWN_ACTIONS:
        raise HTTPException(status_code=404, detail=f"Action '{action}' is not recognized")
    return MinimumRoleResponse(action=action, minimum_role=get_minimum_role_for_action(action))


@router.post("/role-change", response_model=RuleResultResponse)
async def check_role_change(payload: RoleChangeRequest) -> RuleResultResponse:
    if payload.actor_id == payload.target_id:
        return RuleResultResponse(allowed=False, reason="Host cannot change their own role")
    allowed = can_change_role(payload.actor_role, payload.from_role, payload.to_role, payload.actor_is_host)
    if not allowed:
        return RuleResultResponse(allowed=False, reason="Only the host can change roles")
    return RuleResultResponse(allowed=True)


@router.post("/kick", response_model=RuleResultResponse)
async def check_kick(payload: KickRequest) -> RuleResultResponse:
    if payload.actor_id == payload.target_id:
        logger.info(
            "Self kick rejected",
            extra={"event": "self_kick_rejected", "role": payload.actor_role.value},
        )
        return RuleResultResponse(allowed=False, reason="You cannot kick yourself")
    if not can_kick_user(payload.actor_role, payload.target_role, payload.actor_is_host):
        return RuleResultResponse(allowed=False, reason="Only the host can kick participants")
    return RuleResultResponse(allowed=True)

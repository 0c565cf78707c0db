import pytest

from solveroom.errors import PermissionDeniedError
from solveroom.permissions import (
    ACTION_RULES,
    OFFLINE_ACTIONS,
    Denial,
    can_change_role,
    can_kick_user,
    can_perform_action,
    get_actions_for_role,
    get_minimum_role_for_action,
    is_role_higher_or_equal,
    require_action,
    validate_action,
)
from solveroom.roles import Action, Role, RoomStatus, create_permission_context

HOST_ONLY_ACTIONS = [action for action, rule in ACTION_RULES.items() if rule.minimum_role is Role.HOST]
MODERATION_ACTIONS = [action for action, rule in ACTION_RULES.items() if rule.moderator_eligible]


def _context(role="PLAYER", **overrides):
    params = {
        "is_host": False,
        "is_online": True,
        "room_status": "WAITING",
        "is_private": False,
        "has_password": False,
        "is_premium": True,
    }
    params.update(overrides)
    return create_permission_context(role, **params)


def test_player_basic_actions_in_waiting_room():
    context = _context()
    for action in (
        Action.VIEW_ROOM,
        Action.JOIN_ROOM,
        Action.LEAVE_ROOM,
        Action.SEND_MESSAGE,
        Action.VIEW_PARTICIPANTS,
        Action.INVITE_PLAYERS,
        Action.REQUEST_JOIN,
    ):
        assert can_perform_action(action, context), action


def test_cell_edits_and_hints_need_active_session():
    waiting = _context()
    active = _context(room_status="ACTIVE")

    assert can_perform_action("update_cell", active) is True
    assert can_perform_action("use_hints", active) is True
    assert can_perform_action("update_cell", waiting) is False

    decision = validate_action("use_hints", waiting)
    assert decision.denial is Denial.SESSION_NOT_ACTIVE
    assert "not active" in decision.reason


@pytest.mark.parametrize("action", HOST_ONLY_ACTIONS)
def test_host_actions_denied_to_player_with_role_reason(action):
    decision = validate_action(action, _context("PLAYER", is_host=False))
    assert decision.allowed is False
    assert decision.denial is Denial.INSUFFICIENT_ROLE
    assert "HOST role or higher" in decision.reason


@pytest.mark.parametrize("action", list(Action))
def test_offline_only_allows_read_and_membership_actions(action):
    context = _context("HOST", is_host=True, is_online=False, room_status="ACTIVE")
    decision = validate_action(action, context)
    if action in OFFLINE_ACTIONS:
        assert decision.allowed is True
    else:
        assert decision.allowed is False
        assert decision.denial is Denial.OFFLINE
        assert "offline" in decision.reason


def test_offline_keeps_view_join_and_leave():
    context = _context(is_online=False)
    assert can_perform_action("view_room", context)
    assert can_perform_action("join_room", context)
    assert can_perform_action("leave_room", context)
    assert not can_perform_action("update_cell", context)
    assert not can_perform_action("use_hints", context)


@pytest.mark.parametrize("action", list(Action))
def test_expired_room_only_allows_viewing(action):
    context = _context("HOST", is_host=True, room_status="EXPIRED")
    decision = validate_action(action, context)
    if action in {Action.VIEW_ROOM, Action.VIEW_PARTICIPANTS}:
        assert decision.allowed is True
    else:
        assert decision.allowed is False
        assert "expired" in decision.reason


def test_completed_room_allows_viewing_and_chat():
    context = _context(room_status="COMPLETED")
    assert can_perform_action("view_room", context)
    assert can_perform_action("view_participants", context)
    assert can_perform_action("send_message", context)

    decision = validate_action("update_cell", context)
    assert decision.allowed is False
    assert decision.denial is Denial.ROOM_COMPLETED


def test_gate_order_offline_before_room_status_before_role():
    offline_and_expired = _context("SPECTATOR", is_online=False, room_status="EXPIRED")
    assert validate_action("kick_player", offline_and_expired).denial is Denial.OFFLINE

    expired_player = _context("PLAYER", room_status="EXPIRED")
    assert validate_action("kick_player", expired_player).denial is Denial.ROOM_EXPIRED

    waiting_spectator = _context("SPECTATOR")
    assert validate_action("update_cell", waiting_spectator).denial is Denial.INSUFFICIENT_ROLE


def test_allowed_decision_has_no_reason():
    decision = validate_action("view_room", _context())
    assert decision.allowed is True
    assert decision.reason is None
    assert decision.denial is None


def test_spectators_view_only():
    context = _context("SPECTATOR")
    assert can_perform_action("view_room", context)
    assert can_perform_action("send_message", context)
    assert can_perform_action("view_participants", context)
    assert not can_perform_action("update_cell", context)
    assert not can_perform_action("use_hints", context)
    assert not can_perform_action("invite_players", context)


def test_free_spectators_cannot_chat():
    decision = validate_action("send_message", _context("SPECTATOR", is_premium=False))
    assert decision.allowed is False
    assert decision.denial is Denial.PREMIUM_REQUIRED

    assert can_perform_action("send_message", _context("PLAYER", is_premium=False))


@pytest.mark.parametrize("action", MODERATION_ACTIONS)
def test_moderator_ties_host_on_moderation_actions(action):
    assert can_perform_action(action, _context("MODERATOR"))


def test_moderator_does_not_reach_host_outside_moderation():
    context = _context("MODERATOR", room_status="ACTIVE")
    assert can_perform_action("update_cell", context)
    assert can_perform_action("invite_players", context)

    for action in ("promote", "demote"):
        decision = validate_action(action, context)
        assert decision.allowed is False
        assert "HOST role or higher" in decision.reason


def test_host_flag_grants_host_capabilities():
    context = _context("PLAYER", is_host=True)
    assert can_perform_action("kick_player", context)
    assert can_perform_action("promote", context)


def test_unknown_action_is_denied_with_clear_reason():
    decision = validate_action("teleport", _context("HOST", is_host=True))
    assert decision.allowed is False
    assert decision.denial is Denial.UNKNOWN_ACTION
    assert "not recognized" in decision.reason
    assert can_perform_action("teleport", _context()) is False
    assert get_minimum_role_for_action("teleport") is None


def test_require_action_raises_with_decision():
    with pytest.raises(PermissionDeniedError) as excinfo:
        require_action("kick_player", _context())
    assert excinfo.value.decision.denial is Denial.INSUFFICIENT_ROLE
    assert "HOST role or higher" in str(excinfo.value)

    require_action("view_room", _context())


def test_minimum_roles():
    assert get_minimum_role_for_action("view_room") is Role.SPECTATOR
    assert get_minimum_role_for_action("update_cell") is Role.PLAYER
    assert get_minimum_role_for_action("kick_player") is Role.HOST
    assert get_minimum_role_for_action(Action.REQUEST_JOIN) is None


def test_role_hierarchy():
    assert is_role_higher_or_equal("HOST", "PLAYER") is True
    assert is_role_higher_or_equal("HOST", "SPECTATOR") is True
    assert is_role_higher_or_equal("PLAYER", "SPECTATOR") is True
    assert is_role_higher_or_equal("PLAYER", "HOST") is False
    assert is_role_higher_or_equal("SPECTATOR", "HOST") is False
    assert is_role_higher_or_equal("HOST", "HOST") is True
    assert is_role_higher_or_equal("OWNER", "SPECTATOR") is False


def test_actions_for_role():
    spectator = get_actions_for_role("SPECTATOR")
    assert {Action.VIEW_ROOM, Action.LEAVE_ROOM, Action.SEND_MESSAGE, Action.VIEW_PARTICIPANTS} <= spectator
    assert Action.UPDATE_CELL not in spectator
    assert Action.KICK_PLAYER not in spectator

    player = get_actions_for_role(Role.PLAYER)
    assert {Action.UPDATE_CELL, Action.USE_HINTS, Action.INVITE_PLAYERS} <= player
    assert Action.KICK_PLAYER not in player
    assert Action.CHANGE_ROLE not in player

    host = get_actions_for_role("HOST")
    assert {
        Action.UPDATE_CELL,
        Action.KICK_PLAYER,
        Action.CHANGE_ROLE,
        Action.MANAGE_SESSION,
        Action.UPDATE_ROOM_SETTINGS,
    } <= host

    moderator = get_actions_for_role("MODERATOR")
    assert Action.KICK_PLAYER in moderator
    assert Action.UPDATE_CELL in moderator
    assert Action.PROMOTE not in moderator

    assert get_actions_for_role("OWNER") == frozenset()


@pytest.mark.parametrize("role", list(Role))
def test_actions_for_role_match_runtime_decisions(role):
    # With every run-time gate open the two views must agree.
    context = _context(role, room_status="ACTIVE", is_premium=True)
    actions = get_actions_for_role(role)
    for action in Action:
        assert (action in actions) == can_perform_action(action, context), action


def test_can_change_role():
    assert can_change_role("HOST", "PLAYER", "SPECTATOR", True) is True
    assert can_change_role("HOST", "SPECTATOR", "PLAYER", True) is True
    assert can_change_role("HOST", "PLAYER", "MODERATOR", True) is True
    assert can_change_role("PLAYER", "SPECTATOR", "PLAYER", False) is False
    assert can_change_role("SPECTATOR", "PLAYER", "SPECTATOR", False) is False
    assert can_change_role("HOST", "PLAYER", "SPECTATOR", False) is False
    assert can_change_role("MODERATOR", "PLAYER", "SPECTATOR", True) is False
    assert can_change_role(None, "PLAYER", "SPECTATOR", True) is False


def test_can_kick_user():
    assert can_kick_user("HOST", "PLAYER", True) is True
    assert can_kick_user("HOST", "SPECTATOR", True) is True
    assert can_kick_user("PLAYER", "SPECTATOR", False) is False
    assert can_kick_user("SPECTATOR", "PLAYER", False) is False
    assert can_kick_user("HOST", "PLAYER", False) is False
    assert can_kick_user(None, "PLAYER", True) is False


def test_context_is_not_mutated():
    context = _context(room_status=RoomStatus.ACTIVE)
    before = context
    validate_action("update_cell", context)
    validate_action("kick_player", context)
    assert context == before
    with pytest.raises(AttributeError):
        context.role = Role.HOST


def test_non_participant_may_only_request_to_join():
    outsider = create_permission_context(None, room_status="ACTIVE")

    assert outsider.role is None
    assert can_perform_action(Action.REQUEST_JOIN, outsider) is True


@pytest.mark.parametrize("action", [action for action, rule in ACTION_RULES.items() if rule.minimum_role])
def test_non_participant_denied_role_gated_actions(action):
    decision = validate_action(action, create_permission_context(None, room_status="ACTIVE"))

    assert decision.allowed is False
    assert decision.denial is Denial.INSUFFICIENT_ROLE


def test_require_action_for_non_participant_raises_denial():
    with pytest.raises(PermissionDeniedError) as excinfo:
        require_action(Action.VIEW_ROOM, create_permission_context(None))
    assert excinfo.value.decision.denial is Denial.INSUFFICIENT_ROLE

from dataclasses import dataclass

from solveroom.roles import Role, create_permission_context
from solveroom.spectators import (
    can_demote_to_spectator,
    can_upgrade_to_player,
    can_view_hints,
    grid_permissions,
    spectator_count_info,
    spectator_restrictions,
)


@dataclass
class Presence:
    role: Role
    is_online: bool


def test_grid_permissions_for_active_player():
    result = grid_permissions(create_permission_context("PLAYER", room_status="ACTIVE"))
    assert result.can_edit is True
    assert result.can_use_hints is True
    assert result.can_chat is True
    assert result.can_moderate is False
    assert result.reason is None


def test_grid_permissions_waiting_room_blocks_editing():
    result = grid_permissions(create_permission_context("HOST", is_host=True))
    assert result.can_edit is False
    assert result.can_moderate is True
    assert result.reason == "Session not active"


def test_grid_permissions_for_spectators_depend_on_premium():
    free = grid_permissions(create_permission_context("SPECTATOR", room_status="ACTIVE"))
    premium = grid_permissions(create_permission_context("SPECTATOR", room_status="ACTIVE", is_premium=True))

    assert free.can_edit is False
    assert free.can_chat is False
    assert premium.can_chat is True
    assert premium.reason == "Spectators have view-only access"


def test_grid_permissions_room_state_overrides_role():
    offline = grid_permissions(create_permission_context("HOST", is_host=True, is_online=False))
    assert offline.can_view_hints is False
    assert offline.reason == "User is offline"

    expired = grid_permissions(create_permission_context("HOST", is_host=True, room_status="EXPIRED"))
    assert expired.can_view_hints is True
    assert expired.can_chat is False

    completed = grid_permissions(create_permission_context("PLAYER", room_status="COMPLETED"))
    assert completed.can_edit is False
    assert completed.can_chat is True


def test_upgrade_to_player():
    assert can_upgrade_to_player(create_permission_context("PLAYER")).reason == "User is not a spectator"

    expired = can_upgrade_to_player(create_permission_context("SPECTATOR", room_status="EXPIRED", is_premium=True))
    assert expired.allowed is False

    free = can_upgrade_to_player(create_permission_context("SPECTATOR"))
    assert "Premium" in free.reason

    assert can_upgrade_to_player(create_permission_context("SPECTATOR", is_premium=True)).allowed is True


def test_demote_to_spectator():
    host = create_permission_context("HOST", is_host=True)
    assert can_demote_to_spectator(host, Role.PLAYER).allowed is True
    assert can_demote_to_spectator(host, Role.HOST).reason == "Cannot demote the host"
    assert can_demote_to_spectator(host, Role.SPECTATOR).allowed is False

    moderator = create_permission_context("MODERATOR")
    assert can_demote_to_spectator(moderator, Role.PLAYER).allowed is False


def test_spectator_restrictions():
    restrictions = spectator_restrictions(create_permission_context("SPECTATOR"))
    assert restrictions.disable_cell_editing is True
    assert restrictions.show_spectator_badge is True
    assert restrictions.allow_chat is False
    assert restrictions.show_upgrade_prompt is False

    player = spectator_restrictions(create_permission_context("PLAYER"))
    assert player.disable_cell_editing is False
    assert player.allow_chat is True


def test_can_view_hints():
    assert can_view_hints(create_permission_context("SPECTATOR", room_status="COMPLETED")) is True
    assert can_view_hints(create_permission_context("HOST", room_status="EXPIRED")) is False


def test_spectator_count_info():
    info = spectator_count_info(
        [
            Presence(Role.HOST, True),
            Presence(Role.PLAYER, False),
            Presence(Role.MODERATOR, True),
            Presence(Role.SPECTATOR, True),
            Presence(Role.SPECTATOR, False),
        ]
    )
    assert info.spectator_count == 2
    assert info.online_spectators == 1
    assert info.player_count == 3
    assert info.online_players == 2


def test_non_participant_sees_read_only_grid():
    outsider = create_permission_context(None, room_status="ACTIVE", is_premium=True)

    grid = grid_permissions(outsider)
    assert grid.can_edit is False
    assert grid.can_chat is False
    assert grid.reason == "Not a participant of this room"

    restrictions = spectator_restrictions(outsider)
    assert restrictions.disable_cell_editing is True
    assert restrictions.allow_chat is False
    assert restrictions.show_spectator_badge is False

# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the monitor runner with mocked session and player."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from querybot.config import BotConfig
from querybot.errors import ChannelNotFound, StatusError
from querybot.monitor.runner import Monitor
from querybot.monitor.state import (
    Cancelled,
    NotPlaced,
    ReadinessOutcome,
    Stopped,
    WatchedExit,
)
from querybot.player.vlc import VlcController
from querybot.presence import WebPresenceChecker
from querybot.query.models import Client, WhoAmI
from querybot.query.session import QuerySession

SELF_DB_ID = 7
WATCHED_DB_ID = 42


def client(database_id: int, clid: int = 1) -> Client:
    return Client(clid=clid, cid=1, client_database_id=database_id)


def not_connected() -> StatusError:
    return StatusError(1794, "not connected")


@pytest.fixture
def session() -> AsyncMock:
    session = AsyncMock(spec=QuerySession)
    session.who_am_i.return_value = WhoAmI(clid=5, cid=3)
    session.query_database_id.return_value = SELF_DB_ID
    session.check_self_duplicate.return_value = False
    session.wait_connected.return_value = WhoAmI(clid=5, cid=3)
    session.list_clients.return_value = [client(SELF_DB_ID, clid=5)]
    return session


@pytest.fixture
def player() -> AsyncMock:
    player = AsyncMock(spec=VlcController)
    player.status.return_value = True
    return player


@pytest.fixture
def monitor(bot_config: BotConfig, session: AsyncMock, player: AsyncMock) -> Monitor:
    monitor = Monitor(bot_config, session, player)
    monitor.database_id = SELF_DB_ID
    return monitor


@pytest.mark.asyncio
async def test_tick_in_sync_takes_no_action_then_plays_when_absent(
    monitor: Monitor, session: AsyncMock, player: AsyncMock
) -> None:
    session.list_clients.side_effect = [
        [client(SELF_DB_ID, clid=5), client(WATCHED_DB_ID, clid=9)],
        [client(SELF_DB_ID, clid=5)],
    ]
    player.status.side_effect = [False, False]

    assert await monitor.tick() is None
    player.play.assert_not_called()
    player.pause.assert_not_called()

    assert await monitor.tick() is None
    player.play.assert_awaited_once()
    player.pause.assert_not_called()


@pytest.mark.asyncio
async def test_tick_pauses_when_watched_user_appears(monitor: Monitor, session: AsyncMock, player: AsyncMock) -> None:
    session.list_clients.return_value = [client(SELF_DB_ID, clid=5), client(WATCHED_DB_ID, clid=9)]
    player.status.return_value = True

    await monitor.tick()
    player.pause.assert_awaited_once()
    player.play.assert_not_called()


@pytest.mark.asyncio
async def test_tick_playing_while_absent_is_left_alone(monitor: Monitor, player: AsyncMock) -> None:
    player.status.return_value = True

    await monitor.tick()
    player.play.assert_not_called()
    player.pause.assert_not_called()


@pytest.mark.asyncio
async def test_tick_forced_exit(monitor: Monitor, session: AsyncMock, player: AsyncMock) -> None:
    monitor.config = monitor.config.model_copy(update={"need_disconnect": True})
    session.list_clients.return_value = [client(WATCHED_DB_ID, clid=9)]

    assert await monitor.tick() == WatchedExit()
    session.disconnect.assert_awaited_once()
    player.status.assert_not_called()


@pytest.mark.asyncio
async def test_tick_duplicate_session_disconnects_and_continues(
    monitor: Monitor, session: AsyncMock, player: AsyncMock
) -> None:
    session.list_clients.return_value = [client(SELF_DB_ID, clid=5), client(SELF_DB_ID, clid=6)]

    assert await monitor.tick() is None
    session.disconnect.assert_awaited_once()
    player.status.assert_awaited_once()


@pytest.mark.asyncio
async def test_monitor_loop_cancelled(monitor: Monitor, player: AsyncMock) -> None:
    cancel = asyncio.Event()
    calls = 0

    async def status() -> bool:
        nonlocal calls
        calls += 1
        if calls == 3:
            cancel.set()
        return True

    player.status.side_effect = status

    assert await monitor.monitor(cancel) == Cancelled()
    assert calls == 3


@pytest.mark.asyncio
async def test_monitor_loop_not_placed(monitor: Monitor, session: AsyncMock) -> None:
    session.list_clients.side_effect = not_connected()

    assert await monitor.monitor(asyncio.Event()) == NotPlaced()


@pytest.mark.asyncio
async def test_monitor_loop_other_status_is_fatal(monitor: Monitor, session: AsyncMock) -> None:
    session.list_clients.side_effect = StatusError(2568, "insufficient client permissions")

    with pytest.raises(StatusError):
        await monitor.monitor(asyncio.Event())


@pytest.mark.asyncio
async def test_resolve_readiness_not_online(monitor: Monitor, session: AsyncMock) -> None:
    outcome = await monitor.resolve_readiness()

    assert outcome == ReadinessOutcome.NOT_ONLINE
    session.connect_server.assert_awaited_once_with("voice.example.org", "watcher")
    session.switch_channel_by_name.assert_awaited_once_with("AFK")
    session.set_current_channel_password.assert_not_called()
    session.disconnect.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_readiness_sets_password_and_ignores_failure(
    monitor: Monitor, session: AsyncMock
) -> None:
    monitor.config.server.password = "hunter2"
    session.set_current_channel_password.side_effect = StatusError(771, "channel name in use")

    assert await monitor.resolve_readiness() == ReadinessOutcome.NOT_ONLINE
    session.set_current_channel_password.assert_awaited_once_with("hunter2")


@pytest.mark.asyncio
async def test_resolve_readiness_duplicate_client(monitor: Monitor, session: AsyncMock) -> None:
    session.check_self_duplicate.return_value = True

    assert await monitor.resolve_readiness() == ReadinessOutcome.DUPLICATE_CLIENT
    session.disconnect.assert_awaited_once()
    session.switch_channel_by_name.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_readiness_target_detected(monitor: Monitor, session: AsyncMock) -> None:
    session.list_clients.return_value = [client(SELF_DB_ID, clid=5), client(WATCHED_DB_ID, clid=9)]

    assert await monitor.resolve_readiness() == ReadinessOutcome.TARGET_DETECTED
    session.disconnect.assert_awaited_once()
    session.switch_channel_by_name.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_readiness_cancelled_while_joining(monitor: Monitor, session: AsyncMock) -> None:
    session.wait_connected.return_value = None

    assert await monitor.resolve_readiness(asyncio.Event()) is None
    session.switch_channel_by_name.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_readiness_channel_missing_propagates(monitor: Monitor, session: AsyncMock) -> None:
    session.switch_channel_by_name.side_effect = ChannelNotFound("Channel not found: AFK")

    with pytest.raises(ChannelNotFound):
        await monitor.resolve_readiness()


@pytest.mark.asyncio
async def test_resolve_readiness_web_online(bot_config: BotConfig, session: AsyncMock, player: AsyncMock) -> None:
    presence = AsyncMock(spec=WebPresenceChecker)
    presence.is_online.return_value = True
    monitor = Monitor(bot_config, session, player, presence=presence)

    assert await monitor.resolve_readiness() == ReadinessOutcome.ONLINE
    presence.is_online.assert_awaited_once_with("watcher")
    session.connect_server.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_readiness_web_offline_skips_duplicate_check(
    bot_config: BotConfig, session: AsyncMock, player: AsyncMock
) -> None:
    presence = AsyncMock(spec=WebPresenceChecker)
    presence.is_online.return_value = False
    monitor = Monitor(bot_config, session, player, presence=presence)

    assert await monitor.resolve_readiness() == ReadinessOutcome.NOT_ONLINE
    session.check_self_duplicate.assert_not_called()
    session.connect_server.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_not_connected_routes_to_readiness(monitor: Monitor, session: AsyncMock) -> None:
    session.who_am_i.side_effect = [not_connected(), WhoAmI(clid=5, cid=3)]
    cancel = asyncio.Event()

    with (
        patch.object(monitor, "resolve_readiness", AsyncMock(return_value=ReadinessOutcome.NOT_ONLINE)) as resolve,
        patch.object(monitor, "monitor", AsyncMock(return_value=Cancelled())) as steady,
    ):
        result = await monitor.run(cancel)

    assert result == Stopped("cancelled")
    resolve.assert_awaited_once()
    steady.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_identity_resolved_skips_readiness(monitor: Monitor) -> None:
    with (
        patch.object(monitor, "resolve_readiness", AsyncMock()) as resolve,
        patch.object(monitor, "monitor", AsyncMock(return_value=WatchedExit())),
    ):
        result = await monitor.run(asyncio.Event())

    assert result == Stopped("watched identity detected")
    resolve.assert_not_called()


@pytest.mark.asyncio
async def test_run_backs_off_and_cancel_ends_wait(monitor: Monitor, session: AsyncMock) -> None:
    session.who_am_i.side_effect = not_connected()
    waits: list[float] = []

    async def fake_wait(cancel: asyncio.Event | None, timeout: float) -> bool:
        waits.append(timeout)
        return True

    with (
        patch.object(monitor, "resolve_readiness", AsyncMock(return_value=ReadinessOutcome.TARGET_DETECTED)),
        patch("querybot.monitor.runner.wait_cancelled", fake_wait),
    ):
        result = await monitor.run(asyncio.Event())

    assert result == Stopped("cancelled")
    assert waits == [300]


@pytest.mark.asyncio
async def test_run_backoff_escalates(monitor: Monitor, session: AsyncMock) -> None:
    session.who_am_i.side_effect = not_connected()
    waits: list[float] = []

    async def fake_wait(cancel: asyncio.Event | None, timeout: float) -> bool:
        waits.append(timeout)
        return len(waits) == 4

    with (
        patch.object(monitor, "resolve_readiness", AsyncMock(return_value=ReadinessOutcome.DUPLICATE_CLIENT)),
        patch("querybot.monitor.runner.wait_cancelled", fake_wait),
    ):
        await monitor.run(asyncio.Event())

    assert waits == [300, 1800, 3600, 3600]


@pytest.mark.asyncio
async def test_run_other_status_is_fatal(monitor: Monitor, session: AsyncMock) -> None:
    session.who_am_i.side_effect = StatusError(256, "command not found")

    with pytest.raises(StatusError) as exc_info:
        await monitor.run(asyncio.Event())
    assert exc_info.value.code == 256


@pytest.mark.asyncio
async def test_run_already_cancelled(monitor: Monitor, session: AsyncMock) -> None:
    cancel = asyncio.Event()
    cancel.set()

    assert await monitor.run(cancel) == Stopped("cancelled")
    session.who_am_i.assert_not_called()


@pytest.mark.asyncio
async def test_run_end_to_end_cancel(monitor: Monitor, session: AsyncMock, player: AsyncMock) -> None:
    cancel = asyncio.Event()
    player.status.side_effect = lambda: cancel.set() or True

    assert await monitor.run(cancel) == Stopped("cancelled")
    session.query_database_id.assert_awaited()


@pytest.mark.asyncio
async def test_close_closes_session_when_player_close_fails(
    monitor: Monitor, session: AsyncMock, player: AsyncMock
) -> None:
    player.close.side_effect = ConnectionResetError()

    with pytest.raises(ConnectionResetError):
        await monitor.close()
    session.close.assert_awaited_once()

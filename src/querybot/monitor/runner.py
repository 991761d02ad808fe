# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Drives a query session and the player through the monitor states."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from querybot.cancel import wait_cancelled
from querybot.constants import NOT_CONNECTED
from querybot.errors import QueryBotError, StatusError
from querybot.logging import get_logger
from querybot.monitor.state import (
    BackoffElapsed,
    BackoffWait,
    Cancelled,
    Connecting,
    IdentityResolved,
    MonitorState,
    NotPlaced,
    Observation,
    Readiness,
    ReadinessOutcome,
    ResolvingReadiness,
    SteadyMonitoring,
    Stopped,
    WatchedExit,
    transition,
)
from querybot.player.vlc import VlcController
from querybot.presence import WebPresenceChecker
from querybot.query.session import QuerySession, count_identity

if TYPE_CHECKING:
    from querybot.config import BotConfig
    from querybot.query.models import Client

logger = get_logger(__name__)


class Monitor:
    """Keeps the identity placed and playback in step with presence."""

    def __init__(
        self,
        config: BotConfig,
        session: QuerySession,
        player: VlcController,
        *,
        presence: WebPresenceChecker | None = None,
    ) -> None:
        self.config = config
        self.session = session
        self.player = player
        self.watched = config.watched_ids
        self.tick_interval_s = config.tick_interval_ms / 1000
        self.database_id = 0
        if presence is None and config.monitor.web:
            presence = WebPresenceChecker(config.monitor.backend, timeout_s=config.monitor.interval * 60)
        self.presence = presence

    @classmethod
    async def open(cls, config: BotConfig, host: str | None = None, port: int | None = None) -> Monitor:
        """Connect and authenticate the console, then connect the player."""
        session = await QuerySession.connect(host or config.query.host, port or config.query.port)
        try:
            await session.login(config.api_key)
            player = await VlcController.connect(config.player.host, config.player.port, config.player.password)
        except BaseException:
            await session.close()
            raise
        logger.info("monitor_connected")
        return cls(config, session, player)

    async def close(self) -> None:
        try:
            await self.player.close()
        finally:
            await self.session.close()

    async def run(self, cancel: asyncio.Event) -> Stopped:
        """Run until cancelled or told to leave.

        Errors other than the "not connected" status propagate and end the run.
        """
        state: MonitorState = Connecting()
        online_interval_s = self.config.monitor.interval * 60
        while not isinstance(state, Stopped):
            observation = Cancelled() if cancel.is_set() else await self.step(state, cancel)
            next_state = transition(state, observation, online_interval_s=online_interval_s)
            if next_state != state:
                logger.info("monitor_state", state=type(next_state).__name__, observation=type(observation).__name__)
            state = next_state
        logger.info("monitor_stopped", reason=state.reason)
        return state

    async def step(self, state: MonitorState, cancel: asyncio.Event) -> Observation:
        """Perform the I/O one state needs and report what was observed."""
        match state:
            case Connecting():
                try:
                    await self.session.who_am_i()
                except StatusError as e:
                    if e.code != NOT_CONNECTED:
                        raise
                    return NotPlaced()
                return IdentityResolved()
            case ResolvingReadiness():
                outcome = await self.resolve_readiness(cancel)
                return Cancelled() if outcome is None else Readiness(outcome)
            case BackoffWait(attempt=attempt, remaining=remaining, outcome=outcome):
                logger.info("backoff_wait", attempt=attempt, seconds=remaining, outcome=str(outcome))
                if await wait_cancelled(cancel, remaining):
                    return Cancelled()
                return BackoffElapsed()
            case SteadyMonitoring():
                return await self.monitor(cancel)
        raise ValueError(f"Nothing to do in {state!r}")

    async def resolve_readiness(self, cancel: asyncio.Event | None = None) -> ReadinessOutcome | None:
        """Join the server unless someone we avoid is already there.

        Returns:
            The outcome, or ``None`` if cancelled while waiting
        """
        server = self.config.server
        nickname = self.config.monitor.username

        if self.presence is not None and await self.presence.is_online(nickname):
            return ReadinessOutcome.ONLINE

        await self.session.connect_server(server.address, nickname)
        if await self.session.wait_connected(server.timeout, cancel) is None:
            return None
        logger.debug("server_joined", address=server.address)

        if self.presence is None:
            database_id = await self.session.query_database_id()
            if await self.session.check_self_duplicate(database_id):
                logger.info("duplicate_client_detected", database_id=database_id)
                await self.session.disconnect()
                return ReadinessOutcome.DUPLICATE_CLIENT

        if self.watched_present(await self.session.list_clients()):
            logger.info("watched_identity_present", watched=sorted(self.watched))
            await self.session.disconnect()
            return ReadinessOutcome.TARGET_DETECTED

        await self.session.switch_channel_by_name(server.channel)
        if await wait_cancelled(cancel, server.switch_wait / 1000):
            return None
        if server.password:
            try:
                await self.session.set_current_channel_password(server.password)
            except QueryBotError as e:
                logger.error("channel_password_failed", error=str(e))
        return ReadinessOutcome.NOT_ONLINE

    def watched_present(self, clients: list[Client]) -> bool:
        return any(client.client_database_id in self.watched for client in clients)

    async def monitor(self, cancel: asyncio.Event) -> Observation:
        """Steady-state loop; returns when it needs a state change."""
        try:
            self.database_id = await self.session.query_database_id()
            logger.info("monitoring", database_id=self.database_id, watched=sorted(self.watched))
            while True:
                observation = await self.tick()
                if observation is not None:
                    return observation
                if await wait_cancelled(cancel, self.tick_interval_s):
                    return Cancelled()
        except StatusError as e:
            if e.code != NOT_CONNECTED:
                raise
            logger.warning("monitor_not_placed", error=str(e))
            return NotPlaced()

    async def tick(self) -> Observation | None:
        """One poll: presence, duplicate guard, playback sync."""
        clients = await self.session.list_clients()
        present = self.watched_present(clients)

        if present and self.config.need_disconnect:
            logger.info("watched_identity_exit")
            await self.session.disconnect()
            return WatchedExit()

        if count_identity(clients, self.database_id) > 1:
            logger.info("duplicate_session_disconnect", database_id=self.database_id)
            await self.session.disconnect()

        playing = await self.player.status()
        if playing == present:
            if present:
                await self.player.pause()
            else:
                await self.player.play()
            logger.info("playback_toggled", playing=not present, present=present)
        return None

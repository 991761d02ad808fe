# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""VLC telnet remote-control client.

Only the three commands the monitor needs are implemented: ``status``,
``play`` and ``pause``. Replies end with a ``>`` prompt; the status reply
contains a ``( state playing )`` style token.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import TYPE_CHECKING

from querybot.constants import (
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_PLAYER_HOST,
    DEFAULT_PLAYER_PASSWORD,
    DEFAULT_PLAYER_PORT,
    READ_TIMEOUT_MS,
)
from querybot.errors import QueryError
from querybot.logging import get_logger
from querybot.transport.tcp import TcpTransport

if TYPE_CHECKING:
    from querybot.transport.base import ConnectionTransport

logger = get_logger(__name__)

STATE_RE = re.compile(r"\(\s*state\s+(\w+)\s*\)")
PLAYING = "playing"


def _ends_with_prompt(text: str) -> bool:
    return text.rstrip().endswith(">")


def parse_playing(reply: str) -> bool:
    """Return True if a ``status`` reply reports active playback.

    Raises:
        QueryError: If the reply has no state token
    """
    match = STATE_RE.search(reply)
    if match is None:
        raise QueryError(f"No playback state in player reply: {reply!r}")
    return match.group(1) == PLAYING


class VlcController:
    """Line-oriented client for VLC's telnet interface."""

    def __init__(self, transport: ConnectionTransport, *, timeout_ms: int = READ_TIMEOUT_MS) -> None:
        self.transport = transport
        self.timeout_ms = timeout_ms

    @classmethod
    async def connect(
        cls,
        host: str = DEFAULT_PLAYER_HOST,
        port: int = DEFAULT_PLAYER_PORT,
        password: str | None = DEFAULT_PLAYER_PASSWORD,
        *,
        timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
        transport: ConnectionTransport | None = None,
    ) -> VlcController:
        """Connect and log in if the banner asks for a password.

        Raises:
            TransportError: If the connection fails
            QueryError: If the password is rejected or the player never prompts
        """
        transport = transport or TcpTransport()
        await transport.connect(host, port, timeout=timeout)
        player = cls(transport)

        banner = await player._read_until(lambda text: "password" in text.lower() or _ends_with_prompt(text))
        if "password" in banner.lower():
            await player._send_line(password or "")
            reply = await player._read_until(lambda text: _ends_with_prompt(text) or "wrong" in text.lower())
            if "wrong" in reply.lower():
                await transport.disconnect()
                raise QueryError("Player rejected password")

        logger.info("player_connected", host=host, port=port)
        return player

    async def close(self) -> None:
        await self.transport.disconnect()

    async def _send_line(self, line: str) -> None:
        await self.transport.send(f"{line}\n".encode())

    async def _read_until(self, done: Callable[[str], bool]) -> str:
        data = bytearray()
        while True:
            chunk = await self.transport.receive(4096, self.timeout_ms)
            if not chunk:
                raise QueryError(f"Player reply incomplete: {data.decode('utf-8', errors='replace')!r}")
            data.extend(chunk)
            text = data.decode("utf-8", errors="replace")
            if done(text):
                return text

    async def _command(self, command: str) -> str:
        await self._send_line(command)
        return await self._read_until(_ends_with_prompt)

    async def status(self) -> bool:
        """Return True while the player is playing."""
        return parse_playing(await self._command("status"))

    async def play(self) -> None:
        await self._command("play")

    async def pause(self) -> None:
        await self._command("pause")

# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Frame I/O for the client query console.

A reply is complete once a line starting with ``error id=`` has arrived.
Reads are bounded by a per-read timeout; a timeout with nothing received is
reported as ``None`` ("no data yet"), never as an error.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from querybot.constants import (
    DELAY_READ_DEADLINE_S,
    READ_BUFFER_SIZE,
    READ_TIMEOUT_MS,
    STATUS_MARKER,
    TERMINATOR,
)
from querybot.errors import TransportError
from querybot.logging import get_logger

if TYPE_CHECKING:
    from querybot.transport.base import ConnectionTransport

logger = get_logger(__name__)

ENCODING = "utf-8"


def has_status_line(text: str) -> bool:
    """Return True if any line of ``text`` is a terminal status line."""
    return any(line.strip().startswith(STATUS_MARKER) for line in text.splitlines())


class FrameIO:
    """Timeout-bounded reads and raw writes over one transport."""

    def __init__(
        self,
        transport: ConnectionTransport,
        *,
        buffer_size: int = READ_BUFFER_SIZE,
        timeout_ms: int = READ_TIMEOUT_MS,
        deadline_s: float = DELAY_READ_DEADLINE_S,
    ) -> None:
        self.transport = transport
        self.buffer_size = buffer_size
        self.timeout_ms = timeout_ms
        self.deadline_s = deadline_s

    async def write(self, payload: str) -> None:
        """Write one command line.

        Args:
            payload: Command text, already terminated

        Raises:
            ValueError: If ``payload`` lacks the terminator
            TransportError: If the transport fails
        """
        if not payload.endswith(TERMINATOR):
            raise ValueError(f"Payload must end with {TERMINATOR!r}: {payload!r}")

        data = payload.encode(ENCODING)
        sent = await self.transport.send(data)
        if sent != len(data):
            # Not retried.
            logger.error("short_write", expected=len(data), sent=sent, payload=payload)

    async def read(self) -> str | None:
        """Read whatever the peer has sent so far.

        Returns:
            Accumulated text, or ``None`` when the first read timed out

        Raises:
            TransportError: If the connection failed
        """
        data = await self.read_bytes()
        return None if data is None else data.decode(ENCODING, errors="replace")

    async def read_bytes(self) -> bytes | None:
        """Like :meth:`read` but undecoded, so a split character survives."""
        data = bytearray()
        while True:
            chunk = await self.transport.receive(self.buffer_size, self.timeout_ms)
            if not chunk:
                if not data:
                    return None
                break

            data.extend(chunk)
            if len(chunk) < self.buffer_size or has_status_line(data.decode(ENCODING, errors="replace")):
                break

        return bytes(data)

    async def delay_read(self) -> str:
        """Read until a status line has been seen.

        "No data yet" results are skipped so a timeout window between chunks
        cannot drop the tail of a reply.

        Raises:
            TransportError: If the connection failed or no status line arrived
                within ``deadline_s``
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.deadline_s
        data = bytearray()
        while True:
            chunk = await self.read_bytes()
            if chunk is not None:
                data.extend(chunk)
                # Decode the whole buffer; a character may straddle two reads.
                content = data.decode(ENCODING, errors="replace")
                if has_status_line(content):
                    return content

            if loop.time() >= deadline:
                raise TransportError(f"No status line within {self.deadline_s:.0f}s")

    async def exchange(self, payload: str) -> str:
        """Write ``payload`` and return the complete reply."""
        await self.write(payload)
        return await self.delay_read()

# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Plain TCP transport on asyncio streams."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from querybot.constants import DEFAULT_CONNECT_TIMEOUT_S
from querybot.errors import TransportError
from querybot.transport.base import ConnectionTransport

if TYPE_CHECKING:
    from asyncio import StreamReader, StreamWriter

log = structlog.get_logger()


class TcpTransport(ConnectionTransport):
    """Raw TCP transport; no framing or escaping at this layer."""

    def __init__(self) -> None:
        self._reader: StreamReader | None = None
        self._writer: StreamWriter | None = None
        self.host: str = ""
        self.port: int = 0

    async def connect(
        self,
        host: str,
        port: int,
        timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
        **kwargs: Any,
    ) -> None:
        """Establish TCP connection to remote host.

        Args:
            host: Remote hostname or IP address
            port: Remote port number
            timeout: Connection timeout in seconds
            **kwargs: Unused, for compatibility

        Raises:
            TransportError: If connection fails or times out
        """
        if self._writer:
            await self.disconnect()

        try:
            self._reader, self._writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
        except Exception as e:
            raise TransportError(f"Failed to connect to {host}:{port}") from e

        self.host = host
        self.port = port
        log.info("tcp_connected", host=host, port=port)

    async def disconnect(self) -> None:
        """Close connection and cleanup resources."""
        if not self._writer:
            return

        try:
            self._writer.close()
            await self._writer.wait_closed()
        except (ConnectionResetError, BrokenPipeError, RuntimeError):
            pass
        finally:
            self._writer = None
            self._reader = None

        log.info("tcp_disconnected", host=self.host, port=self.port)

    async def send(self, data: bytes) -> int:
        """Send raw bytes.

        Args:
            data: Raw bytes to send

        Returns:
            Number of bytes written

        Raises:
            TransportError: If not connected or send fails
        """
        if not self._writer:
            raise TransportError("Not connected")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (ConnectionResetError, BrokenPipeError) as e:
            await self.disconnect()
            raise TransportError("Send failed") from e
        return len(data)

    async def receive(self, max_bytes: int, timeout_ms: int) -> bytes:
        """Receive raw bytes from connection.

        Args:
            max_bytes: Maximum bytes to read
            timeout_ms: Read timeout in milliseconds

        Returns:
            Bytes read from connection (empty on timeout)

        Raises:
            TransportError: If not connected or connection lost
        """
        if not self._reader:
            raise TransportError("Not connected")

        try:
            chunk = await asyncio.wait_for(self._reader.read(max_bytes), timeout=timeout_ms / 1000)
        except TimeoutError:
            return b""
        except (ConnectionResetError, BrokenPipeError) as e:
            await self.disconnect()
            raise TransportError("Connection lost") from e

        if not chunk:
            await self.disconnect()
            raise TransportError("Connection closed by remote")

        return chunk

    def is_connected(self) -> bool:
        """Check if connection is active.

        Returns:
            True if connected, False otherwise
        """
        return self._writer is not None and not self._writer.is_closing()

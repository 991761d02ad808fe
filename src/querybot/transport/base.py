# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Abstract base class for line protocol transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ConnectionTransport(ABC):
    """Abstract base for a single owned byte stream."""

    @abstractmethod
    async def connect(self, host: str, port: int, **kwargs: Any) -> None:
        """Establish connection to remote host.

        Args:
            host: Remote hostname or IP address
            port: Remote port number
            **kwargs: Transport-specific connection options

        Raises:
            TransportError: If connection fails or times out
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection and cleanup resources.

        Should be idempotent - safe to call multiple times.
        """

    @abstractmethod
    async def send(self, data: bytes) -> int:
        """Send raw bytes.

        Args:
            data: Raw bytes to send

        Returns:
            Number of bytes handed to the socket

        Raises:
            TransportError: If not connected or send fails
        """

    @abstractmethod
    async def receive(self, max_bytes: int, timeout_ms: int) -> bytes:
        """Receive raw bytes from connection.

        Args:
            max_bytes: Maximum bytes to read
            timeout_ms: Read timeout in milliseconds

        Returns:
            Bytes read from connection (empty on timeout)

        Raises:
            TransportError: If not connected or the peer closed the stream
        """

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if connection is active.

        Returns:
            True if connected, False otherwise
        """

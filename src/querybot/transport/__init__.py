# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport layer for console and player connections."""

from __future__ import annotations

from querybot.transport.base import ConnectionTransport
from querybot.transport.tcp import TcpTransport

__all__ = ["ConnectionTransport", "TcpTransport"]

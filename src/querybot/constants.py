# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared constants for querybot."""

from __future__ import annotations

# Client query console
DEFAULT_QUERY_HOST = "localhost"
DEFAULT_QUERY_PORT = 25639
TERMINATOR = "\n\r"
STATUS_PREFIX = "error "
STATUS_MARKER = "error id="

# Status code reported while the console's client is not on any server
NOT_CONNECTED = 1794

# Frame I/O
READ_BUFFER_SIZE = 512
READ_TIMEOUT_MS = 2000
DELAY_READ_DEADLINE_S = 30.0
DEFAULT_CONNECT_TIMEOUT_S = 30.0
BANNER_WAIT_S = 0.01

# VLC telnet remote control
DEFAULT_PLAYER_HOST = "localhost"
DEFAULT_PLAYER_PORT = 4212
DEFAULT_PLAYER_PASSWORD = "1"

# Monitor
DEFAULT_TICK_INTERVAL_MS = 5

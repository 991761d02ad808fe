# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client query console protocol."""

from __future__ import annotations

from querybot.query.codec import QueryStatus, decode_rows, decode_status, escape, unescape
from querybot.query.framing import FrameIO
from querybot.query.models import Channel, Client, ClientVariable, ConnectInfo, WhoAmI
from querybot.query.session import QuerySession

__all__ = [
    "Channel",
    "Client",
    "ClientVariable",
    "ConnectInfo",
    "FrameIO",
    "QuerySession",
    "QueryStatus",
    "WhoAmI",
    "decode_rows",
    "decode_status",
    "escape",
    "unescape",
]

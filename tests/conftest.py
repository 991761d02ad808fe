# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Pytest configuration and fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest

from querybot.config import BotConfig
from querybot.query.framing import FrameIO
from querybot.query.session import QuerySession

from .fakes import ScriptedConsole


@pytest.fixture
def query_host() -> str:
    """Default console host for testing."""
    return "127.0.0.1"


@pytest.fixture
def mock_reader() -> Mock:
    """Mock asyncio StreamReader."""
    reader = AsyncMock()
    reader.read = AsyncMock(return_value=b"")
    return reader


@pytest.fixture
def mock_writer() -> Mock:
    """Mock asyncio StreamWriter."""
    writer = AsyncMock()
    writer.write = Mock()
    writer.drain = AsyncMock()
    writer.close = Mock()
    writer.wait_closed = AsyncMock()
    writer.is_closing = Mock(return_value=False)
    return writer


@pytest.fixture
def console() -> ScriptedConsole:
    """In-memory console answering commands from a script."""
    return ScriptedConsole()


@pytest.fixture
def session(console: ScriptedConsole) -> QuerySession:
    """Session over the scripted console with a short reply deadline."""
    return QuerySession(console, FrameIO(console, deadline_s=0.2))


@pytest.fixture
def bot_config() -> BotConfig:
    return BotConfig.model_validate(
        {
            "api_key": "ABCD-EFGH-IJKL",
            "monitor_id": [42],
            "tick_interval_ms": 1,
            "monitor": {"username": "watcher"},
            "server": {"address": "voice.example.org", "channel": "AFK", "switch_wait": 500},
        }
    )

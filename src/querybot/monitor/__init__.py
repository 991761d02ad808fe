# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Presence monitor."""

from __future__ import annotations

from querybot.monitor.runner import Monitor
from querybot.monitor.state import (
    BackoffWait,
    Connecting,
    MonitorState,
    ReadinessOutcome,
    ResolvingReadiness,
    SteadyMonitoring,
    Stopped,
    backoff_duration,
    transition,
)

__all__ = [
    "BackoffWait",
    "Connecting",
    "Monitor",
    "MonitorState",
    "ReadinessOutcome",
    "ResolvingReadiness",
    "SteadyMonitoring",
    "Stopped",
    "backoff_duration",
    "transition",
]

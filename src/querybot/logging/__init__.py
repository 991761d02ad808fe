# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging layer for querybot."""

from __future__ import annotations

from querybot.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]

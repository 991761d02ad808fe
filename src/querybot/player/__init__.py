# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Media player remote control."""

from __future__ import annotations

from querybot.player.vlc import VlcController

__all__ = ["VlcController"]

# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Cooperative cancellation helpers."""

from __future__ import annotations

import asyncio


async def wait_cancelled(cancel: asyncio.Event | None, timeout: float) -> bool:
    """Sleep up to ``timeout`` seconds, waking early if ``cancel`` is set.

    Returns:
        True if cancellation was requested, False if the timeout elapsed
    """
    if cancel is None:
        await asyncio.sleep(max(0.0, timeout))
        return False
    if cancel.is_set():
        return True
    try:
        await asyncio.wait_for(cancel.wait(), timeout=max(0.0, timeout))
    except TimeoutError:
        return False
    return True

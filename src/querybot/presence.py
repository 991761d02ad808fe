# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Web lookup telling whether a nickname is already online elsewhere."""

from __future__ import annotations

import httpx
from bs4 import BeautifulSoup

from querybot.errors import QueryError
from querybot.logging import get_logger

logger = get_logger(__name__)


def parse_online(html: str) -> bool:
    """Read the first result row of a user search page.

    The second cell of the row holds the user's status; rows with fewer
    than three cells are not results.

    Raises:
        QueryError: If the page has no result table or no result row
    """
    soup = BeautifulSoup(html, "html.parser")
    tbody = soup.find("tbody")
    if tbody is None:
        raise QueryError("Can't find any table.")
    row = tbody.find("tr")
    if row is None:
        raise QueryError("Can't find any result.")
    cells = row.find_all("td")
    return len(cells) > 2 and cells[1].get_text(strip=True).lower() == "online"


class WebPresenceChecker:
    """Posts a user search form and reports the listed status."""

    def __init__(self, backend: str, *, timeout_s: float, client: httpx.AsyncClient | None = None) -> None:
        self.backend = backend
        self.timeout_s = timeout_s
        self._client = client

    async def is_online(self, username: str) -> bool:
        """Return True if ``username`` shows as online.

        Raises:
            QueryError: If the request fails or the page can't be read
        """
        form = {"usersuche": username, "username": ""}
        try:
            if self._client is not None:
                response = await self._client.post(self.backend, data=form, timeout=self.timeout_s)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                    response = await client.post(self.backend, data=form)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise QueryError(f"Presence request failed: {e}") from e

        online = parse_online(response.text)
        logger.info("presence_checked", username=username, online=online)
        return online

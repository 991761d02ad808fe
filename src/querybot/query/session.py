# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client query console session."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from querybot.cancel import wait_cancelled
from querybot.constants import BANNER_WAIT_S, DEFAULT_CONNECT_TIMEOUT_S, NOT_CONNECTED, TERMINATOR
from querybot.errors import (
    AuthError,
    ChannelNotFound,
    DatabaseIdError,
    QueryBotError,
    QueryError,
    RecordParseError,
    ResultNotFound,
    StatusError,
)
from querybot.logging import get_logger
from querybot.query.codec import decode_rows, decode_status, escape
from querybot.query.framing import FrameIO
from querybot.query.models import Channel, Client, ClientVariable, ConnectInfo, QueryRecord, WhoAmI
from querybot.transport.tcp import TcpTransport

if TYPE_CHECKING:
    from querybot.transport.base import ConnectionTransport

logger = get_logger(__name__)

R = TypeVar("R", bound=QueryRecord)


class QuerySession:
    """One authenticated console connection.

    The session owns its transport for its whole lifetime. Requests are
    serialized by a lock, so there is never more than one command in flight
    and every write is paired with exactly one status line.
    """

    def __init__(self, transport: ConnectionTransport, frames: FrameIO | None = None) -> None:
        self.transport = transport
        self.frames = frames or FrameIO(transport)
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        *,
        timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
        transport: ConnectionTransport | None = None,
    ) -> QuerySession:
        """Open the console and drain its banner.

        Raises:
            TransportError: If the connection cannot be established
        """
        transport = transport or TcpTransport()
        await transport.connect(host, port, timeout=timeout)
        session = cls(transport)

        await asyncio.sleep(BANNER_WAIT_S)
        banner = await session.frames.read()
        if banner is None:
            logger.warning("query_banner_missing", host=host, port=port)
        return session

    async def close(self) -> None:
        await self.transport.disconnect()

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    # -- request primitives --------------------------------------------------

    async def _request(self, command: str) -> str:
        async with self._lock:
            logger.debug("query_send", command=command)
            return await self.frames.exchange(command + TERMINATOR)

    async def _execute(self, command: str, error_cls: type[StatusError] = StatusError) -> None:
        decode_status(await self._request(command), error_cls)

    async def _query(self, command: str, model: type[R]) -> list[R] | None:
        return decode_rows(await self._request(command), model)

    async def _query_required(self, command: str, model: type[R]) -> list[R]:
        """Row query that must return a data line.

        A parse failure is retried once with a fresh request; an unrelated
        push line can land where the data line is expected.
        """
        try:
            rows = await self._query(command, model)
        except RecordParseError as e:
            logger.warning("query_retry", command=command, error=str(e))
            rows = await self._query(command, model)

        if rows is None:
            raise ResultNotFound(f"Expected result for {command!r} but none found")
        return rows

    async def _query_one(self, command: str, model: type[R]) -> R:
        rows = await self._query_required(command, model)
        if not rows:
            raise ResultNotFound(f"Expected result for {command!r} but none found")
        return rows[0]

    # -- commands ------------------------------------------------------------

    async def login(self, api_key: str) -> None:
        """Authenticate with the console api key.

        Raises:
            AuthError: If the key is rejected
        """
        await self._execute(f"auth apikey={escape(api_key)}", AuthError)
        logger.info("query_authenticated")

    async def who_am_i(self) -> WhoAmI:
        """Return own client and channel id.

        Raises:
            StatusError: ``code == NOT_CONNECTED`` while not on any server
        """
        return await self._query_one("whoami", WhoAmI)

    async def list_clients(self) -> list[Client]:
        return await self._query_required("clientlist", Client)

    async def list_channels(self) -> list[Channel]:
        return await self._query_required("channellist", Channel)

    async def server_connect_info(self) -> ConnectInfo:
        return await self._query_one("serverconnectinfo", ConnectInfo)

    async def connect_server(self, address: str, nickname: str) -> None:
        """Ask the console's client to join ``address`` as ``nickname``."""
        await self._execute(f"connect address={escape(address)} nickname={escape(nickname)}")
        logger.info("server_connect_requested", address=address, nickname=nickname)

    async def wait_connected(
        self,
        timeout_s: float,
        cancel: asyncio.Event | None = None,
        poll_s: float = 0.5,
    ) -> WhoAmI | None:
        """Poll ``whoami`` until the client is placed on the server.

        Returns:
            Own identity, or ``None`` if ``cancel`` was set while waiting

        Raises:
            TimeoutError: If still not connected after ``timeout_s``
            StatusError: For any status other than ``NOT_CONNECTED``
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_s
        while True:
            try:
                return await self.who_am_i()
            except StatusError as e:
                if e.code != NOT_CONNECTED:
                    raise

            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TimeoutError(f"Not connected after {timeout_s:.0f}s")
            if await wait_cancelled(cancel, min(poll_s, remaining)):
                return None

    async def switch_channel(self, channel_id: int) -> None:
        me = await self.who_am_i()
        await self._execute(f"clientmove cid={channel_id} clid={me.client_id}")

    async def switch_channel_by_name(self, name: str) -> Channel:
        """Move self into the first channel named exactly ``name``.

        Raises:
            ChannelNotFound: If no channel has that name
        """
        for channel in await self.list_channels():
            if channel.channel_name == name:
                await self.switch_channel(channel.cid)
                logger.info("channel_switched", channel=name, cid=channel.cid)
                return channel
        raise ChannelNotFound(f"Channel not found: {name}")

    async def set_channel_password(self, channel_id: int, password: str) -> None:
        await self._execute(f"channeledit cid={channel_id} channel_password={escape(password)}")

    async def set_current_channel_password(self, password: str) -> None:
        me = await self.who_am_i()
        await self.set_channel_password(me.channel_id, password)

    async def update_client_description(self, database_id: int, description: str) -> None:
        await self._execute(f"clientdbedit cldbid={database_id} client_description={escape(description)}")

    async def query_client_description(self, client_id: int) -> ClientVariable:
        """Fetch ``client_description`` of a connected client.

        Raises:
            QueryError: If the reply carries no data line
        """
        rows = await self._query(f"clientvariable clid={client_id} client_description", ClientVariable)
        if not rows:
            raise QueryError(f"No description returned for client {client_id}")
        return rows[0]

    async def query_database_id(self) -> int:
        """Resolve own persistent database id.

        Raises:
            DatabaseIdError: If own client is not in the client list
        """
        me = await self.who_am_i()
        database_id = 0
        for client in await self.list_clients():
            if client.client_id == me.client_id:
                database_id = client.client_database_id
        if database_id == 0:
            raise DatabaseIdError("Can't get self database_id")
        return database_id

    async def check_self_duplicate(self, database_id: int | None = None) -> bool:
        """True if more than one live client shares own database id."""
        if database_id is None:
            database_id = await self.query_database_id()
        clients = await self.list_clients()
        return count_identity(clients, database_id) > 1

    async def disconnect(self) -> None:
        """Leave the current server; failures are logged, never raised."""
        try:
            await self._execute("disconnect")
        except QueryBotError as e:
            logger.warning("server_disconnect_failed", error=str(e))
        else:
            logger.info("server_disconnected")

    async def logout(self) -> None:
        """Quit the console and close the connection."""
        try:
            await self._execute("quit")
        except QueryBotError as e:
            logger.warning("query_quit_failed", error=str(e))
        finally:
            await self.close()


def count_identity(clients: list[Client], database_id: int) -> int:
    """Number of clients logged in under ``database_id``."""
    return sum(1 for client in clients if client.client_database_id == database_id)

# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Records returned by the client query console."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class QueryRecord(BaseModel):
    """Base for records decoded from ``key=value`` rows."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class WhoAmI(QueryRecord):
    client_id: int = Field(alias="clid")
    channel_id: int = Field(alias="cid")


class Client(QueryRecord):
    client_id: int = Field(alias="clid")
    channel_id: int = Field(alias="cid")
    client_database_id: int
    client_type: int = 0
    client_nickname: str = ""


class Channel(QueryRecord):
    cid: int
    pid: int = 0
    channel_order: int = 0
    channel_name: str
    total_clients: int = 0


class ClientVariable(QueryRecord):
    client_id: int = Field(alias="clid")
    client_description: str = ""


class ConnectInfo(QueryRecord):
    ip: str
    port: int

# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exception hierarchy for querybot."""

from __future__ import annotations


class QueryBotError(Exception):
    """Base exception for querybot operations."""

    pass


class TransportError(QueryBotError, ConnectionError):
    """Socket I/O failed or the peer went away."""

    pass


class ProtocolError(QueryBotError):
    """Reply did not follow the console protocol."""

    pass


class StatusNotFound(ProtocolError):
    """Reply carried no terminal status line."""

    pass


class RecordParseError(ProtocolError):
    """A status line or record row could not be parsed."""

    pass


class StatusError(QueryBotError):
    """Peer reported a non-zero status code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"{message}({code})")
        self.code = code
        self.message = message


class AuthError(StatusError):
    """Authentication with the api key was rejected."""

    pass


class DomainError(QueryBotError):
    """A well-formed reply did not contain what the operation needs."""

    pass


class ChannelNotFound(DomainError):
    """No channel matches the requested name."""

    pass


class DatabaseIdError(DomainError):
    """Own client could not be matched to a database id."""

    pass


class ResultNotFound(DomainError):
    """A query that always returns rows came back without a data line."""

    pass


class QueryError(DomainError):
    """Companion or auxiliary query produced no usable answer."""

    pass

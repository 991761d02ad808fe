# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client query wire codec.

Replies look like::

    clid=1 cid=3 client_nickname=foo|clid=2 cid=3 client_nickname=bar
    error id=0 msg=ok

Every reply ends with exactly one ``error`` status line. At most one data
line precedes it; records inside the data line are separated by ``|`` and
each record is a list of whitespace separated ``key=value`` tokens.
"""

from __future__ import annotations

import re
from typing import TypeVar, overload

from pydantic import BaseModel, ValidationError

from querybot.constants import STATUS_PREFIX
from querybot.errors import RecordParseError, StatusError, StatusNotFound
from querybot.logging import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

# Order matters: backslash first so inserted backslashes are not escaped again.
_ESCAPES: tuple[tuple[str, str], ...] = (
    ("\\", "\\\\"),
    (" ", "\\s"),
    ("/", "\\/"),
    ("|", "\\p"),
)

_UNESCAPES: dict[str, str] = {
    "\\": "\\",
    "s": " ",
    "/": "/",
    "p": "|",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}

_ESCAPE_SEQ = re.compile(r"\\(.)", re.DOTALL)


def escape(value: str) -> str:
    """Escape a string for use as a command parameter value."""
    for raw, escaped in _ESCAPES:
        value = value.replace(raw, escaped)
    return value


def unescape(value: str) -> str:
    """Reverse :func:`escape` (and the server's other escape sequences)."""
    return _ESCAPE_SEQ.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), value)


def parse_record(segment: str) -> dict[str, str]:
    """Parse one ``key=value key=value`` record.

    Tokens without ``=`` are flags and map to an empty string.
    """
    record: dict[str, str] = {}
    for token in segment.split():
        key, _, value = token.partition("=")
        record[key] = unescape(value)
    return record


class QueryStatus(BaseModel):
    """Terminal status line of a reply."""

    code: int = 0
    message: str = "ok"

    @classmethod
    def from_line(cls, line: str) -> QueryStatus:
        """Parse an ``error id=<int> msg=<text>`` line.

        Raises:
            RecordParseError: If the line has no usable ``id``
        """
        _, sep, rest = line.strip().partition(STATUS_PREFIX)
        if not sep:
            raise RecordParseError(f"Not a status line: {line!r}")
        fields = parse_record(rest)
        try:
            code = int(fields["id"])
        except (KeyError, ValueError) as e:
            raise RecordParseError(f"Malformed status line: {line!r}") from e
        return cls(code=code, message=fields.get("msg", ""))

    @property
    def ok(self) -> bool:
        return self.code == 0

    def raise_for_status(self, error_cls: type[StatusError] = StatusError) -> None:
        if not self.ok:
            raise error_cls(self.code, self.message)


def find_status(content: str) -> QueryStatus:
    """Return the first status line in ``content``.

    Raises:
        StatusNotFound: If there is no status line
        RecordParseError: If the status line is malformed
    """
    for line in content.splitlines():
        if line.strip().startswith(STATUS_PREFIX):
            return QueryStatus.from_line(line)
    logger.error("status_not_found", content=content)
    raise StatusNotFound("Reply carries no status line")


def decode_status(content: str, error_cls: type[StatusError] = StatusError) -> str:
    """Check the status line of a reply.

    Args:
        content: Full reply text
        error_cls: Exception raised for a non-zero status (``AuthError`` for login)

    Returns:
        The unchanged reply content when the status is ``id=0``

    Raises:
        StatusNotFound: If there is no status line
        StatusError: If the status code is non-zero
    """
    find_status(content).raise_for_status(error_cls)
    return content


def _data_line(content: str) -> str | None:
    for line in content.splitlines():
        stripped = line.strip()
        # Skip blanks left by the "\n\r" terminator and unsolicited event pushes.
        if not stripped or stripped.startswith(STATUS_PREFIX) or stripped.startswith("notify"):
            continue
        return stripped
    return None


@overload
def decode_rows(content: str, model: None = None) -> list[dict[str, str]] | None: ...


@overload
def decode_rows(content: str, model: type[M]) -> list[M] | None: ...


def decode_rows(content: str, model: type[M] | None = None) -> list[M] | list[dict[str, str]] | None:
    """Decode the data line of a successful reply into records.

    Args:
        content: Full reply text
        model: Optional pydantic model each record is validated into

    Returns:
        One record per ``|`` separated segment, in order, or ``None`` when the
        reply has no data line at all

    Raises:
        StatusNotFound: If there is no status line
        StatusError: If the status code is non-zero
        RecordParseError: If a record does not fit ``model``
    """
    line = _data_line(decode_status(content))
    if line is None:
        return None

    records = [parse_record(segment) for segment in line.split("|") if segment.strip()]
    if model is None:
        return records
    try:
        return [model.model_validate(record) for record in records]
    except ValidationError as e:
        raise RecordParseError(f"Cannot parse {model.__name__} from {line!r}") from e


__all__ = [
    "QueryStatus",
    "decode_rows",
    "decode_status",
    "escape",
    "find_status",
    "parse_record",
    "unescape",
]

# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Bot configuration file."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from querybot.constants import (
    DEFAULT_PLAYER_HOST,
    DEFAULT_PLAYER_PASSWORD,
    DEFAULT_PLAYER_PORT,
    DEFAULT_QUERY_HOST,
    DEFAULT_QUERY_PORT,
    DEFAULT_TICK_INTERVAL_MS,
)
from querybot.logging import get_logger

logger = get_logger(__name__)

MIN_SERVER_TIMEOUT_S = 3
MIN_SWITCH_WAIT_MS = 500


class MonitorConfig(BaseModel):
    """Optional web presence lookup used before joining the server."""

    web: bool = False
    username: str = ""
    backend: str = ""
    interval: int = 1  # minutes

    model_config = ConfigDict(extra="ignore")

    @field_validator("interval", mode="before")
    @classmethod
    def _at_least_one_minute(cls, value: int | None) -> int:
        if not value:
            return 1
        return int(value)


class ServerConfig(BaseModel):
    """Voice server the console's client should sit on."""

    address: str
    channel: str
    timeout: int = MIN_SERVER_TIMEOUT_S  # seconds to wait for the join
    password: str | None = None
    switch_wait: int = MIN_SWITCH_WAIT_MS  # ms between join and channel switch

    model_config = ConfigDict(extra="ignore")

    @field_validator("timeout", mode="before")
    @classmethod
    def _clamp_timeout(cls, value: int | None) -> int:
        return max(MIN_SERVER_TIMEOUT_S, int(value or 0))

    @field_validator("switch_wait", mode="before")
    @classmethod
    def _clamp_switch_wait(cls, value: int | None) -> int:
        return max(MIN_SWITCH_WAIT_MS, int(value or 0))


class QueryConfig(BaseModel):
    host: str = DEFAULT_QUERY_HOST
    port: int = DEFAULT_QUERY_PORT

    model_config = ConfigDict(extra="ignore")


class PlayerConfig(BaseModel):
    host: str = DEFAULT_PLAYER_HOST
    port: int = DEFAULT_PLAYER_PORT
    password: str | None = DEFAULT_PLAYER_PASSWORD

    model_config = ConfigDict(extra="ignore")


class BotConfig(BaseModel):
    """Complete bot configuration."""

    api_key: str
    monitor_id: list[int]
    need_disconnect: bool = False
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    server: ServerConfig
    query: QueryConfig = Field(default_factory=QueryConfig)
    player: PlayerConfig = Field(default_factory=PlayerConfig)

    model_config = ConfigDict(extra="ignore")

    @field_validator("monitor_id", mode="before")
    @classmethod
    def _single_or_many(cls, value: int | list[int]) -> list[int]:
        if isinstance(value, (int, str)):
            return [int(value)]
        return value

    @field_validator("need_disconnect", mode="before")
    @classmethod
    def _null_is_false(cls, value: bool | None) -> bool:
        return bool(value)

    @property
    def watched_ids(self) -> frozenset[int]:
        return frozenset(self.monitor_id)

    @classmethod
    def from_yaml(cls, path: Path | str) -> BotConfig:
        path = Path(path)
        logger.info("config_loading", path=str(path))
        data = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(data)

    def to_yaml(self, path: Path | str) -> None:
        path = Path(path)
        logger.info("config_saving", path=str(path))
        data = self.model_dump(mode="json")
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))

    def redacted(self) -> dict:
        """Dump with secrets masked, for display."""
        data = self.model_dump(mode="json")
        data["api_key"] = _mask(self.api_key)
        if self.server.password:
            data["server"]["password"] = _mask(self.server.password)
        if self.player.password:
            data["player"]["password"] = _mask(self.player.password)
        return data


def _mask(secret: str) -> str:
    if len(secret) <= 4:
        return "****"
    return secret[:4] + "*" * (len(secret) - 4)


def load_config(path: Path | str) -> BotConfig:
    return BotConfig.from_yaml(path)

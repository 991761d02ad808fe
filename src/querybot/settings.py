# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = "INFO"
    # Override the config file's query endpoint when set.
    query_host: str | None = None
    query_port: int | None = None

    model_config = SettingsConfigDict(
        env_prefix="QUERYBOT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv


@dataclass(frozen=True)
class DiscordConfig:
    token: str
    # When set, slash commands sync to this guild only (instant updates)
    sync_guild_id: Optional[int]


@dataclass(frozen=True)
class StorageConfig:
    state_path: str


@dataclass(frozen=True)
class RelayConfig:
    default_color: int


@dataclass(frozen=True)
class AppConfig:
    discord: DiscordConfig
    storage: StorageConfig
    relay: RelayConfig
    log_level: str


def _optional_int(value) -> Optional[int]:
    if value in (None, "", 0, "0"):
        return None
    return int(value)


def load_config(path: str) -> AppConfig:
    """Read ``path`` (optional) and let environment variables override it."""
    load_dotenv(find_dotenv(usecwd=True))
    raw = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)

    discord_raw = raw.get("discord", {})
    storage_raw = raw.get("storage", {})
    relay_raw = raw.get("relay", {})

    discord = DiscordConfig(
        token=str(os.environ.get("DISCORD_TOKEN") or discord_raw.get("token", "")),
        sync_guild_id=_optional_int(os.environ.get("GUILD_ID") or discord_raw.get("sync_guild_id")),
    )
    storage = StorageConfig(
        state_path=str(os.environ.get("ECHO_STATE_PATH") or storage_raw.get("state_path", "echo-config.json")),
    )
    default_color = relay_raw.get("default_color", 0x2B2D31)
    if isinstance(default_color, str):
        default_color = int(default_color.lstrip("#"), 16)
    relay = RelayConfig(default_color=int(default_color))

    log_level = str(os.environ.get("LOG_LEVEL") or raw.get("log_level", "INFO")).upper()
    return AppConfig(discord=discord, storage=storage, relay=relay, log_level=log_level)

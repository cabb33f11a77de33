"""Shared fixtures for the echo relay tests."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from core.authorization import Capability
from core.commands import CommandContext, CommandHandlers
from core.errors import SinkUnavailable
from core.models import ChannelKind, ChannelRef, InboundMessage, RelayPayload
from storage.state_repository import LinkStore

GUILD = "g1"


class FakeSink:
    """In-memory stand-in for the Discord transport."""

    def __init__(self, channels: Optional[Dict[str, ChannelRef]] = None, failing: Optional[Set[str]] = None):
        self.channels = channels or {}
        self.failing = failing or set()
        self.sent: List[Tuple[ChannelRef, RelayPayload]] = []

    async def resolve_channel(self, guild_id: str, channel_id: str) -> Optional[ChannelRef]:
        return self.channels.get(channel_id)

    async def send_payload(self, channel: ChannelRef, payload: RelayPayload) -> None:
        if channel.id in self.failing:
            raise SinkUnavailable(f"{channel.id} is down")
        self.sent.append((channel, payload))


def text_channel(channel_id: str, name: Optional[str] = None, kind: ChannelKind = ChannelKind.TEXT) -> ChannelRef:
    return ChannelRef(id=channel_id, name=name or f"chan-{channel_id}", kind=kind)


def make_message(text: str = "hello", channel_id: str = "c1", guild_id: str = GUILD, **overrides) -> InboundMessage:
    fields = dict(
        guild_id=guild_id,
        channel_id=channel_id,
        channel_name="general",
        author_id="u42",
        author_display_name="Alice",
        author_is_bot=False,
        text=text,
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return InboundMessage(**fields)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("EchoRelay.Tests")


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "echo-config.json"


@pytest.fixture
def link_store(state_path: Path, logger) -> LinkStore:
    return LinkStore(str(state_path), logger)


@pytest.fixture
def handlers(link_store: LinkStore, logger) -> CommandHandlers:
    return CommandHandlers(link_store, logger)


@pytest.fixture
def mod_ctx() -> CommandContext:
    return CommandContext(guild_id=GUILD, capabilities=frozenset({Capability.MANAGE_MESSAGES}))


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink(channels={
        "c1": text_channel("c1", "general"),
        "c2": text_channel("c2", "news-feed"),
        "c3": text_channel("c3", "announcements", ChannelKind.ANNOUNCEMENT),
        "voice": text_channel("voice", "lounge", ChannelKind.OTHER),
    })

# Core data models for the echo relay
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple


class ChannelKind(Enum):
    TEXT = "text"
    ANNOUNCEMENT = "announcement"
    OTHER = "other"


@dataclass(frozen=True)
class ChannelRef:
    id: str
    name: str
    kind: ChannelKind


@dataclass(frozen=True)
class Attachment:
    name: Optional[str]
    url: str


@dataclass(frozen=True)
class InboundMessage:
    guild_id: str
    channel_id: str
    channel_name: Optional[str]
    author_id: str
    author_display_name: str
    author_is_bot: bool
    text: str
    created_at: datetime
    attachments: Tuple[Attachment, ...] = ()
    stickers: Tuple[str, ...] = ()
    author_avatar_url: Optional[str] = None


@dataclass(frozen=True)
class RelayPayload:
    author_name: str
    body: str
    color: int
    footer: str
    timestamp: datetime
    author_icon_url: Optional[str] = None


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_label(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class EchoLink:
    guild_id: str
    source_channel_id: str
    target_channel_id: str
    feed_label: Optional[str] = None
    color: Optional[int] = None
    enabled: bool = True
    created_at: str = field(default_factory=_utcnow_iso)

    def __post_init__(self):
        # Frozen, so normalize through object.__setattr__
        object.__setattr__(self, "feed_label", normalize_label(self.feed_label))
        if self.color is not None and not 0 <= self.color <= 0xFFFFFF:
            raise ValueError(f"color out of range: {self.color}")

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.guild_id, self.source_channel_id, self.target_channel_id)

    def to_record(self) -> Dict:
        record = {
            "guildId": self.guild_id,
            "sourceChannelId": self.source_channel_id,
            "targetChannelId": self.target_channel_id,
            "feedName": self.feed_label or "",
        }
        if self.color is not None:
            record["color"] = self.color
        record["enabled"] = self.enabled
        record["createdAt"] = self.created_at
        return record

    @classmethod
    def from_record(cls, record: Dict) -> "EchoLink":
        color = record.get("color")
        return cls(
            guild_id=str(record["guildId"]),
            source_channel_id=str(record["sourceChannelId"]),
            target_channel_id=str(record["targetChannelId"]),
            feed_label=record.get("feedName"),
            color=int(color) if color is not None else None,
            enabled=record.get("enabled") is not False,
            created_at=str(record.get("createdAt") or _utcnow_iso()),
        )


@dataclass(frozen=True)
class ConfigStore:
    version: int = 1
    links: Tuple[EchoLink, ...] = ()
    disabled_sources: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def to_record(self) -> Dict:
        return {
            "version": self.version,
            "links": [link.to_record() for link in self.links],
            "disabledSources": {
                guild_id: list(channel_ids)
                for guild_id, channel_ids in self.disabled_sources.items()
            },
        }

    @classmethod
    def from_record(cls, record: Dict) -> "ConfigStore":
        return cls(
            version=int(record["version"]),
            links=tuple(EchoLink.from_record(item) for item in record["links"]),
            disabled_sources={
                str(guild_id): tuple(str(channel_id) for channel_id in channel_ids)
                for guild_id, channel_ids in record["disabledSources"].items()
            },
        )

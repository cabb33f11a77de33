# Renders inbound messages into relay payloads (no I/O)
from typing import Iterable, Optional

from core.models import Attachment, ChannelKind, ChannelRef, EchoLink, InboundMessage, RelayPayload

SUPPORTED_CHANNEL_KINDS = frozenset({ChannelKind.TEXT, ChannelKind.ANNOUNCEMENT})
DEFAULT_COLOR = 0x2B2D31
# Embed descriptions cap at 4096
MAX_BODY_LENGTH = 3900
TRUNCATION_MARKER = "…"
PLACEHOLDER_BODY = "(no text content)"


def render_attachments(attachments: Iterable[Attachment]) -> Optional[str]:
    lines = [f"📎 [{att.name or 'attachment'}]({att.url})" for att in attachments]
    return "\n".join(lines) if lines else None


def render_stickers(stickers: Iterable[str]) -> Optional[str]:
    names = [name for name in stickers if name]
    return f"🎟️ Stickers: {', '.join(names)}" if names else None


def build_body(message: InboundMessage) -> str:
    parts = []
    text = (message.text or "").strip()
    if text:
        parts.append(text)
    attachments = render_attachments(message.attachments)
    if attachments:
        parts.append(attachments)
    stickers = render_stickers(message.stickers)
    if stickers:
        parts.append(stickers)
    if not parts:
        parts = [PLACEHOLDER_BODY]

    body = "\n\n".join(parts)
    if len(body) > MAX_BODY_LENGTH:
        body = body[:MAX_BODY_LENGTH] + TRUNCATION_MARKER
    return body


def author_line(message: InboundMessage, link: EchoLink) -> str:
    if link.feed_label:
        return f"{message.author_display_name} • {link.feed_label}"
    return message.author_display_name


def footer_line(message: InboundMessage) -> str:
    return f"From #{message.channel_name or 'unknown'} • ID {message.author_id}"


class MessageTransformer:
    def __init__(self, default_color: int = DEFAULT_COLOR):
        self.default_color = default_color

    def supports(self, channel: Optional[ChannelRef]) -> bool:
        return channel is not None and channel.kind in SUPPORTED_CHANNEL_KINDS

    def transform(self, message: InboundMessage, link: EchoLink, target: Optional[ChannelRef]) -> Optional[RelayPayload]:
        """Build the payload for one matched link, or ``None`` to skip it.

        A missing target or one that is not a text/announcement channel
        is skipped rather than treated as an error.
        """
        if not self.supports(target):
            return None
        return RelayPayload(
            author_name=author_line(message, link),
            author_icon_url=message.author_avatar_url,
            body=build_body(message),
            color=link.color if link.color is not None else self.default_color,
            footer=footer_line(message),
            timestamp=message.created_at,
        )

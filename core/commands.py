# Handlers for the /echo command group
import re
from dataclasses import dataclass
from typing import FrozenSet, Optional

from core.authorization import Capability, is_authorized
from core.errors import InvalidChannelKind, InvalidColor, NotAuthorized, NotInGuild
from core.models import ChannelRef, EchoLink
from core.transformer import SUPPORTED_CHANNEL_KINDS
from storage import state_repository
from storage.migrations import LEGACY_GUILD_KEY

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class CommandContext:
    guild_id: Optional[str]
    capabilities: FrozenSet[Capability] = frozenset()


def parse_hex_color(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    match = _HEX_COLOR.match(value.strip())
    if not match:
        raise InvalidColor()
    return int(match.group(1), 16)


def format_color(color: int) -> str:
    return f"#{color:06x}"


class CommandHandlers:
    def __init__(self, link_store, logger):
        self.link_store = link_store
        self.logger = logger

    def _authorize(self, ctx: CommandContext) -> str:
        if not ctx.guild_id:
            raise NotInGuild()
        if not is_authorized(ctx.capabilities):
            raise NotAuthorized()
        return ctx.guild_id

    def _require_text_channel(self, channel: ChannelRef, role: str) -> None:
        if channel.kind not in SUPPORTED_CHANNEL_KINDS:
            raise InvalidChannelKind(f"{role} must be a text/announcement channel.")

    async def add(self, ctx: CommandContext, source: ChannelRef, target: ChannelRef,
                  name: Optional[str] = None, color: Optional[str] = None) -> str:
        guild_id = self._authorize(ctx)
        self._require_text_channel(source, "Source")
        self._require_text_channel(target, "Target")
        parsed_color = parse_hex_color(color)

        link = EchoLink(
            guild_id=guild_id,
            source_channel_id=source.id,
            target_channel_id=target.id,
            feed_label=name,
            color=parsed_color,
        )
        await self.link_store.update(lambda store: state_repository.add_link(store, link))
        self.logger.info(f"Echo link added in guild {guild_id}: {source.id} -> {target.id}")

        reply = f"✅ Echo added: **#{source.name} → #{target.name}**"
        if link.feed_label:
            reply += f" (name: **{link.feed_label}**)"
        if link.color is not None:
            reply += f" (color: **{format_color(link.color)}**)"
        return reply

    async def remove(self, ctx: CommandContext, source: ChannelRef, target: ChannelRef) -> str:
        guild_id = self._authorize(ctx)
        await self.link_store.update(
            lambda store: state_repository.remove_link(store, guild_id, source.id, target.id)
        )
        self.logger.info(f"Echo link removed in guild {guild_id}: {source.id} -> {target.id}")
        return f"🗑️ Removed echo: **#{source.name} → #{target.name}**"

    async def list(self, ctx: CommandContext) -> str:
        guild_id = self._authorize(ctx)
        store = await self.link_store.snapshot()
        links = state_repository.list_links(store, guild_id)
        if not links:
            return "No echo links set up yet."

        lines = []
        for index, link in enumerate(links, start=1):
            line = f"{index}. <#{link.source_channel_id}> → <#{link.target_channel_id}>"
            if link.feed_label:
                line += f" • **{link.feed_label}**"
            if link.color is not None:
                line += f" • `{format_color(link.color)}`"
            line += " • ✅ enabled" if link.enabled else " • ❌ disabled"
            lines.append(line)
        content = "**Echo links:**\n" + "\n".join(lines)

        disabled = state_repository.disabled_sources_for(store, guild_id)
        if disabled:
            content += "\n\n**Sources disabled:**\n" + ", ".join(f"<#{c}>" for c in disabled)
        # Legacy disables carry no guild; only show the ones that touch this guild's links
        sources = {link.source_channel_id for link in links}
        legacy = [c for c in store.disabled_sources.get(LEGACY_GUILD_KEY, ()) if c in sources]
        if legacy:
            content += "\n\n**Sources disabled (legacy):**\n" + ", ".join(f"<#{c}>" for c in legacy)
        return content

    async def off(self, ctx: CommandContext, source: ChannelRef) -> str:
        guild_id = self._authorize(ctx)
        await self.link_store.update(
            lambda store: state_repository.set_source_disabled(store, guild_id, source.id, True)
        )
        self.logger.info(f"Echoing disabled in guild {guild_id} for source {source.id}")
        return f"⛔ Echoing disabled for **#{source.name}**"

    async def on(self, ctx: CommandContext, source: ChannelRef) -> str:
        guild_id = self._authorize(ctx)
        await self.link_store.update(
            lambda store: state_repository.set_source_disabled(store, guild_id, source.id, False)
        )
        self.logger.info(f"Echoing enabled in guild {guild_id} for source {source.id}")
        return f"✅ Echoing enabled for **#{source.name}**"

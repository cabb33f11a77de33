# Discord transport: inbound messages, outbound embeds and the /echo commands
from typing import Awaitable, FrozenSet, Optional

import discord
from discord import app_commands
from discord.ext import commands

from core.authorization import Capability
from core.commands import CommandContext, CommandHandlers
from core.errors import EchoError, SinkUnavailable
from core.models import Attachment, ChannelKind, ChannelRef, InboundMessage, RelayPayload

INTERNAL_ERROR_REPLY = "⚠️ Something went wrong while handling that command. Please try again later."
MAX_REPLY_LENGTH = 2000


def channel_kind(channel) -> ChannelKind:
    # discord.py models announcement channels as TextChannel with is_news()
    if isinstance(channel, discord.TextChannel):
        return ChannelKind.ANNOUNCEMENT if channel.is_news() else ChannelKind.TEXT
    return ChannelKind.OTHER


def channel_ref(channel) -> ChannelRef:
    return ChannelRef(id=str(channel.id), name=getattr(channel, "name", None) or "unknown", kind=channel_kind(channel))


def capabilities_from_permissions(permissions: Optional[discord.Permissions]) -> FrozenSet[Capability]:
    if permissions is None:
        return frozenset()
    granted = set()
    if permissions.manage_guild:
        granted.add(Capability.MANAGE_GUILD)
    if permissions.manage_messages:
        granted.add(Capability.MANAGE_MESSAGES)
    if permissions.administrator:
        granted.add(Capability.ADMINISTRATOR)
    return frozenset(granted)


def inbound_from_message(message: discord.Message) -> Optional[InboundMessage]:
    if message.guild is None:
        return None
    author = message.author
    avatar = getattr(author, "display_avatar", None)
    return InboundMessage(
        guild_id=str(message.guild.id),
        channel_id=str(message.channel.id),
        channel_name=getattr(message.channel, "name", None),
        author_id=str(author.id),
        author_display_name=getattr(author, "display_name", None) or getattr(author, "name", "Unknown"),
        author_is_bot=bool(author.bot),
        text=message.content or "",
        created_at=message.created_at,
        attachments=tuple(Attachment(name=att.filename, url=att.url) for att in message.attachments),
        stickers=tuple(sticker.name for sticker in message.stickers),
        author_avatar_url=avatar.with_size(64).url if avatar is not None else None,
    )


def build_embed(payload: RelayPayload) -> discord.Embed:
    embed = discord.Embed(description=payload.body, color=payload.color, timestamp=payload.timestamp)
    embed.set_author(name=payload.author_name, icon_url=payload.author_icon_url)
    embed.set_footer(text=payload.footer)
    return embed


class EchoCommands(commands.Cog):
    echo = app_commands.Group(
        name="echo",
        description="Manage channel echo feeds (moderators only).",
        guild_only=True,
    )

    def __init__(self, handlers: CommandHandlers, logger):
        self.handlers = handlers
        self.logger = logger

    def _context(self, interaction: discord.Interaction) -> CommandContext:
        return CommandContext(
            guild_id=str(interaction.guild_id) if interaction.guild_id else None,
            capabilities=capabilities_from_permissions(interaction.permissions),
        )

    async def _respond(self, interaction: discord.Interaction, label: str, pending: Awaitable[str]) -> None:
        try:
            content = await pending
        except EchoError as exc:
            if exc.user_visible:
                content = exc.message
            else:
                self.logger.error(f"/echo {label} failed: {exc}", exc_info=True)
                content = INTERNAL_ERROR_REPLY
        except Exception as exc:
            self.logger.error(f"/echo {label} failed: {exc}", exc_info=True)
            content = INTERNAL_ERROR_REPLY
        if len(content) > MAX_REPLY_LENGTH:
            content = content[:MAX_REPLY_LENGTH - 1] + "…"
        await interaction.response.send_message(content, ephemeral=True)

    @echo.command(name="add", description="Add an echo from a source channel to a target channel.")
    @app_commands.describe(
        source="Channel to read messages from",
        target="Channel to echo messages into",
        name="Optional feed label (e.g. 'general chat feed')",
        color="Optional hex color like #ff9900",
    )
    async def add(self, interaction: discord.Interaction, source: discord.TextChannel,
                  target: discord.TextChannel, name: Optional[str] = None, color: Optional[str] = None) -> None:
        ctx = self._context(interaction)
        await self._respond(
            interaction, "add",
            self.handlers.add(ctx, channel_ref(source), channel_ref(target), name=name, color=color),
        )

    @echo.command(name="remove", description="Remove a specific echo link.")
    @app_commands.describe(source="Source channel", target="Target channel")
    async def remove(self, interaction: discord.Interaction, source: discord.TextChannel,
                     target: discord.TextChannel) -> None:
        ctx = self._context(interaction)
        await self._respond(interaction, "remove", self.handlers.remove(ctx, channel_ref(source), channel_ref(target)))

    @echo.command(name="list", description="List all echo links in this server.")
    async def list_links(self, interaction: discord.Interaction) -> None:
        await self._respond(interaction, "list", self.handlers.list(self._context(interaction)))

    @echo.command(name="off", description="Disable all echoing from a source channel.")
    @app_commands.describe(source="Source channel")
    async def off(self, interaction: discord.Interaction, source: discord.TextChannel) -> None:
        await self._respond(interaction, "off", self.handlers.off(self._context(interaction), channel_ref(source)))

    @echo.command(name="on", description="Re-enable echoing from a source channel.")
    @app_commands.describe(source="Source channel")
    async def on(self, interaction: discord.Interaction, source: discord.TextChannel) -> None:
        await self._respond(interaction, "on", self.handlers.on(self._context(interaction), channel_ref(source)))


class EchoBot(commands.Bot):
    def __init__(self, handlers: CommandHandlers, logger, sync_guild_id: Optional[int] = None):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(command_prefix=commands.when_mentioned, intents=intents)
        self.handlers = handlers
        self.logger = logger
        self.sync_guild_id = sync_guild_id

    async def setup_hook(self) -> None:
        await self.add_cog(EchoCommands(self.handlers, self.logger))
        if self.sync_guild_id:
            guild = discord.Object(id=self.sync_guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            self.logger.info(f"Synced {len(synced)} command(s) to guild {self.sync_guild_id}")
        else:
            synced = await self.tree.sync()
            self.logger.info(f"Synced {len(synced)} global command(s)")


class DiscordClient:
    def __init__(self, bot, logger, router=None):
        self.bot = bot
        self.logger = logger
        self.router = router

        @self.bot.event
        async def on_ready():
            self.logger.info(f"Logged in as {self.bot.user}")

        @self.bot.event
        async def on_message(message):
            if self.router is None:
                return
            inbound = inbound_from_message(message)
            if inbound is None:
                return
            try:
                await self.router.relay(inbound)
            except Exception as exc:
                self.logger.error(f"Echo error for message {getattr(message, 'id', '?')}: {exc}", exc_info=True)

    async def start(self, token):
        self.logger.info("Starting Discord bot")
        await self.bot.start(token)

    async def resolve_channel(self, guild_id: str, channel_id: str) -> Optional[ChannelRef]:
        guild = self.bot.get_guild(int(guild_id))
        if guild is None:
            return None
        channel = guild.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await guild.fetch_channel(int(channel_id))
            except discord.HTTPException as exc:
                self.logger.warning(f"Could not fetch channel {channel_id} in guild {guild_id}: {exc}")
                return None
        return channel_ref(channel)

    async def send_payload(self, channel: ChannelRef, payload: RelayPayload) -> None:
        target = self.bot.get_channel(int(channel.id))
        if target is None:
            try:
                target = await self.bot.fetch_channel(int(channel.id))
            except discord.HTTPException as exc:
                raise SinkUnavailable(f"Channel {channel.id} is no longer available: {exc}") from exc
        try:
            await target.send(embed=build_embed(payload))
        except discord.HTTPException as exc:
            raise SinkUnavailable(f"Discord rejected the echo into {channel.id}: {exc}") from exc

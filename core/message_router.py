# Routing logic for echoing messages from source channels to their targets
from typing import Any, Tuple

from core.errors import StorageCorrupt
from core.models import ConfigStore, EchoLink, InboundMessage
from core.transformer import MessageTransformer
from storage.migrations import LEGACY_GUILD_KEY


def is_source_disabled(store: ConfigStore, guild_id: str, source_channel_id: str) -> bool:
    for key in (guild_id, LEGACY_GUILD_KEY):
        if source_channel_id in store.disabled_sources.get(key, ()):
            return True
    return False


def match_links(store: ConfigStore, guild_id: str, source_channel_id: str, author_is_bot: bool) -> Tuple[EchoLink, ...]:
    # Never re-echo bot output; this is the loop guard
    if author_is_bot:
        return ()
    if is_source_disabled(store, guild_id, source_channel_id):
        return ()
    return tuple(
        link for link in store.links
        if link.enabled
        and link.guild_id == guild_id
        and link.source_channel_id == source_channel_id
    )


class MessageRouter:
    def __init__(self, link_store, sink: Any, logger, transformer: MessageTransformer = None):
        self.link_store = link_store
        self.sink = sink
        self.logger = logger
        self.transformer = transformer or MessageTransformer()

    async def relay(self, message: InboundMessage) -> int:
        """Echo ``message`` to every matching link. Returns the number delivered."""
        if message.author_is_bot:
            return 0
        try:
            store = await self.link_store.snapshot()
        except StorageCorrupt as exc:
            self.logger.error(f"Cannot relay message from channel {message.channel_id}: {exc}", exc_info=True)
            return 0

        links = match_links(store, message.guild_id, message.channel_id, message.author_is_bot)
        if not links:
            return 0

        delivered = 0
        for link in links:
            try:
                target = await self.sink.resolve_channel(link.guild_id, link.target_channel_id)
            except Exception as exc:
                self.logger.error(f"Failed to resolve target channel {link.target_channel_id}: {exc}", exc_info=True)
                continue
            payload = self.transformer.transform(message, link, target)
            if payload is None:
                self.logger.debug(f"Skipping echo to {link.target_channel_id}: channel missing or unsupported")
                continue
            try:
                await self.sink.send_payload(target, payload)
            except Exception as exc:
                self.logger.error(f"Failed to echo message into channel {link.target_channel_id}: {exc}", exc_info=True)
                continue
            delivered += 1
        if delivered:
            self.logger.info(f"Echoed message from channel {message.channel_id} to {delivered}/{len(links)} target(s)")
        return delivered

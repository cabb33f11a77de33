# Main entrypoint for the echo relay bot
from core.config import AppConfig, load_config
from core.commands import CommandHandlers
from core.errors import StorageCorrupt
from core.message_router import MessageRouter
from core.transformer import MessageTransformer
from storage.state_repository import LinkStore
from transports.discord_client import DiscordClient, EchoBot
import logging
import asyncio
import sys
import os


class EchoApp:
    def __init__(self, config: AppConfig):
        self.config = config
        # Main logger for app-wide events
        self.logger = logging.getLogger("EchoRelay")
        self.discord_logger = self.logger.getChild("Discord")
        self.store_logger = self.logger.getChild("Store")
        self.router_logger = self.logger.getChild("Router")
        self.commands_logger = self.logger.getChild("Commands")

        self.link_store = LinkStore(config.storage.state_path, self.store_logger)
        self.handlers = CommandHandlers(self.link_store, self.commands_logger)

        bot = EchoBot(self.handlers, self.commands_logger, sync_guild_id=config.discord.sync_guild_id)
        self.discord = DiscordClient(bot, self.discord_logger)
        self.router = MessageRouter(
            self.link_store,
            self.discord,
            self.router_logger,
            MessageTransformer(default_color=config.relay.default_color),
        )
        self.discord.router = self.router

    async def start(self):
        try:
            self.link_store.load()
        except StorageCorrupt as exc:
            # Keep running; relays and commands report the error until the file is fixed
            self.store_logger.error(f"Echo state is unreadable: {exc}")
        await self.discord.start(self.config.discord.token)


if __name__ == "__main__":
    config_path = os.environ.get("ECHO_CONFIG", "config.json")
    config = load_config(config_path)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    # Suppress noisy INFO logs from discord.py
    logging.getLogger("discord").setLevel(logging.WARNING)

    if not config.discord.token:
        logging.error("DISCORD_TOKEN is not set. Add it to .env or the config file. Exiting.")
        sys.exit(1)
    app = EchoApp(config)
    asyncio.run(app.start())

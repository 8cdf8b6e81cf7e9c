"""Run the Discord bot and the OAuth callback server in one process."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from salvage_bot.bot import SalvageUnionBot
from salvage_bot.config import BotConfig, ConfigError
from salvage_bot.linking.clients import ScopedClientFactory
from salvage_bot.linking.gateway import SupabaseAuthGateway
from salvage_bot.linking.service import LinkService
from salvage_bot.linking.store import default_store
from salvage_bot.servers import build_server, create_app
from salvage_bot.utils.logging import setup_logging

logger = logging.getLogger("salvage-bot.main")


def build_services(config: BotConfig) -> tuple[LinkService, ScopedClientFactory]:
    """Wire the linking core; both halves share the process-wide session store."""
    store = default_store()
    gateway = SupabaseAuthGateway(config.supabase_url, config.supabase_anon_key)
    service = LinkService(gateway, store, callback_url=config.callback_url)
    clients = ScopedClientFactory(
        store,
        supabase_url=config.supabase_url,
        supabase_key=config.supabase_anon_key,
    )
    return service, clients


async def run(config: BotConfig) -> None:
    """Serve the callback and the Discord client until either one stops."""
    service, clients = build_services(config)

    app = create_app(service, success_url=config.success_url)
    server = build_server(
        app,
        host=config.callback_host,
        port=config.callback_port,
        log_level=config.log_level,
    )
    bot = SalvageUnionBot(
        service,
        clients,
        guild_id=config.guild_id,
        application_id=config.discord_client_id,
    )

    server_task = asyncio.create_task(server.serve(), name="callback-server")
    bot_task = asyncio.create_task(bot.start(config.discord_token), name="discord-bot")
    try:
        done, _ = await asyncio.wait(
            {server_task, bot_task}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in done:
            if task.exception() is not None:
                logger.error("%s stopped with an error", task.get_name(), exc_info=task.exception())
    finally:
        logger.info("Shutting down...")
        server.should_exit = True
        if not bot.is_closed():
            await bot.close()
        await asyncio.gather(server_task, bot_task, return_exceptions=True)
        logger.info("Shutdown complete.")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="salvage-bot",
        description="Salvage Union Discord bot with OAuth account linking.",
    )
    parser.add_argument("--env-file", default=".env", help="dotenv file to load (default: .env)")
    parser.add_argument("--log-level", default=None, help="override SALVAGE_BOT_LOG_LEVEL")
    args = parser.parse_args(argv)

    load_dotenv(args.env_file)

    try:
        config = BotConfig.from_env()
    except ConfigError as exc:
        setup_logging(logging.INFO)
        logger.critical("%s", exc)
        return 2

    setup_logging(args.log_level or config.log_level)
    logger.info("Starting Salvage Union bot: %r", config)

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())

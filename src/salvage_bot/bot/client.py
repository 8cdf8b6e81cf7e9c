"""Discord bot exposing the account-linking commands.

``/login``
    Sends the caller a one-off link to authorize the bot against their
    Salvage Union account.
``/logout``
    Forgets the caller's session.
``/account``
    Shows whether the caller is linked and when the session expires.

Every reply is ephemeral: login links are personal.
"""

from __future__ import annotations

import logging

import discord
from discord import Intents
from discord.ext import commands

from salvage_bot.bot.embeds import (
    build_account_embed,
    build_login_embed,
    build_login_error_embed,
    build_logout_embed,
)
from salvage_bot.constants import EXPIRED_INTERACTION_CODES
from salvage_bot.linking.clients import ScopedClientFactory
from salvage_bot.linking.errors import LinkGenerationError
from salvage_bot.linking.service import LinkService

logger = logging.getLogger("salvage-bot.bot")


class SalvageUnionBot(commands.Bot):
    """The Salvage Union Discord bot.

    Runs in-process with the OAuth callback server.  The :class:`LinkService`
    and the :class:`ScopedClientFactory` share one session store, so a session
    stored by the callback is visible to the commands immediately.
    """

    def __init__(
        self,
        link_service: LinkService,
        clients: ScopedClientFactory,
        *,
        guild_id: int | None = None,
        application_id: int | None = None,
    ) -> None:
        intents = Intents.default()
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            application_id=application_id,
            description="Look up your Salvage Union data from Discord.",
        )
        self.link_service = link_service
        self.clients = clients
        self.guild_id = guild_id
        self._setup_commands()

    def _setup_commands(self) -> None:
        """Register slash commands on the bot's command tree."""

        @self.tree.command(name="login", description="Link your Discord account to Salvage Union")
        async def login_command(interaction: discord.Interaction) -> None:
            await self.handle_login(interaction)

        @self.tree.command(name="logout", description="Unlink your Salvage Union session from the bot")
        async def logout_command(interaction: discord.Interaction) -> None:
            await self.handle_logout(interaction)

        @self.tree.command(name="account", description="Show whether your account is linked")
        async def account_command(interaction: discord.Interaction) -> None:
            await self.handle_account(interaction)

    async def setup_hook(self) -> None:
        if self.guild_id:
            guild = discord.Object(id=self.guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
        else:
            synced = await self.tree.sync()
        logger.info("Synced %d slash command(s)", len(synced))

    async def on_ready(self) -> None:
        logger.info("Logged in as %s (%d guilds)", self.user, len(self.guilds))

    # ------------------------------------------------------------------ #
    # Command handlers                                                   #
    # ------------------------------------------------------------------ #
    async def handle_login(self, interaction: discord.Interaction) -> None:
        if not await _defer(interaction):
            return
        try:
            url = await self.link_service.create_login_url(str(interaction.user.id))
        except LinkGenerationError:
            await interaction.followup.send(embed=build_login_error_embed(), ephemeral=True)
            return
        await interaction.followup.send(embed=build_login_embed(url), ephemeral=True)

    async def handle_logout(self, interaction: discord.Interaction) -> None:
        was_linked = self.link_service.unlink(str(interaction.user.id))
        await _send(interaction, build_logout_embed(was_linked))

    async def handle_account(self, interaction: discord.Interaction) -> None:
        bundle = self.clients.session_for(str(interaction.user.id))
        await _send(interaction, build_account_embed(bundle))


async def _defer(interaction: discord.Interaction) -> bool:
    """Acknowledge *interaction*; return *False* if Discord says it expired."""
    try:
        await interaction.response.defer(ephemeral=True, thinking=True)
    except discord.HTTPException as exc:
        if exc.code in EXPIRED_INTERACTION_CODES:
            logger.warning("Interaction expired before defer: %s", exc)
            return False
        raise
    return True


async def _send(interaction: discord.Interaction, embed: discord.Embed) -> None:
    try:
        await interaction.response.send_message(embed=embed, ephemeral=True)
    except discord.HTTPException as exc:
        if exc.code in EXPIRED_INTERACTION_CODES:
            logger.warning("Interaction expired before reply: %s", exc)
            return
        raise

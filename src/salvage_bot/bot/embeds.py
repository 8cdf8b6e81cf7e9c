"""Embed builders for the account-linking commands."""

from __future__ import annotations

from datetime import datetime, timezone

import discord
from discord import Colour, Embed

from salvage_bot.constants import EMBED_FOOTER_ICON_URL, EMBED_FOOTER_TEXT, LINK_INSTRUCTIONS
from salvage_bot.linking.models import CredentialBundle


def _with_footer(embed: Embed) -> Embed:
    embed.set_footer(text=EMBED_FOOTER_TEXT, icon_url=EMBED_FOOTER_ICON_URL)
    return embed


def build_login_embed(url: str) -> Embed:
    return _with_footer(
        Embed(
            title="Link Your Account",
            description=(
                "Click the link below to link your Discord account to Salvage Union:"
                f"\n\n[**Click here to login**]({url})"
            ),
            colour=Colour.blue(),
        )
    )


def build_login_error_embed() -> Embed:
    return _with_footer(
        Embed(
            title="Login Error",
            description="Failed to generate login link. Please try again later.",
            colour=Colour.red(),
        )
    )


def build_logout_embed(was_linked: bool) -> Embed:
    if was_linked:
        description = "Your Salvage Union session has been removed from the bot."
    else:
        description = "There was no linked Salvage Union session to remove."
    return _with_footer(Embed(title="Logged Out", description=description, colour=Colour.greyple()))


def build_account_embed(bundle: CredentialBundle | None) -> Embed:
    """Describe the caller's link status; *bundle* is ``None`` when not linked."""
    if bundle is None:
        return _with_footer(
            Embed(title="Account Not Linked", description=LINK_INSTRUCTIONS, colour=Colour.orange())
        )

    expires = datetime.fromtimestamp(bundle.expires_at / 1000, tz=timezone.utc)
    embed = Embed(
        title="Account Linked",
        description="Your Discord account is linked to Salvage Union.",
        colour=Colour.green(),
    )
    embed.add_field(name="Session expires", value=discord.utils.format_dt(expires, "R"), inline=True)
    return _with_footer(embed)

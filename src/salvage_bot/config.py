"""Configuration for the Salvage Union bot, loaded from environment variables."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final

from salvage_bot.utils.environment import env_int, env_str, missing_vars
from salvage_bot.utils.logging import mask_sensitive

logger = logging.getLogger("salvage-bot.config")

DEFAULT_SUCCESS_URL: Final[str] = "https://salvageunion.io/auth/success"

REQUIRED_VARS: Final[tuple[str, ...]] = (
    "DISCORD_TOKEN",
    "DISCORD_CLIENT_ID",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "BOT_CALLBACK_URL",
)


class ConfigError(ValueError):
    """Raised at startup when required configuration is missing or invalid."""

    def __init__(self, message: str, *, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing: list[str] = missing or []


@dataclass(frozen=True)
class BotConfig:
    """
    Settings read once at process start.

    Secrets (``discord_token``, ``supabase_anon_key``) are excluded from
    ``repr`` so the object can be logged safely.
    """

    discord_token: str = field(repr=False)
    discord_client_id: int
    supabase_url: str
    supabase_anon_key: str = field(repr=False)
    callback_url: str
    success_url: str = DEFAULT_SUCCESS_URL
    callback_host: str = "0.0.0.0"
    callback_port: int = 3000
    guild_id: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "BotConfig":
        """Create the configuration from environment variables.

        Raises:
            ConfigError: If any required variable is unset or blank, or if
                ``DISCORD_CLIENT_ID``, ``CALLBACK_PORT`` or ``DISCORD_GUILD_ID``
                is malformed.
        """
        missing = missing_vars(REQUIRED_VARS)
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing,
            )

        client_id_raw = env_str("DISCORD_CLIENT_ID") or ""
        if not client_id_raw.isdigit():
            raise ConfigError("DISCORD_CLIENT_ID must be a numeric Discord application ID")

        try:
            callback_port = env_int("CALLBACK_PORT", 3000)
        except ValueError:
            raise ConfigError("CALLBACK_PORT must be an integer") from None
        if not 0 < callback_port < 65536:
            raise ConfigError(f"CALLBACK_PORT out of range: {callback_port}")

        guild_raw = env_str("DISCORD_GUILD_ID")
        if guild_raw is not None and not guild_raw.isdigit():
            raise ConfigError("DISCORD_GUILD_ID must be a numeric Discord ID")

        config = cls(
            discord_token=env_str("DISCORD_TOKEN") or "",
            discord_client_id=int(client_id_raw),
            supabase_url=(env_str("SUPABASE_URL") or "").rstrip("/"),
            supabase_anon_key=env_str("SUPABASE_ANON_KEY") or "",
            callback_url=env_str("BOT_CALLBACK_URL") or "",
            success_url=env_str("AUTH_SUCCESS_URL", DEFAULT_SUCCESS_URL) or DEFAULT_SUCCESS_URL,
            callback_host=env_str("CALLBACK_HOST", "0.0.0.0") or "0.0.0.0",
            callback_port=callback_port,
            guild_id=int(guild_raw) if guild_raw else None,
            log_level=(env_str("SALVAGE_BOT_LOG_LEVEL", "INFO") or "INFO").upper(),
        )
        logger.debug(
            "Loaded configuration: supabase_url=%s anon_key=%s callback_url=%s",
            config.supabase_url,
            mask_sensitive(config.supabase_anon_key),
            config.callback_url,
        )
        return config

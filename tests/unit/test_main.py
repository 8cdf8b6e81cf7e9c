"""Tests for the command-line entrypoint."""

import pytest

from salvage_bot import __main__ as entrypoint
from salvage_bot.config import REQUIRED_VARS, BotConfig
from salvage_bot.linking.store import default_store


def test_main_exits_2_on_missing_config(
    monkeypatch: pytest.MonkeyPatch, tmp_path, caplog: pytest.LogCaptureFixture
) -> None:
    for name in REQUIRED_VARS:
        monkeypatch.delenv(name, raising=False)

    def fail_run(config):  # pragma: no cover - must not be reached
        raise AssertionError("run() called without configuration")

    monkeypatch.setattr(entrypoint, "run", fail_run)
    monkeypatch.setattr(entrypoint, "setup_logging", lambda level: None)

    assert entrypoint.main(["--env-file", str(tmp_path / "missing.env")]) == 2
    assert "Missing required environment variables" in caplog.text


def test_main_runs_with_loaded_config(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "DISCORD_TOKEN=discord-token",
                "DISCORD_CLIENT_ID=1111",
                "SUPABASE_URL=https://project.supabase.test",
                "SUPABASE_ANON_KEY=anon-key",
                "BOT_CALLBACK_URL=https://bot.example.com/auth/callback",
            ]
        )
    )
    for name in REQUIRED_VARS:
        # restored as unset on teardown, so values loaded from the file do not leak
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)

    seen = []

    async def fake_run(config):
        seen.append(config)

    monkeypatch.setattr(entrypoint, "run", fake_run)
    monkeypatch.setattr(entrypoint, "setup_logging", lambda level: None)

    assert entrypoint.main(["--env-file", str(env_file)]) == 0
    assert seen[0].callback_url == "https://bot.example.com/auth/callback"


def test_link_service_and_client_factory_share_the_store() -> None:
    config = BotConfig(
        discord_token="discord-token",
        discord_client_id=1111,
        supabase_url="https://project.supabase.test",
        supabase_anon_key="anon-key",
        callback_url="https://bot.example.com/auth/callback",
    )

    service, clients = entrypoint.build_services(config)

    assert service.store is clients.store
    assert service.store is default_store()
    assert clients.supabase_url == config.supabase_url
    assert service.callback_url == config.callback_url

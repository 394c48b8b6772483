"""
Modguard
========

A Discord bot that deletes spam and banned terms, asks an AI model about
rule violations and bot-like behaviour, escalates repeat offenders from
warnings to timeouts and kicks, and records every action as a case staff
can review with ``/cases``.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Directory holding ``config/``, ``data/``, ``logs/`` and ``.env``.

    ``MODGUARD_HOME`` wins when set; a frozen build uses the executable's
    folder; a source checkout uses the repository root.
    """
    home = os.getenv("MODGUARD_HOME")
    if home:
        return Path(home).resolve()
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
# Relative paths in app_config.yml are resolved against BASE_DIR.
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from modguard.ai.llm_engine import LLMEngine
from modguard.configuration.app_configuration import AppConfig, app_config
from modguard.moderation.moderation_service import ModerationService
from modguard.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Read ``.env`` and return the bot token.

    Raises
    ------
    SystemExit
        When ``DISCORD_BOT_TOKEN`` is not set.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("DISCORD_BOT_TOKEN is not set; add it to %s or the environment.", BASE_DIR / ".env")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Guild, member and message-content intents; moderation reads every message."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.messages = True
    intents.message_content = True
    return intents


def load_cogs(
    discord_bot_instance: discord.Bot,
    moderation_service: ModerationService,
    engine: LLMEngine,
    config: AppConfig,
) -> None:
    from modguard.bot.cogs import cases_cmds, events_listener, message_listener

    events_listener.setup(discord_bot_instance, engine)
    message_listener.setup(discord_bot_instance, moderation_service)
    cases_cmds.setup(discord_bot_instance, moderation_service.case_log, moderation_service.violations, config.staff_role_id)
    logger.info("Loaded cogs: events_listener, message_listener, cases_cmds")


def create_bot(config: AppConfig, engine: LLMEngine) -> discord.Bot:
    """Build the bot and its moderation service, then register the cogs."""
    bot = discord.Bot(intents=build_intents())
    moderation_service = ModerationService.from_config(bot, config, engine)
    load_cogs(bot, moderation_service, engine, config)

    if config.staff_channel_id is None:
        logger.warning("No staff_channel_id configured; staff notifications are disabled.")
    if config.staff_role_id is None:
        logger.warning("No staff_role_id configured; nobody can use /cases.")
    logger.info("Storing moderation data in %s", config.data_dir)
    return bot


async def shutdown_runtime(bot: discord.Bot | None, engine: LLMEngine | None) -> None:
    """Close the gateway connection and the AI client, logging failures."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    if engine is not None:
        try:
            await engine.close()
        except Exception as exc:
            logger.exception("Error while closing the AI client: %s", exc)

    logger.info("Modguard stopped.")


async def async_main() -> int:
    """Run the bot until it disconnects and return the process exit code."""
    token = load_environment()

    engine = LLMEngine(app_config.ai_settings)
    if not engine.available:
        logger.warning("AI checks are off; spam and banned term checks still run.")

    try:
        bot = create_bot(app_config, engine)
    except Exception as exc:
        logger.critical("Could not build the Discord bot: %s", exc)
        await shutdown_runtime(None, engine)
        return 1

    logger.info("Connecting to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Connection cancelled.")
    except discord.LoginFailure as exc:
        logger.critical("Discord rejected the bot token: %s", exc)
        return 1
    except Exception as exc:
        logger.critical("Discord client crashed: %s", exc)
        return 1
    finally:
        await shutdown_runtime(bot, engine)

    return 0


def main() -> int:
    """Console entry point."""
    sys.excepthook = handle_exception
    logger.info("Starting Modguard from %s", BASE_DIR)
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Interrupted; exiting.")
        return 0
    except SystemExit as exit_exc:
        return exit_exc.code if isinstance(exit_exc.code, int) else 1


if __name__ == "__main__":
    sys.exit(main())

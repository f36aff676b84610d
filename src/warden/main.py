"""
Warden Automod Bot
==================

A Discord bot that matches messages, reactions, member joins and nickname
changes against per-guild automod rules and enforces the first rule that
fires, escalating repeat offenders by accumulated points.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. WARDEN_HOME environment variable, if set.
    2. If running in a frozen/compiled context, the executable's directory.
    3. Otherwise the repository root (two levels above this package).
    """
    if env_home := os.getenv("WARDEN_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from dataclasses import dataclass

import discord
from dotenv import load_dotenv

from warden.automod.action_runner import ActionRunner
from warden.automod.enforcer import AutomodEnforcer
from warden.automod.escalation import EscalationEngine
from warden.automod.infraction_ledger import InfractionLedger
from warden.bot import automod_listener
from warden.bot.discord_executor import DiscordActionExecutor
from warden.database.database import Database
from warden.repositories.config_repo import CachedConfigStore, SqliteConfigStore
from warden.repositories.infraction_repo import SqliteLedger
from warden.repositories.rule_repo import CachedRuleStore, SqliteRuleStore
from warden.services.automod_dispatcher import AutomodDispatcher
from warden.util.logger import get_logger, handle_exception

logger = get_logger("main")


@dataclass
class Runtime:
    """Objects that live for the whole bot session."""

    bot: discord.Bot
    database: Database
    dispatcher: AutomodDispatcher


def load_environment() -> str:
    """Load ``.env`` and return the Discord bot token.

    Raises
    ------
    SystemExit
        If ``DISCORD_BOT_TOKEN`` is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for message content, reactions and member events."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.reactions = True
    intents.members = True
    return intents


def create_runtime(database: Database) -> Runtime:
    """Build the bot and wire stores, ledger, escalation, enforcer and dispatcher."""
    bot = discord.Bot(intents=build_intents())
    connection = database.connection

    config_store = CachedConfigStore(SqliteConfigStore(connection))
    rule_store = CachedRuleStore(SqliteRuleStore(connection))
    ledger = InfractionLedger(SqliteLedger(connection))

    runner = ActionRunner(DiscordActionExecutor(bot, config_store))
    enforcer = AutomodEnforcer(
        config_store=config_store,
        rule_store=rule_store,
        ledger=ledger,
        escalation=EscalationEngine(ledger, runner),
        runner=runner,
    )
    dispatcher = AutomodDispatcher(enforcer)

    automod_listener.setup(bot, dispatcher)
    logger.info("All cogs loaded successfully.")
    return Runtime(bot=bot, database=database, dispatcher=dispatcher)


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(runtime: Runtime) -> None:
    """Stop the dispatcher, close the bot and the database."""
    try:
        await runtime.dispatcher.shutdown()
    except Exception as exc:
        logger.exception("Error during dispatcher shutdown: %s", exc)

    if not runtime.bot.is_closed():
        try:
            await runtime.bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    try:
        await runtime.database.shutdown()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database and bot, returning an exit code."""
    token = load_environment()

    database = Database()
    logger.info("Initializing database...")
    if not await database.initialize():
        logger.critical("Failed to initialize database at %s", database.db_path)
        return 1

    try:
        runtime = create_runtime(database)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await database.shutdown()
        return 1

    exit_code = 0
    try:
        await start_bot(runtime.bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(runtime)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting Warden automod bot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Main entry point for goodchild.

Initializes logging in two phases (defaults then config-driven),
validates configuration, loads the command registry and prepares the
event flag table. The messaging client that feeds messages into the
Dispatcher lives outside this package; it calls build_services() and
keeps the returned Services for the lifetime of its connection.

Key functions:
    build_services: Construct and initialize the store, loader,
        dispatcher and flag store.
    main: Async startup check -- sets up logging and config, builds
        the services, logs a summary and releases them.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

import structlog

from .logging_config import setup_logging

if TYPE_CHECKING:
    from .commands import CommandLoader, CommandStore, Dispatcher
    from .config import Config
    from .events import EventFlagStore


@dataclass
class Services:
    """Everything a bot runtime needs to route commands."""

    commands: "CommandStore"
    loader: "CommandLoader"
    dispatcher: "Dispatcher"
    flags: "EventFlagStore"

    async def close(self) -> None:
        await self.flags.close()


async def build_services(
    config: "Config",
    send_message: Callable[[str, str], Awaitable[None]],
) -> "Services":
    """Load commands and prepare the events table.

    Raises:
        ConfigError: If the database URL is missing or malformed.
        StorageError: If the events table cannot be created.
    """
    from .commands import CommandLoader, CommandStore, Dispatcher
    from .events import EventFlagStore

    store = CommandStore()
    loader = CommandLoader(
        store,
        handlers_dir=config.handlers_dir,
        manifest=config.command_manifest,
    )
    loader.initialize()

    flags = EventFlagStore.from_config(config)
    try:
        await flags.initialize_schema()
    except Exception:
        await flags.close()
        raise

    dispatcher = Dispatcher(
        store,
        send_message,
        prefix=config.command_prefix,
        extras={"commands": store, "flags": flags},
    )
    return Services(commands=store, loader=loader, dispatcher=dispatcher, flags=flags)


async def main() -> int:
    """Main async entry point. Returns the process exit code."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("goodchild")

    logger.info("goodchild_starting", version="1.0.0")

    from .config import get_config
    from .exceptions import GoodchildError

    config = get_config()
    try:
        config.validate()
    except GoodchildError as e:
        logger.error("config_invalid", error=str(e), error_type=type(e).__name__)
        return 1

    # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
    setup_logging(config)

    async def log_only_send(chat_id: str, text: str) -> None:
        logger.info("message_not_sent_no_client", chat=chat_id, length=len(text))

    try:
        services = await build_services(config, log_only_send)
    except GoodchildError as e:
        logger.error("startup_failed", error=str(e), error_type=type(e).__name__)
        return 1

    try:
        logger.info(
            "goodchild_ready",
            commands=len(services.commands),
            categories=services.commands.list_categories(),
        )
    finally:
        await services.close()
        logger.info("goodchild_stopped")
    return 0


def run():
    """Synchronous entry point for the ``goodchild`` console script."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    run()

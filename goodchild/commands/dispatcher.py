"""Routes prefixed chat messages to registered command handlers."""

from typing import Awaitable, Callable, Optional, Tuple

import structlog

from .base import CommandContext
from .store import CommandStore

logger = structlog.get_logger("goodchild.commands")

FAILURE_REPLY = "Command {command} failed. Please try again later."


class Dispatcher:
    """Resolves an invoked token to a command and runs its handler.

    Args:
        store: Command store to resolve names and aliases against.
        send_message: Async (chat_id, text) callable owned by the bot runtime.
        prefix: Leading string that marks a message as a command.
        extras: Services exposed to handlers through CommandContext.extras.
    """

    def __init__(
        self,
        store: CommandStore,
        send_message: Callable[[str, str], Awaitable[None]],
        prefix: str = ".",
        extras: Optional[dict] = None,
    ):
        self.store = store
        self._send_message = send_message
        self.prefix = prefix
        self._extras = dict(extras or {})

    def parse(self, text: str) -> Optional[Tuple[str, str]]:
        """Split a message into (token, args) if it carries the prefix."""
        text = text.strip()
        if not text.startswith(self.prefix):
            return None
        parts = text[len(self.prefix):].split(maxsplit=1)
        if not parts:
            return None
        token = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""
        return token, args

    async def dispatch(self, chat_id: str, sender: str, text: str) -> Optional[str]:
        """Run the command named in text, if any.

        Unknown commands are ignored. A handler failure is logged and
        reported to the chat through send_message.

        Returns:
            The handler's reply (already sent to the chat), or None.
        """
        parsed = self.parse(text)
        if parsed is None:
            return None
        token, args = parsed

        command = self.store.get(token)
        if command is None:
            logger.debug("command_unknown", command=token)
            return None
        if command.handler is None:
            logger.warning("command_without_handler", command=command.name)
            return None

        ctx = CommandContext(
            chat_id=chat_id,
            sender=sender,
            command=token,
            args=args,
            send_message=self._send_message,
            extras=self._extras,
        )
        logger.debug("command_routing", command=command.name, invoked_as=token, has_args=bool(args))

        try:
            response = await command.handler(ctx)
        except Exception as e:
            logger.error(
                "command_failed",
                command=command.name,
                chat=chat_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._send_message(chat_id, FAILURE_REPLY.format(command=command.name))
            return None

        if response:
            await self._send_message(chat_id, response)
        return response or None

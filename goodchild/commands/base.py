"""Types shared by the command store, loader and dispatcher.

Key classes:
    Command: One invocable bot action with its aliases and category.
    CommandContext: What a handler receives when it is invoked.

Constants:
    DEFAULT_CATEGORY: Category assigned to commands registered without one.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Mapping, Optional

DEFAULT_CATEGORY = "Misc"


@dataclass
class CommandContext:
    """Invocation context handed to a command handler.

    Attributes:
        chat_id: JID of the chat the command was sent in.
        sender: JID of the participant who sent it.
        command: The token the user typed (a name or an alias).
        args: Everything after the token, stripped.
        send_message: Async (chat_id, text) callable for extra replies.
        extras: Runtime services (e.g. the event flag store) keyed by name.
    """

    chat_id: str
    sender: str
    command: str
    args: str = ""
    send_message: Optional[Callable[[str, str], Awaitable[None]]] = None
    extras: dict = field(default_factory=dict)

    @property
    def argv(self) -> List[str]:
        return self.args.split()

    async def reply(self, text: str) -> None:
        """Send text back to the chat the command came from."""
        if self.send_message is not None:
            await self.send_message(self.chat_id, text)


# Handler signature: async (ctx: CommandContext) -> Optional[str]
# Returning None means the handler replied on its own (or has nothing to say).
CommandHandler = Callable[[CommandContext], Awaitable[Optional[str]]]


@dataclass
class Command:
    """A named, invocable bot action.

    Attributes:
        name: Unique identifier, the key in the command store.
        category: Grouping label; the store fills in DEFAULT_CATEGORY.
        aliases: Alternate identifiers resolving back to name.
        handler: Async behavior run on invocation.
        description: One-line help text.
        source: File path or module the command was loaded from.
    """

    name: Optional[str]
    category: Optional[str] = None
    aliases: List[str] = field(default_factory=list)
    handler: Optional[CommandHandler] = None
    description: str = ""
    source: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Command":
        """Build a Command from a dict-shaped registration."""
        aliases = data.get("aliases") or []
        return cls(
            name=data.get("name"),
            category=data.get("category"),
            aliases=list(aliases) if isinstance(aliases, (list, tuple, set)) else [],
            handler=data.get("handler"),
            description=data.get("description", "") or "",
            source=data.get("source"),
        )

"""Command registry for the goodchild bot.

Provides the CommandStore (name/alias/category lookup), the
CommandLoader that fills it from handler files or a manifest, and
the Dispatcher that routes chat messages to handlers.
"""

from .base import DEFAULT_CATEGORY, Command, CommandContext, CommandHandler
from .dispatcher import Dispatcher
from .loader import CommandLoader
from .store import CommandStore

__all__ = [
    "Command",
    "CommandContext",
    "CommandHandler",
    "CommandLoader",
    "CommandStore",
    "DEFAULT_CATEGORY",
    "Dispatcher",
]

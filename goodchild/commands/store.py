"""In-memory command store: name, alias and category indexes.

The store is an owned instance passed to the loader and dispatcher.
It is written during the load phase and only read afterwards, so
concurrent lookups from in-flight messages need no locking.
"""

from typing import Dict, List, Mapping, Optional, Union

import structlog

from ..exceptions import ValidationError
from .base import DEFAULT_CATEGORY, Command

logger = structlog.get_logger("goodchild.commands")


class CommandStore:
    """Maps command names and aliases to Command objects.

    Names and aliases are matched case-insensitively. A second
    registration under an existing name or alias replaces the previous
    mapping. The replacement is logged as a warning but the call still
    succeeds.
    """

    def __init__(self):
        self._commands: Dict[str, Command] = {}
        self._aliases: Dict[str, str] = {}
        self._categories: Dict[str, None] = {}

    def register(self, command: Union[Command, Mapping]) -> Command:
        """Register a command and its aliases.

        Args:
            command: A Command, or a mapping with name/category/aliases/
                handler/description keys.

        Returns:
            The registered Command (with its category filled in).

        Raises:
            ValidationError: If the command has no name. Nothing is stored.
        """
        if isinstance(command, Mapping):
            command = Command.from_mapping(command)

        if not command.name or not isinstance(command.name, str):
            raise ValidationError(
                "Command must have a name",
                module="commands.store",
                source=command.source,
            )
        if not command.category:
            command.category = DEFAULT_CATEGORY

        key = command.name.lower()
        previous = self._commands.get(key)
        if previous is not None and previous is not command:
            logger.warning(
                "command_overwritten",
                command=command.name,
                previous_source=previous.source,
                source=command.source,
            )

        self._commands[key] = command
        self._categories[command.category] = None

        for alias in command.aliases:
            alias = alias.lower()
            owner = self._aliases.get(alias)
            if owner is not None and owner != key:
                logger.warning(
                    "command_alias_reassigned",
                    alias=alias,
                    previous=owner,
                    command=command.name,
                )
            self._aliases[alias] = key

        logger.info(
            "command_registered",
            command=command.name,
            category=command.category,
            aliases=list(command.aliases),
        )
        return command

    def get(self, identifier: str) -> Optional[Command]:
        """Look up a command by name, falling back to its aliases."""
        identifier = identifier.lower()
        command = self._commands.get(identifier)
        if command is not None:
            return command
        name = self._aliases.get(identifier)
        if name is None:
            return None
        return self._commands.get(name)

    def list_by_category(self, category: str) -> List[Command]:
        """Commands in a category, in registration order."""
        return [c for c in self._commands.values() if c.category == category]

    def list_categories(self) -> List[str]:
        return list(self._categories)

    def list_all(self) -> List[Command]:
        return list(self._commands.values())

    def aliases_for(self, name: str) -> List[str]:
        """Aliases currently resolving to the given command name."""
        key = name.lower()
        return [alias for alias, owner in self._aliases.items() if owner == key]

    @property
    def category_count(self) -> int:
        return len(self._categories)

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and self.get(identifier) is not None

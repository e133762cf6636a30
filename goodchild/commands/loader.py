"""Handler discovery and registration.

A handler module is any Python file (or importable module) that defines
a module-level ``name``. Optional attributes:

    category    -- grouping label (str)
    aliases     -- alternate names (list of str)
    description -- one-line help text (str)
    handle      -- async (ctx: CommandContext) -> Optional[str]

Example ``handlers/fun/ping.py``::

    name = "ping"
    aliases = ["p"]
    category = "Fun"

    async def handle(ctx):
        return "pong"

Loading is best effort: a broken file is logged and skipped, and no
error ever reaches the caller.
"""

import importlib
import importlib.util
import re
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterable, Optional

import structlog

from ..exceptions import LoadError
from .base import Command
from .store import CommandStore

logger = structlog.get_logger("goodchild.commands")

# Namespace for modules imported from handler files, so they never collide
# with real packages on sys.path.
HANDLER_MODULE_PREFIX = "goodchild_handlers"

HANDLER_SUFFIX = ".py"


def _module_name_for(root: Path, file: Path) -> str:
    """Build a unique dotted module name from a handler file path."""
    relative = file.relative_to(root).with_suffix("")
    parts = [re.sub(r"\W", "_", p) for p in relative.parts]
    return ".".join([HANDLER_MODULE_PREFIX, *parts])


def command_from_module(module: ModuleType, source: Optional[str] = None) -> Optional[Command]:
    """Build a Command from a handler module's attributes.

    Returns None if the module does not expose a ``name``.
    """
    name = getattr(module, "name", None)
    if not name:
        return None
    aliases = getattr(module, "aliases", None) or []
    return Command(
        name=name,
        category=getattr(module, "category", None),
        aliases=list(aliases),
        handler=getattr(module, "handle", None),
        description=getattr(module, "description", "") or "",
        source=source or getattr(module, "__file__", None),
    )


class CommandLoader:
    """Loads handler modules into a CommandStore.

    Args:
        store: The store commands are registered into.
        handlers_dir: Directory scanned by initialize() when no manifest
            is given.
        manifest: Dotted module paths loaded by initialize() instead of
            scanning handlers_dir.
    """

    def __init__(
        self,
        store: CommandStore,
        handlers_dir: Optional[Path] = None,
        manifest: Optional[Iterable[str]] = None,
    ):
        self.store = store
        self.handlers_dir = handlers_dir
        self.manifest = list(manifest) if manifest is not None else None
        self._root: Optional[Path] = None

    def load_from_directory(self, path: Path) -> int:
        """Recursively import handler files under path and register them.

        Subdirectories are visited depth first in sorted order. Files whose
        name starts with ``_`` are skipped.

        Returns:
            Number of commands registered from this subtree.
        """
        path = Path(path)
        top_level = self._root is None
        if top_level:
            self._root = path
        try:
            return self._load_tree(path)
        finally:
            if top_level:
                self._root = None

    def _load_tree(self, path: Path) -> int:
        try:
            entries = sorted(path.iterdir())
        except OSError as e:
            err = LoadError("cannot read handler directory", source=str(path))
            logger.error(
                "command_dir_read_failed",
                path=str(path),
                error=str(e),
                error_type=type(e).__name__,
                **err.context,
            )
            return 0

        loaded = 0
        for entry in entries:
            if entry.is_dir():
                if entry.name.startswith(("_", ".")):
                    continue
                loaded += self._load_tree(entry)
            elif entry.name.endswith(HANDLER_SUFFIX) and not entry.name.startswith("_"):
                if self._load_file(entry):
                    loaded += 1
        return loaded

    def _load_file(self, file: Path) -> bool:
        """Import one handler file. Returns True if a command was registered."""
        module_name = _module_name_for(self._root, file)
        try:
            spec = importlib.util.spec_from_file_location(module_name, file)
            if spec is None or spec.loader is None:
                raise LoadError("no import spec for handler file", source=str(file))
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except BaseException:
                sys.modules.pop(module_name, None)
                raise
            return self._register_module(module, str(file))
        except Exception as e:
            logger.error(
                "command_load_failed",
                path=str(file),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    def load_manifest(self, modules: Iterable[str]) -> int:
        """Import an explicit list of dotted module paths and register them.

        Returns:
            Number of commands registered.
        """
        loaded = 0
        for dotted in modules:
            try:
                module = importlib.import_module(dotted)
                if self._register_module(module, dotted):
                    loaded += 1
            except Exception as e:
                logger.error(
                    "command_load_failed",
                    module=dotted,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return loaded

    def _register_module(self, module: ModuleType, source: str) -> bool:
        command = command_from_module(module, source)
        if command is None:
            logger.debug("command_module_without_name", source=source)
            return False
        self.store.register(command)
        return True

    def initialize(self) -> int:
        """Load the manifest if one is configured, otherwise handlers_dir.

        Logs a summary with command and category counts.

        Returns:
            Number of commands registered by this call.
        """
        if self.manifest is not None:
            loaded = self.load_manifest(self.manifest)
        elif self.handlers_dir is not None:
            loaded = self.load_from_directory(self.handlers_dir)
        else:
            logger.warning("command_loader_no_source")
            loaded = 0

        logger.info(
            "commands_loaded",
            commands=len(self.store),
            categories=self.store.category_count,
        )
        return loaded

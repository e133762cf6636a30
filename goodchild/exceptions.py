"""Custom exception hierarchy for goodchild.

Every subsystem raises subclasses of GoodchildError so callers can
catch broadly or per failure domain. Each error carries an
ErrorCategory and arbitrary keyword context for structured logging.

Boundaries:
    ValidationError: always surfaced to the immediate caller.
    LoadError: built by the command loader for its log line, never raised
        out of it.
    StorageError: converted to a False/None result by the event flag store.
    ConfigError: raised at startup when required settings are missing.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for retry decisions."""
    TRANSIENT = "transient"          # Worth retrying (connection drop, lock timeout)
    PERMANENT = "permanent"          # Not worth retrying (bad input)
    INFRASTRUCTURE = "infrastructure"  # Missing config, unreachable database


class GoodchildError(Exception):
    """Base exception for all goodchild errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry/escalation decisions.
        module: Originating module name (e.g. "events.store").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(GoodchildError):
    """Malformed input rejected before any state is touched."""

    def __init__(
        self,
        message: str = "",
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=ErrorCategory.PERMANENT, module=module, **context
        )


class InvalidColumnError(ValidationError):
    """A flag column name outside the event table's allow-list.

    Attributes:
        column: The rejected column name.
    """

    def __init__(self, column: str, *, module: Optional[str] = None) -> None:
        self.column = column
        super().__init__(
            f"Invalid column name: {column}",
            module=module or "events.store",
            column=column,
        )


# ---------------------------------------------------------------------------
# Command loading
# ---------------------------------------------------------------------------

class LoadError(GoodchildError):
    """A handler file or module could not be read or imported.

    Attributes:
        source: File path or dotted module name that failed.
    """

    def __init__(
        self,
        message: str = "",
        *,
        source: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.source = source
        super().__init__(
            message,
            category=ErrorCategory.PERMANENT,
            module=module or "commands.loader",
            source=source,
            **context,
        )


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class StorageError(GoodchildError):
    """Connection or query failure in a database-backed store."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "events.store", **context
        )


class DuplicateKeyError(StorageError):
    """Unique-key violation on insert.

    Raised by the event flag upsert when the database still reports an
    IntegrityError (e.g. a constraint the ON CONFLICT target does not
    cover). EventFlagStore.set_flag logs it and returns False.
    """

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message, category=ErrorCategory.PERMANENT, **context)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigError(GoodchildError):
    """A required setting is missing or unusable."""

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(
            message,
            category=ErrorCategory.INFRASTRUCTURE,
            module="config",
            **context,
        )

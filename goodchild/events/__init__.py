"""Per-chat event flags (welcome, goodbye, promote/demote notices)."""

from .flags import DISABLED_VALUE, ENABLED_VALUE, FLAG_COLUMNS, FlagState
from .store import EventFlagStore, events_table

__all__ = [
    "DISABLED_VALUE",
    "ENABLED_VALUE",
    "EventFlagStore",
    "FLAG_COLUMNS",
    "FlagState",
    "events_table",
]

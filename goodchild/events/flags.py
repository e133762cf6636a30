"""Per-chat event flags and their legacy string encoding.

Flags are stored as free text. Existing data uses "oui" for enabled and
"non" for disabled, so FlagState converts at the storage boundary only.
"""

from enum import Enum
from typing import Optional

# Columns of the events table a caller may read or write.
FLAG_COLUMNS = ("welcome", "goodbye", "antipromote", "antidemote")

ENABLED_VALUE = "oui"
DISABLED_VALUE = "non"


class FlagState(str, Enum):
    """Tri-state view of a stored flag.

    UNSET means the chat has no row yet.
    """
    ENABLED = "enabled"
    DISABLED = "disabled"
    UNSET = "unset"

    @classmethod
    def from_stored(cls, value: Optional[str]) -> "FlagState":
        """Decode a stored value. Anything other than "oui" is disabled."""
        if value is None:
            return cls.UNSET
        if value.strip().lower() == ENABLED_VALUE:
            return cls.ENABLED
        return cls.DISABLED

    def to_stored(self) -> str:
        """Encode for storage. UNSET is written as the disabled sentinel."""
        if self is FlagState.ENABLED:
            return ENABLED_VALUE
        return DISABLED_VALUE


def is_valid_flag(column: str) -> bool:
    return column in FLAG_COLUMNS

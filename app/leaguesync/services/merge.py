from enum import Enum
from typing import Any, Optional, Tuple


class MergeStrategy(str, Enum):
    """How freshly aggregated data is reconciled with what was persisted last run."""

    PREFER_NEW_UNLESS_EMPTY = "prefer_new_unless_empty"
    FORCE_FRESH = "force_fresh"
    FORCE_PRESERVE = "force_preserve"

    def choose(self, new: Any, existing: Optional[Any]) -> Tuple[Any, bool]:
        """Return (value, kept_existing)."""
        if self is MergeStrategy.FORCE_FRESH:
            return new, False
        if self is MergeStrategy.FORCE_PRESERVE:
            if existing:
                return existing, True
            return new, False
        if not new and existing:
            return existing, True
        return new, False

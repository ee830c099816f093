"""
Clock adapter - Implements Clock protocol with the system time.
"""

from datetime import datetime, timezone


class SystemClock:
    """Timezone-aware UTC wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

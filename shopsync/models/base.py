"""
Shared column helpers
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time for timestamp defaults"""
    return datetime.now(timezone.utc)

"""UTC timezone enforcement.

Sets the TZ environment variable to UTC so record timestamps behave the same
in every environment.
"""

import os
from datetime import datetime, timezone

os.environ["TZ"] = "UTC"


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)

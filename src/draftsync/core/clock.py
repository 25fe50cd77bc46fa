"""Wall-clock helpers.  All persisted timestamps are epoch milliseconds."""

import time


def now_ms() -> int:
    """Return the current time as integer epoch milliseconds."""
    return int(time.time() * 1000)

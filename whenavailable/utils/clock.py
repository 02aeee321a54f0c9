# whenavailable/utils/clock.py

import time

MS_PER_SECOND = 1000
SECONDS_PER_DAY = 86400


def now_ms() -> int:
    """Current unix time in milliseconds (the unit stored in records)."""
    return int(time.time() * MS_PER_SECOND)

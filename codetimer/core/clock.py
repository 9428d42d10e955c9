"""Clock source: monotonic seconds for timing, time-of-day for log stamps."""

import time
from datetime import datetime

from codetimer.util.misc import format_time_of_day


class SystemClock:
    """Production clock.

    Timing uses time.monotonic() so wall-clock changes during an event
    cannot stretch or shrink any timer. Log stamps use local time of day.
    """

    def monotonic(self):
        return time.monotonic()

    def time_of_day(self):
        return format_time_of_day(datetime.now())

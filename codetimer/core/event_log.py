"""Append-only timeline of clinical actions for the running session."""

from dataclasses import dataclass

from codetimer.common.logger import TIMELINE_FLAG, log


@dataclass(frozen=True)
class EventLogEntry:
    timestamp: str      # time of day, HH:MM:SS
    description: str


class EventLog:
    """Ordered (timestamp, description) entries.

    Entries can only be appended or cleared all at once. Order is append
    order; time of day is assumed not to wrap past midnight within a session.
    """

    def __init__(self, clock):
        self._clock = clock
        self._entries = []

    def append(self, description):
        entry = EventLogEntry(self._clock.time_of_day(), description)
        self._entries.append(entry)
        log.info(f"Timeline: {entry.timestamp} {description}", extra={TIMELINE_FLAG: True})
        return entry

    def clear(self):
        count = len(self._entries)
        self._entries = []
        log.info(f"Cleared timeline ({count} entries)")

    @property
    def entries(self):
        return tuple(self._entries)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(tuple(self._entries))

from dataclasses import dataclass


# Running tallies for one code session. Owned by the session core, only ever handed out as snapshots.
@dataclass
class CodeSessionCounters:
    cycles: int = 0
    epinephrine_doses: int = 0
    shocks: int = 0

    @property
    def total(self):
        return self.cycles + self.epinephrine_doses + self.shocks

    def reset(self):
        self.cycles = 0
        self.epinephrine_doses = 0
        self.shocks = 0

    def snapshot(self):
        return CounterSnapshot(self.cycles, self.epinephrine_doses, self.shocks)


@dataclass(frozen=True)
class CounterSnapshot:
    cycles: int
    epinephrine_doses: int
    shocks: int

    @property
    def total(self):
        return self.cycles + self.epinephrine_doses + self.shocks


# Read-only result of ending a session, taken before the counters go back to zero.
@dataclass(frozen=True)
class SessionSummary:
    cycles: int
    epinephrine_doses: int
    shocks: int
    elapsed_seconds: int = 0

    @staticmethod
    def from_counters(counters, elapsed_seconds=0):
        return SessionSummary(
            cycles=counters.cycles,
            epinephrine_doses=counters.epinephrine_doses,
            shocks=counters.shocks,
            elapsed_seconds=elapsed_seconds,
        )

    def as_text(self):
        return f"Cycles: {self.cycles}\nEpinephrine: {self.epinephrine_doses}\nShocks: {self.shocks}"

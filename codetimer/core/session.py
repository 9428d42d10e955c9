"""Code session core: the state machine behind the code timer.

``CodeSession`` owns the timer engine, the counters and the timeline. Every
operator command, every clock tick and every timer expiry goes through one
FIFO queue and runs to completion before the next item starts, so nothing
the UI reads can ever be half-updated. After each item the core pushes a
``SessionSnapshot`` to display subscribers and then hands any raised alerts
to alert subscribers.

Start/Pause/Resume/End are gated by state; a command from the wrong state is
dropped without touching anything. CPR, Epinephrine and Shock are accepted in
every state so the timeline never misses an action, but outside a session
(Idle) they only log.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from codetimer.common.logger import log
from codetimer.core import alerts
from codetimer.core.clock import SystemClock
from codetimer.core.counters import CodeSessionCounters, CounterSnapshot, SessionSummary
from codetimer.core.errors import InvalidTransition
from codetimer.core.event_log import EventLog
from codetimer.core.timers import (
    EPINEPHRINE_REMINDER_SECONDS,
    RHYTHM_CHECK_SECONDS,
    TimerEngine,
    TimerHandle,
)


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Command(Enum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    END = "end"
    CPR = "cpr"
    EPINEPHRINE = "epinephrine"
    SHOCK = "shock"
    CLEAR_LOG = "clear_log"
    CANCEL_REMINDERS = "cancel_reminders"
    # Internal events, queued by the clock and the timer engine
    TICK = "tick"
    RHYTHM_CHECK_EXPIRED = "rhythm_check_expired"
    EPINEPHRINE_REMINDER_DUE = "epinephrine_reminder_due"


# Commands missing from this table are accepted in every state.
_ALLOWED_FROM = {
    Command.START: {SessionState.IDLE},
    Command.PAUSE: {SessionState.RUNNING},
    Command.RESUME: {SessionState.PAUSED},
    Command.END: {SessionState.RUNNING, SessionState.PAUSED},
}

# What a dropped command returns to its caller.
_REJECTED_RESULT = {Command.END: None}

# Events the core queues for itself, everything else comes from the operator.
_INTERNAL_COMMANDS = {Command.TICK, Command.RHYTHM_CHECK_EXPIRED, Command.EPINEPHRINE_REMINDER_DUE}

# Queued by the timer engine while a tick is processed. They belong to that tick, so its snapshot waits for them.
_TIMER_EVENTS = {Command.RHYTHM_CHECK_EXPIRED, Command.EPINEPHRINE_REMINDER_DUE}


@dataclass(frozen=True)
class SessionSnapshot:
    state: SessionState
    elapsed_seconds: int
    rhythm_seconds: int
    rhythm_active: bool
    counters: CounterSnapshot
    log_entries: tuple
    pending_reminders: int
    next_reminder_in: int | None


@dataclass
class _QueuedCommand:
    command: Command
    result: object = None
    alerts: list = field(default_factory=list)


class CodeSession:

    def __init__(self, clock=None, rhythm_check_seconds=RHYTHM_CHECK_SECONDS,
                 epinephrine_reminder_seconds=EPINEPHRINE_REMINDER_SECONDS):
        self._clock = clock or SystemClock()
        self._engine = TimerEngine(self._clock, rhythm_check_seconds=rhythm_check_seconds)
        self._engine.on_expire(TimerHandle.RHYTHM_CHECK, lambda: self._dispatch(Command.RHYTHM_CHECK_EXPIRED))
        self._epinephrine_reminder_seconds = epinephrine_reminder_seconds
        self._timeline = EventLog(self._clock)
        self._counters = CodeSessionCounters()
        self._state = SessionState.IDLE
        self._rhythm_active = False

        self._queue = deque()
        self._draining = False
        self._current = None
        self._shown_reminder_in = None
        self._snapshot_listeners = []
        self._alert_listeners = []

        self._handlers = {
            Command.START: self._on_start,
            Command.PAUSE: self._on_pause,
            Command.RESUME: self._on_resume,
            Command.END: self._on_end,
            Command.CPR: self._on_cpr,
            Command.EPINEPHRINE: self._on_epinephrine,
            Command.SHOCK: self._on_shock,
            Command.CLEAR_LOG: self._on_clear_log,
            Command.CANCEL_REMINDERS: self._on_cancel_reminders,
            Command.TICK: self._on_tick,
            Command.RHYTHM_CHECK_EXPIRED: self._on_rhythm_check_expired,
            Command.EPINEPHRINE_REMINDER_DUE: self._on_epinephrine_reminder_due,
        }
        log.debug(f"Initialized code session (rhythm check {rhythm_check_seconds}s, "
                  f"epinephrine reminder {epinephrine_reminder_seconds}s)")

    # ------------------------------------------------------------------ #
    #  Operator commands                                                   #
    # ------------------------------------------------------------------ #
    # Each returns True when applied and False when the current state forbids it. End returns the SessionSummary
    # (or None). Commands issued from inside a subscriber callback are queued behind the current one and return None.

    def start(self):
        return self._dispatch(Command.START)

    def pause(self):
        return self._dispatch(Command.PAUSE)

    def resume(self):
        return self._dispatch(Command.RESUME)

    def end(self):
        return self._dispatch(Command.END)

    def cpr(self):
        return self._dispatch(Command.CPR)

    def epinephrine(self):
        return self._dispatch(Command.EPINEPHRINE)

    def shock(self):
        return self._dispatch(Command.SHOCK)

    def clear_log(self):
        return self._dispatch(Command.CLEAR_LOG)

    def cancel_reminders(self):
        return self._dispatch(Command.CANCEL_REMINDERS)

    # Called by the host event loop. Returns how many timer steps and alarms were processed.
    def tick(self):
        return self._dispatch(Command.TICK)

    # Application exit: reminders are only ever dropped explicitly, and this is where it happens.
    def shutdown(self):
        cancelled = self.cancel_reminders()
        log.info(f"Session core shut down in state '{self._state.value}' (pending reminders cancelled: {cancelled})")

    def can(self, command):
        allowed = _ALLOWED_FROM.get(command)
        return allowed is None or self._state in allowed

    # ------------------------------------------------------------------ #
    #  Read-only views                                                     #
    # ------------------------------------------------------------------ #

    @property
    def state(self):
        return self._state

    @property
    def counters(self):
        return self._counters.snapshot()

    @property
    def elapsed_seconds(self):
        return self._engine.elapsed(TimerHandle.ELAPSED)

    @property
    def rhythm_seconds(self):
        return self._engine.elapsed(TimerHandle.RHYTHM_CHECK)

    @property
    def rhythm_active(self):
        return self._rhythm_active

    @property
    def log_entries(self):
        return self._timeline.entries

    def snapshot(self):
        return SessionSnapshot(
            state=self._state,
            elapsed_seconds=self.elapsed_seconds,
            rhythm_seconds=self.rhythm_seconds,
            rhythm_active=self._rhythm_active,
            counters=self._counters.snapshot(),
            log_entries=self._timeline.entries,
            pending_reminders=len(self._engine.pending(TimerHandle.EPINEPHRINE_REMINDER)),
            next_reminder_in=self._engine.next_due_in(TimerHandle.EPINEPHRINE_REMINDER),
        )

    # Both subscribe methods return a callable that removes the subscription.
    def subscribe(self, callback):
        self._snapshot_listeners.append(callback)
        return lambda: self._remove_listener(self._snapshot_listeners, callback)

    def subscribe_alerts(self, callback):
        self._alert_listeners.append(callback)
        return lambda: self._remove_listener(self._alert_listeners, callback)

    @staticmethod
    def _remove_listener(listeners, callback):
        if callback in listeners:
            listeners.remove(callback)

    # ------------------------------------------------------------------ #
    #  Serial queue                                                        #
    # ------------------------------------------------------------------ #

    def _dispatch(self, command):
        # Operator commands act at the moment they are issued, so first catch the timers up to now (and let any
        # expiry that happened in between run) in a drain of its own.
        if command not in _INTERNAL_COMMANDS and not self._draining:
            self._dispatch(Command.TICK)
        item = _QueuedCommand(command)
        self._queue.append(item)
        if not self._draining:
            self._drain()
        return item.result

    def _drain(self):
        self._draining = True
        publish_pending = False
        try:
            while self._queue:
                item = self._queue.popleft()
                publish_pending = self._process(item) or publish_pending
                if publish_pending and not (self._queue and self._queue[0].command in _TIMER_EVENTS):
                    publish_pending = False
                    self._publish_snapshot()
                for alert in item.alerts:
                    self._publish_alert(alert)
        finally:
            # Only non-empty when a handler raised. Whatever was queued behind it is dropped, never replayed later.
            if self._queue:
                dropped = ", ".join(queued.command.value for queued in self._queue)
                self._queue.clear()
                log.error(f"Dropped queued commands after a failed command: {dropped}")
            self._draining = False
            self._current = None

    # Runs one queued item. Returns whether anything observable changed.
    def _process(self, item):
        self._current = item
        try:
            item.result = self._handlers[item.command]()
        except InvalidTransition as e:
            log.debug(f"Dropped command: {e}")
            item.result = _REJECTED_RESULT.get(item.command, False)
            return False
        if item.command is Command.TICK:
            return item.result > 0 or self._reminder_countdown_moved()
        return True

    def _reminder_countdown_moved(self):
        return self._engine.next_due_in(TimerHandle.EPINEPHRINE_REMINDER) != self._shown_reminder_in

    def _require(self, command):
        if not self.can(command):
            raise InvalidTransition(command, self._state)

    def _raise_alert(self, alert):
        self._current.alerts.append(alert)

    # ------------------------------------------------------------------ #
    #  Handlers                                                            #
    # ------------------------------------------------------------------ #

    def _on_start(self):
        self._require(Command.START)
        self._engine.reset(TimerHandle.ELAPSED)
        self._engine.start(TimerHandle.ELAPSED)
        self._counters.reset()
        self._state = SessionState.RUNNING
        self._timeline.append("Code timer started")
        self._raise_alert(alerts.start_reminder())
        log.info("Code session started")
        return True

    def _on_pause(self):
        self._require(Command.PAUSE)
        self._engine.pause(TimerHandle.ELAPSED)
        if self._rhythm_active:
            self._engine.pause(TimerHandle.RHYTHM_CHECK)
        self._state = SessionState.PAUSED
        self._timeline.append("Code timer paused")
        log.info(f"Code session paused at {self.elapsed_seconds}s")
        return True

    def _on_resume(self):
        self._require(Command.RESUME)
        self._engine.resume(TimerHandle.ELAPSED)
        if self._rhythm_active:
            self._engine.resume(TimerHandle.RHYTHM_CHECK)
        self._state = SessionState.RUNNING
        log.info(f"Code session resumed at {self.elapsed_seconds}s")
        return True

    def _on_end(self):
        self._require(Command.END)
        self._engine.pause(TimerHandle.ELAPSED)
        self._engine.pause(TimerHandle.RHYTHM_CHECK)
        summary = SessionSummary.from_counters(self._counters, elapsed_seconds=self.elapsed_seconds)
        self._timeline.append("Code timer ended")
        self._raise_alert(alerts.session_summary(summary))

        self._engine.reset(TimerHandle.ELAPSED)
        self._engine.reset(TimerHandle.RHYTHM_CHECK)
        self._counters.reset()
        self._rhythm_active = False
        self._state = SessionState.IDLE
        log.info(f"Code session ended: {summary}")
        return summary

    def _on_cpr(self):
        self._timeline.append("Chest compressions started")
        if self._state is SessionState.IDLE:
            log.info("Compressions logged outside a session, no cycle counted")
            return True
        self._engine.reset(TimerHandle.RHYTHM_CHECK)
        self._rhythm_active = True
        if self._state is SessionState.RUNNING:
            self._engine.start(TimerHandle.RHYTHM_CHECK)
        self._counters.cycles += 1
        log.info(f"Compression cycle {self._counters.cycles} started")
        return True

    def _on_epinephrine(self):
        self._timeline.append("Epinephrine given")
        if self._state is not SessionState.IDLE:
            self._counters.epinephrine_doses += 1
        alarm_id = self._engine.schedule_one_shot(
            TimerHandle.EPINEPHRINE_REMINDER,
            self._epinephrine_reminder_seconds,
            lambda: self._dispatch(Command.EPINEPHRINE_REMINDER_DUE),
        )
        log.info(f"Epinephrine dose logged (doses: {self._counters.epinephrine_doses}), reminder #{alarm_id} armed")
        return True

    def _on_shock(self):
        self._timeline.append("Shock delivered")
        if self._state is not SessionState.IDLE:
            self._counters.shocks += 1
        log.info(f"Shock logged (shocks: {self._counters.shocks})")
        return True

    def _on_clear_log(self):
        self._timeline.clear()
        return True

    def _on_cancel_reminders(self):
        return self._engine.cancel_one_shot(TimerHandle.EPINEPHRINE_REMINDER)

    def _on_tick(self):
        return self._engine.poll()

    def _on_rhythm_check_expired(self):
        if not self._engine.has_expired(TimerHandle.RHYTHM_CHECK):
            log.debug("Stale rhythm check expiry ignored, timer was reset before it was processed")
            return False
        self._engine.reset(TimerHandle.RHYTHM_CHECK)
        self._rhythm_active = False
        self._raise_alert(alerts.rhythm_check())
        self._timeline.append("Rhythm checked")
        return True

    def _on_epinephrine_reminder_due(self):
        self._raise_alert(alerts.epinephrine_reminder())
        self._timeline.append("Epinephrine reminder")
        return True

    # ------------------------------------------------------------------ #
    #  Subscribers                                                         #
    # ------------------------------------------------------------------ #
    # A subscriber is an external collaborator (display, sound, dialogs). Whatever it raises is logged and reported
    # as an alert; it never reaches the state core.

    def _publish_snapshot(self):
        snap = self.snapshot()
        self._shown_reminder_in = snap.next_reminder_in
        for listener in list(self._snapshot_listeners):
            try:
                listener(snap)
            except Exception as e:
                log.exception(f"Display subscriber {listener!r} failed")
                self._publish_alert(alerts.collaborator_failure("Display", e))

    def _publish_alert(self, alert):
        log.debug(f"Alert raised: {alert.kind.value}")
        for listener in list(self._alert_listeners):
            try:
                listener(alert)
            except Exception:
                log.exception(f"Alert subscriber {listener!r} failed on '{alert.kind.value}'")

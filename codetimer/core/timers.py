import math
from dataclasses import dataclass
from enum import Enum
from collections.abc import Callable
from codetimer.common.logger import log

RHYTHM_CHECK_SECONDS = 120
EPINEPHRINE_REMINDER_SECONDS = 180


class TimerHandle(Enum):
    ELAPSED = "elapsed"
    RHYTHM_CHECK = "rhythm_check"
    EPINEPHRINE_REMINDER = "epinephrine_reminder"


# Handles that count whole seconds while running. Everything else is a one-shot alarm handle.
COUNTING_HANDLES = (TimerHandle.ELAPSED, TimerHandle.RHYTHM_CHECK)


# A whole-second counter that only moves while running. With a threshold it stops itself the moment it reaches it
# and stays "expired" (parked on the threshold value) until reset.
#
# Each timer keeps its own phase: `anchor` is the monotonic time the current (unfinished) second began, and
# `carry` is how much of that second had already run when the timer was paused.
class CountingTimer:

    def __init__(self, handle, threshold=None):
        self.handle = handle
        self.threshold = threshold
        self.elapsed_seconds = 0
        self.running = False
        self.expired = False
        self.anchor = 0.0
        self.carry = 0.0

    # Monotonic time of the next whole-second step, only meaningful while running.
    @property
    def next_step_at(self):
        return self.anchor + 1.0

    # Start and pause methods for the timer. Both are no-ops when already in the requested state.
    def start(self, now):
        if self.running:
            return False
        if self.expired:
            log.debug(f"Timer '{self.handle.value}' is parked at its threshold, reset it before starting again")
            return False
        self.running = True
        self.anchor = now - self.carry
        self.carry = 0.0
        log.debug(f"Started timer '{self.handle.value}' at {self.elapsed_seconds}s")
        return True
    # Expects every step up to `now` to have been taken already.
    def pause(self, now):
        if not self.running:
            return False
        self.running = False
        self.carry = min(max(0.0, now - self.anchor), 1.0)
        log.debug(f"Paused timer '{self.handle.value}' at {self.elapsed_seconds}s (+{self.carry:.3f}s)")
        return True
    # Back to 0 and re-armed, with a fresh phase starting at `now`. Running state is left alone.
    def reset(self, now):
        self.elapsed_seconds = 0
        self.expired = False
        self.anchor = now
        self.carry = 0.0
        log.debug(f"Reset timer '{self.handle.value}' to 0")

    # Takes the step due at next_step_at. Returns True only on the step that reaches the threshold.
    def step(self):
        if not self.running:
            return False
        self.elapsed_seconds += 1
        self.anchor += 1.0
        if self.threshold is not None and self.elapsed_seconds >= self.threshold:
            self.running = False
            self.expired = True
            return True
        return False


@dataclass
class OneShotAlarm:
    alarm_id: int
    handle: TimerHandle
    deadline: float             # clock.monotonic() value at which it is due
    on_fire: Callable[[], None]


class TimerEngine:
    """Owns the elapsed clock, the rhythm-check countdown and the reminder alarms.

    Nothing runs on its own: the host calls ``poll()`` from its event loop and
    the engine replays, in time order, every whole-second step and every alarm
    that fell due since the last poll. Each counting timer steps one second
    after its own start or resume, so pausing never gains or loses time. On a
    tie a timer step runs before an alarm. Callbacks run synchronously inside
    ``poll()``.
    """

    def __init__(self, clock, rhythm_check_seconds=RHYTHM_CHECK_SECONDS):
        self._clock = clock
        self._timers = {
            TimerHandle.ELAPSED: CountingTimer(TimerHandle.ELAPSED),
            TimerHandle.RHYTHM_CHECK: CountingTimer(TimerHandle.RHYTHM_CHECK, threshold=rhythm_check_seconds),
        }
        self._expiry_callbacks = {}
        self._alarms = {}   # alarm_id -> OneShotAlarm
        self._next_alarm_id = 1

    def _counting(self, handle):
        if handle not in COUNTING_HANDLES:
            raise ValueError(f"'{handle.value}' is a one-shot handle, not a counting timer")
        return self._timers[handle]

    #region === Counting timers ===

    def start(self, handle):
        return self._counting(handle).start(self._clock.monotonic())
    # Steps still owed up to now are taken first, so the leftover fraction is all that gets carried.
    def pause(self, handle):
        timer = self._counting(handle)
        if timer.running:
            self.poll()
        return timer.pause(self._clock.monotonic())
    def resume(self, handle):
        return self._counting(handle).start(self._clock.monotonic())
    def reset(self, handle):
        self._counting(handle).reset(self._clock.monotonic())

    # Registers the callback run (once) when a thresholded timer reaches its threshold.
    def on_expire(self, handle, callback):
        if self._counting(handle).threshold is None:
            raise ValueError(f"Timer '{handle.value}' has no threshold to expire on")
        self._expiry_callbacks[handle] = callback

    def elapsed(self, handle):
        return self._counting(handle).elapsed_seconds
    def is_running(self, handle):
        return self._counting(handle).running
    def has_expired(self, handle):
        return self._counting(handle).expired
    def threshold(self, handle):
        return self._counting(handle).threshold

    #endregion === Counting timers ===

    #region === One-shot alarms ===

    def schedule_one_shot(self, handle, delay_seconds, on_fire):
        if handle in COUNTING_HANDLES:
            raise ValueError(f"'{handle.value}' is a counting timer, it cannot hold one-shot alarms")
        if delay_seconds < 0:
            raise ValueError(f"Alarm delay must not be negative, got {delay_seconds}")
        alarm = OneShotAlarm(
            alarm_id=self._next_alarm_id,
            handle=handle,
            deadline=self._clock.monotonic() + delay_seconds,
            on_fire=on_fire,
        )
        self._next_alarm_id += 1
        self._alarms[alarm.alarm_id] = alarm
        log.debug(f"Scheduled alarm #{alarm.alarm_id} on '{handle.value}' in {delay_seconds}s")
        return alarm.alarm_id

    # Cancels one pending alarm by id, or every pending alarm on the handle when no id is given. Returns whether
    # anything was actually cancelled; alarms that already fired (or never existed) are simply ignored.
    def cancel_one_shot(self, handle, alarm_id=None):
        if alarm_id is None:
            doomed = [a.alarm_id for a in self._alarms.values() if a.handle == handle]
        else:
            alarm = self._alarms.get(alarm_id)
            doomed = [alarm_id] if alarm is not None and alarm.handle == handle else []
        for aid in doomed:
            del self._alarms[aid]
            log.debug(f"Cancelled alarm #{aid} on '{handle.value}'")
        return bool(doomed)

    def pending(self, handle):
        return tuple(a.alarm_id for a in sorted(self._pending_alarms(handle), key=lambda a: a.deadline))

    # Whole seconds until the soonest pending alarm on the handle, or None when nothing is pending.
    def next_due_in(self, handle):
        alarms = self._pending_alarms(handle)
        if not alarms:
            return None
        soonest = min(a.deadline for a in alarms)
        return max(0, math.ceil(soonest - self._clock.monotonic()))

    def _pending_alarms(self, handle):
        return [a for a in self._alarms.values() if a.handle == handle]

    #endregion === One-shot alarms ===

    #region === Time advance ===

    # Replays everything that fell due up to now, oldest first. Returns how many timer steps and alarms were
    # processed. Callbacks may start, stop or cancel things, so the next due event is looked up again every time.
    def poll(self):
        now = self._clock.monotonic()
        processed = 0
        while True:
            due = self._next_due(now)
            if due is None:
                return processed
            processed += 1
            if isinstance(due, CountingTimer):
                self._step_timer(due)
            else:
                self._fire(due)

    def _next_due(self, now):
        candidates = [
            (timer.next_step_at, 0, order, timer)
            for order, timer in enumerate(self._timers.values())
            if timer.running and timer.next_step_at <= now
        ]
        candidates.extend(
            (alarm.deadline, 1, alarm.alarm_id, alarm)
            for alarm in self._alarms.values()
            if alarm.deadline <= now
        )
        if not candidates:
            return None
        return min(candidates, key=lambda c: c[:3])[3]

    def _step_timer(self, timer):
        if timer.step():
            log.info(f"Timer '{timer.handle.value}' reached its {timer.threshold}s threshold")
            callback = self._expiry_callbacks.get(timer.handle)
            if callback is not None:
                callback()

    # Removed before firing, so a later cancel of this id is a no-op.
    def _fire(self, alarm):
        del self._alarms[alarm.alarm_id]
        log.debug(f"Firing alarm #{alarm.alarm_id} on '{alarm.handle.value}'")
        alarm.on_fire()

    #endregion === Time advance ===

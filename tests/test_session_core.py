"""Tests for the code timer core.

Covers: codetimer.core.timers, codetimer.core.event_log,
codetimer.core.counters, codetimer.core.session
"""

import math
import os
import random
import tempfile
import unittest
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta

# Keep logs and settings out of the real user folder
os.environ.setdefault("CODETIMER_HOME", tempfile.mkdtemp(prefix="codetimer-tests-"))

from codetimer.core.alerts import AlertKind
from codetimer.core.counters import CodeSessionCounters, SessionSummary
from codetimer.core.event_log import EventLog
from codetimer.core.session import CodeSession, Command, SessionState
from codetimer.core.timers import TimerEngine, TimerHandle
from codetimer.util.misc import format_time_of_day

ELAPSED = TimerHandle.ELAPSED
RHYTHM = TimerHandle.RHYTHM_CHECK
EPI = TimerHandle.EPINEPHRINE_REMINDER


class ManualClock:
    """Clock the tests move by hand. Time of day starts at 14:30:00."""

    def __init__(self, start=1000.0):
        self.now = start
        self._start = start
        self._day_start = datetime(2026, 10, 19, 14, 30, 0)

    def monotonic(self):
        return self.now

    def time_of_day(self):
        return format_time_of_day(self._day_start + timedelta(seconds=self.now - self._start))

    def advance(self, seconds):
        self.now += seconds


# ──────────────────────────────────────────────────────────────────────────
# timers.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestTimerEngine(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock()
        self.engine = TimerEngine(self.clock)
        self.expired = []
        self.engine.on_expire(RHYTHM, lambda: self.expired.append(self.engine.elapsed(RHYTHM)))

    def advance(self, seconds):
        self.clock.advance(seconds)
        return self.engine.poll()

    def test_start_counts_whole_seconds(self):
        self.engine.start(ELAPSED)
        self.assertEqual(self.advance(5), 5)
        self.assertEqual(self.engine.elapsed(ELAPSED), 5)
        self.assertTrue(self.engine.is_running(ELAPSED))

    def test_stopped_timer_does_not_count(self):
        self.advance(10)
        self.assertEqual(self.engine.elapsed(ELAPSED), 0)
        self.assertEqual(self.engine.elapsed(RHYTHM), 0)

    def test_fractional_seconds_accumulate(self):
        self.engine.start(ELAPSED)
        self.assertEqual(self.advance(0.5), 0)
        self.assertEqual(self.engine.elapsed(ELAPSED), 0)
        self.assertEqual(self.advance(0.5), 1)
        self.assertEqual(self.engine.elapsed(ELAPSED), 1)

    def test_start_is_idempotent(self):
        self.assertTrue(self.engine.start(ELAPSED))
        self.advance(3)
        self.assertFalse(self.engine.start(ELAPSED))
        self.assertEqual(self.engine.elapsed(ELAPSED), 3)
        self.advance(1)
        self.assertEqual(self.engine.elapsed(ELAPSED), 4)

    def test_pause_and_resume_keep_value(self):
        self.engine.start(ELAPSED)
        self.advance(7)
        self.assertTrue(self.engine.pause(ELAPSED))
        self.advance(50)
        self.assertEqual(self.engine.elapsed(ELAPSED), 7)
        self.assertTrue(self.engine.resume(ELAPSED))
        self.assertEqual(self.engine.elapsed(ELAPSED), 7)
        self.advance(2)
        self.assertEqual(self.engine.elapsed(ELAPSED), 9)

    def test_pause_when_stopped_is_noop(self):
        self.assertFalse(self.engine.pause(ELAPSED))
        self.assertFalse(self.engine.is_running(ELAPSED))

    def test_reset_keeps_running_state(self):
        self.engine.start(ELAPSED)
        self.advance(4)
        self.engine.reset(ELAPSED)
        self.assertEqual(self.engine.elapsed(ELAPSED), 0)
        self.assertTrue(self.engine.is_running(ELAPSED))
        self.advance(1)
        self.assertEqual(self.engine.elapsed(ELAPSED), 1)

        self.engine.pause(ELAPSED)
        self.engine.reset(ELAPSED)
        self.assertEqual(self.engine.elapsed(ELAPSED), 0)
        self.assertFalse(self.engine.is_running(ELAPSED))

    def test_rhythm_check_fires_exactly_at_threshold(self):
        self.engine.start(RHYTHM)
        self.advance(119)
        self.assertEqual(self.expired, [])
        self.advance(1)
        self.assertEqual(self.expired, [120])

    def test_rhythm_check_stops_at_threshold_and_fires_once(self):
        self.engine.start(RHYTHM)
        self.advance(400)
        self.assertEqual(self.expired, [120])
        self.assertEqual(self.engine.elapsed(RHYTHM), 120)
        self.assertFalse(self.engine.is_running(RHYTHM))
        self.assertTrue(self.engine.has_expired(RHYTHM))

        # Not restartable until reset
        self.assertFalse(self.engine.start(RHYTHM))
        self.advance(200)
        self.assertEqual(self.expired, [120])

    def test_rhythm_check_rearms_after_reset(self):
        self.engine.start(RHYTHM)
        self.advance(120)
        self.engine.reset(RHYTHM)
        self.assertFalse(self.engine.has_expired(RHYTHM))
        self.assertTrue(self.engine.start(RHYTHM))
        self.advance(120)
        self.assertEqual(self.expired, [120, 120])

    def test_one_shot_fires_after_delay(self):
        fired = []
        self.engine.schedule_one_shot(EPI, 180, lambda: fired.append(self.clock.now))
        self.advance(179)
        self.assertEqual(fired, [])
        self.advance(1)
        self.assertEqual(fired, [1180.0])
        self.advance(500)
        self.assertEqual(len(fired), 1)

    def test_one_shot_ignores_paused_timers(self):
        fired = []
        self.engine.start(ELAPSED)
        self.engine.schedule_one_shot(EPI, 180, lambda: fired.append(True))
        self.advance(60)
        self.engine.pause(ELAPSED)
        self.advance(120)
        self.assertEqual(fired, [True])

    def test_one_shot_catch_up_in_single_poll(self):
        fired = []
        self.engine.schedule_one_shot(EPI, 180, lambda: fired.append(True))
        self.advance(1000)
        self.assertEqual(fired, [True])
        self.assertEqual(self.engine.pending(EPI), ())

    def test_one_shots_fire_in_deadline_order(self):
        fired = []
        self.engine.schedule_one_shot(EPI, 30, lambda: fired.append("late"))
        self.engine.schedule_one_shot(EPI, 10, lambda: fired.append("early"))
        self.advance(60)
        self.assertEqual(fired, ["early", "late"])

    def test_cancel_pending_one_shot(self):
        fired = []
        alarm_id = self.engine.schedule_one_shot(EPI, 180, lambda: fired.append(True))
        self.advance(100)
        self.assertTrue(self.engine.cancel_one_shot(EPI, alarm_id))
        self.advance(200)
        self.assertEqual(fired, [])
        self.assertFalse(self.engine.cancel_one_shot(EPI, alarm_id))

    def test_cancel_after_fire_is_noop(self):
        fired = []
        alarm_id = self.engine.schedule_one_shot(EPI, 5, lambda: fired.append(True))
        self.advance(5)
        self.assertEqual(fired, [True])
        self.assertFalse(self.engine.cancel_one_shot(EPI, alarm_id))
        self.assertFalse(self.engine.cancel_one_shot(EPI, 999))

    def test_cancel_all_for_handle(self):
        fired = []
        for delay in (10, 20, 30):
            self.engine.schedule_one_shot(EPI, delay, lambda: fired.append(True))
        self.assertEqual(len(self.engine.pending(EPI)), 3)
        self.assertTrue(self.engine.cancel_one_shot(EPI))
        self.assertEqual(self.engine.pending(EPI), ())
        self.advance(60)
        self.assertEqual(fired, [])
        self.assertFalse(self.engine.cancel_one_shot(EPI))

    def test_alarm_cancelled_by_earlier_callback_in_same_step(self):
        fired = []
        second = {}

        def first():
            fired.append("first")
            self.engine.cancel_one_shot(EPI, second["id"])

        self.engine.schedule_one_shot(EPI, 10, first)
        second["id"] = self.engine.schedule_one_shot(EPI, 10, lambda: fired.append("second"))
        self.advance(10)
        self.assertEqual(fired, ["first"])

    def test_next_due_in(self):
        self.assertIsNone(self.engine.next_due_in(EPI))
        self.engine.schedule_one_shot(EPI, 180, lambda: None)
        self.engine.schedule_one_shot(EPI, 60, lambda: None)
        self.advance(15)
        self.assertEqual(self.engine.next_due_in(EPI), 45)

    def test_handle_kind_mismatch_raises(self):
        with self.assertRaises(ValueError):
            self.engine.schedule_one_shot(ELAPSED, 10, lambda: None)
        with self.assertRaises(ValueError):
            self.engine.start(EPI)
        with self.assertRaises(ValueError):
            self.engine.on_expire(ELAPSED, lambda: None)
        with self.assertRaises(ValueError):
            self.engine.schedule_one_shot(EPI, -1, lambda: None)

    def test_start_mid_second_counts_from_start(self):
        self.advance(0.7)
        self.engine.start(ELAPSED)
        self.advance(0.5)
        self.assertEqual(self.engine.elapsed(ELAPSED), 0)
        self.advance(0.5)
        self.assertEqual(self.engine.elapsed(ELAPSED), 1)

    def test_short_runs_between_pauses_add_up(self):
        self.advance(0.98)
        self.engine.start(ELAPSED)
        for _ in range(10):
            self.advance(0.04)
            self.engine.pause(ELAPSED)
            self.advance(0.96)
            self.engine.resume(ELAPSED)
        # 0.4s of actual running time so far
        self.assertEqual(self.engine.elapsed(ELAPSED), 0)
        self.advance(0.5)
        self.assertEqual(self.engine.elapsed(ELAPSED), 0)
        self.advance(0.2)
        self.assertEqual(self.engine.elapsed(ELAPSED), 1)

    def test_timers_keep_their_own_phase(self):
        self.engine.start(ELAPSED)
        self.advance(0.5)
        self.engine.start(RHYTHM)
        self.advance(119.6)
        self.assertEqual(self.engine.elapsed(ELAPSED), 120)
        self.assertEqual(self.engine.elapsed(RHYTHM), 119)
        self.assertEqual(self.expired, [])
        self.advance(0.5)
        self.assertEqual(self.expired, [120])

    def test_alarms_interleave_with_steps_in_time_order(self):
        seen = []
        self.engine.start(ELAPSED)
        self.engine.schedule_one_shot(EPI, 0.5, lambda: seen.append(self.engine.elapsed(ELAPSED)))
        self.engine.schedule_one_shot(EPI, 2, lambda: seen.append(self.engine.elapsed(ELAPSED)))
        self.assertEqual(self.advance(3), 5)
        # On a tie the timer step comes first
        self.assertEqual(seen, [0, 2])


# ──────────────────────────────────────────────────────────────────────────
# event_log.py / counters.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestEventLog(unittest.TestCase):

    def test_append_stamps_time_of_day(self):
        clock = ManualClock()
        timeline = EventLog(clock)
        timeline.append("Code timer started")
        clock.advance(65)
        timeline.append("Shock delivered")
        self.assertEqual(
            [(e.timestamp, e.description) for e in timeline],
            [("14:30:00", "Code timer started"), ("14:31:05", "Shock delivered")],
        )

    def test_entries_are_immutable(self):
        timeline = EventLog(ManualClock())
        entry = timeline.append("Epinephrine given")
        with self.assertRaises(FrozenInstanceError):
            entry.description = "edited"
        self.assertIsInstance(timeline.entries, tuple)

    def test_clear_then_append(self):
        timeline = EventLog(ManualClock())
        timeline.append("a")
        timeline.append("b")
        timeline.clear()
        self.assertEqual(len(timeline), 0)
        timeline.append("c")
        self.assertEqual([e.description for e in timeline.entries], ["c"])


class TestCounters(unittest.TestCase):

    def test_summary_is_a_detached_snapshot(self):
        counters = CodeSessionCounters(cycles=3, epinephrine_doses=2, shocks=1)
        summary = SessionSummary.from_counters(counters, elapsed_seconds=400)
        counters.reset()
        self.assertEqual((summary.cycles, summary.epinephrine_doses, summary.shocks), (3, 2, 1))
        self.assertEqual(summary.elapsed_seconds, 400)
        self.assertEqual(counters.total, 0)

    def test_summary_text(self):
        summary = SessionSummary(cycles=4, epinephrine_doses=2, shocks=3)
        self.assertEqual(summary.as_text(), "Cycles: 4\nEpinephrine: 2\nShocks: 3")


# ──────────────────────────────────────────────────────────────────────────
# session.py tests
# ──────────────────────────────────────────────────────────────────────────

class SessionTestCase(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock()
        self.session = CodeSession(clock=self.clock)
        self.alerts = []
        self.snapshots = []
        self.session.subscribe_alerts(self.alerts.append)
        self.session.subscribe(self.snapshots.append)

    def advance(self, seconds):
        self.clock.advance(seconds)
        return self.session.tick()

    def descriptions(self):
        return [e.description for e in self.session.log_entries]

    def alert_kinds(self):
        return [a.kind for a in self.alerts]


class TestSessionTransitions(SessionTestCase):

    def test_initial_state(self):
        snap = self.session.snapshot()
        self.assertIs(snap.state, SessionState.IDLE)
        self.assertEqual(snap.elapsed_seconds, 0)
        self.assertEqual(snap.rhythm_seconds, 0)
        self.assertEqual(snap.counters.total, 0)
        self.assertEqual(snap.log_entries, ())
        self.assertEqual(snap.pending_reminders, 0)
        self.assertIsNone(snap.next_reminder_in)

    def test_start(self):
        self.assertTrue(self.session.start())
        self.assertIs(self.session.state, SessionState.RUNNING)
        self.assertEqual(self.descriptions(), ["Code timer started"])
        self.assertEqual(self.alert_kinds(), [AlertKind.START_REMINDER])
        self.advance(10)
        self.assertEqual(self.session.elapsed_seconds, 10)

    def test_start_while_running_is_noop(self):
        self.session.start()
        self.advance(30)
        self.session.cpr()
        self.session.shock()
        entries_before = self.session.log_entries
        published = len(self.snapshots)

        self.assertFalse(self.session.start())

        self.assertIs(self.session.state, SessionState.RUNNING)
        self.assertEqual(self.session.elapsed_seconds, 30)
        self.assertEqual(self.session.log_entries, entries_before)
        self.assertEqual(self.session.counters.cycles, 1)
        self.assertEqual(self.session.counters.shocks, 1)
        self.assertEqual(len(self.snapshots), published)
        self.assertEqual(self.alert_kinds(), [AlertKind.START_REMINDER])

    def test_gated_commands_rejected_from_wrong_state(self):
        self.assertFalse(self.session.pause())
        self.assertFalse(self.session.resume())
        self.assertIsNone(self.session.end())
        self.session.start()
        self.assertFalse(self.session.resume())
        self.session.pause()
        self.assertFalse(self.session.pause())
        self.assertFalse(self.session.start())
        self.assertEqual(self.descriptions(), ["Code timer started", "Code timer paused"])

    def test_can_mirrors_gating(self):
        self.assertTrue(self.session.can(Command.START))
        self.assertFalse(self.session.can(Command.END))
        self.assertTrue(self.session.can(Command.CPR))
        self.session.start()
        self.assertFalse(self.session.can(Command.START))
        self.assertTrue(self.session.can(Command.PAUSE))
        self.assertTrue(self.session.can(Command.END))
        self.session.pause()
        self.assertTrue(self.session.can(Command.RESUME))
        self.assertTrue(self.session.can(Command.END))

    def test_pause_resume_preserves_elapsed(self):
        self.session.start()
        self.advance(42)
        before = self.session.elapsed_seconds
        self.assertTrue(self.session.pause())
        self.advance(100)
        self.assertEqual(self.session.elapsed_seconds, before)
        self.assertTrue(self.session.resume())
        self.assertEqual(self.session.elapsed_seconds, before)
        self.advance(1)
        self.assertEqual(self.session.elapsed_seconds, before + 1)
        # Resume does not add a timeline entry
        self.assertEqual(self.descriptions(), ["Code timer started", "Code timer paused"])

    def test_pause_resume_without_ticks_in_between(self):
        self.session.start()
        self.clock.advance(20)
        self.session.pause()
        self.clock.advance(300)
        self.session.resume()
        self.assertEqual(self.session.elapsed_seconds, 20)
        self.clock.advance(5)
        self.session.tick()
        self.assertEqual(self.session.elapsed_seconds, 25)

    def test_pause_holds_active_rhythm_check(self):
        self.session.start()
        self.session.cpr()
        self.advance(50)
        self.session.pause()
        self.advance(200)
        self.assertEqual(self.session.rhythm_seconds, 50)
        self.assertTrue(self.session.rhythm_active)
        self.assertNotIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())
        self.session.resume()
        self.advance(70)
        self.assertIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())

    def test_resume_does_not_start_inactive_rhythm_check(self):
        self.session.start()
        self.session.pause()
        self.session.resume()
        self.advance(30)
        self.assertEqual(self.session.rhythm_seconds, 0)
        self.assertFalse(self.session.rhythm_active)

    def test_cpr_while_paused_starts_on_resume(self):
        self.session.start()
        self.session.pause()
        self.session.cpr()
        self.assertEqual(self.session.counters.cycles, 1)
        self.advance(30)
        self.assertEqual(self.session.rhythm_seconds, 0)
        self.session.resume()
        self.advance(30)
        self.assertEqual(self.session.rhythm_seconds, 30)

    def test_end_returns_summary_and_resets(self):
        self.session.start()
        self.session.cpr()
        self.session.epinephrine()
        self.session.shock()
        self.session.shock()
        self.advance(90)

        summary = self.session.end()

        self.assertEqual(summary, SessionSummary(cycles=1, epinephrine_doses=1, shocks=2, elapsed_seconds=90))
        self.assertIs(self.session.state, SessionState.IDLE)
        self.assertEqual(self.session.counters.total, 0)
        self.assertEqual(self.session.elapsed_seconds, 0)
        self.assertEqual(self.session.rhythm_seconds, 0)
        self.assertFalse(self.session.rhythm_active)
        self.assertEqual(self.descriptions()[-1], "Code timer ended")

        summary_alert = self.alerts[-1]
        self.assertIs(summary_alert.kind, AlertKind.SESSION_SUMMARY)
        self.assertIs(summary_alert.summary, summary)
        self.assertIn("Shocks: 2", summary_alert.message)

        # Timers stay stopped after End
        self.advance(60)
        self.assertEqual(self.session.elapsed_seconds, 0)
        self.assertEqual(self.session.rhythm_seconds, 0)

    def test_end_from_paused(self):
        self.session.start()
        self.advance(10)
        self.session.pause()
        summary = self.session.end()
        self.assertEqual(summary.elapsed_seconds, 10)
        self.assertIs(self.session.state, SessionState.IDLE)

    def test_start_after_end_starts_fresh(self):
        self.session.start()
        self.advance(100)
        self.session.cpr()
        self.session.end()
        self.session.shock()    # logged only, no session running
        self.assertTrue(self.session.start())
        self.assertEqual(self.session.counters.total, 0)
        self.assertEqual(self.session.elapsed_seconds, 0)
        self.advance(3)
        self.assertEqual(self.session.elapsed_seconds, 3)


class TestClinicalActions(SessionTestCase):

    def test_actions_in_idle_are_logged_but_not_counted(self):
        self.assertTrue(self.session.cpr())
        self.assertTrue(self.session.epinephrine())
        self.assertTrue(self.session.shock())
        self.assertEqual(self.descriptions(),
                         ["Chest compressions started", "Epinephrine given", "Shock delivered"])
        self.assertEqual(self.session.counters.total, 0)
        self.assertFalse(self.session.rhythm_active)
        # The dose reminder is still armed
        self.assertEqual(self.session.snapshot().pending_reminders, 1)

    def test_rhythm_check_fires_once_per_cycle(self):
        self.session.start()
        self.session.cpr()
        self.advance(120)
        self.assertEqual(self.alert_kinds().count(AlertKind.RHYTHM_CHECK), 1)
        self.assertEqual(self.descriptions()[-1], "Rhythm checked")
        self.assertEqual(self.session.rhythm_seconds, 0)
        self.assertFalse(self.session.rhythm_active)

        self.advance(600)
        self.assertEqual(self.alert_kinds().count(AlertKind.RHYTHM_CHECK), 1)

        self.session.cpr()
        self.advance(120)
        self.assertEqual(self.alert_kinds().count(AlertKind.RHYTHM_CHECK), 2)
        self.assertEqual(self.session.counters.cycles, 2)

    def test_cpr_restarts_countdown(self):
        self.session.start()
        self.session.cpr()
        self.advance(100)
        self.session.cpr()
        self.assertEqual(self.session.rhythm_seconds, 0)
        self.advance(100)
        self.assertNotIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())
        self.advance(20)
        self.assertIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())
        self.assertEqual(self.session.counters.cycles, 2)

    def test_rhythm_expiry_processed_before_late_command(self):
        self.session.start()
        self.session.cpr()
        # No tick between the threshold and the next press
        self.clock.advance(125)
        self.session.cpr()
        self.assertEqual(self.descriptions(), [
            "Code timer started",
            "Chest compressions started",
            "Rhythm checked",
            "Chest compressions started",
        ])
        self.assertTrue(self.session.rhythm_active)
        self.assertEqual(self.session.rhythm_seconds, 0)

    def test_epinephrine_reminder_ignores_pause(self):
        self.session.start()
        self.session.epinephrine()
        self.advance(60)
        self.session.pause()
        self.advance(60)
        self.session.resume()
        self.advance(59)
        self.assertNotIn(AlertKind.EPINEPHRINE_REMINDER, self.alert_kinds())
        self.advance(1)
        self.assertIn(AlertKind.EPINEPHRINE_REMINDER, self.alert_kinds())
        self.assertEqual(self.descriptions()[-1], "Epinephrine reminder")

    def test_epinephrine_reminder_survives_end(self):
        self.session.start()
        self.session.epinephrine()
        self.advance(30)
        self.session.end()
        self.advance(150)
        self.assertEqual(self.alert_kinds()[-1], AlertKind.EPINEPHRINE_REMINDER)
        self.assertEqual(self.descriptions()[-1], "Epinephrine reminder")
        self.assertIs(self.session.state, SessionState.IDLE)

    def test_each_dose_has_its_own_reminder(self):
        self.session.start()
        self.session.epinephrine()
        self.advance(60)
        self.session.epinephrine()
        self.assertEqual(self.session.snapshot().pending_reminders, 2)
        self.advance(120)
        self.assertEqual(self.alert_kinds().count(AlertKind.EPINEPHRINE_REMINDER), 1)
        self.advance(60)
        self.assertEqual(self.alert_kinds().count(AlertKind.EPINEPHRINE_REMINDER), 2)
        self.assertEqual(self.session.counters.epinephrine_doses, 2)

    def test_next_reminder_countdown_in_snapshot(self):
        self.session.start()
        self.session.epinephrine()
        self.advance(45)
        self.assertEqual(self.snapshots[-1].next_reminder_in, 135)

    def test_cancel_reminders(self):
        self.session.epinephrine()
        self.session.epinephrine()
        self.assertTrue(self.session.cancel_reminders())
        self.advance(400)
        self.assertNotIn(AlertKind.EPINEPHRINE_REMINDER, self.alert_kinds())
        self.assertFalse(self.session.cancel_reminders())

    def test_shutdown_cancels_reminders(self):
        self.session.start()
        self.session.epinephrine()
        self.session.shutdown()
        self.advance(200)
        self.assertNotIn(AlertKind.EPINEPHRINE_REMINDER, self.alert_kinds())

    def test_clear_in_every_state(self):
        self.session.shock()
        self.session.clear_log()
        self.assertEqual(len(self.session.log_entries), 0)

        self.session.start()
        self.session.clear_log()
        self.assertEqual(len(self.session.log_entries), 0)
        self.session.cpr()
        self.assertEqual(self.descriptions(), ["Chest compressions started"])

        self.session.pause()
        self.session.clear_log()
        self.assertEqual(len(self.session.log_entries), 0)
        self.session.epinephrine()
        self.assertEqual(self.descriptions(), ["Epinephrine given"])
        # Clearing the log never touches the session itself
        self.assertIs(self.session.state, SessionState.PAUSED)
        self.assertEqual(self.session.counters.cycles, 1)


class TestSubscribers(SessionTestCase):

    def test_snapshot_after_each_command(self):
        self.session.start()
        self.session.shock()
        states = [s.state for s in self.snapshots]
        self.assertEqual(states, [SessionState.RUNNING, SessionState.RUNNING])
        self.assertEqual(self.snapshots[-1].counters.shocks, 1)

    def test_tick_publishes_only_when_time_moved(self):
        self.session.start()
        published = len(self.snapshots)
        self.session.tick()
        self.assertEqual(len(self.snapshots), published)
        self.advance(1)
        self.assertEqual(len(self.snapshots), published + 1)
        self.assertEqual(self.snapshots[-1].elapsed_seconds, 1)

    def test_unsubscribe(self):
        seen = []
        unsubscribe = self.session.subscribe(seen.append)
        self.session.shock()
        unsubscribe()
        self.session.shock()
        self.assertEqual(len(seen), 1)

    def test_failing_display_is_isolated(self):
        def broken(_snap):
            raise RuntimeError("widget gone")

        self.session.subscribe(broken)
        self.assertTrue(self.session.start())
        self.assertIs(self.session.state, SessionState.RUNNING)
        self.assertIn(AlertKind.COLLABORATOR_FAILURE, self.alert_kinds())
        self.session.cpr()
        self.assertEqual(self.session.counters.cycles, 1)

    def test_failing_alert_subscriber_is_isolated(self):
        def broken(_alert):
            raise RuntimeError("no screen")

        self.session.subscribe_alerts(broken)
        self.session.start()
        self.assertEqual(self.alert_kinds(), [AlertKind.START_REMINDER])
        self.assertIs(self.session.state, SessionState.RUNNING)

    def test_command_from_subscriber_is_queued(self):
        results = []

        def react(snap):
            if snap.state is SessionState.RUNNING and not results:
                results.append(self.session.shock())

        self.session.subscribe(react)
        self.session.start()
        self.assertEqual(results, [None])
        self.assertEqual(self.descriptions(), ["Code timer started", "Shock delivered"])
        self.assertEqual(self.session.counters.shocks, 1)

    def test_rhythm_expiry_publishes_one_settled_snapshot(self):
        self.session.start()
        self.session.cpr()
        events = []
        self.session.subscribe(lambda s: events.append(("snapshot", s.rhythm_active, s.rhythm_seconds)))
        self.session.subscribe_alerts(lambda a: events.append(("alert", a.kind)))
        self.advance(120)
        self.assertEqual(events, [("snapshot", False, 0), ("alert", AlertKind.RHYTHM_CHECK)])

    def test_idle_reminder_countdown_is_published(self):
        self.session.epinephrine()
        published = len(self.snapshots)
        self.advance(1)
        self.assertEqual(len(self.snapshots), published + 1)
        self.assertEqual(self.snapshots[-1].next_reminder_in, 179)

    def test_failed_command_drops_what_was_queued_behind_it(self):
        def broken_handler():
            raise RuntimeError("handler broke")

        queued = []

        def react(snap):
            if snap.state is SessionState.RUNNING and not queued:
                queued.append(self.session.shock())
                queued.append(self.session.cpr())

        self.session._handlers[Command.SHOCK] = broken_handler
        self.session.subscribe(react)
        with self.assertRaises(RuntimeError):
            self.session.start()

        self.assertEqual(queued, [None, None])
        self.assertEqual(self.descriptions(), ["Code timer started"])
        # The queued CPR is gone for good, not replayed by the next command
        self.session.epinephrine()
        self.assertEqual(self.descriptions(), ["Code timer started", "Epinephrine given"])
        self.assertEqual(self.session.counters.cycles, 0)


class TestScenarios(SessionTestCase):

    def test_full_code(self):
        self.session.start()
        self.session.cpr()
        self.advance(120)
        self.assertEqual(self.alert_kinds()[-1], AlertKind.RHYTHM_CHECK)
        self.assertEqual(self.session.rhythm_seconds, 0)
        self.session.epinephrine()
        self.advance(180)
        self.assertEqual(self.alert_kinds()[-1], AlertKind.EPINEPHRINE_REMINDER)
        self.session.shock()
        summary = self.session.end()

        self.assertEqual((summary.cycles, summary.epinephrine_doses, summary.shocks), (1, 1, 1))
        self.assertEqual(summary.elapsed_seconds, 300)
        self.assertEqual(self.alert_kinds(), [
            AlertKind.START_REMINDER,
            AlertKind.RHYTHM_CHECK,
            AlertKind.EPINEPHRINE_REMINDER,
            AlertKind.SESSION_SUMMARY,
        ])
        self.assertEqual(
            [(e.timestamp, e.description) for e in self.session.log_entries],
            [
                ("14:30:00", "Code timer started"),
                ("14:30:00", "Chest compressions started"),
                ("14:32:00", "Rhythm checked"),
                ("14:32:00", "Epinephrine given"),
                ("14:35:00", "Epinephrine reminder"),
                ("14:35:00", "Shock delivered"),
                ("14:35:00", "Code timer ended"),
            ],
        )

    def test_rejected_start_while_paused(self):
        self.session.start()
        self.session.pause()
        self.assertFalse(self.session.start())
        self.session.resume()
        summary = self.session.end()
        self.assertEqual((summary.cycles, summary.epinephrine_doses, summary.shocks), (0, 0, 0))
        self.assertEqual(self.descriptions(), ["Code timer started", "Code timer paused", "Code timer ended"])

    def test_counter_total_only_grows_until_end(self):
        rng = random.Random(20261019)
        actions = ["start", "pause", "resume", "end", "cpr", "epinephrine", "shock", "clear_log", "wait"]
        previous = 0
        for _ in range(2000):
            action = rng.choice(actions)
            if action == "wait":
                self.advance(rng.randint(1, 90))
            else:
                getattr(self.session, action)()
            total = self.session.counters.total
            if action == "end" and self.session.state is SessionState.IDLE:
                self.assertEqual(total, 0)
            elif action == "start" and total == 0:
                pass
            else:
                self.assertGreaterEqual(total, previous)
            if self.session.state is SessionState.IDLE:
                self.assertEqual(total, 0)
            previous = total

    def test_elapsed_runs_only_while_running(self):
        rng = random.Random(7)
        for _ in range(500):
            action = rng.choice(["start", "pause", "resume", "end", "cpr"])
            getattr(self.session, action)()
            before = self.session.elapsed_seconds
            running = self.session.state is SessionState.RUNNING
            self.advance(3)
            after = self.session.elapsed_seconds
            if running:
                self.assertEqual(after, before + 3)
            else:
                self.assertEqual(after, before)
            self.assertLessEqual(self.session.rhythm_seconds, 120)


class TestFractionalTiming(SessionTestCase):
    """Commands landing anywhere inside a second, not just on whole-second marks."""

    def test_resume_just_before_a_second_does_not_gain_time(self):
        self.clock.advance(0.98)
        self.session.start()
        for _ in range(10):
            self.advance(0.04)
            self.session.pause()
            self.advance(0.96)
            self.session.resume()
        self.assertEqual(self.session.elapsed_seconds, 0)

    def test_rhythm_check_needs_full_interval_after_cpr(self):
        self.session.start()
        self.clock.advance(0.99)
        self.session.cpr()
        self.advance(119.02)
        self.assertNotIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())
        self.assertNotIn("Rhythm checked", self.descriptions())
        self.advance(0.97)
        self.assertNotIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())
        self.advance(0.02)
        self.assertIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())

    def test_rhythm_check_counts_only_running_time(self):
        self.session.start()
        self.clock.advance(0.5)
        self.session.cpr()
        self.advance(60.3)
        self.session.pause()
        self.advance(10)
        self.session.resume()
        self.advance(59.6)
        self.assertNotIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())
        self.advance(0.2)
        self.assertIn(AlertKind.RHYTHM_CHECK, self.alert_kinds())

    def test_elapsed_tracks_running_time(self):
        rng = random.Random(99)
        running_time = 0.0
        for _ in range(1500):
            action = rng.choice(["start", "pause", "resume", "end", "cpr", "wait"])
            if action == "wait":
                wait = rng.uniform(0.01, 2.5)
                was_running = self.session.state is SessionState.RUNNING
                self.advance(wait)
                if was_running:
                    running_time += wait
            elif getattr(self.session, action)() and action in ("start", "end"):
                running_time = 0.0
            elapsed = self.session.elapsed_seconds
            self.assertLessEqual(elapsed, math.floor(running_time + 1e-6))
            self.assertGreaterEqual(elapsed, math.floor(running_time - 1e-6))


if __name__ == "__main__":
    unittest.main()

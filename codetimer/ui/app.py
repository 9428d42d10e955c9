import sys
from PySide6.QtCore import Qt, QTimer
from PySide6.QtWidgets import (
    QApplication,
    QDialog,
    QFrame,
    QMainWindow,
    QMessageBox,
    QVBoxLayout,
    QWidget,
)
from codetimer.common.logger import log
from codetimer.core import alerts, config
from codetimer.core.alerts import AlertKind
from codetimer.core.session import CodeSession, Command, SessionState
from codetimer.ui.dialogs.help import HelpDialog
from codetimer.ui.dialogs.settings import ConfigDialog
from codetimer.ui.metronome import Metronome
from codetimer.ui.theme import THEMES, build_stylesheet, build_message_stylesheet
from codetimer.ui.widgets import (
    build_clock_panel,
    build_command_rows,
    build_counter_row,
    build_header,
    build_timeline,
)
from codetimer.util.misc import format_elapsed

# How often the event loop polls the session core. The core itself only advances on whole seconds.
_POLL_INTERVAL_MS = 200

# Alerts that should also make a noise, since the operator's eyes may be on the patient.
_AUDIBLE_ALERTS = {AlertKind.RHYTHM_CHECK, AlertKind.EPINEPHRINE_REMINDER}


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window of the code timer. It only renders snapshots and forwards button presses; all timing and logging lives
# in the CodeSession it owns.
class MainWindow(QMainWindow):

    def __init__(self, session=None):
        super().__init__()
        self.setWindowTitle("Code Timer")

        # -- Load settings --
        self._config = config.load_settings()
        s = self._config["settings"]
        self.theme = s["theme"] if s["theme"] in THEMES else "Light"
        self.font_family = s["font"]
        self.always_on_top = s["always_on_top"]
        self.confirm_end = s["confirm_end"]
        self.show_start_reminder = s["show_start_reminder"]
        self.metronome_bpm = s["metronome_bpm"]

        if self.always_on_top:
            self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

        # -- Session core --
        self.session = session or CodeSession()
        self._open_alerts = []
        self._shown_entries = 0

        # -- Metronome (independent peer) --
        self._metronome = Metronome(self, self.metronome_bpm, on_error=self._on_metronome_error)

        # -- Build UI --
        self._build_ui()
        self._apply_style()

        self._unsubscribe = [
            self.session.subscribe(self._render),
            self.session.subscribe_alerts(self._show_alert),
        ]
        self._render(self.session.snapshot())

        # -- Tick timer --
        self._timer = QTimer(self)
        self._timer.timeout.connect(self.session.tick)
        self._timer.start(_POLL_INTERVAL_MS)

    # ------------------------------------------------------------------ #
    #  Layout and style                                                    #
    # ------------------------------------------------------------------ #

    def _build_ui(self):
        t = THEMES.get(self.theme, THEMES["Light"])
        central = QWidget()
        self.setCentralWidget(central)
        self._main_lay = QVBoxLayout(central)
        self._main_lay.setContentsMargins(16, 16, 16, 16)
        self._main_lay.setSpacing(10)

        header, self._header = build_header(
            self.font_family,
            on_metronome=self._on_metronome,
            on_help=self._on_help,
            on_config=self._on_config,
        )
        clocks, self._clocks = build_clock_panel(t, self.font_family)
        commands, self._buttons = build_command_rows(
            self.font_family,
            on_start=self.session.start,
            on_pause=self._on_pause_resume,
            on_end=self._on_end,
            on_cpr=self.session.cpr,
            on_epinephrine=self.session.epinephrine,
            on_shock=self.session.shock,
        )
        counters, self._counters = build_counter_row(self.font_family)
        timeline, self._timeline = build_timeline(t, self.font_family, on_clear=self.session.clear_log)

        sep = QFrame()
        sep.setFrameShape(QFrame.HLine)
        sep.setFrameShadow(QFrame.Sunken)

        self._main_lay.addWidget(header)
        self._main_lay.addWidget(clocks)
        self._main_lay.addWidget(commands)
        self._main_lay.addWidget(counters)
        self._main_lay.addWidget(sep)
        self._main_lay.addWidget(timeline, 1)
        self.resize(440, 760)

    def _apply_style(self):
        style = build_stylesheet(self.theme)
        self.setStyleSheet(style)
        app = QApplication.instance()
        if app is not None:
            app.setStyleSheet(style)

    def _rebuild(self):
        old = self.centralWidget()
        self._build_ui()
        if old is not None:
            old.deleteLater()
        self._shown_entries = 0
        self._apply_style()
        self._render(self.session.snapshot())

    # ------------------------------------------------------------------ #
    #  Rendering                                                           #
    # ------------------------------------------------------------------ #

    def _render(self, snap):
        t = THEMES.get(self.theme, THEMES["Light"])

        self._clocks["elapsed"].setText(format_elapsed(snap.elapsed_seconds))
        self._clocks["rhythm"].setText(format_elapsed(snap.rhythm_seconds))
        rhythm_color = t["rhythm_text"] if snap.rhythm_active else t["rhythm_idle_text"]
        self._clocks["rhythm"].setStyleSheet(f"color: {rhythm_color};")
        if snap.next_reminder_in is not None:
            extra = f" (+{snap.pending_reminders - 1})" if snap.pending_reminders > 1 else ""
            self._clocks["reminder"].setText(f"Next epinephrine in {format_elapsed(snap.next_reminder_in)}{extra}")
        else:
            self._clocks["reminder"].setText("")

        self._counters["cycles"].setText(f"Cycles: {snap.counters.cycles}")
        self._counters["epinephrine"].setText(f"Epinephrine: {snap.counters.epinephrine_doses}")
        self._counters["shocks"].setText(f"Shocks: {snap.counters.shocks}")

        # Buttons mirror the gating in the core, a disabled button is how a rejected command looks to the user
        self._buttons["start"].setEnabled(snap.state is SessionState.IDLE)
        self._buttons["pause"].setEnabled(snap.state is not SessionState.IDLE)
        self._buttons["pause"].setText("Resume" if snap.state is SessionState.PAUSED else "Pause")
        self._buttons["end"].setEnabled(snap.state is not SessionState.IDLE)

        self._render_timeline(snap.log_entries)

    # Timeline only ever grows or gets cleared, so append the new tail instead of refilling.
    def _render_timeline(self, entries):
        entry_list = self._timeline["list"]
        if len(entries) < self._shown_entries:
            entry_list.clear()
            self._shown_entries = 0
        for entry in entries[self._shown_entries:]:
            entry_list.addItem(f"{entry.timestamp}    {entry.description}")
        if len(entries) != self._shown_entries:
            entry_list.scrollToBottom()
        self._shown_entries = len(entries)

    # Alerts are shown non-modally so the tick timer and buttons keep working while they are up.
    def _show_alert(self, alert):
        if alert.kind is AlertKind.START_REMINDER and not self.show_start_reminder:
            return
        if alert.kind in _AUDIBLE_ALERTS:
            QApplication.beep()
        icon = QMessageBox.Warning if alert.kind is AlertKind.COLLABORATOR_FAILURE else QMessageBox.Information
        box = QMessageBox(icon, alert.title, alert.message, QMessageBox.Ok, self)
        box.setStyleSheet(build_message_stylesheet(self.theme))
        box.setWindowModality(Qt.NonModal)
        box.setAttribute(Qt.WA_DeleteOnClose)
        box.finished.connect(lambda _=0, b=box: self._forget_alert(b))
        self._open_alerts.append(box)
        box.show()

    def _forget_alert(self, box):
        if box in self._open_alerts:
            self._open_alerts.remove(box)

    # ------------------------------------------------------------------ #
    #  Button handlers                                                     #
    # ------------------------------------------------------------------ #

    def _on_pause_resume(self):
        if self.session.can(Command.PAUSE):
            self.session.pause()
        else:
            self.session.resume()

    def _on_end(self):
        if not self.session.can(Command.END):
            return
        if self.confirm_end:
            if QMessageBox.question(
                    self, "Confirm End",
                    "End the code? All timers and counters will be reset."
            ) != QMessageBox.Yes:
                return
        self.session.end()

    def _on_metronome(self):
        self._metronome.toggle()
        self._render_metronome_button()

    def _render_metronome_button(self):
        running = self._metronome.running
        btn = self._header["metronome"]
        btn.setText("♪ On" if running else "♪ Off")
        t = THEMES.get(self.theme, THEMES["Light"])
        btn.setStyleSheet(f"color: {t['metronome_on']};" if running else "")

    def _on_metronome_error(self, message):
        log.warning(message)
        self._show_alert(alerts.collaborator_failure("Metronome", message))

    def _on_help(self):
        HelpDialog(self).exec()

    # ------------------------------------------------------------------ #
    #  Settings dialog                                                     #
    # ------------------------------------------------------------------ #

    def _on_config(self):
        cfg = dict(self._config["settings"])
        dlg = ConfigDialog(self, cfg)
        if dlg.exec() != QDialog.Accepted or not dlg.settings_changed:
            return
        old_aot = self.always_on_top

        self.theme = dlg.chosen_theme
        self.font_family = dlg.chosen_font
        self.always_on_top = dlg.chosen_always_on_top
        self.confirm_end = dlg.chosen_confirm_end
        self.show_start_reminder = dlg.chosen_show_start_reminder
        self.metronome_bpm = dlg.chosen_metronome_bpm

        self._config["settings"].update({
            "theme": self.theme,
            "font": self.font_family,
            "always_on_top": self.always_on_top,
            "confirm_end": self.confirm_end,
            "show_start_reminder": self.show_start_reminder,
            "metronome_bpm": self.metronome_bpm,
        })
        try:
            config.save_settings(self._config)
        except OSError as e:
            log.exception("Failed to save settings")
            self._show_alert(alerts.collaborator_failure("Settings", e))

        self._metronome.set_bpm(self.metronome_bpm)
        self._rebuild()
        self._render_metronome_button()

        if self.always_on_top != old_aot:
            self.setWindowFlag(Qt.WindowStaysOnTopHint, self.always_on_top)
            self.show()

    # ------------------------------------------------------------------ #
    #  Window close                                                        #
    # ------------------------------------------------------------------ #

    def closeEvent(self, event):
        if self.session.state is not SessionState.IDLE:
            if QMessageBox.question(
                    self, "Confirm Exit",
                    "A code is still in progress. Close the timer anyway?"
            ) != QMessageBox.Yes:
                event.ignore()
                return
        self._timer.stop()
        self._metronome.stop()
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self.session.shutdown()
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())

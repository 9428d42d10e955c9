"""Configuration dialog for Code Timer."""

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont, QFontDatabase
from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
)
from codetimer.core.config import METRONOME_BPM_RANGE, THEME_NAMES

# Simple settings dialog. Opens when the user clicks the little gear icon in the header.
class ConfigDialog(QDialog):

    def __init__(self, parent, cfg):
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)
        self.setModal(True)

        # Output attributes, read by MainWindow after dialog closes
        self.chosen_theme = cfg.get("theme", "Light")
        self.chosen_font = cfg.get("font", "Calibri")
        self.chosen_always_on_top = cfg.get("always_on_top", True)
        self.chosen_confirm_end = cfg.get("confirm_end", True)
        self.chosen_show_start_reminder = cfg.get("show_start_reminder", True)
        self.chosen_metronome_bpm = cfg.get("metronome_bpm", 120)
        self.settings_changed = False

        outer = QVBoxLayout(self)
        outer.setSpacing(12)

        # Window Behavior
        self._always_on_top = self._add_combo_row(
            outer, "Window Behavior:",
            "Always On Top: stays above other windows, so the timer is never hidden during a code.",
            ["Always On Top", "Normal Window"],
            "Always On Top" if self.chosen_always_on_top else "Normal Window",
        )

        # Confirm End
        self._confirm_end = self._add_combo_row(
            outer, "Confirm End:",
            "Whether to ask for confirmation before ending the code and resetting all counters.",
            ["Yes", "No"], "Yes" if self.chosen_confirm_end else "No",
        )

        # Start Reminder
        self._start_reminder = self._add_combo_row(
            outer, "Start Reminder:",
            "Show the compressions/epinephrine reminder when the code timer is started.",
            ["Show", "Hide"], "Show" if self.chosen_show_start_reminder else "Hide",
        )

        # Metronome tempo
        row = QHBoxLayout()
        lbl = QLabel("Metronome Tempo:")
        metronome_tooltip = "Compression metronome rate in beats per minute."
        lbl.setFont(QFont("Calibri", 12, QFont.Bold))
        lbl.setToolTip(metronome_tooltip)
        self._bpm = QSpinBox()
        self._bpm.setRange(*METRONOME_BPM_RANGE)
        self._bpm.setValue(self.chosen_metronome_bpm)
        self._bpm.setSuffix(" bpm")
        self._bpm.setMinimumWidth(200)
        self._bpm.setToolTip(metronome_tooltip)
        row.addWidget(lbl)
        row.addWidget(self._bpm)
        outer.addLayout(row)

        # Separator
        sep = QFrame()
        sep.setFrameShape(QFrame.HLine)
        sep.setFrameShadow(QFrame.Sunken)
        outer.addWidget(sep)

        # Appearance
        self._theme = self._add_combo_row(
            outer, "Program Theme:", "Color scheme of the program.",
            list(THEME_NAMES), self.chosen_theme,
        )
        families = QFontDatabase.families()
        font_choices = [f for f in ("Calibri", "Segoe UI", "Arial", "Helvetica", "DejaVu Sans") if f in families]
        if self.chosen_font not in font_choices:
            font_choices.insert(0, self.chosen_font)
        self._font = self._add_combo_row(outer, "Program Font:", "Font used for timers and the timeline.",
                                         font_choices, self.chosen_font)

        outer.addStretch()

        btn_row = QHBoxLayout()
        btn_row.addStretch()
        apply_btn = QPushButton("Apply")
        apply_btn.setFont(QFont("Calibri", 12))
        apply_btn.clicked.connect(self._apply)
        btn_row.addWidget(apply_btn)
        outer.addLayout(btn_row)

    @staticmethod
    def _add_combo_row(layout, label, tooltip, items, current):
        row = QHBoxLayout()
        lbl = QLabel(label)
        lbl.setFont(QFont("Calibri", 12, QFont.Bold))
        lbl.setToolTip(tooltip)
        combo = QComboBox()
        combo.addItems(items)
        combo.setCurrentText(current)
        combo.setMinimumWidth(200)
        combo.setToolTip(tooltip)
        row.addWidget(lbl)
        row.addWidget(combo)
        layout.addLayout(row)
        return combo

    def _apply(self):
        self.chosen_always_on_top = self._always_on_top.currentText() == "Always On Top"
        self.chosen_confirm_end = self._confirm_end.currentText() == "Yes"
        self.chosen_show_start_reminder = self._start_reminder.currentText() == "Show"
        self.chosen_metronome_bpm = self._bpm.value()
        self.chosen_theme = self._theme.currentText()
        self.chosen_font = self._font.currentText()
        self.settings_changed = True
        self.accept()

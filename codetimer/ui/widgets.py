"""Widget builders for the main window: header, clocks, command rows, counters, timeline.

Each builder returns a (container, widget_dict) tuple. The widget_dict maps
logical names to sub-widgets for later updates.
"""

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QAbstractItemView,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from codetimer.util.misc import format_elapsed


def _transparent(name):
    w = QWidget()
    w.setObjectName(name)
    w.setStyleSheet(f"#{name} {{ background: transparent; }}")
    return w


def build_header(font_family, on_metronome, on_help, on_config):
    """Title on the left, metronome/help/settings buttons on the right."""
    header = _transparent("header")
    lay = QHBoxLayout(header)
    lay.setContentsMargins(0, 0, 0, 0)

    title = QLabel("Code Timer")
    title.setFont(QFont(font_family, 20, QFont.Bold))
    lay.addWidget(title)
    lay.addStretch()

    metronome_btn = QPushButton("♪ Off")
    metronome_btn.setFont(QFont(font_family, 11))
    metronome_btn.setToolTip("Toggle the compression metronome")
    metronome_btn.clicked.connect(on_metronome)
    lay.addWidget(metronome_btn)

    help_btn = QPushButton("?")
    help_btn.setFont(QFont(font_family, 11, QFont.Bold))
    help_btn.setToolTip("How to use this app")
    help_btn.clicked.connect(on_help)
    lay.addWidget(help_btn)

    cfg_btn = QPushButton("⚙")
    cfg_btn.setFont(QFont(font_family, 11))
    cfg_btn.setToolTip("Settings")
    cfg_btn.clicked.connect(on_config)
    lay.addWidget(cfg_btn)

    return header, {"title": title, "metronome": metronome_btn, "help": help_btn, "config": cfg_btn}


def build_clock_panel(theme, font_family):
    """Elapsed clock above the (much larger) rhythm check clock."""
    panel = _transparent("clocks")
    lay = QVBoxLayout(panel)
    lay.setContentsMargins(0, 0, 0, 0)
    lay.setSpacing(2)

    elapsed_caption = QLabel("Time Elapsed")
    elapsed_caption.setFont(QFont(font_family, 14))
    elapsed_caption.setAlignment(Qt.AlignCenter)
    lay.addWidget(elapsed_caption)

    elapsed = QLabel(format_elapsed(0))
    elapsed.setFont(QFont(font_family, 30, QFont.Bold))
    elapsed.setAlignment(Qt.AlignCenter)
    elapsed.setStyleSheet(f"color: {theme['elapsed_text']};")
    lay.addWidget(elapsed)

    rhythm_caption = QLabel("Rhythm Check")
    rhythm_caption.setFont(QFont(font_family, 14))
    rhythm_caption.setAlignment(Qt.AlignCenter)
    lay.addWidget(rhythm_caption)

    rhythm = QLabel(format_elapsed(0))
    rhythm.setFont(QFont(font_family, 72, QFont.Bold))
    rhythm.setAlignment(Qt.AlignCenter)
    rhythm.setStyleSheet(f"color: {theme['rhythm_idle_text']};")
    lay.addWidget(rhythm)

    reminder = QLabel("")
    reminder.setFont(QFont(font_family, 11))
    reminder.setAlignment(Qt.AlignCenter)
    lay.addWidget(reminder)

    return panel, {"elapsed": elapsed, "rhythm": rhythm, "reminder": reminder}


def build_command_rows(font_family, on_start, on_pause, on_end, on_cpr, on_epinephrine, on_shock):
    """Session controls on top, clinical actions below."""
    container = _transparent("commands")
    lay = QVBoxLayout(container)
    lay.setContentsMargins(0, 0, 0, 0)
    font = QFont(font_family, 13)

    buttons = {}
    for row_spec in ((("start", "Start", on_start), ("pause", "Pause", on_pause), ("end", "End", on_end)),
                     (("cpr", "CPR", on_cpr), ("epinephrine", "Epinephrine", on_epinephrine),
                      ("shock", "Shock", on_shock))):
        row = QHBoxLayout()
        for key, text, handler in row_spec:
            btn = QPushButton(text)
            btn.setFont(font)
            btn.clicked.connect(lambda _=False, h=handler: h())
            row.addWidget(btn)
            buttons[key] = btn
        lay.addLayout(row)
    return container, buttons


def build_counter_row(font_family):
    container = _transparent("counters")
    lay = QHBoxLayout(container)
    lay.setContentsMargins(0, 0, 0, 0)
    labels = {}
    for key in ("cycles", "epinephrine", "shocks"):
        lbl = QLabel("")
        lbl.setFont(QFont(font_family, 11))
        lbl.setAlignment(Qt.AlignCenter)
        lay.addWidget(lbl)
        labels[key] = lbl
    return container, labels


def build_timeline(theme, font_family, on_clear):
    """Timeline header with Clear, and the entry list."""
    container = _transparent("timeline")
    lay = QVBoxLayout(container)
    lay.setContentsMargins(0, 0, 0, 0)

    header = QHBoxLayout()
    title = QLabel("Timeline")
    title.setFont(QFont(font_family, 14, QFont.Bold))
    header.addWidget(title)
    header.addStretch()
    clear_btn = QPushButton("Clear")
    clear_btn.setFont(QFont(font_family, 11))
    clear_btn.setStyleSheet(f"color: {theme['clear_text']};")
    clear_btn.clicked.connect(on_clear)
    header.addWidget(clear_btn)
    lay.addLayout(header)

    entries = QListWidget()
    entries.setFont(QFont(font_family, 11))
    entries.setAlternatingRowColors(True)
    entries.setSelectionMode(QAbstractItemView.NoSelection)
    entries.setFocusPolicy(Qt.NoFocus)
    lay.addWidget(entries, 1)

    return container, {"list": entries, "clear": clear_btn}

"""Usage help dialog."""

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import QDialog, QLabel, QPushButton, QScrollArea, QVBoxLayout, QWidget

_INSTRUCTIONS = [
    ("Start Timer", "Press Start to begin the elapsed timer. An alert will remind you to initiate chest "
                    "compressions and administer epinephrine."),
    ("CPR Timer", "Press CPR to start the 2-minute rhythm check countdown. Once the countdown ends, an alert will "
                  "prompt you to check the rhythm and restart CPR."),
    ("Administer Epinephrine", "Press Epinephrine when a dose is given. An alert will remind you to administer "
                               "another dose every 3 minutes."),
    ("Record Shocks", "Press Shock to log defibrillation events."),
    ("Pause/Resume Timer", "Use Pause to temporarily stop timers and Resume to continue. Epinephrine reminders keep "
                           "counting while paused."),
    ("End Timer", "Press End to stop all timers and view a summary of CPR cycles, epinephrine doses, and shocks."),
    ("View Timeline", "The Timeline logs all events with timestamps for easy reference."),
    ("Clear Timeline", "Press the Clear button to reset the timeline."),
]


class HelpDialog(QDialog):

    def __init__(self, parent):
        super().__init__(parent)
        self.setWindowTitle("How to Use This App")
        self.setMinimumSize(420, 460)

        outer = QVBoxLayout(self)
        header = QLabel("How to Use This App")
        header.setFont(QFont("Calibri", 16, QFont.Bold))
        header.setAlignment(Qt.AlignCenter)
        outer.addWidget(header)

        body = QWidget()
        body_lay = QVBoxLayout(body)
        for title, text in _INSTRUCTIONS:
            lbl = QLabel(f"<b>{title}:</b> {text}")
            lbl.setFont(QFont("Calibri", 12))
            lbl.setWordWrap(True)
            body_lay.addWidget(lbl)
        body_lay.addStretch()

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(body)
        outer.addWidget(scroll, 1)

        close_btn = QPushButton("Close")
        close_btn.setFont(QFont("Calibri", 12))
        close_btn.clicked.connect(self.accept)
        outer.addWidget(close_btn)

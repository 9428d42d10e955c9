"""Alerts raised by the session core for the UI to show.

The core never waits on an alert; collaborators render them however they
like (the Qt window uses non-modal message boxes).
"""

from dataclasses import dataclass
from enum import Enum


class AlertKind(Enum):
    START_REMINDER = "start"
    RHYTHM_CHECK = "rhythm_check"
    EPINEPHRINE_REMINDER = "epinephrine_reminder"
    SESSION_SUMMARY = "session_summary"
    COLLABORATOR_FAILURE = "collaborator_failure"


@dataclass(frozen=True)
class Alert:
    kind: AlertKind
    title: str
    message: str
    summary: object = None      # SessionSummary, only for SESSION_SUMMARY


def start_reminder():
    return Alert(
        AlertKind.START_REMINDER,
        "Reminder",
        "Chest compressions and epinephrine must be immediately started. Click CPR and Epinephrine when given.",
    )


def rhythm_check():
    return Alert(
        AlertKind.RHYTHM_CHECK,
        "Rhythm Check",
        "Rhythm checked. Don't forget to click CPR to restart timer.",
    )


def epinephrine_reminder():
    return Alert(
        AlertKind.EPINEPHRINE_REMINDER,
        "Epinephrine Reminder",
        "Administer epinephrine now! Don't forget to click Epinephrine when given.",
    )


def session_summary(summary):
    return Alert(AlertKind.SESSION_SUMMARY, "Timer Ended", f"Summary:\n{summary.as_text()}", summary)


def collaborator_failure(source, error):
    return Alert(AlertKind.COLLABORATOR_FAILURE, f"{source} Error", f"{source} failed: {error}")

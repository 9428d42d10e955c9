"""Compression metronome: an independent UI peer, not wired into the session core."""

from PySide6.QtCore import QObject, QTimer, QUrl
from PySide6.QtMultimedia import QSoundEffect
from codetimer.common.logger import log
from codetimer.common.setup import PATHS

CLICK_PATH = PATHS.assets / "metronome.wav"


# Plays a click at a fixed tempo while switched on. Sound problems are handed to on_error and the metronome simply
# stays off; they never reach the timer.
class Metronome(QObject):

    def __init__(self, parent, bpm, on_error):
        super().__init__(parent)
        self._on_error = on_error
        self._loaded = False
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._click)
        self.set_bpm(bpm)

        self._sound = QSoundEffect(self)
        self._sound.statusChanged.connect(self._on_status_changed)
        if CLICK_PATH.exists():
            self._sound.setSource(QUrl.fromLocalFile(str(CLICK_PATH)))
        else:
            log.warning(f"Metronome sound not found at '{CLICK_PATH}'")

    @property
    def running(self):
        return self._timer.isActive()

    def set_bpm(self, bpm):
        self._timer.setInterval(int(60000 / bpm))
        log.debug(f"Metronome set to {bpm} bpm")

    def toggle(self):
        if self.running:
            self.stop()
        else:
            self.start()
        return self.running

    def start(self):
        if not self._loaded:
            self._on_error(f"Metronome sound could not be loaded from '{CLICK_PATH}'.")
            return
        self._timer.start()
        log.info("Metronome on")
    def stop(self):
        if self._timer.isActive():
            self._timer.stop()
            log.info("Metronome off")

    def _on_status_changed(self):
        status = self._sound.status()
        if status == QSoundEffect.Status.Ready:
            self._loaded = True
        elif status == QSoundEffect.Status.Error:
            self._loaded = False
            self.stop()
            log.error(f"Failed to load metronome sound '{CLICK_PATH}'")

    def _click(self):
        self._sound.play()

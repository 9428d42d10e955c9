from .colors import THEMES


def build_stylesheet(theme_name):
    """Build the application-wide Qt stylesheet for a theme."""
    t = THEMES.get(theme_name, THEMES["Light"])
    return (
        f"QMainWindow, QDialog, QWidget {{ background-color: {t['bg']}; }}"
        f"QLabel {{ color: {t['text']}; background: transparent; }}"
        f"QPushButton {{"
        f"  color: {t['button_text']};"
        f"  background-color: {t['button_bg']};"
        f"  border: {t['border']}px solid rgba(128,128,128,0.4);"
        f"  padding: 6px 10px;"
        f"}}"
        f"QPushButton:hover, QPushButton:pressed {{"
        f"  background-color: {t['button_active']};"
        f"}}"
        f"QPushButton:disabled {{ color: {t['button_disabled_text']}; }}"
        f"QListWidget {{"
        f"  color: {t['text']};"
        f"  background-color: {t['bg']};"
        f"  alternate-background-color: {t['timeline_alt_bg']};"
        f"  border: none;"
        f"}}"
        f"QComboBox, QSpinBox {{"
        f"  color: {t['button_text']};"
        f"  background-color: {t['button_bg']};"
        f"  border: {t['border']}px solid rgba(128,128,128,0.4);"
        f"  padding: 3px 5px;"
        f"}}"
        f"QComboBox QAbstractItemView {{"
        f"  color: {t['button_text']};"
        f"  background-color: {t['button_bg']};"
        f"  selection-background-color: {t['button_active']};"
        f"}}"
    )


def build_message_stylesheet(theme_name):
    """Stylesheet for the non-modal alert boxes, which are top-level and don't inherit the window's."""
    t = THEMES.get(theme_name, THEMES["Light"])
    return (
        f"QMessageBox {{ background-color: {t['bg']}; }}"
        f"QMessageBox QLabel {{ color: {t['text']}; }}"
        f"QPushButton {{ color: {t['button_text']}; background-color: {t['button_bg']}; padding: 4px 12px; }}"
    )

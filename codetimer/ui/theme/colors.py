# Color palettes, keyed by the theme names offered in settings.
THEMES = {
    "Light": {
        "bg": "#FFFFFF",
        "text": "#000000",
        "button_bg": "#E8E8EE",
        "button_text": "#1A1A1A",
        "button_active": "#D0D0DA",
        "button_disabled_text": "#A0A0A0",
        "border": 1,
        "elapsed_text": "#000000",
        "rhythm_text": "#D00000",
        "rhythm_idle_text": "#E6A0A0",
        "metronome_on": "#1E8E3E",
        "clear_text": "#D00000",
        "timeline_alt_bg": "#F4F4F8",
    },
    "Dark": {
        "bg": "#1E1E22",
        "text": "#F0F0F0",
        "button_bg": "#34343A",
        "button_text": "#F0F0F0",
        "button_active": "#4A4A52",
        "button_disabled_text": "#6E6E6E",
        "border": 1,
        "elapsed_text": "#F0F0F0",
        "rhythm_text": "#FF4B4B",
        "rhythm_idle_text": "#7A3A3A",
        "metronome_on": "#4CD964",
        "clear_text": "#FF4B4B",
        "timeline_alt_bg": "#26262B",
    },
}

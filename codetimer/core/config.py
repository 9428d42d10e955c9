import json
from codetimer.common.logger import log
from codetimer.common.setup import PATHS
from codetimer.util.misc import now_iso


_SCHEMA_VERSION = 1

#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.data / "settings.json"

THEME_NAMES = ("Light", "Dark")

# Default values for every user preference. Clinical cadences are deliberately not in here.
_SETTINGS_DEFAULTS = {
    "theme": "Light",
    "font": "Calibri",
    "always_on_top": True,
    "confirm_end": True,
    "show_start_reminder": True,
    "metronome_bpm": 120,
}

# Acceptable range for the metronome, compressions are 100-120/min but leave some room either side.
METRONOME_BPM_RANGE = (60, 200)

# Helper to return a truly fresh, default settings dict.
def build_default_settings():
    return {
        "meta": {
            "schema_version": _SCHEMA_VERSION,
            "saved_at": now_iso(),
        },
        "settings": dict(_SETTINGS_DEFAULTS),
    }

# Checks a single loaded value against its default's type (and range/choices where those exist).
def _is_valid(key, value):
    default = _SETTINGS_DEFAULTS[key]
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        if key == "metronome_bpm":
            low, high = METRONOME_BPM_RANGE
            return low <= value <= high
        return True
    if key == "theme":
        return value in THEME_NAMES
    return isinstance(value, type(default)) and bool(value)

#endregion === Helpers and Paths ===

#region === Saving and Loading Settings ===

# Loads settings from PATHS.data / settings.json, filling defaults for anything missing or invalid.
def load_settings():
    try:
        if not SETTINGS_PATH.exists():
            log.info("No existing settings.json found, loading default settings.")
            return build_default_settings()

        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise TypeError(f"Expected a JSON object in settings.json, got {type(loaded).__name__}")
        defaulted_values = set()

        # Validate the meta dict
        if "meta" not in loaded or not isinstance(loaded["meta"], dict):
            defaulted_values.add("meta")
            loaded["meta"] = {}
        if "schema_version" not in loaded["meta"] or not isinstance(loaded["meta"]["schema_version"], int):
            defaulted_values.add("meta.schema_version")
            loaded["meta"]["schema_version"] = _SCHEMA_VERSION

        # Validate the settings dict, fill in any necessary defaults
        if "settings" not in loaded or not isinstance(loaded["settings"], dict):
            defaulted_values.add("settings")
            loaded["settings"] = dict(_SETTINGS_DEFAULTS)
        else:
            for key, default in _SETTINGS_DEFAULTS.items():
                if key not in loaded["settings"] or not _is_valid(key, loaded["settings"][key]):
                    defaulted_values.add(f"settings.{key}")
                    loaded["settings"][key] = default

        # Log results
        if defaulted_values:
            log.warning(f"Loaded settings from '{SETTINGS_PATH}', but with missing or invalid values that were defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded settings from '{SETTINGS_PATH}'.")
        return loaded
    # Fall back to fresh settings in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning("Ran into an error while trying to load settings.json, falling back to default settings.", exc_info=True)
        return build_default_settings()

# Write the given settings dict to disk under PATHS.data / settings.json
def save_settings(config):
    config.setdefault("meta", {})["saved_at"] = now_iso()
    config["meta"].setdefault("schema_version", _SCHEMA_VERSION)
    with open(SETTINGS_PATH, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    log.info(f"Successfully saved settings to '{SETTINGS_PATH}'")

#endregion === Saving and Loading Settings ===

from datetime import datetime


# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return datetime.now().astimezone().isoformat()


# Formats a wall-clock moment as the 24h HH:MM:SS stamp used on every timeline entry.
def format_time_of_day(moment):
    return f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"


# Formats elapsed seconds the way the code timer displays them, M:SS with minutes unbounded (75:03 is valid).
# Negative values clamp to zero.
def format_elapsed(seconds):
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"

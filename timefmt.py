from datetime import timedelta
from typing import Dict, Optional

PRAYER_ORDER = ("Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha")


def normalize_time(value: Optional[str]) -> str:
    """
    "1:05 PM" -> "13:05", "05:12" -> "05:12", "05:12 (+08)" -> "05:12".
    Anything we can't read comes back as "".
    """
    text = (value or "").strip() if isinstance(value, str) else ""
    if not text:
        return ""

    try:
        if ":" in text and " " not in text:
            hh, mm = text.split(":")[:2]
            hour, minute = int(hh), int(mm)
        else:
            parts = text.split()
            if len(parts) < 2:
                return ""
            clock, meridiem = parts[0], parts[1].upper()
            hh, mm = clock.split(":")[:2]
            hour, minute = int(hh), int(mm)

            if meridiem == "PM" and hour != 12:
                hour += 12
            elif meridiem == "AM" and hour == 12:
                hour = 0
    except ValueError:
        return ""

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return ""
    return f"{hour:02d}:{minute:02d}"


def build_timing_set(raw: Dict[str, str]) -> Dict[str, str]:
    """Keep the known prayers, in canonical order, that normalize to something."""
    timings = {}
    for name in PRAYER_ORDER:
        hhmm = normalize_time((raw or {}).get(name))
        if hhmm:
            timings[name] = hhmm
    return timings


def format_remaining(delta: timedelta) -> str:
    sec = max(0, int(delta.total_seconds()))
    h = sec // 3600
    m = (sec % 3600) // 60
    s = sec % 60
    if h > 0:
        return f"{h}h {m}m {s}s"
    if m > 0:
        return f"{m}m {s}s"
    return f"{s}s"

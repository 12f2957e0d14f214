import logging
from datetime import date
from typing import Any, Dict, List

from config import DEFAULT_LOCATION, Location
from errors import InvalidResponseError
from http_client import RetryingClient
from models import CalendarDay, DaySchedule, HijriDate, parse_calendar_day, parse_hijri
from timefmt import build_timing_set

ALADHAN_BASE = "https://api.aladhan.com/v1"
ISLAMIC_FINDER_BASE = "https://www.islamicfinder.us/index.php/api"

RAMADAN = 9

logger = logging.getLogger(__name__)


def _payload(data: Any, what: str) -> Any:
    if not isinstance(data, dict) or data.get("code") != 200 or "data" not in data:
        raise InvalidResponseError(f"Invalid {what} data received")
    return data["data"]


def _calendar_days(data: Any, what: str) -> List[CalendarDay]:
    payload = _payload(data, what)
    if not isinstance(payload, list):
        raise InvalidResponseError(f"Invalid {what} data received")
    days = []
    for raw in payload:
        day = parse_calendar_day(raw)
        if day is not None:
            days.append(day)
    if len(days) != len(payload):
        logger.info("Dropped %d malformed day(s) from %s", len(payload) - len(days), what)
    return days


class CalendarProvider:
    """Gregorian <-> Hijri conversion, backed by api.aladhan.com."""

    def __init__(self, client: RetryingClient, location: Location = DEFAULT_LOCATION, base_url: str = ALADHAN_BASE):
        self.client = client
        self.location = location
        self.base_url = base_url

    def _location_params(self, adjustment: int) -> Dict[str, Any]:
        return {
            "adjustment": adjustment,
            "latitude": self.location.latitude,
            "longitude": self.location.longitude,
            "method": self.location.method,
        }

    async def convert(self, day: date) -> HijriDate:
        data = await self.client.get_json(f"{self.base_url}/gToH/{day.strftime('%d-%m-%Y')}")
        payload = _payload(data, "Hijri date")
        try:
            return parse_hijri(payload["hijri"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidResponseError("Invalid Hijri date data received") from e

    async def month_calendar(self, month: int, year: int, adjustment: int = None) -> List[CalendarDay]:
        if adjustment is None:
            adjustment = self.location.hijri_adjustment
        data = await self.client.get_json(
            f"{self.base_url}/gToHCalendar/{month}/{year}",
            self._location_params(adjustment),
        )
        return _calendar_days(data, "calendar")

    async def hijri_month_calendar(self, month: int, hijri_year: int, adjustment: int = None) -> List[CalendarDay]:
        if adjustment is None:
            adjustment = self.location.hijri_adjustment
        params = self._location_params(adjustment)
        params.update({"month": month, "year": hijri_year, "annual": "false"})
        data = await self.client.get_json(f"{self.base_url}/hijriCalendar", params)
        return _calendar_days(data, "Hijri calendar")


class PrayerTimeProvider:
    """Daily prayer times, backed by islamicfinder.us."""

    def __init__(self, client: RetryingClient, location: Location = DEFAULT_LOCATION, base_url: str = ISLAMIC_FINDER_BASE):
        self.client = client
        self.location = location
        self.base_url = base_url

    async def timings(self, day: date) -> Dict[str, str]:
        params = {
            "latitude": self.location.latitude,
            "longitude": self.location.longitude,
            "timezone": self.location.tz,
            "method": self.location.method,
            "juristic": self.location.school,
            "time_format": 0,
            "high_latitude": 1,
            "date": day.strftime("%Y-%m-%d"),
        }
        data = await self.client.get_json(f"{self.base_url}/prayer_times", params)
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, dict):
            raise InvalidResponseError("Invalid prayer times response format")
        return build_timing_set(results)


async def get_day_schedule(prayer_provider: PrayerTimeProvider, calendar_provider: CalendarProvider, day: date) -> DaySchedule:
    timings = await prayer_provider.timings(day)
    hijri = await calendar_provider.convert(day)
    return DaySchedule(date=day, hijri=hijri, timings=timings)

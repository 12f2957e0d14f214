from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

LAILATUL_QADR_NIGHTS = frozenset({21, 23, 25, 27, 29})


@dataclass(frozen=True)
class GregorianDate:
    date: str  # dd-mm-yyyy
    day: str
    weekday: str
    month_number: int
    month_en: str
    year: str

    def to_date(self) -> date:
        return datetime.strptime(self.date, "%d-%m-%Y").date()


@dataclass(frozen=True)
class HijriDate:
    date: str  # dd-mm-yyyy
    day: str
    weekday: str
    weekday_ar: str
    month_number: int
    month_en: str
    month_ar: str
    year: str
    holidays: List[str] = field(default_factory=list)

    def readable(self) -> str:
        return f"{int(self.day)} {self.month_en} {self.year}"


@dataclass(frozen=True)
class CalendarDay:
    gregorian: GregorianDate
    hijri: HijriDate


@dataclass(frozen=True)
class RamadanDay:
    day: CalendarDay
    ordinal: int
    is_first_day: bool
    is_lailatul_qadr: bool
    timings: Dict[str, str]

    @classmethod
    def build(cls, day: CalendarDay, ordinal: int, timings: Dict[str, str]) -> "RamadanDay":
        return cls(
            day=day,
            ordinal=ordinal,
            is_first_day=ordinal == 1,
            is_lailatul_qadr=ordinal in LAILATUL_QADR_NIGHTS,
            timings=timings,
        )


@dataclass(frozen=True)
class DaySchedule:
    date: date
    hijri: HijriDate
    timings: Dict[str, str]


@dataclass(frozen=True)
class VerificationResult:
    dates_match: bool
    primary: Optional[List[CalendarDay]] = None
    secondary: Optional[List[CalendarDay]] = None


def _month(raw: Dict[str, Any]) -> Dict[str, Any]:
    month = raw["month"]
    if not isinstance(month, dict):
        raise TypeError("month is not an object")
    return month


def _weekday(raw: Dict[str, Any], lang: str) -> str:
    weekday = raw.get("weekday")
    if isinstance(weekday, dict):
        return str(weekday.get(lang) or "")
    return str(weekday or "") if lang == "en" else ""


def parse_gregorian(raw: Dict[str, Any]) -> GregorianDate:
    month = _month(raw)
    return GregorianDate(
        date=str(raw["date"]),
        day=str(raw["day"]),
        weekday=_weekday(raw, "en"),
        month_number=int(month["number"]),
        month_en=str(month["en"]),
        year=str(raw["year"]),
    )


def parse_hijri(raw: Dict[str, Any]) -> HijriDate:
    month = _month(raw)
    return HijriDate(
        date=str(raw["date"]),
        day=str(raw["day"]),
        weekday=_weekday(raw, "en"),
        weekday_ar=_weekday(raw, "ar"),
        month_number=int(month["number"]),
        month_en=str(month["en"]),
        month_ar=str(month.get("ar") or ""),
        year=str(raw["year"]),
        holidays=[str(h) for h in (raw.get("holidays") or [])],
    )


def parse_calendar_day(raw: Any) -> Optional[CalendarDay]:
    """Both halves or nothing: a day with a broken gregorian or hijri part is dropped."""
    if not isinstance(raw, dict):
        return None
    greg, hijri = raw.get("gregorian"), raw.get("hijri")
    if not isinstance(greg, dict) or not isinstance(hijri, dict):
        return None
    try:
        return CalendarDay(gregorian=parse_gregorian(greg), hijri=parse_hijri(hijri))
    except (KeyError, TypeError, ValueError):
        return None

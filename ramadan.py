import asyncio
import logging
import math
from datetime import date
from typing import Awaitable, Callable, List, Optional

from errors import InvalidResponseError, RamadanNotFoundError
from models import CalendarDay, RamadanDay, VerificationResult
from prayers import RAMADAN, CalendarProvider, PrayerTimeProvider

MIN_RAMADAN_DAYS = 29

logger = logging.getLogger(__name__)


def approximate_hijri_year(gregorian_year: int) -> int:
    # lunar year ~354.37 days vs solar ~365.25
    return math.floor(gregorian_year - 622 + (gregorian_year - 622) / 32.5)


async def resolve_hijri_year(calendar: CalendarProvider, gregorian_year: int) -> int:
    """Hijri year of March 1st; always returns something."""
    try:
        hijri = await calendar.convert(date(gregorian_year, 3, 1))
        return int(hijri.year)
    except Exception as e:
        approx = approximate_hijri_year(gregorian_year)
        logger.warning("Hijri year lookup for %s failed (%s), using %s", gregorian_year, e, approx)
        return approx


async def fetch_ramadan_window(
    calendar: CalendarProvider,
    gregorian_year: int,
    adjustment: Optional[int] = None,
) -> List[CalendarDay]:
    """
    Ramadan days that fall in `gregorian_year`.
    Tries the resolved Hijri year and its two neighbours, oldest first,
    and keeps the first listing with at least 29 days in the right Gregorian year.
    """
    resolved = await resolve_hijri_year(calendar, gregorian_year)
    year_str = str(gregorian_year)

    for hijri_year in (resolved - 1, resolved, resolved + 1):
        try:
            days = await calendar.hijri_month_calendar(RAMADAN, hijri_year, adjustment)
        except InvalidResponseError as e:
            logger.warning("Skipping Hijri year %s: %s", hijri_year, e)
            continue

        matching = [d for d in days if d.gregorian.year == year_str]
        if len(matching) >= MIN_RAMADAN_DAYS:
            logger.info("Ramadan %s found in Hijri year %s (%d days)", gregorian_year, hijri_year, len(matching))
            return matching

    raise RamadanNotFoundError(gregorian_year)


async def verify_ramadan_dates(
    calendar: CalendarProvider,
    gregorian_year: int,
    fetch: Callable[..., Awaitable[List[CalendarDay]]] = fetch_ramadan_window,
) -> VerificationResult:
    """
    Fetch the window at the configured adjustment and at +1 day, side by side.
    Only a sanity check on the primary length; never raises.
    """
    base = calendar.location.hijri_adjustment
    primary = asyncio.ensure_future(fetch(calendar, gregorian_year, base))
    secondary = asyncio.ensure_future(fetch(calendar, gregorian_year, base + 1))

    try:
        primary_days = await primary
        secondary_days = await secondary
        if not isinstance(primary_days, list):
            raise InvalidResponseError("Invalid primary data format")
    except Exception as e:
        logger.warning("Ramadan date verification for %s failed: %s", gregorian_year, e)
        return VerificationResult(dates_match=False)
    finally:
        # also runs when the caller is cancelled: no fetch outlives the verifier
        for task in (primary, secondary):
            if not task.done():
                task.cancel()
        await asyncio.gather(primary, secondary, return_exceptions=True)

    return VerificationResult(
        dates_match=len(primary_days) in (29, 30),
        primary=primary_days,
        secondary=secondary_days,
    )


async def build_ramadan_days(prayers: PrayerTimeProvider, window: List[CalendarDay]) -> List[RamadanDay]:
    """Attach each day's prayer times; a day whose times can't be fetched is left out."""
    ramadan_days = []
    for i, day in enumerate(window, start=1):
        try:
            timings = await prayers.timings(day.gregorian.to_date())
        except Exception as e:
            logger.warning("No prayer times for %s: %s", day.gregorian.date, e)
            continue
        ramadan_days.append(RamadanDay.build(day, i, timings))
    return ramadan_days

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Awaitable, Callable, Dict, Optional

from timefmt import PRAYER_ORDER

# Sunrise ends Fajr, it is not a prayer of its own
COUNTDOWN_PRAYERS = tuple(p for p in PRAYER_ORDER if p != "Sunrise")
ANCHOR_PRAYER = COUNTDOWN_PRAYERS[0]

logger = logging.getLogger(__name__)


class NextEvent(enum.Enum):
    NONE = "none"
    TODAY = "today"
    TOMORROW = "tomorrow"


@dataclass(frozen=True)
class CountdownState:
    status: NextEvent
    name: Optional[str] = None
    target: Optional[datetime] = None
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @classmethod
    def none(cls) -> "CountdownState":
        return cls(NextEvent.NONE)

    @property
    def has_next(self) -> bool:
        return self.status is not NextEvent.NONE

    def clock(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"


def _parse_hhmm(hhmm: str) -> Optional[time]:
    try:
        return datetime.strptime((hhmm or "").strip()[:5], "%H:%M").time()
    except ValueError:
        return None


def _at(now: datetime, days: int, t: time) -> datetime:
    naive = datetime.combine(now.date() + timedelta(days=days), t)
    tz = now.tzinfo
    if tz is None:
        return naive
    localize = getattr(tz, "localize", None)  # pytz zones
    if localize is not None:
        return localize(naive)
    return naive.replace(tzinfo=tz)


def next_event(timings: Optional[Dict[str, str]], now: datetime) -> CountdownState:
    """First prayer still ahead today, else tomorrow's Fajr, else nothing."""
    if not timings:
        return CountdownState.none()

    status, name, target = NextEvent.NONE, None, None
    for prayer in COUNTDOWN_PRAYERS:
        t = _parse_hhmm(timings.get(prayer, ""))
        if t is None:
            continue
        candidate = _at(now, 0, t)
        if candidate > now:
            status, name, target = NextEvent.TODAY, prayer, candidate
            break

    if target is None:
        t = _parse_hhmm(timings.get(ANCHOR_PRAYER, ""))
        if t is None:
            return CountdownState.none()
        status, name, target = NextEvent.TOMORROW, ANCHOR_PRAYER, _at(now, 1, t)

    sec = max(0, int((target - now).total_seconds()))
    return CountdownState(
        status=status,
        name=name,
        target=target,
        hours=sec // 3600,
        minutes=(sec % 3600) // 60,
        seconds=sec % 60,
    )


class CountdownTicker:
    """
    Re-evaluates next_event every `interval` seconds and hands the state to `on_tick`.
    With no timings it reports once and waits for update_timings().
    """

    def __init__(
        self,
        on_tick: Callable[[CountdownState], Awaitable[None]],
        timings: Optional[Dict[str, str]] = None,
        interval: float = 1.0,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.on_tick = on_tick
        self.interval = interval
        self.clock = clock
        self.sleep = sleep
        self._timings = dict(timings or {})
        self._timings_arrived = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def update_timings(self, timings: Optional[Dict[str, str]]) -> None:
        self._timings = dict(timings or {})
        if self._timings:
            self._timings_arrived.set()

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            if not self._timings:
                self._timings_arrived.clear()
                await self.on_tick(CountdownState.none())
                await self._timings_arrived.wait()
                continue

            await self.on_tick(next_event(self._timings, self.clock()))
            await self.sleep(self.interval)

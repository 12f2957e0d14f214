import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional, Set

import pytz

from aiogram import Bot, Dispatcher, Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import CommandStart, Command, CommandObject
from aiogram.types import Message, CallbackQuery, BufferedInputFile
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import load_config
from countdown import CountdownState, CountdownTicker, NextEvent, next_event
from errors import ProviderError, RamadanNotFoundError
from fence import RequestFence
from http_client import RetryingClient
from keyboards import (
    BTN_COUNTDOWN,
    BTN_MONTH,
    BTN_RAMADAN,
    BTN_STOP,
    BTN_TODAY,
    main_menu,
    stop_menu,
    retry_inline,
    year_inline,
    month_inline,
)
from prayers import CalendarProvider, PrayerTimeProvider, get_day_schedule
from ramadan import build_ramadan_days, fetch_ramadan_window, verify_ramadan_dates
from texts import (
    WELCOME,
    COUNTDOWN_STARTED,
    COUNTDOWN_STOPPED,
    COUNTDOWN_EMPTY,
    COUNTDOWN_TEMPLATE,
    PRAYER_ARRIVED,
    TODAY_TEMPLATE,
    LOADING_RAMADAN,
    RAMADAN_VERIFIED,
    RAMADAN_MISMATCH,
    IMAGE_VERIFIED,
    IMAGE_MISMATCH,
    RAMADAN_CAPTION,
    FETCH_FAILED,
    PRAYERS_FAILED,
    RAMADAN_FAILED,
    CALENDAR_FAILED,
)
from timefmt import format_remaining
from calendar_image import render_ramadan_calendar_png

logger = logging.getLogger(__name__)

cfg = load_config()
router = Router()

client = RetryingClient()
calendar = CalendarProvider(client, cfg.location)
prayers = PrayerTimeProvider(client, cfg.location)
fence = RequestFence()

# chat_id -> live countdown
LIVE_TICKERS: Dict[int, CountdownTicker] = {}
# chats whose countdown is being set up
STARTING: Set[int] = set()


def now_tz() -> datetime:
    return datetime.now(pytz.timezone(cfg.location.tz))


def countdown_text(state: CountdownState) -> str:
    if not state.has_next:
        return COUNTDOWN_EMPTY
    when = " (tomorrow)" if state.status is NextEvent.TOMORROW else ""
    return COUNTDOWN_TEMPLATE.format(
        name=state.name,
        when=when,
        at=state.target.strftime("%H:%M"),
        clock=state.clock(),
    )


async def today_timings() -> Dict[str, str]:
    return await prayers.timings(now_tz().date())


# ===== Live countdown =====

def _live_finished(chat_id: int, ticker: CountdownTicker, task: asyncio.Task) -> None:
    if LIVE_TICKERS.get(chat_id) is ticker:
        LIVE_TICKERS.pop(chat_id, None)
    if not task.cancelled() and task.exception() is not None:
        logger.warning("Countdown in chat %s ended: %s", chat_id, task.exception())


async def stop_live(chat_id: int) -> None:
    ticker = LIVE_TICKERS.pop(chat_id, None)
    if ticker:
        await ticker.stop()


async def start_live(bot: Bot, chat_id: int) -> None:
    # updates are handled concurrently; claim the chat before the first await
    if chat_id in LIVE_TICKERS or chat_id in STARTING:
        return
    STARTING.add(chat_id)
    try:
        await _start_live(bot, chat_id)
    finally:
        STARTING.discard(chat_id)


async def _start_live(bot: Bot, chat_id: int) -> None:
    try:
        timings = await today_timings()
    except ProviderError as e:
        logger.error("Countdown for chat %s: %s", chat_id, e)
        await bot.send_message(
            chat_id,
            FETCH_FAILED.format(error=PRAYERS_FAILED),
            reply_markup=retry_inline("countdown"),
        )
        return

    msg = await bot.send_message(chat_id, COUNTDOWN_STARTED, reply_markup=stop_menu())
    last = {"name": None, "text": None}

    async def on_tick(state: CountdownState) -> None:
        if state.has_next and last["name"] and last["name"] != state.name:
            await bot.send_message(chat_id, PRAYER_ARRIVED.format(name=last["name"]))
        last["name"] = state.name

        text = countdown_text(state)
        if text == last["text"]:
            return
        last["text"] = text
        try:
            await bot.edit_message_text(text, chat_id=chat_id, message_id=msg.message_id)
        except TelegramBadRequest as e:
            if "not modified" not in str(e):
                raise

    ticker = CountdownTicker(on_tick, timings=timings, clock=now_tz)
    LIVE_TICKERS[chat_id] = ticker
    task = ticker.start()
    task.add_done_callback(lambda t: _live_finished(chat_id, ticker, t))


async def refresh_live_timings() -> None:
    """Just after midnight: hand every running countdown the new day's times."""
    if not LIVE_TICKERS:
        return
    try:
        timings = await today_timings()
    except ProviderError as e:
        logger.error("Daily prayer times refresh failed: %s", e)
        return
    for ticker in list(LIVE_TICKERS.values()):
        ticker.update_timings(timings)
    logger.info("Refreshed prayer times for %d live countdown(s)", len(LIVE_TICKERS))


# ===== Views =====

async def send_today(bot: Bot, chat_id: int) -> None:
    now = now_tz()
    try:
        schedule = await get_day_schedule(prayers, calendar, now.date())
    except ProviderError as e:
        logger.error("Today's schedule: %s", e)
        await bot.send_message(
            chat_id,
            FETCH_FAILED.format(error=PRAYERS_FAILED),
            reply_markup=retry_inline("today"),
        )
        return

    state = next_event(schedule.timings, now)
    rows = []
    for name, hhmm in schedule.timings.items():
        marker = "➡️" if state.status is NextEvent.TODAY and name == state.name else "▫️"
        row = f"{marker} {name}: {hhmm}"
        if marker == "➡️":
            row += f"  (in {format_remaining(state.target - now)})"
        rows.append(row)

    await bot.send_message(
        chat_id,
        TODAY_TEMPLATE.format(
            gregorian=now.strftime("%d %b %Y, %A"),
            hijri=schedule.hijri.readable(),
            rows="\n".join(rows),
        ),
        reply_markup=main_menu(),
    )


async def send_ramadan(bot: Bot, chat_id: int, year: int) -> None:
    key = ("ramadan", chat_id)
    token = fence.issue(key)
    try:
        await _send_ramadan(bot, chat_id, year, key, token)
    finally:
        fence.forget(key, token)


async def _send_ramadan(bot: Bot, chat_id: int, year: int, key, token: int) -> None:
    await bot.send_message(chat_id, LOADING_RAMADAN.format(year=year))

    try:
        verification = await verify_ramadan_dates(calendar, year)
        window = verification.primary or await fetch_ramadan_window(calendar, year)
        days = await build_ramadan_days(prayers, window)
        if not days:
            raise RamadanNotFoundError(year)
    except (ProviderError, RamadanNotFoundError) as e:
        logger.error("Ramadan %s: %s", year, e)
        if not fence.is_current(key, token):
            return
        error = str(e) if isinstance(e, RamadanNotFoundError) else RAMADAN_FAILED
        await bot.send_message(
            chat_id,
            FETCH_FAILED.format(error=error),
            reply_markup=retry_inline(f"ramadan:{year}"),
        )
        return

    if not fence.is_current(key, token):
        logger.info("Dropping stale Ramadan %s result for chat %s", year, chat_id)
        return

    status = RAMADAN_VERIFIED if verification.dates_match else RAMADAN_MISMATCH
    png_io = render_ramadan_calendar_png(
        title=f"Ramadan {year}",
        days=days,
        subtitle=IMAGE_VERIFIED if verification.dates_match else IMAGE_MISMATCH,
    )
    file = BufferedInputFile(png_io.getvalue(), filename=f"ramadan_{year}.png")
    await bot.send_photo(
        chat_id,
        photo=file,
        caption=RAMADAN_CAPTION.format(year=year, count=len(days), status=status),
        reply_markup=year_inline(year),
    )


async def send_month(bot: Bot, chat_id: int, month: int, year: int) -> None:
    key = ("month", chat_id)
    token = fence.issue(key)
    try:
        await _send_month(bot, chat_id, month, year, key, token)
    finally:
        fence.forget(key, token)


async def _send_month(bot: Bot, chat_id: int, month: int, year: int, key, token: int) -> None:
    try:
        days = await calendar.month_calendar(month, year)
    except ProviderError as e:
        logger.error("Calendar %s/%s: %s", month, year, e)
        if fence.is_current(key, token):
            await bot.send_message(
                chat_id,
                FETCH_FAILED.format(error=CALENDAR_FAILED),
                reply_markup=retry_inline(f"month:{month}:{year}"),
            )
        return

    if not fence.is_current(key, token):
        return

    lines = []
    for d in days:
        g, h = d.gregorian, d.hijri
        line = f"{g.day} {g.month_en[:3]} {g.weekday[:3]} — {h.readable()}"
        if h.holidays:
            line += " 🎉 " + ", ".join(h.holidays)
        lines.append(line)
    title = f"📅 {days[0].gregorian.month_en} {year}" if days else f"📅 {month:02d}/{year}"
    await bot.send_message(
        chat_id,
        title + "\n\n" + "\n".join(lines),
        reply_markup=month_inline(month, year),
    )


def _year_arg(command: Optional[CommandObject]) -> Optional[int]:
    arg = (command.args or "").strip() if command else ""
    return int(arg) if arg.isdigit() else None


# ===== Commands =====

@router.message(CommandStart())
async def start(m: Message):
    await m.answer(WELCOME, reply_markup=main_menu())


@router.message(Command("today"))
@router.message(F.text == BTN_TODAY)
async def today_cmd(m: Message):
    await send_today(m.bot, m.chat.id)


@router.message(Command("countdown"))
@router.message(F.text == BTN_COUNTDOWN)
async def countdown_cmd(m: Message):
    await start_live(m.bot, m.chat.id)


@router.message(Command("stop"))
@router.message(F.text == BTN_STOP)
async def stop_btn(m: Message):
    await stop_live(m.chat.id)
    await m.answer(COUNTDOWN_STOPPED, reply_markup=main_menu())


@router.message(Command("ramadan"))
async def ramadan_cmd(m: Message, command: CommandObject):
    await send_ramadan(m.bot, m.chat.id, _year_arg(command) or now_tz().year)


@router.message(F.text == BTN_RAMADAN)
async def ramadan_btn(m: Message):
    await send_ramadan(m.bot, m.chat.id, now_tz().year)


@router.message(Command("month"))
@router.message(F.text == BTN_MONTH)
async def month_cmd(m: Message):
    now = now_tz()
    await send_month(m.bot, m.chat.id, now.month, now.year)


# ===== Inline buttons =====

async def run_action(bot: Bot, chat_id: int, action: str) -> None:
    parts = action.split(":")
    if parts[0] == "today":
        await send_today(bot, chat_id)
    elif parts[0] == "countdown":
        await start_live(bot, chat_id)
    elif parts[0] == "ramadan" and len(parts) == 2:
        await send_ramadan(bot, chat_id, int(parts[1]))
    elif parts[0] == "month" and len(parts) == 3:
        await send_month(bot, chat_id, int(parts[1]), int(parts[2]))
    else:
        logger.warning("Unknown action %r", action)


@router.callback_query(F.data.startswith("retry:"))
async def retry_cb(c: CallbackQuery):
    await c.answer()
    await run_action(c.bot, c.message.chat.id, c.data.split(":", 1)[1])


@router.callback_query(F.data.startswith("ramadan:") | F.data.startswith("month:"))
async def nav_cb(c: CallbackQuery):
    await c.answer()
    await run_action(c.bot, c.message.chat.id, c.data)


async def main():
    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    bot = Bot(token=cfg.bot_token)
    dp = Dispatcher()
    dp.include_router(router)

    scheduler = AsyncIOScheduler(timezone=cfg.location.tz)
    scheduler.add_job(refresh_live_timings, "cron", hour=0, minute=0, second=30)
    scheduler.start()

    try:
        await dp.start_polling(bot)
    finally:
        scheduler.shutdown(wait=False)
        for chat_id in list(LIVE_TICKERS):
            await stop_live(chat_id)


if __name__ == "__main__":
    asyncio.run(main())

import asyncio
import importlib
import itertools
from io import BytesIO
from types import SimpleNamespace

import pytest

import texts
from errors import ProviderUnreachableError, RamadanNotFoundError
from fence import RequestFence
from models import VerificationResult

TIMINGS = {
    "Fajr": "04:30",
    "Dhuhr": "12:15",
    "Asr": "15:30",
    "Maghrib": "18:00",
    "Isha": "19:30",
}


class FakeBot:
    def __init__(self):
        self.sent = []
        self.edits = []
        self.photos = []
        self._ids = itertools.count(1)

    async def send_message(self, chat_id, text, reply_markup=None):
        await asyncio.sleep(0)
        self.sent.append((chat_id, text, reply_markup))
        return SimpleNamespace(message_id=next(self._ids))

    async def edit_message_text(self, text, chat_id=None, message_id=None):
        self.edits.append((chat_id, message_id, text))

    async def send_photo(self, chat_id, photo=None, caption=None, reply_markup=None):
        self.photos.append((chat_id, caption))


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "123456:TEST")
    module = importlib.import_module("bot")
    monkeypatch.setattr(module, "LIVE_TICKERS", {})
    monkeypatch.setattr(module, "STARTING", set())
    monkeypatch.setattr(module, "fence", RequestFence())
    return module


def _texts(bot):
    return [text for _, text, _ in bot.sent]


def test_double_start_runs_one_countdown(app, monkeypatch):
    async def fake_timings():
        await asyncio.sleep(0)
        return dict(TIMINGS)

    monkeypatch.setattr(app, "today_timings", fake_timings)
    bot = FakeBot()

    async def scenario():
        await asyncio.gather(app.start_live(bot, 7), app.start_live(bot, 7))
        assert len(app.LIVE_TICKERS) == 1
        ticker = app.LIVE_TICKERS[7]
        assert ticker.running

        await app.stop_live(7)
        await asyncio.sleep(0)
        assert not ticker.running
        assert app.LIVE_TICKERS == {}
        assert [t for t in asyncio.all_tasks() if t is not asyncio.current_task()] == []

    asyncio.run(scenario())

    assert _texts(bot).count(texts.COUNTDOWN_STARTED) == 1
    assert app.STARTING == set()


def test_failed_start_offers_retry_and_releases_chat(app, monkeypatch):
    async def failing_timings():
        raise ProviderUnreachableError("https://example.test", 3)

    monkeypatch.setattr(app, "today_timings", failing_timings)
    bot = FakeBot()

    asyncio.run(app.start_live(bot, 7))

    _, text, markup = bot.sent[-1]
    assert texts.PRAYERS_FAILED in text
    assert markup.inline_keyboard[0][0].callback_data == "retry:countdown"
    assert app.STARTING == set()
    assert app.LIVE_TICKERS == {}


def _fake_render(title, days, subtitle=""):
    return BytesIO(b"png")


def test_stale_ramadan_result_is_dropped(app, monkeypatch):
    bot = FakeBot()

    async def fake_build(prayers, window):
        return list(window)

    monkeypatch.setattr(app, "build_ramadan_days", fake_build)
    monkeypatch.setattr(app, "render_ramadan_calendar_png", _fake_render)

    async def scenario():
        gate = asyncio.Event()

        async def fake_verify(calendar, year):
            if year == 2025:
                await gate.wait()
            return VerificationResult(dates_match=True, primary=["day"] * 30, secondary=[])

        monkeypatch.setattr(app, "verify_ramadan_dates", fake_verify)

        older = asyncio.ensure_future(app.send_ramadan(bot, 7, 2025))
        for _ in range(5):
            await asyncio.sleep(0)
        await app.send_ramadan(bot, 7, 2026)
        gate.set()
        await older

    asyncio.run(scenario())

    assert len(bot.photos) == 1
    assert bot.photos[0][1].startswith("🌙 Ramadan 2026: 30 days")
    assert len(app.fence) == 0


def test_ramadan_not_found_offers_retry(app, monkeypatch):
    bot = FakeBot()

    async def fake_verify(calendar, year):
        return VerificationResult(dates_match=False)

    async def fake_window(calendar, year):
        raise RamadanNotFoundError(year)

    monkeypatch.setattr(app, "verify_ramadan_dates", fake_verify)
    monkeypatch.setattr(app, "fetch_ramadan_window", fake_window)

    asyncio.run(app.send_ramadan(bot, 7, 2026))

    _, text, markup = bot.sent[-1]
    assert "No Ramadan days found for year 2026" in text
    assert markup.inline_keyboard[0][0].callback_data == "retry:ramadan:2026"
    assert bot.photos == []


@pytest.fixture
def views(app, monkeypatch):
    calls = []

    async def fake_today(bot, chat_id):
        calls.append(("today", chat_id))

    async def fake_live(bot, chat_id):
        calls.append(("countdown", chat_id))

    async def fake_ramadan(bot, chat_id, year):
        calls.append(("ramadan", chat_id, year))

    async def fake_month(bot, chat_id, month, year):
        calls.append(("month", chat_id, month, year))

    monkeypatch.setattr(app, "send_today", fake_today)
    monkeypatch.setattr(app, "start_live", fake_live)
    monkeypatch.setattr(app, "send_ramadan", fake_ramadan)
    monkeypatch.setattr(app, "send_month", fake_month)
    return calls


@pytest.mark.parametrize(
    "action, expected",
    [
        ("ramadan:2026", ("ramadan", 7, 2026)),
        ("month:1:2026", ("month", 7, 1, 2026)),
        ("today", ("today", 7)),
        ("countdown", ("countdown", 7)),
    ],
)
def test_run_action(app, views, action, expected):
    asyncio.run(app.run_action(FakeBot(), 7, action))
    assert views == [expected]


@pytest.mark.parametrize("action", ["ramadan", "month:1", "weather:2026"])
def test_run_action_ignores_unknown(app, views, action):
    asyncio.run(app.run_action(FakeBot(), 7, action))
    assert views == []


def test_retry_button_reruns_view(app, views):
    answered = []

    async def answer(*args, **kwargs):
        answered.append(True)

    callback = SimpleNamespace(
        data="retry:month:1:2026",
        bot=FakeBot(),
        message=SimpleNamespace(chat=SimpleNamespace(id=7)),
        answer=answer,
    )

    asyncio.run(app.retry_cb(callback))

    assert answered == [True]
    assert views == [("month", 7, 1, 2026)]

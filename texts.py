WELCOME = (
    "Assalamu alaikum! 🌙\n\n"
    "I show today's prayer times, a live countdown to the next prayer "
    "and the Ramadan calendar for this city.\n\n"
    "Use the menu below."
)

COUNTDOWN_STARTED = "⏳ Countdown started…"
COUNTDOWN_STOPPED = "🛑 Countdown stopped."
COUNTDOWN_EMPTY = "⚠️ No prayer times available yet. Waiting for fresh data…"
COUNTDOWN_TEMPLATE = (
    "🕌 Next prayer: {name}{when}\n"
    "🕰 At: {at}\n"
    "⏳ {clock}\n\n"
    "🛑 Press Stop to end the countdown."
)
PRAYER_ARRIVED = "✅ It is time for {name}!"

TODAY_TEMPLATE = "📅 {gregorian}\n🌙 {hijri}\n\n{rows}"

LOADING_RAMADAN = "⏳ Loading Ramadan {year}…"
RAMADAN_VERIFIED = "✓ Ramadan dates verified"
RAMADAN_MISMATCH = "⚠ Date verification needed"
IMAGE_VERIFIED = "Ramadan dates verified"
IMAGE_MISMATCH = "Date verification needed"
RAMADAN_CAPTION = "🌙 Ramadan {year}: {count} days\n{status}"

FETCH_FAILED = "⚠️ {error}\nPlease try again."
PRAYERS_FAILED = "Failed to fetch prayer times."
RAMADAN_FAILED = "Failed to fetch Ramadan calendar."
CALENDAR_FAILED = "Failed to fetch calendar data."

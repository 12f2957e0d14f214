from aiogram.types import (
    ReplyKeyboardMarkup,
    KeyboardButton,
    InlineKeyboardMarkup,
    InlineKeyboardButton,
)

BTN_TODAY = "🕌 Today's prayers"
BTN_COUNTDOWN = "⏳ Next prayer"
BTN_RAMADAN = "🌙 Ramadan calendar"
BTN_MONTH = "📅 This month"
BTN_STOP = "🛑 Stop"


def main_menu():
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=BTN_TODAY), KeyboardButton(text=BTN_COUNTDOWN)],
            [KeyboardButton(text=BTN_RAMADAN), KeyboardButton(text=BTN_MONTH)],
        ],
        resize_keyboard=True,
        input_field_placeholder="Choose from the menu…"
    )


def stop_menu():
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=BTN_STOP)]],
        resize_keyboard=True,
        input_field_placeholder="Press to stop the countdown…"
    )


def retry_inline(action: str):
    # action is the callback payload of the view to re-run, e.g. "ramadan:2026"
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="🔄 Retry", callback_data=f"retry:{action}")]]
    )


def year_inline(year: int):
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text=f"◀ {year - 1}", callback_data=f"ramadan:{year - 1}"),
                InlineKeyboardButton(text=f"{year + 1} ▶", callback_data=f"ramadan:{year + 1}"),
            ],
        ]
    )


def month_inline(month: int, year: int):
    prev_m, prev_y = (12, year - 1) if month == 1 else (month - 1, year)
    next_m, next_y = (1, year + 1) if month == 12 else (month + 1, year)
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="◀", callback_data=f"month:{prev_m}:{prev_y}"),
                InlineKeyboardButton(text="▶", callback_data=f"month:{next_m}:{next_y}"),
            ],
        ]
    )

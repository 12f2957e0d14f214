from __future__ import annotations
from typing import List
from io import BytesIO

from PIL import Image, ImageDraw, ImageFont

from models import RamadanDay

FIRST_DAY_FILL = "#d9f2d9"
QADR_FILL = "#e6dcf5"


def _get_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    # slim containers often ship without DejaVu
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size=size)
    except Exception:
        return ImageFont.load_default()


def render_ramadan_calendar_png(
    title: str,
    days: List[RamadanDay],
    subtitle: str = "",
) -> BytesIO:
    """
    One row per Ramadan day: Day | Date | Weekday | Fajr | Maghrib.
    Day 1 is tinted green, the odd nights of the last ten purple.
    """
    padding = 24
    line_h = 30
    header_h = 110
    col_w = [70, 170, 140, 110, 120]
    table_w = sum(col_w)
    table_h = line_h * (len(days) + 1)  # + header row
    w = table_w + padding * 2
    h = header_h + table_h + padding

    img = Image.new("RGB", (w, h), "white")
    draw = ImageDraw.Draw(img)

    font_title = _get_font(28)
    font_small = _get_font(18)
    font_cell = _get_font(18)

    draw.text((padding, 20), title, font=font_title, fill="black")
    if subtitle:
        draw.text((padding, 60), subtitle, font=font_small, fill="black")

    x0 = padding
    y0 = header_h

    draw.rectangle([x0, y0, x0 + table_w, y0 + line_h], outline="black", fill="#f2f2f2")

    headers = ["Day", "Date", "Weekday", "Fajr", "Maghrib"]
    x = x0
    for i, text in enumerate(headers):
        draw.text((x + 10, y0 + 6), text, font=font_cell, fill="black")
        x += col_w[i]

    for idx, rd in enumerate(days, start=1):
        y = y0 + line_h * idx
        fill = None
        if rd.is_first_day:
            fill = FIRST_DAY_FILL
        elif rd.is_lailatul_qadr:
            fill = QADR_FILL
        elif idx % 2 == 0:
            fill = "#fbfbfb"
        if fill:
            draw.rectangle([x0, y, x0 + table_w, y + line_h], fill=fill)

        g = rd.day.gregorian
        values = [
            f"{rd.ordinal:02d}",
            f"{g.day} {g.month_en}",
            g.weekday,
            rd.timings.get("Fajr", "--:--"),
            rd.timings.get("Maghrib", "--:--"),
        ]

        x = x0
        for i, val in enumerate(values):
            draw.text((x + 10, y + 6), val, font=font_cell, fill="black")
            x += col_w[i]

        draw.line([x0, y, x0 + table_w, y], fill="black")

    draw.rectangle([x0, y0, x0 + table_w, y0 + table_h], outline="black")
    x = x0
    for wcol in col_w[:-1]:
        x += wcol
        draw.line([x, y0, x, y0 + table_h], fill="black")

    bio = BytesIO()
    bio.name = "ramadan_calendar.png"
    img.save(bio, format="PNG")
    bio.seek(0)
    return bio

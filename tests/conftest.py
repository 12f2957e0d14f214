from datetime import date, timedelta

import pytest


def raw_calendar_day(greg: date, hijri_day: int, hijri_month: int = 9, hijri_year: int = 1447, holidays=None):
    return {
        "gregorian": {
            "date": greg.strftime("%d-%m-%Y"),
            "format": "DD-MM-YYYY",
            "day": greg.strftime("%d"),
            "weekday": {"en": greg.strftime("%A")},
            "month": {"number": greg.month, "en": greg.strftime("%B")},
            "year": str(greg.year),
            "designation": {"abbreviated": "AD", "expanded": "Anno Domini"},
        },
        "hijri": {
            "date": f"{hijri_day:02d}-{hijri_month:02d}-{hijri_year}",
            "format": "DD-MM-YYYY",
            "day": f"{hijri_day:02d}",
            "weekday": {"en": "Al Ahad", "ar": "الاحد"},
            "month": {"number": hijri_month, "en": "Ramaḍān", "ar": "رَمَضان"},
            "year": str(hijri_year),
            "designation": {"abbreviated": "AH", "expanded": "Anno Hegirae"},
            "holidays": holidays or [],
        },
    }


def raw_ramadan(start: date, length: int, hijri_year: int = 1447):
    return [raw_calendar_day(start + timedelta(days=i), i + 1, 9, hijri_year) for i in range(length)]


@pytest.fixture
def make_ramadan():
    return raw_ramadan


@pytest.fixture
def make_day():
    return raw_calendar_day

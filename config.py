import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()

MAX_ATTEMPTS = 3
RETRY_DELAY = 1.0  # seconds
REQUEST_TIMEOUT = 20
JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


@dataclass(frozen=True)
class Location:
    latitude: float = 1.4854094669440312
    longitude: float = 110.35411071777344
    method: int = 3
    school: int = 0
    hijri_adjustment: int = 0
    tz: str = "Asia/Kuching"


DEFAULT_LOCATION = Location()


@dataclass(frozen=True)
class Config:
    bot_token: str
    log_level: str = "INFO"
    location: Location = field(default_factory=Location)


def _env_number(name: str, cast, default):
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}")


def load_location() -> Location:
    return Location(
        latitude=_env_number("LATITUDE", float, DEFAULT_LOCATION.latitude),
        longitude=_env_number("LONGITUDE", float, DEFAULT_LOCATION.longitude),
        method=_env_number("CALC_METHOD", int, DEFAULT_LOCATION.method),
        school=_env_number("JURISTIC_SCHOOL", int, DEFAULT_LOCATION.school),
        hijri_adjustment=_env_number("HIJRI_ADJUSTMENT", int, DEFAULT_LOCATION.hijri_adjustment),
        tz=(os.getenv("TZ") or DEFAULT_LOCATION.tz).strip(),
    )


def load_config() -> Config:
    token = (os.getenv("BOT_TOKEN") or "").strip()
    log_level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()

    if not token:
        raise RuntimeError("BOT_TOKEN is not set")

    return Config(
        bot_token=token,
        log_level=log_level,
        location=load_location(),
    )

"""Local-time helpers; the cooperative books everything in its own timezone."""
from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from milk_center.config import SETTINGS


def local_zone() -> ZoneInfo:
    return ZoneInfo(SETTINGS.timezone)


def now_local() -> datetime:
    return datetime.now(local_zone())


def today_local() -> date:
    return now_local().date()


def current_time_string() -> str:
    """Current local time as HH:MM, the format collection entries carry."""
    return now_local().strftime("%H:%M")


def parse_time(value: str) -> time:
    parts = [int(p) for p in value.split(":") if p.strip()]
    while len(parts) < 3:
        parts.append(0)
    return time(parts[0], parts[1], parts[2])


def is_am(value: str) -> bool:
    return parse_time(value).hour < 12

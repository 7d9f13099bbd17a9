"""Работа со временем в UTC"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Текущее время с явным указанием UTC"""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Привести datetime к UTC.

    SQLite возвращает naive datetime даже для колонок с timezone=True,
    такие значения считаем записанными в UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

# Overview: Turns a preset name or loose from/to strings into a day-aligned reporting window.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from hydropak.time_utils import end_of_day, start_of_day, to_utc_z, try_parse_iso_datetime, utcnow


# Trailing windows that include today: last_7 covers today and the 6 days before it
PRESET_DAYS = {"last_7": 7, "last_30": 30, "last_90": 90}

DEFAULT_WINDOW_DAYS = 30


@dataclass(frozen=True)
class DateRange:
    """Inclusive window: start at 00:00:00, end at 23:59:59.999999 (UTC-naive)."""
    start: datetime
    end: datetime

    @property
    def day_count(self) -> int:
        return (self.end.date() - self.start.date()).days + 1

    def days(self) -> list[date]:
        first = self.start.date()
        return [first + timedelta(days=i) for i in range(self.day_count)]

    def previous(self) -> "DateRange":
        """The window of identical length ending the day before this one starts."""
        prev_end = self.start.date() - timedelta(days=1)
        prev_start = prev_end - timedelta(days=self.day_count - 1)
        return DateRange(start_of_day(prev_start), end_of_day(prev_end))

    def to_dict(self) -> dict:
        return {"start": to_utc_z(self.start), "end": to_utc_z(self.end)}


def resolve_range(preset=None, start=None, end=None, now: datetime | None = None) -> DateRange:
    """
    Resolve a reporting window. Never raises.

    - last_7 / last_30 / last_90: the N days ending today
    - ytd: Jan 1 of the current year through today
    - anything else: end = `end` or now; start = `start` or end - 30 days.
      Unparseable dates count as missing.

    A reversed custom window is swapped.
    """
    now = now or utcnow()
    key = str(preset or "").strip().lower()

    if key in PRESET_DAYS:
        end_dt = now
        start_dt = now - timedelta(days=PRESET_DAYS[key] - 1)
    elif key == "ytd":
        end_dt = now
        start_dt = datetime(now.year, 1, 1)
    else:
        end_dt = try_parse_iso_datetime(end) or now
        start_dt = try_parse_iso_datetime(start) or (end_dt - timedelta(days=DEFAULT_WINDOW_DAYS))

    if start_dt.date() > end_dt.date():
        start_dt, end_dt = end_dt, start_dt

    return DateRange(start_of_day(start_dt), end_of_day(end_dt))

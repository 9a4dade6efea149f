"""
itinerary.py - trip calendar helpers

Trip dates are ISO strings; activities are placed on a 1-based day index
counted from the trip start date. All functions take "today"/"now" as an
argument (defaulting to the local clock) so they are easy to test.
"""

import datetime
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

DateLike = Union[str, datetime.date, None]

UPCOMING = "upcoming"
ONGOING = "ongoing"
PAST = "past"


@dataclass(frozen=True)
class TripStatus:
    status: str
    text: str


@dataclass(frozen=True)
class Reminder:
    kind: str  # "info" | "success" | "warning" | "error"
    title: str
    message: str


def parse_date(value: DateLike) -> Optional[datetime.date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def parse_time(value: Optional[str]) -> Optional[datetime.time]:
    """Parse "HH:MM"; returns None for blanks and malformed values."""
    if not value:
        return None
    try:
        hours, minutes = str(value).strip().split(":")[:2]
        return datetime.time(int(hours), int(minutes))
    except ValueError:
        return None


def _plural(n: int, word: str, plural: Optional[str] = None) -> str:
    return f"{n} {word if n == 1 else (plural or word + 's')}"


def trip_status(start: DateLike, end: DateLike, today: DateLike = None) -> Optional[TripStatus]:
    start_d, end_d = parse_date(start), parse_date(end)
    if start_d is None or end_d is None:
        return None
    today_d = parse_date(today) or datetime.date.today()

    if today_d < start_d:
        return TripStatus(UPCOMING, f"{_plural((start_d - today_d).days, 'day')} to go")
    if today_d <= end_d:
        total = (end_d - start_d).days + 1
        current = (today_d - start_d).days + 1
        return TripStatus(ONGOING, f"Day {current} of {total}")
    return TripStatus(PAST, f"Ended {_plural((today_d - end_d).days, 'day')} ago")


def trip_length(start: DateLike, end: DateLike) -> int:
    start_d, end_d = parse_date(start), parse_date(end)
    if start_d is None or end_d is None or end_d < start_d:
        return 0
    return (end_d - start_d).days + 1


def trip_days(start: DateLike, end: DateLike) -> List[datetime.date]:
    start_d = parse_date(start)
    return [start_d + datetime.timedelta(days=i) for i in range(trip_length(start, end))]


def day_date(start: DateLike, day_index: int) -> Optional[datetime.date]:
    start_d = parse_date(start)
    if start_d is None:
        return None
    return start_d + datetime.timedelta(days=day_index - 1)


def day_index_for(start: DateLike, day: DateLike) -> Optional[int]:
    start_d, day_d = parse_date(start), parse_date(day)
    if start_d is None or day_d is None:
        return None
    return (day_d - start_d).days + 1


def _time_key(activity):
    parsed = parse_time(activity.time)
    # untimed activities go last
    return (parsed is None, parsed or datetime.time(0, 0), activity.id)


def sort_activities(activities: Iterable) -> list:
    return sorted(activities, key=lambda a: (a.day_index,) + _time_key(a))


def activities_for_day(activities: Iterable, day_index: int) -> list:
    return sorted((a for a in activities if a.day_index == day_index), key=_time_key)


def due_reminders(activities: Iterable, start: DateLike, end: DateLike,
                  now: Optional[datetime.datetime] = None) -> List[Reminder]:
    """
    Reminders for today's timed activities that start in about 30 or 10 minutes.

    Only during the trip, only incomplete activities with remind_me set.
    """
    start_d, end_d = parse_date(start), parse_date(end)
    if start_d is None or end_d is None:
        return []
    now = now or datetime.datetime.now()
    today = now.date()
    if today < start_d or today > end_d:
        return []

    current_day = (today - start_d).days + 1
    reminders: List[Reminder] = []
    for a in activities_for_day(activities, current_day):
        at = parse_time(a.time)
        if not a.remind_me or a.completed or at is None:
            continue
        starts_at = datetime.datetime.combine(today, at)
        minutes = int((starts_at - now).total_seconds() // 60)
        transport = a.category == "transport"
        if 29 < minutes <= 30:
            reminders.append(Reminder(
                "warning", "Activity in 30 minutes!",
                f"{a.time} - {a.title}" + (" (transport)" if transport else ""),
            ))
        elif 9 < minutes <= 10:
            reminders.append(Reminder(
                "error", "Activity in 10 minutes!",
                f"{a.time} - {a.title}" + (" Don't miss your transport!" if transport else ""),
            ))
    return reminders


def daily_summary(activities: Iterable, start: DateLike, end: DateLike,
                  today: DateLike = None) -> List[Reminder]:
    """Today's open activities during the trip, or a heads-up the day before it starts."""
    start_d, end_d = parse_date(start), parse_date(end)
    if start_d is None or end_d is None:
        return []
    activities = list(activities)
    today_d = parse_date(today) or datetime.date.today()
    days_until = (start_d - today_d).days
    if days_until > 1 or today_d > end_d:
        return []

    out: List[Reminder] = []
    if start_d <= today_d <= end_d:
        current_day = (today_d - start_d).days + 1
        open_today = [a for a in activities_for_day(activities, current_day) if not a.completed]
        if open_today:
            listed = " • ".join(f"{a.time + ' - ' if a.time else ''}{a.title}" for a in open_today[:3])
            out.append(Reminder(
                "info", f"You have {_plural(len(open_today), 'activity', 'activities')} planned for today!",
                listed,
            ))

    if days_until == 1:
        first_day = [a for a in activities if a.day_index == 1]
        if first_day:
            out.append(Reminder(
                "success", "Trip starts tomorrow!",
                f"{_plural(len(first_day), 'activity', 'activities')} planned for Day 1",
            ))
    return out

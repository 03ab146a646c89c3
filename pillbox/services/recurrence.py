"""
Recurrence rules and their expansion into schedule instances

A pill's rule is one of three variants, each carrying the times of day the pill
is taken on an active date. Expansion is pure: it only reads attributes of the
pill and its rule versions, it never touches the session.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, Optional, Tuple

from pillbox.services.result import ErrorKind, Err, Ok
from pillbox.utils.timezone import parse_date

CYCLE_INTERVAL = 'interval'
CYCLE_WEEKDAYS = 'weekdays'
CYCLE_SPECIFIC = 'specific'

WEEKDAY_NAMES = {
    'mon': 0, 'tue': 1, 'wed': 2, 'thu': 3, 'fri': 4, 'sat': 5, 'sun': 6,
}

TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')


@dataclass(frozen=True)
class Interval:
    """Active every N days counted from the rule's anchor date"""
    every_n_days: int
    times: Tuple[str, ...]


@dataclass(frozen=True)
class Weekdays:
    """Active on the given weekdays (Monday=0)"""
    days: FrozenSet[int]
    times: Tuple[str, ...]


@dataclass(frozen=True)
class SpecificDates:
    """Active only on the listed calendar dates"""
    dates: FrozenSet[date]
    times: Tuple[str, ...]


def is_active(rule, day: date, start: date) -> bool:
    """Whether the rule matches day, ignoring the pill's date range"""
    if isinstance(rule, Interval):
        return day >= start and (day - start).days % rule.every_n_days == 0
    if isinstance(rule, Weekdays):
        return day.weekday() in rule.days
    if isinstance(rule, SpecificDates):
        return day in rule.dates
    raise TypeError(f'Unknown recurrence rule: {rule!r}')


def within_bounds(pill, version, day: date) -> bool:
    """Whether day falls inside the version's start and end and before the pill's stop"""
    if day < version.starts_on:
        return False
    if version.ends_on is not None and day > version.ends_on:
        return False
    if pill.is_stop and pill.stop_date is not None and day >= pill.stop_date:
        return False
    return True


def resolve_rule(pill, day: date):
    """
    Pick the rule version that applies on day.

    Returns the latest version effective on or before day, None before the
    first one. Each version carries its own start, which is also the anchor its
    interval counts from, so editing a pill never shifts earlier doses.
    """
    current = None
    for version in sorted(pill.rules, key=lambda version: version.effective_from):
        if version.effective_from > day:
            break
        current = version
    return current


def active_times_on(pill, day: date) -> Tuple[str, ...]:
    """Ordered times of day the pill is taken on day, empty if not active"""
    version = resolve_rule(pill, day)
    if version is None or not within_bounds(pill, version, day):
        return ()
    rule = rule_from_row(version)
    if not is_active(rule, day, version.starts_on):
        return ()
    return rule.times


def has_schedule_on(pill, day: date) -> bool:
    """Calendar check: whether the pill has any instance on day"""
    return bool(active_times_on(pill, day))


def rule_from_row(row):
    """Build a rule value from a persisted PillRule row"""
    times = tuple(row.times.split(',')) if row.times else ()
    if row.cycle == CYCLE_INTERVAL:
        return Interval(every_n_days=row.take_interval, times=times)
    if row.cycle == CYCLE_WEEKDAYS:
        days = frozenset(int(d) for d in row.days.split(',')) if row.days else frozenset()
        return Weekdays(days=days, times=times)
    if row.cycle == CYCLE_SPECIFIC:
        dates = frozenset(parse_date(d) for d in row.specific.split(',')) if row.specific else frozenset()
        return SpecificDates(dates=dates, times=times)
    raise ValueError(f'Unknown cycle stored for pill rule {row.id}: {row.cycle}')


def rule_columns(rule):
    """Column values for persisting a rule as a PillRule row"""
    columns = {'times': ','.join(rule.times)}
    if isinstance(rule, Interval):
        columns.update(cycle=CYCLE_INTERVAL, take_interval=rule.every_n_days)
    elif isinstance(rule, Weekdays):
        columns.update(cycle=CYCLE_WEEKDAYS, days=','.join(str(d) for d in sorted(rule.days)))
    elif isinstance(rule, SpecificDates):
        columns.update(cycle=CYCLE_SPECIFIC, specific=','.join(d.isoformat() for d in sorted(rule.dates)))
    else:
        raise TypeError(f'Unknown recurrence rule: {rule!r}')
    return columns


def normalize_time(value) -> Optional[str]:
    """'8:00' -> '08:00'; None if value is not a valid time of day"""
    if not isinstance(value, str):
        return None
    match = TIME_PATTERN.match(value.strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f'{hour:02d}:{minute:02d}'


def parse_times(value):
    if _is_blank(value):
        return Err(ErrorKind.NULL_VALUE)
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return Err(ErrorKind.INVALID_VALUE)

    times = set()
    for item in value:
        normalized = normalize_time(item)
        if normalized is None:
            return Err(ErrorKind.INVALID_VALUE)
        times.add(normalized)
    return Ok(tuple(sorted(times)))


def _parse_weekday(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= 6 else None
    if isinstance(value, str):
        return WEEKDAY_NAMES.get(value.strip().lower()[:3])
    return None


def _parse_interval(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and value >= 1:
        return value
    return None


def _is_blank(value):
    return value is None or value == '' or value == []


def parse_rule(payload):
    """
    Build a recurrence rule from a request payload.

    Recognised fields are `specific` (list of YYYY-MM-DD), `day` (weekday names
    or numbers) and `takeInterval` (days), with `time` holding the times of day.
    When more than one recurrence field is supplied the first of
    specific, day, takeInterval wins.
    """
    times = parse_times(payload.get('time'))
    if not times.ok:
        return times

    specific = payload.get('specific')
    day = payload.get('day')
    take_interval = payload.get('takeInterval')

    if not _is_blank(specific):
        if not isinstance(specific, list):
            specific = [specific]
        dates = [parse_date(item) for item in specific]
        if any(d is None for d in dates):
            return Err(ErrorKind.INVALID_VALUE)
        return Ok(SpecificDates(dates=frozenset(dates), times=times.value))

    if not _is_blank(day):
        if not isinstance(day, list):
            day = [day]
        days = [_parse_weekday(item) for item in day]
        if any(d is None for d in days):
            return Err(ErrorKind.INVALID_VALUE)
        return Ok(Weekdays(days=frozenset(days), times=times.value))

    if not _is_blank(take_interval):
        every_n_days = _parse_interval(take_interval)
        if every_n_days is None:
            return Err(ErrorKind.INVALID_VALUE)
        return Ok(Interval(every_n_days=every_n_days, times=times.value))

    return Err(ErrorKind.NULL_VALUE)

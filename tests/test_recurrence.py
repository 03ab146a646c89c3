from datetime import date, timedelta

import pytest

from pillbox.services.recurrence import (
    Interval, Weekdays, SpecificDates,
    is_active, active_times_on, has_schedule_on, parse_rule, normalize_time,
)
from pillbox.services.result import ErrorKind

START = date(2024, 1, 1)  # a Monday
TIMES = ('08:00', '20:00')


def days_from(start, count):
    return [start + timedelta(days=offset) for offset in range(count)]


@pytest.mark.parametrize('n', [1, 2, 3, 7])
def test_interval_active_every_n_days_from_start(n):
    rule = Interval(every_n_days=n, times=TIMES)
    for day in days_from(START - timedelta(days=10), 60):
        expected = day >= START and (day - START).days % n == 0
        assert is_active(rule, day, START) == expected


def test_interval_of_one_is_active_every_day_from_start():
    rule = Interval(every_n_days=1, times=TIMES)
    assert all(is_active(rule, day, START) for day in days_from(START, 30))
    assert not is_active(rule, START - timedelta(days=1), START)


def test_weekdays_depend_only_on_weekday():
    rule = Weekdays(days=frozenset({0, 2}), times=TIMES)
    for day in days_from(START, 28):
        assert is_active(rule, day, START) == (day.weekday() in (0, 2))
        assert is_active(rule, day, date(2023, 6, 15)) == is_active(rule, day, START)


def test_specific_dates_match_exactly():
    rule = SpecificDates(dates=frozenset({date(2024, 1, 3), date(2024, 2, 1)}), times=TIMES)
    assert is_active(rule, date(2024, 1, 3), START)
    assert is_active(rule, date(2024, 2, 1), START)
    assert not is_active(rule, date(2024, 1, 4), START)


def test_unknown_rule_type_is_rejected():
    with pytest.raises(TypeError):
        is_active(object(), START, START)


def test_active_times_respect_start_and_end(fake_pill):
    pill = fake_pill(Weekdays(days=frozenset(range(7)), times=TIMES), START, end=date(2024, 1, 10))
    assert active_times_on(pill, date(2023, 12, 31)) == ()
    assert active_times_on(pill, START) == TIMES
    assert active_times_on(pill, date(2024, 1, 10)) == TIMES
    assert active_times_on(pill, date(2024, 1, 11)) == ()


def test_weekday_rule_before_start_is_inactive(fake_pill):
    pill = fake_pill(Weekdays(days=frozenset({0}), times=TIMES), date(2024, 1, 8))
    assert active_times_on(pill, START) == ()
    assert active_times_on(pill, date(2024, 1, 8)) == TIMES


@pytest.mark.parametrize('rule', [
    Interval(every_n_days=2, times=TIMES),
    Weekdays(days=frozenset({0, 2, 4}), times=TIMES),
    SpecificDates(dates=frozenset({date(2024, 1, 3), date(2024, 1, 15), date(2024, 1, 20)}), times=TIMES),
])
def test_stopping_keeps_history_and_ends_future(fake_pill, rule):
    stop = date(2024, 1, 15)
    running = fake_pill(rule, START)
    stopped = fake_pill(rule, START, is_stop=True, stop_date=stop)

    for day in days_from(START, 40):
        if day < stop:
            assert active_times_on(stopped, day) == active_times_on(running, day)
        else:
            assert active_times_on(stopped, day) == ()


def test_has_schedule_on_follows_active_times(fake_pill):
    pill = fake_pill(Interval(every_n_days=3, times=('09:00',)), START)
    assert has_schedule_on(pill, date(2024, 1, 4))
    assert not has_schedule_on(pill, date(2024, 1, 5))


def test_normalize_time():
    assert normalize_time('8:00') == '08:00'
    assert normalize_time(' 20:30 ') == '20:30'
    assert normalize_time('24:00') is None
    assert normalize_time('08:60') is None
    assert normalize_time('noon') is None
    assert normalize_time(800) is None


def test_parse_rule_weekdays_by_name():
    result = parse_rule({'day': ['Mon', 'wednesday'], 'time': ['20:00', '8:00', '08:00']})
    assert result.ok
    assert result.value == Weekdays(days=frozenset({0, 2}), times=('08:00', '20:00'))


def test_parse_rule_interval_from_string():
    result = parse_rule({'takeInterval': '2', 'time': '09:00'})
    assert result.value == Interval(every_n_days=2, times=('09:00',))


def test_parse_rule_precedence_specific_then_day_then_interval():
    payload = {
        'specific': ['2024-01-03'],
        'day': ['mon'],
        'takeInterval': 1,
        'time': ['08:00'],
    }
    assert isinstance(parse_rule(payload).value, SpecificDates)

    del payload['specific']
    assert isinstance(parse_rule(payload).value, Weekdays)

    del payload['day']
    assert isinstance(parse_rule(payload).value, Interval)


@pytest.mark.parametrize('payload, kind', [
    ({'time': ['08:00']}, ErrorKind.NULL_VALUE),
    ({'day': ['mon']}, ErrorKind.NULL_VALUE),
    ({'day': ['mon'], 'time': []}, ErrorKind.NULL_VALUE),
    ({'day': ['someday'], 'time': ['08:00']}, ErrorKind.INVALID_VALUE),
    ({'day': [7], 'time': ['08:00']}, ErrorKind.INVALID_VALUE),
    ({'takeInterval': 0, 'time': ['08:00']}, ErrorKind.INVALID_VALUE),
    ({'specific': ['2024-13-01'], 'time': ['08:00']}, ErrorKind.INVALID_VALUE),
    ({'takeInterval': 1, 'time': ['8am']}, ErrorKind.INVALID_VALUE),
])
def test_parse_rule_errors(payload, kind):
    result = parse_rule(payload)
    assert not result.ok
    assert result.kind is kind

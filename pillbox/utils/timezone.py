"""
Timezone utilities for Pillbox
All timestamps use the Asia/Seoul timezone (UTC+9, no daylight saving)
Database stores naive timestamps that are already in Seoul time
"""
import calendar
from datetime import datetime, date, timedelta
import pytz

# Define Asia/Seoul timezone
SEOUL_TZ = pytz.timezone('Asia/Seoul')

DATE_FORMAT = '%Y-%m-%d'
MONTH_FORMAT = '%Y-%m'


def now():
    """Get current datetime in Asia/Seoul timezone as naive datetime for database compatibility"""
    seoul_time = datetime.now(SEOUL_TZ)
    return seoul_time.replace(tzinfo=None)


def today():
    """Get today's calendar date in Asia/Seoul timezone"""
    return now().date()


def parse_date(value):
    """Parse a YYYY-MM-DD string into a date, None if it is not one"""
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def parse_month(value):
    """
    Parse a calendar request date.
    Accepts either YYYY-MM or YYYY-MM-DD and returns a date inside that month.
    """
    day = parse_date(value)
    if day is not None:
        return day
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), MONTH_FORMAT).date()
    except ValueError:
        return None


def month_range(day):
    """First and last date of the month containing day"""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def date_range(start, end):
    """Every date from start to end inclusive"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)

"""
Schedule views and check state
Day views expand every pill's rule for one date and merge in persisted check
rows, creating the missing ones. Calendar views only test whether a date has
any schedule at all.
"""
import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from pillbox.models import db
from pillbox.models.pill import Pill
from pillbox.models.schedule import Schedule
from pillbox.services.access import get_user, assert_owner_or_linked_member
from pillbox.services.pill_manager import PillManager
from pillbox.services.recurrence import active_times_on, has_schedule_on, normalize_time
from pillbox.services.result import ErrorKind, Err, Ok
from pillbox.utils.timezone import now as tz_now, month_range, date_range

logger = logging.getLogger(__name__)

INSTANCE_KEY = ['pill_id', 'date', 'time']


def materialize(instances):
    """
    Insert unchecked rows for (pill, date, time) instances, ignoring rows that
    already exist. Safe when two requests materialize the same instance.
    """
    if not instances:
        return

    now = tz_now()
    rows = [
        {
            'pill_id': pill.id,
            'user_id': pill.user_id,
            'date': day,
            'time': time,
            'is_check': False,
            'created_at': now
        }
        for pill, day, time in instances
    ]
    table = Schedule.__table__
    dialect = db.engine.dialect.name

    if dialect == 'sqlite':
        db.session.execute(sqlite_insert(table).values(rows).on_conflict_do_nothing(index_elements=INSTANCE_KEY))
    elif dialect == 'postgresql':
        db.session.execute(pg_insert(table).values(rows).on_conflict_do_nothing(index_elements=INSTANCE_KEY))
    else:
        for row in rows:
            try:
                with db.session.begin_nested():
                    db.session.execute(table.insert().values(**row))
            except IntegrityError:
                logger.debug('Schedule row for pill %s at %s %s already exists',
                             row['pill_id'], row['date'], row['time'])


class ScheduleService:
    """Day and calendar views plus check toggling"""

    @staticmethod
    def _pills_of(user_id):
        return Pill.query.options(selectinload(Pill.rules)).filter_by(
            user_id=user_id
        ).order_by(Pill.id).all()

    @staticmethod
    def _day_entries(user_id, day):
        active = []
        for pill in ScheduleService._pills_of(user_id):
            times = active_times_on(pill, day)
            if times:
                active.append((pill, times))

        if not active:
            return []

        materialize([(pill, day, time) for pill, times in active for time in times])
        db.session.commit()

        rows = Schedule.query.filter(
            Schedule.pill_id.in_([pill.id for pill, _ in active]),
            Schedule.date == day
        ).all()
        states = {(row.pill_id, row.time): row for row in rows}

        entries = []
        for pill, times in active:
            for time in times:
                row = states[(pill.id, time)]
                entries.append({
                    'scheduleId': row.id,
                    'pillId': pill.id,
                    'pillName': pill.name,
                    'color': pill.color,
                    'date': day.isoformat(),
                    'time': time,
                    'isCheck': row.is_check,
                    'checkedAt': row.checked_at.isoformat() if row.checked_at else None
                })
        entries.sort(key=lambda entry: (entry['time'], entry['pillId']))
        return entries

    @staticmethod
    def _calendar(user_id, start, end):
        pills = ScheduleService._pills_of(user_id)
        return [
            {
                'date': day.isoformat(),
                'hasSchedule': any(has_schedule_on(pill, day) for pill in pills)
            }
            for day in date_range(start, end)
        ]

    @staticmethod
    def _member_access(caller_id, member_id):
        if get_user(caller_id) is None or get_user(member_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)
        if not assert_owner_or_linked_member(caller_id, member_id).ok:
            return Err(ErrorKind.NO_MEMBER)
        return None

    @staticmethod
    def get_day_view(user_id, day):
        """Every schedule instance of the user's pills on day, with check state"""
        if get_user(user_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)
        return Ok(ScheduleService._day_entries(user_id, day))

    @staticmethod
    def get_calendar(user_id, start, end):
        """Per-date summary of whether any schedule exists between start and end"""
        if get_user(user_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)
        return Ok(ScheduleService._calendar(user_id, start, end))

    @staticmethod
    def get_month_view(user_id, day):
        start, end = month_range(day)
        return ScheduleService.get_calendar(user_id, start, end)

    @staticmethod
    def get_member_day_view(caller_id, member_id, day):
        denied = ScheduleService._member_access(caller_id, member_id)
        if denied:
            return denied
        return Ok(ScheduleService._day_entries(member_id, day))

    @staticmethod
    def get_member_month_view(caller_id, member_id, day):
        denied = ScheduleService._member_access(caller_id, member_id)
        if denied:
            return denied
        start, end = month_range(day)
        return Ok(ScheduleService._calendar(member_id, start, end))

    @staticmethod
    def _set_check(caller_id, pill_id, day, time, checked):
        loaded = PillManager.load_for_caller(caller_id, pill_id)
        if not loaded.ok:
            return loaded
        pill = loaded.value

        time = normalize_time(time)
        if day is None or time is None or time not in active_times_on(pill, day):
            db.session.rollback()
            return Err(ErrorKind.INVALID_SCHEDULE)

        materialize([(pill, day, time)])
        schedule = Schedule.query.filter_by(pill_id=pill.id, date=day, time=time).one()

        if checked and not schedule.is_check:
            schedule.is_check = True
            schedule.checked_at = tz_now()
        elif not checked and schedule.is_check:
            schedule.is_check = False
            schedule.checked_at = None
        db.session.commit()

        logger.info('Schedule %s of pill %s set to %s by user %s',
                    schedule.id, pill.id, 'checked' if checked else 'unchecked', caller_id)
        return Ok(schedule)

    @staticmethod
    def check(caller_id, pill_id, day, time):
        """Mark one instance as taken; checking twice is a no-op"""
        return ScheduleService._set_check(caller_id, pill_id, day, time, True)

    @staticmethod
    def uncheck(caller_id, pill_id, day, time):
        return ScheduleService._set_check(caller_id, pill_id, day, time, False)

    @staticmethod
    def _set_check_by_id(caller_id, schedule_id, checked):
        if get_user(caller_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)
        schedule = db.session.get(Schedule, schedule_id)
        if schedule is None:
            return Err(ErrorKind.INVALID_SCHEDULE)
        return ScheduleService._set_check(caller_id, schedule.pill_id, schedule.date, schedule.time, checked)

    @staticmethod
    def check_by_id(caller_id, schedule_id):
        return ScheduleService._set_check_by_id(caller_id, schedule_id, True)

    @staticmethod
    def uncheck_by_id(caller_id, schedule_id):
        return ScheduleService._set_check_by_id(caller_id, schedule_id, False)

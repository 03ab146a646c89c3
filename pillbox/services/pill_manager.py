"""
Pill lifecycle: create, modify, stop and delete pills
Enforces the per-user pill limit and owner/member authorization
"""
import logging

from flask import current_app

from pillbox.models import db
from pillbox.models.user import User
from pillbox.models.pill import Pill, PillRule
from pillbox.services.access import get_user, assert_owner_or_linked_member
from pillbox.services.recurrence import rule_columns
from pillbox.services.result import ErrorKind, Err, Ok
from pillbox.utils.timezone import today as tz_today

logger = logging.getLogger(__name__)

DEFAULT_PILL_LIMIT = 5
DEFAULT_NAME_MAX_LENGTH = 10
DEFAULT_COLORS = ['1', '2', '3', '4', '5']


def _config(key, default):
    return current_app.config.get(key, default)


class PillManager:
    """Manager for pill lifecycle operations"""

    @staticmethod
    def validate(name, rule, start, end=None):
        """Input checks that run before any storage access"""
        if rule is None or start is None:
            return Err(ErrorKind.NULL_VALUE)
        max_length = _config('PILL_NAME_MAX_LENGTH', DEFAULT_NAME_MAX_LENGTH)
        if not isinstance(name, str) or not name.strip() or len(name) > max_length:
            return Err(ErrorKind.NO_PILL_NAME)
        if end is not None and end < start:
            return Err(ErrorKind.INVALID_VALUE)
        return None

    @staticmethod
    def active_pills(user_id):
        return Pill.query.filter_by(user_id=user_id, is_stop=False).order_by(Pill.id).all()

    @staticmethod
    def _pick_color(active):
        colors = _config('PILL_COLORS', DEFAULT_COLORS)
        used = {pill.color for pill in active}
        for color in colors:
            if color not in used:
                return color
        return colors[len(active) % len(colors)]

    @staticmethod
    def _create(owner_id, name, rule, start, end):
        # Lock the owner row so concurrent adds cannot both pass the limit
        User.query.filter_by(id=owner_id).with_for_update().first()

        active = PillManager.active_pills(owner_id)
        if len(active) >= _config('PILL_LIMIT', DEFAULT_PILL_LIMIT):
            db.session.rollback()
            return Err(ErrorKind.PILL_COUNT_OVER)

        pill = Pill(
            user_id=owner_id,
            name=name,
            color=PillManager._pick_color(active),
            start_date=start,
            end_date=end
        )
        pill.rules.append(PillRule(effective_from=start, starts_on=start, ends_on=end, **rule_columns(rule)))
        db.session.add(pill)
        db.session.commit()

        logger.info('Pill %s (%s) added for user %s', pill.id, pill.name, owner_id)
        return Ok(pill)

    @staticmethod
    def add_pill(owner_id, name, rule, start, end=None):
        """Add a pill owned by owner_id"""
        invalid = PillManager.validate(name, rule, start, end)
        if invalid:
            return invalid

        if get_user(owner_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)

        return PillManager._create(owner_id, name, rule, start, end)

    @staticmethod
    def add_member_pill(caller_id, member_id, name, rule, start, end=None):
        """Add a pill on behalf of a linked member; the member owns the pill"""
        invalid = PillManager.validate(name, rule, start, end)
        if invalid:
            return invalid

        if get_user(caller_id) is None or get_user(member_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)

        allowed = assert_owner_or_linked_member(caller_id, member_id)
        if not allowed.ok:
            return Err(ErrorKind.NO_MEMBER)

        return PillManager._create(member_id, name, rule, start, end)

    @staticmethod
    def load_for_caller(caller_id, pill_id):
        """
        Resolve a pill the caller may act on.

        Checks run in order: caller exists, pill exists, caller owns the pill
        or is linked to its owner. The pill row is locked for the rest of the
        transaction where the database supports it.
        """
        if get_user(caller_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)

        pill = Pill.query.filter_by(id=pill_id).with_for_update().first()
        if pill is None:
            return Err(ErrorKind.NON_EXISTENT_PILL)

        if not assert_owner_or_linked_member(caller_id, pill.user_id).ok:
            return Err(ErrorKind.NO_PILL_USER)

        return Ok(pill)

    @staticmethod
    def modify_pill(caller_id, pill_id, name, rule, start, end=None, effective=None):
        """
        Replace a pill's name, date range and rule.

        The change is forward-only: rule versions effective before `effective`
        (default today) are kept with their own start and end, so earlier
        dates expand exactly as before. The new start and end only bound the
        new version. Persisted check state is never rewritten.
        """
        invalid = PillManager.validate(name, rule, start, end)
        if invalid:
            return invalid

        loaded = PillManager.load_for_caller(caller_id, pill_id)
        if not loaded.ok:
            return loaded
        pill = loaded.value

        effective = effective or tz_today()
        kept = [version for version in pill.rules if version.effective_from < effective]
        for version in list(pill.rules):
            if version not in kept:
                pill.rules.remove(version)

        if kept:
            effective_from = effective
            pill.start_date = min(pill.start_date, start)
        else:
            effective_from = start
            pill.start_date = start

        pill.name = name
        pill.end_date = end
        pill.rules.append(PillRule(
            effective_from=effective_from,
            starts_on=max(start, effective_from),
            ends_on=end,
            **rule_columns(rule)
        ))
        db.session.commit()

        logger.info('Pill %s modified by user %s, effective %s', pill.id, caller_id, effective_from)
        return Ok(pill)

    @staticmethod
    def stop_pill(caller_id, pill_id, stop_date=None):
        """Stop a pill from stop_date (default today) onwards, keeping history"""
        loaded = PillManager.load_for_caller(caller_id, pill_id)
        if not loaded.ok:
            return loaded
        pill = loaded.value

        if pill.is_stop:
            db.session.rollback()
            return Err(ErrorKind.ALREADY_STOP_PILL)

        pill.is_stop = True
        pill.stop_date = stop_date or tz_today()
        db.session.commit()

        logger.info('Pill %s stopped by user %s from %s', pill.id, caller_id, pill.stop_date)
        return Ok(pill)

    @staticmethod
    def delete_pill(caller_id, pill_id):
        """Permanently remove a pill with its rules and check state"""
        loaded = PillManager.load_for_caller(caller_id, pill_id)
        if not loaded.ok:
            return loaded
        pill = loaded.value

        db.session.delete(pill)
        db.session.commit()

        logger.info('Pill %s deleted by user %s', pill_id, caller_id)
        return Ok({'pillId': pill_id})

    @staticmethod
    def get_pill_count(user_id):
        """How many pills the user has active and how many more may be added"""
        if get_user(user_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)

        used = Pill.query.filter_by(user_id=user_id, is_stop=False).count()
        remaining = max(0, _config('PILL_LIMIT', DEFAULT_PILL_LIMIT) - used)
        return Ok({'used': used, 'remaining': remaining})

    @staticmethod
    def get_member_pill_count(caller_id, member_id):
        if get_user(caller_id) is None or get_user(member_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)
        if not assert_owner_or_linked_member(caller_id, member_id).ok:
            return Err(ErrorKind.NO_MEMBER)
        return PillManager.get_pill_count(member_id)

    @staticmethod
    def list_pills(user_id):
        if get_user(user_id) is None:
            return Err(ErrorKind.NON_EXISTENT_USER)
        return Ok(PillManager.active_pills(user_id))

"""
API Routes for pills, schedules and members
"""
import logging
from functools import wraps

from flask import Blueprint, request, session
from werkzeug.exceptions import HTTPException

from pillbox.models import db
from pillbox.models.user import User
from pillbox.services import access
from pillbox.services.alerts import report_error
from pillbox.services.pill_manager import PillManager
from pillbox.services.recurrence import parse_rule
from pillbox.services.result import ErrorKind, Err, Ok
from pillbox.services.schedule_service import ScheduleService
from pillbox.utils.response import success, fail
from pillbox.utils.timezone import parse_date, parse_month

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def login_required_api(f):
    """Decorator for API routes requiring authentication, passes caller_id to the view"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return fail(ErrorKind.NO_AUTHENTICATED)
        return f(*args, caller_id=session['user_id'], **kwargs)
    return decorated_function


@api_bp.errorhandler(Exception)
def handle_unexpected_error(error):
    """Last-resort handler: roll back, log, alert, and answer with a generic 500"""
    if isinstance(error, HTTPException):
        return error
    db.session.rollback()
    logger.exception('[ERROR] [%s] %s', request.method, request.path)
    report_error(request.method, request.full_path, session.get('user_id'), error)
    return fail(ErrorKind.INTERNAL_SERVER_ERROR)


def parse_pill_payload(data):
    """Pull (name, rule, start, end) out of a pill request body"""
    if not data.get('pillName') or not data.get('start') or not data.get('time'):
        return Err(ErrorKind.NULL_VALUE)

    rule = parse_rule(data)
    if not rule.ok:
        return rule

    start = parse_date(data.get('start'))
    end = parse_date(data.get('end')) if data.get('end') else None
    if start is None or (data.get('end') and end is None):
        return Err(ErrorKind.INVALID_VALUE)

    return Ok((data.get('pillName'), rule.value, start, end))


def query_date(parser=parse_date):
    """Read the `date` query parameter"""
    value = request.args.get('date')
    if not value:
        return Err(ErrorKind.NULL_VALUE)
    day = parser(value)
    if day is None:
        return Err(ErrorKind.INVALID_VALUE)
    return Ok(day)


# ==================== AUTH ====================

@api_bp.route('/auth/login', methods=['POST'])
def login():
    """Find or create the user behind a social login and open a session"""
    data = request.get_json(silent=True) or {}

    social_id = data.get('socialId')
    username = (data.get('username') or '').strip()

    if not social_id or not username:
        return fail(ErrorKind.NULL_VALUE)

    user = User.query.filter_by(social_id=str(social_id)).first()
    created = user is None
    if created:
        user = User(username=username, email=data.get('email'), social_id=str(social_id))
        db.session.add(user)
        db.session.commit()
        logger.info('User %s created from social login', user.id)

    session['user_id'] = user.id
    session['username'] = user.username

    return success('SIGNUP_SUCCESS' if created else 'LOGIN_SUCCESS', user.to_dict(), 201 if created else 200)


# ==================== MEMBERS ====================

@api_bp.route('/member', methods=['GET'])
@login_required_api
def get_members(caller_id):
    result = access.list_members(caller_id)
    if not result.ok:
        return fail(result.kind)
    return success('READ_MEMBERS', [link.to_dict() for link in result.value])


@api_bp.route('/member/search', methods=['GET'])
@login_required_api
def search_members(caller_id):
    username = request.args.get('username')
    if not username:
        return fail(ErrorKind.NULL_VALUE)
    return success('SEARCH_MEMBER', access.search_users(username))


@api_bp.route('/member/<int:member_id>', methods=['POST'])
@login_required_api
def add_member(member_id, caller_id):
    result = access.link_member(caller_id, member_id)
    if not result.ok:
        return fail(result.kind)
    return success('ADD_MEMBER', result.value.to_dict(), 201)


# ==================== PILLS ====================

@api_bp.route('/pill', methods=['POST'])
@login_required_api
def add_pill(caller_id):
    """Add a pill for the logged-in user"""
    payload = parse_pill_payload(request.get_json(silent=True) or {})
    if not payload.ok:
        return fail(payload.kind)
    name, rule, start, end = payload.value

    result = PillManager.add_pill(caller_id, name, rule, start, end)
    if not result.ok:
        return fail(result.kind)
    return success('ADD_PILL_SUCCESS', result.value.to_dict())


@api_bp.route('/pill/<int:member_id>', methods=['POST'])
@login_required_api
def add_member_pill(member_id, caller_id):
    """Add a pill to a linked member's schedule"""
    payload = parse_pill_payload(request.get_json(silent=True) or {})
    if not payload.ok:
        return fail(payload.kind)
    name, rule, start, end = payload.value

    result = PillManager.add_member_pill(caller_id, member_id, name, rule, start, end)
    if not result.ok:
        return fail(result.kind)
    return success('ADD_MEMBER_PILL_SUCCESS', result.value.to_dict())


@api_bp.route('/pill', methods=['GET'])
@login_required_api
def get_pills(caller_id):
    result = PillManager.list_pills(caller_id)
    if not result.ok:
        return fail(result.kind)
    pills = [{'id': pill.id, 'pillName': pill.name, 'color': pill.color} for pill in result.value]
    return success('READ_PILL_LIST', pills)


@api_bp.route('/pill/count', methods=['GET'])
@login_required_api
def get_pill_count(caller_id):
    result = PillManager.get_pill_count(caller_id)
    if not result.ok:
        return fail(result.kind)
    return success('READ_PILL_COUNT', result.value)


@api_bp.route('/pill/<int:member_id>/count', methods=['GET'])
@login_required_api
def get_member_pill_count(member_id, caller_id):
    result = PillManager.get_member_pill_count(caller_id, member_id)
    if not result.ok:
        return fail(result.kind)
    return success('READ_PILL_COUNT', result.value)


@api_bp.route('/pill/<int:pill_id>', methods=['PUT'])
@login_required_api
def modify_pill(pill_id, caller_id):
    """Replace a pill's schedule from an effective date onwards"""
    data = request.get_json(silent=True) or {}
    payload = parse_pill_payload(data)
    if not payload.ok:
        return fail(payload.kind)
    name, rule, start, end = payload.value

    effective = None
    if data.get('date'):
        effective = parse_date(data.get('date'))
        if effective is None:
            return fail(ErrorKind.INVALID_VALUE)

    result = PillManager.modify_pill(caller_id, pill_id, name, rule, start, end, effective)
    if not result.ok:
        return fail(result.kind)
    return success('UPDATE_PILL_SUCCESS', result.value.to_dict())


@api_bp.route('/pill/<int:pill_id>', methods=['DELETE'])
@login_required_api
def delete_pill(pill_id, caller_id):
    result = PillManager.delete_pill(caller_id, pill_id)
    if not result.ok:
        return fail(result.kind)
    return success('DELETE_PILL_SUCCESS', result.value)


@api_bp.route('/pill/stop/<int:pill_id>', methods=['PUT'])
@login_required_api
def stop_pill(pill_id, caller_id):
    """Stop a pill from the given date (default today)"""
    data = request.get_json(silent=True) or {}

    stop_date = None
    if data.get('date'):
        stop_date = parse_date(data.get('date'))
        if stop_date is None:
            return fail(ErrorKind.INVALID_VALUE)

    result = PillManager.stop_pill(caller_id, pill_id, stop_date)
    if not result.ok:
        return fail(result.kind)
    return success('STOP_PILL_SUCCESS', result.value.to_dict())


# ==================== SCHEDULES ====================

@api_bp.route('/schedule', methods=['GET'])
@login_required_api
def get_my_calendar(caller_id):
    """Month calendar of the logged-in user: does each date have a schedule"""
    day = query_date(parse_month)
    if not day.ok:
        return fail(day.kind)

    result = ScheduleService.get_month_view(caller_id, day.value)
    if not result.ok:
        return fail(result.kind)
    return success('READ_MY_CALENDAR', result.value)


@api_bp.route('/schedule/detail', methods=['GET'])
@login_required_api
def get_my_schedule(caller_id):
    """Checklist of the logged-in user's schedule on one date"""
    day = query_date()
    if not day.ok:
        return fail(day.kind)

    result = ScheduleService.get_day_view(caller_id, day.value)
    if not result.ok:
        return fail(result.kind)
    return success('READ_MY_SCHEDULE', result.value)


@api_bp.route('/schedule/<int:member_id>', methods=['GET'])
@login_required_api
def get_member_calendar(member_id, caller_id):
    day = query_date(parse_month)
    if not day.ok:
        return fail(day.kind)

    result = ScheduleService.get_member_month_view(caller_id, member_id, day.value)
    if not result.ok:
        return fail(result.kind)
    return success('READ_MEMBER_CALENDAR', result.value)


@api_bp.route('/schedule/<int:member_id>/detail', methods=['GET'])
@login_required_api
def get_member_schedule(member_id, caller_id):
    day = query_date()
    if not day.ok:
        return fail(day.kind)

    result = ScheduleService.get_member_day_view(caller_id, member_id, day.value)
    if not result.ok:
        return fail(result.kind)
    return success('READ_MEMBER_SCHEDULE', result.value)


def _toggle_by_key(caller_id, toggle):
    data = request.get_json(silent=True) or {}

    pill_id = data.get('pillId')
    if not pill_id or not data.get('date') or not data.get('time'):
        return fail(ErrorKind.NULL_VALUE)

    day = parse_date(data.get('date'))
    if day is None or isinstance(pill_id, bool) or not isinstance(pill_id, int):
        return fail(ErrorKind.INVALID_VALUE)

    result = toggle(caller_id, pill_id, day, data.get('time'))
    if not result.ok:
        return fail(result.kind)
    return success('UPDATE_SCHEDULE_CHECK', result.value.to_dict())


@api_bp.route('/schedule/check', methods=['POST'])
@login_required_api
def check_schedule(caller_id):
    """Mark a (pill, date, time) instance as taken"""
    return _toggle_by_key(caller_id, ScheduleService.check)


@api_bp.route('/schedule/uncheck', methods=['POST'])
@login_required_api
def uncheck_schedule(caller_id):
    return _toggle_by_key(caller_id, ScheduleService.uncheck)


@api_bp.route('/schedule/<int:schedule_id>/check', methods=['PUT'])
@login_required_api
def check_schedule_by_id(schedule_id, caller_id):
    result = ScheduleService.check_by_id(caller_id, schedule_id)
    if not result.ok:
        return fail(result.kind)
    return success('UPDATE_SCHEDULE_CHECK', result.value.to_dict())


@api_bp.route('/schedule/<int:schedule_id>/uncheck', methods=['PUT'])
@login_required_api
def uncheck_schedule_by_id(schedule_id, caller_id):
    result = ScheduleService.uncheck_by_id(caller_id, schedule_id)
    if not result.ok:
        return fail(result.kind)
    return success('UPDATE_SCHEDULE_CHECK', result.value.to_dict())

"""
Authorization gate and member (caregiver) links
"""
import logging

from pillbox.models import db
from pillbox.models.user import User, Member
from pillbox.services.result import ErrorKind, Err, Ok

logger = logging.getLogger(__name__)


def get_user(user_id):
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def is_linked(caller_id, target_id):
    """Whether caller has registered target as one of their members"""
    return db.session.query(
        Member.query.filter_by(user_id=caller_id, member_id=target_id).exists()
    ).scalar()


def assert_owner_or_linked_member(caller_id, target_owner_id):
    """Allow self-access or access through a member link, reject everyone else"""
    if caller_id == target_owner_id:
        return Ok()
    if is_linked(caller_id, target_owner_id):
        return Ok()
    logger.info('User %s denied access to user %s', caller_id, target_owner_id)
    return Err(ErrorKind.NO_MEMBER)


def link_member(caller_id, member_id):
    """Register member_id as a member the caller may manage"""
    if get_user(caller_id) is None or get_user(member_id) is None:
        return Err(ErrorKind.NON_EXISTENT_USER)
    if caller_id == member_id:
        return Err(ErrorKind.INVALID_VALUE)
    if is_linked(caller_id, member_id):
        return Err(ErrorKind.ALREADY_MEMBER)

    link = Member(user_id=caller_id, member_id=member_id)
    db.session.add(link)
    db.session.commit()

    logger.info('User %s linked member %s', caller_id, member_id)
    return Ok(link)


def list_members(user_id):
    if get_user(user_id) is None:
        return Err(ErrorKind.NON_EXISTENT_USER)
    links = Member.query.filter_by(user_id=user_id).order_by(Member.id).all()
    return Ok(links)


def search_users(username):
    """Users with exactly this username, as member candidates"""
    users = User.query.filter_by(username=username).order_by(User.id).all()
    return [{'memberId': user.id, 'memberName': user.username} for user in users]

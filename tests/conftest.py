from datetime import date
from types import SimpleNamespace

import pytest

from pillbox import create_app
from pillbox.config import TestConfig
from pillbox.models import db as _db
from pillbox.models.user import User, Member
from pillbox.services.pill_manager import PillManager
from pillbox.services.recurrence import rule_columns


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(db):
    def _make_user(username='tester', user_id=None):
        user = User(id=user_id, username=username, social_id=f'social-{username}-{user_id}')
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def link(db):
    def _link(caller, member):
        db.session.add(Member(user_id=caller.id, member_id=member.id))
        db.session.commit()
    return _link


@pytest.fixture
def add_pill(app):
    def _add_pill(owner, rule, start=date(2024, 1, 1), end=None, name='Vitamin'):
        result = PillManager.add_pill(owner.id, name, rule, start, end)
        assert result.ok, result
        return result.value
    return _add_pill


@pytest.fixture
def login(client):
    def _login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
    return _login


@pytest.fixture
def fake_pill():
    """Build detached pill-shaped objects for expanding rules without a database"""
    def _fake_pill(rule, start, end=None, is_stop=False, stop_date=None):
        row = SimpleNamespace(id=1, effective_from=start, starts_on=start, ends_on=end,
                              cycle=None, take_interval=None, days=None, specific=None, times='')
        for key, value in rule_columns(rule).items():
            setattr(row, key, value)
        return SimpleNamespace(start_date=start, end_date=end, is_stop=is_stop,
                               stop_date=stop_date, rules=[row])
    return _fake_pill

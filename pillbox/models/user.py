from pillbox.models import db
from pillbox.utils.timezone import now as tz_now


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), nullable=False, index=True)
    email = db.Column(db.String(120), nullable=True)
    social_id = db.Column(db.String(120), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=tz_now)
    updated_at = db.Column(db.DateTime, default=tz_now, onupdate=tz_now)

    # Relationships
    pills = db.relationship('Pill', backref='user', lazy=True)
    member_links = db.relationship(
        'Member', foreign_keys='Member.user_id', backref='user', lazy=True,
        cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<User {self.username}>'

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class Member(db.Model):
    """A caregiver link: user_id may read and write member_id's schedules"""
    __tablename__ = 'members'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'member_id', name='uq_members_user_member'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    member_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=tz_now)

    member = db.relationship('User', foreign_keys=[member_id])

    def __repr__(self):
        return f'<Member {self.user_id} -> {self.member_id}>'

    def to_dict(self):
        return {
            'memberId': self.member_id,
            'memberName': self.member.username if self.member else None
        }

from pillbox.models import db
from pillbox.utils.timezone import now as tz_now


class Pill(db.Model):
    __tablename__ = 'pills'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(10), nullable=False)
    color = db.Column(db.String(20), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)  # None means until stopped
    is_stop = db.Column(db.Boolean, default=False, nullable=False)
    stop_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=tz_now)
    updated_at = db.Column(db.DateTime, default=tz_now, onupdate=tz_now)

    # Relationships
    rules = db.relationship(
        'PillRule', backref='pill', lazy=True, cascade='all, delete-orphan',
        order_by='PillRule.effective_from'
    )
    schedules = db.relationship('Schedule', backref='pill', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Pill {self.name} - User {self.user_id}>'

    def to_dict(self):
        current = self.rules[-1] if self.rules else None
        return {
            'id': self.id,
            'userId': self.user_id,
            'pillName': self.name,
            'color': self.color,
            'start': self.start_date.isoformat() if self.start_date else None,
            'end': self.end_date.isoformat() if self.end_date else None,
            'isStop': self.is_stop,
            'stopDate': self.stop_date.isoformat() if self.stop_date else None,
            'rule': current.to_dict() if current else None
        }


class PillRule(db.Model):
    """
    One version of a pill's recurrence rule, applying from effective_from
    until the next version takes over. starts_on and ends_on bound the doses
    this version produces, so later edits never move earlier dates.
    """
    __tablename__ = 'pill_rules'

    id = db.Column(db.Integer, primary_key=True)
    pill_id = db.Column(db.Integer, db.ForeignKey('pills.id'), nullable=False, index=True)
    effective_from = db.Column(db.Date, nullable=False)
    starts_on = db.Column(db.Date, nullable=False)  # first date this version may produce doses
    ends_on = db.Column(db.Date, nullable=True)
    cycle = db.Column(db.String(20), nullable=False)  # interval, weekdays, specific
    take_interval = db.Column(db.Integer, nullable=True)
    days = db.Column(db.String(20), nullable=True)  # e.g. "0,2" (Monday=0)
    specific = db.Column(db.Text, nullable=True)  # e.g. "2024-01-01,2024-01-15"
    times = db.Column(db.String(200), nullable=False)  # e.g. "08:00,20:00"
    created_at = db.Column(db.DateTime, default=tz_now)

    def __repr__(self):
        return f'<PillRule {self.cycle} - Pill {self.pill_id} from {self.effective_from}>'

    def to_dict(self):
        return {
            'cycle': self.cycle,
            'takeInterval': self.take_interval,
            'day': [int(d) for d in self.days.split(',')] if self.days else [],
            'specific': self.specific.split(',') if self.specific else [],
            'time': self.times.split(',') if self.times else [],
            'effectiveFrom': self.effective_from.isoformat(),
            'startsOn': self.starts_on.isoformat(),
            'endsOn': self.ends_on.isoformat() if self.ends_on else None
        }

from pillbox.models import db
from pillbox.utils.timezone import now as tz_now


class Schedule(db.Model):
    """Persisted check state of one (pill, date, time) schedule instance"""
    __tablename__ = 'schedules'
    __table_args__ = (
        db.UniqueConstraint('pill_id', 'date', 'time', name='uq_schedules_instance'),
    )

    id = db.Column(db.Integer, primary_key=True)
    pill_id = db.Column(db.Integer, db.ForeignKey('pills.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(5), nullable=False)  # HH:MM
    is_check = db.Column(db.Boolean, default=False, nullable=False)
    checked_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=tz_now)

    def __repr__(self):
        return f'<Schedule {self.id} - Pill {self.pill_id} at {self.date} {self.time}>'

    def to_dict(self):
        return {
            'scheduleId': self.id,
            'pillId': self.pill_id,
            'date': self.date.isoformat() if self.date else None,
            'time': self.time,
            'isCheck': self.is_check,
            'checkedAt': self.checked_at.isoformat() if self.checked_at else None
        }

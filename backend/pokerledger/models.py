from pokerledger import db
from flask_login import UserMixin
from datetime import datetime, timezone
import secrets


def _utcnow():
    return datetime.now(timezone.utc)


def _aware(dt):
    # SQLite hands back naive datetimes
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class User(UserMixin, db.Model):
    """Lifetime profile of an authenticated player."""
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    subject = db.Column(db.String(255), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    # Aggregated over closed rooms
    total_profit = db.Column(db.Float, default=0.0, nullable=False)
    games_played = db.Column(db.Integer, default=0, nullable=False)
    wins = db.Column(db.Integer, default=0, nullable=False)
    best_session = db.Column(db.Float, nullable=True)
    worst_session = db.Column(db.Float, nullable=True)
    total_buy_ins_amount = db.Column(db.Float, default=0.0, nullable=False)
    total_rebuys_count = db.Column(db.Integer, default=0, nullable=False)
    current_streak = db.Column(db.Integer, default=0, nullable=False)
    last_played = db.Column(db.DateTime(timezone=True), nullable=True)

    sessions = db.relationship('AuthSession', backref='user', cascade='all, delete-orphan', lazy='dynamic')

    def to_dict(self):
        last_played = _aware(self.last_played)
        return {
            'id': self.id,
            'name': self.display_name,
            'email': self.email,
            'stats': {
                'totalProfit': self.total_profit or 0,
                'gamesPlayed': self.games_played or 0,
                'wins': self.wins or 0,
                'bestSession': self.best_session,
                'worstSession': self.worst_session,
                'totalBuyInsAmount': self.total_buy_ins_amount or 0,
                'totalRebuysCount': self.total_rebuys_count or 0,
                'currentStreak': self.current_streak or 0,
                'lastPlayed': last_played.isoformat() if last_played else None,
            },
        }


class AuthSession(db.Model):
    """Login session token with an absolute expiry, checked when used."""
    __tablename__ = 'auth_session'
    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(128), unique=True, nullable=False, index=True, default=lambda: secrets.token_urlsafe(32))
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def is_expired(self, now=None):
        return _aware(self.expires_at) <= (now or _utcnow())


class GlobalStats(db.Model):
    __tablename__ = 'global_stats'
    id = db.Column(db.Integer, primary_key=True)
    total_rooms_created = db.Column(db.Integer, default=0, nullable=False)

    @classmethod
    def singleton(cls):
        row = db.session.get(cls, 1)
        if row is None:
            row = cls(id=1, total_rooms_created=0)
            db.session.add(row)
        return row

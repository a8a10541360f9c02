from lifeflow import db, login_manager
from lifeflow.utils.timezone import utcnow, isoformat
from flask_login import UserMixin

BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(60), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    profile = db.relationship('Profile', backref='user', uselist=False, cascade='all, delete-orphan')
    device_tokens = db.relationship('DeviceToken', backref='user', lazy=True, cascade='all, delete-orphan')
    blood_requests = db.relationship('BloodRequest', backref='requester', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f"User('{self.email}')"


class Profile(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), unique=True, nullable=False)
    full_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20), nullable=False)
    district = db.Column(db.String(50), nullable=False)
    state = db.Column(db.String(50), nullable=False)
    blood_group = db.Column(db.String(3), nullable=False)
    is_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (db.Index('idx_profile_district_blood', 'district', 'blood_group'),)

    def to_dict(self, include_phone=True):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'full_name': self.full_name,
            'phone': self.phone if include_phone else None,
            'district': self.district,
            'state': self.state,
            'blood_group': self.blood_group,
            'is_confirmed': self.is_confirmed,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"Profile('{self.full_name}', '{self.district}', '{self.blood_group}')"


class DeviceToken(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    token = db.Column(db.Text, unique=True, nullable=False)
    platform = db.Column(db.String(20), nullable=False, default='android')
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'token': self.token,
            'platform': self.platform,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f"DeviceToken('{self.user_id}', '{self.platform}')"

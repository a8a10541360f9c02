from lifeflow import db
from lifeflow.utils.timezone import utcnow, isoformat, format_time_remaining

REQUEST_STATUSES = ['open', 'claimed', 'fulfilled', 'expired', 'cancelled']

# Owner-driven transitions. open -> expired belongs to the maintenance sweep.
REQUEST_TRANSITIONS = {
    'open': {'claimed', 'cancelled'},
    'claimed': {'fulfilled'},
}

CONTACT_STATUSES = ['pending', 'approved', 'declined', 'expired']
CONTACT_INITIATORS = ['donor', 'requester']


class BloodRequest(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    requester_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    blood_group = db.Column(db.String(3), nullable=False)
    requester_name = db.Column(db.String(100), nullable=False)
    requester_phone = db.Column(db.String(20), nullable=False)
    district = db.Column(db.String(50), nullable=False)
    state = db.Column(db.String(50), nullable=False)
    location_description = db.Column(db.Text, nullable=True)
    message = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='open')  # open, claimed, fulfilled, expired, cancelled
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Deleting a request removes everything negotiated against it
    claims = db.relationship('Claim', backref='blood_request', lazy=True, cascade='all, delete-orphan')
    contact_requests = db.relationship('ContactRequest', backref='blood_request', lazy=True,
                                       cascade='all, delete-orphan')

    __table_args__ = (
        db.Index('idx_blood_request_district_blood', 'district', 'blood_group'),
        db.Index('idx_blood_request_expires_at', 'expires_at'),
    )

    def __repr__(self):
        return f"BloodRequest('{self.blood_group}', '{self.district}', '{self.status}')"

    def is_expired(self, now=None):
        return self.expires_at <= (now or utcnow())

    def can_transition_to(self, status):
        return status in REQUEST_TRANSITIONS.get(self.status, set())

    def mark_claimed(self):
        self.status = 'claimed'

    def mark_fulfilled(self):
        self.status = 'fulfilled'

    def mark_cancelled(self):
        self.status = 'cancelled'

    def mark_expired(self):
        self.status = 'expired'

    def to_dict(self, include_phone=True, now=None):
        return {
            'id': self.id,
            'requester_id': self.requester_id,
            'blood_group': self.blood_group,
            'requester_name': self.requester_name,
            'requester_phone': self.requester_phone if include_phone else None,
            'district': self.district,
            'state': self.state,
            'location_description': self.location_description,
            'message': self.message,
            'status': self.status,
            'expires_at': isoformat(self.expires_at),
            'time_remaining': format_time_remaining(self.expires_at, now),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class Claim(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey('blood_request.id', ondelete='CASCADE'), nullable=False)
    donor_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    claimed_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    donor = db.relationship('User', backref=db.backref('claims', lazy=True, cascade='all, delete-orphan'))

    __table_args__ = (db.UniqueConstraint('request_id', 'donor_id', name='unique_claim_request_donor'),)

    def to_dict(self):
        return {
            'id': self.id,
            'request_id': self.request_id,
            'donor_id': self.donor_id,
            'claimed_at': isoformat(self.claimed_at),
        }

    def __repr__(self):
        return f"Claim('{self.request_id}', '{self.donor_id}')"


class ContactRequest(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey('blood_request.id', ondelete='CASCADE'), nullable=False)
    donor_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    requester_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    initiator = db.Column(db.String(10), nullable=False, default='donor')  # donor, requester
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, approved, declined, expired
    message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    donor = db.relationship('User', foreign_keys=[donor_id],
                            backref=db.backref('donor_contact_requests', lazy=True, cascade='all, delete-orphan'))
    requester = db.relationship('User', foreign_keys=[requester_id])

    __table_args__ = (
        db.Index('uq_contact_request_pending', 'request_id', 'donor_id', unique=True,
                 sqlite_where=db.text("status = 'pending'"),
                 postgresql_where=db.text("status = 'pending'")),
        db.Index('idx_contact_request_requester', 'requester_id'),
    )

    def __repr__(self):
        return f"ContactRequest('{self.request_id}', '{self.donor_id}', '{self.status}')"

    @property
    def addressed_user_id(self):
        """The party allowed to answer: the requester for donor offers, the donor for invitations"""
        return self.requester_id if self.initiator == 'donor' else self.donor_id

    @property
    def initiator_user_id(self):
        return self.donor_id if self.initiator == 'donor' else self.requester_id

    def is_stale(self, now=None):
        return self.status == 'pending' and self.expires_at <= (now or utcnow())

    def effective_status(self, now=None):
        return 'expired' if self.is_stale(now) else self.status

    def mark_approved(self):
        self.status = 'approved'

    def mark_declined(self):
        self.status = 'declined'

    def mark_expired(self):
        self.status = 'expired'

    def to_dict(self, now=None):
        return {
            'id': self.id,
            'request_id': self.request_id,
            'donor_id': self.donor_id,
            'requester_id': self.requester_id,
            'initiator': self.initiator,
            'status': self.effective_status(now),
            'message': self.message,
            'created_at': isoformat(self.created_at),
            'expires_at': isoformat(self.expires_at),
        }

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from lifeflow import db
from lifeflow.models.user import Profile
from lifeflow.models.request import ContactRequest
from lifeflow.utils.errors import PermissionDenied, Conflict, NotFound
from lifeflow.utils.requests import is_matched_donor
from lifeflow.utils.timezone import utcnow, hours_from_now
from lifeflow.utils import visibility


def _ensure_no_open_negotiation(blood_request, donor_id, now):
    existing = ContactRequest.query.filter(
        ContactRequest.request_id == blood_request.id,
        ContactRequest.donor_id == donor_id,
        ContactRequest.status.in_(['pending', 'approved'])
    ).all()
    for contact_request in existing:
        if contact_request.is_stale(now):
            contact_request.mark_expired()
        else:
            raise Conflict('A contact request for this donor is already in progress')


def _open_negotiation(blood_request, donor_id, initiator, message):
    now = utcnow()
    _ensure_no_open_negotiation(blood_request, donor_id, now)

    contact_request = ContactRequest(
        request_id=blood_request.id,
        donor_id=donor_id,
        requester_id=blood_request.requester_id,
        initiator=initiator,
        status='pending',
        message=message,
        expires_at=hours_from_now(current_app.config['CONTACT_REQUEST_TTL_HOURS'], now)
    )
    db.session.add(contact_request)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict('A contact request for this donor is already in progress')

    current_app.logger.info(
        f"Contact request {contact_request.id} opened by {initiator} on blood request {blood_request.id}"
    )
    return contact_request


def offer_help(donor, blood_request, message):
    """
    Donor-initiated flow: a donor who can see the request asks the
    requester to share their phone number.
    """
    if blood_request.requester_id == donor.id:
        raise Conflict('You cannot offer help on your own request')

    donor_profile = Profile.query.filter_by(user_id=donor.id).first()
    if not visibility.request_access(donor.id, donor_profile, blood_request).can_read:
        raise NotFound('Blood request not found')

    return _open_negotiation(blood_request, donor.id, 'donor', message)


def invite_donor(requester, blood_request, donor_user_id, message):
    """
    Requester-initiated flow: the owner of a request asks a matched donor
    to share contact details.
    """
    if blood_request.requester_id != requester.id:
        raise PermissionDenied('Only the requester can invite donors to this request')
    if blood_request.status != 'open' or blood_request.is_expired():
        raise Conflict('This request is no longer open')

    donor_profile = Profile.query.filter_by(user_id=donor_user_id).first()
    if not is_matched_donor(blood_request, donor_profile):
        raise NotFound('Donor not found for this request')

    return _open_negotiation(blood_request, donor_user_id, 'requester', message)


def respond_to_contact_request(user, contact_request, approve):
    """
    Approve or decline a pending contact request. Only the addressed party
    may answer; a request left pending past its expiry is closed as expired.
    """
    if contact_request.addressed_user_id != user.id:
        raise PermissionDenied('Only the addressed party can respond to this contact request')

    if contact_request.is_stale():
        contact_request.mark_expired()
        db.session.commit()
        raise Conflict('This contact request has expired')

    if contact_request.status != 'pending':
        raise Conflict(f"This contact request is already {contact_request.status}")

    if approve:
        contact_request.mark_approved()
    else:
        contact_request.mark_declined()
    db.session.commit()

    current_app.logger.info(f"Contact request {contact_request.id} {contact_request.status} by user {user.id}")
    return contact_request


def get_contact_request(user, contact_request_id):
    contact_request = db.session.get(ContactRequest, contact_request_id)
    if contact_request is None or user.id not in (contact_request.donor_id, contact_request.requester_id):
        raise NotFound('Contact request not found')
    return contact_request


def list_contact_requests(user, box='incoming'):
    """
    Contact requests addressed to the user (incoming) or started by the
    user (outgoing), newest first
    """
    donor_side = (ContactRequest.donor_id == user.id)
    requester_side = (ContactRequest.requester_id == user.id)
    if box == 'incoming':
        condition = or_(
            donor_side & (ContactRequest.initiator == 'requester'),
            requester_side & (ContactRequest.initiator == 'donor')
        )
    else:
        condition = or_(
            donor_side & (ContactRequest.initiator == 'donor'),
            requester_side & (ContactRequest.initiator == 'requester')
        )
    return ContactRequest.query.filter(condition).order_by(
        ContactRequest.created_at.desc(), ContactRequest.id.desc()
    ).all()


def expire_stale_contact_requests(now=None):
    now = now or utcnow()
    stale = ContactRequest.query.filter(
        ContactRequest.status == 'pending',
        ContactRequest.expires_at <= now
    ).all()
    for contact_request in stale:
        contact_request.mark_expired()
    db.session.commit()
    return len(stale)

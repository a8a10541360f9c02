from flask import current_app
from sqlalchemy.exc import IntegrityError
from lifeflow import db
from lifeflow.models.user import Profile
from lifeflow.models.request import BloodRequest, Claim
from lifeflow.utils.errors import LifeFlowError, PermissionDenied, Conflict, NotFound
from lifeflow.utils.notifications import dispatch_request_notifications
from lifeflow.utils.timezone import utcnow, hours_from_now
from lifeflow.utils import visibility


def _require_owner(user, blood_request):
    if blood_request.requester_id != user.id:
        raise PermissionDenied('Only the requester can manage this request')


def create_request(requester, data, sender=None):
    """
    Post a new blood request. Contact and location details default to the
    requester's profile. Notifying donors is best effort: a failed dispatch
    is logged and the request still stands.
    """
    profile = Profile.query.filter_by(user_id=requester.id).first()

    def field(name, profile_attr):
        value = data.get(name)
        if not value and profile is not None:
            value = getattr(profile, profile_attr)
        if not value:
            raise LifeFlowError(f"{name} is required")
        return value

    blood_request = BloodRequest(
        requester_id=requester.id,
        blood_group=data['blood_group'],
        requester_name=field('requester_name', 'full_name'),
        requester_phone=field('requester_phone', 'phone'),
        district=field('district', 'district'),
        state=field('state', 'state'),
        location_description=data.get('location_description'),
        message=data.get('message') or None,
        status='open',
        expires_at=hours_from_now(current_app.config['REQUEST_TTL_HOURS'])
    )
    db.session.add(blood_request)
    db.session.commit()
    current_app.logger.info(f"Blood request {blood_request.id} created by user {requester.id}")

    try:
        outcome = dispatch_request_notifications(blood_request.id, sender=sender)
        if not outcome.get('success'):
            current_app.logger.error(f"Failed to send notifications: {outcome.get('error')}")
    except Exception as e:
        current_app.logger.error(f"Notification service error: {str(e)}")

    return blood_request


def update_request_status(requester, blood_request, status):
    _require_owner(requester, blood_request)
    if blood_request.status == 'open' and blood_request.is_expired():
        raise Conflict('This request has expired')
    if not blood_request.can_transition_to(status):
        raise Conflict(f"Cannot change a {blood_request.status} request to {status}")

    if status == 'claimed':
        blood_request.mark_claimed()
    elif status == 'fulfilled':
        blood_request.mark_fulfilled()
    elif status == 'cancelled':
        blood_request.mark_cancelled()

    db.session.commit()
    current_app.logger.info(f"Blood request {blood_request.id} is now {status}")
    return blood_request


def expire_old_requests(now=None):
    """
    Flip open requests past their expiry to expired. Returns the number of
    requests updated.
    """
    now = now or utcnow()
    stale = BloodRequest.query.filter(
        BloodRequest.status == 'open',
        BloodRequest.expires_at <= now
    ).all()
    for blood_request in stale:
        blood_request.mark_expired()
    db.session.commit()
    return len(stale)


def delete_request(requester, blood_request):
    _require_owner(requester, blood_request)
    request_id = blood_request.id
    db.session.delete(blood_request)
    db.session.commit()
    current_app.logger.info(f"Blood request {request_id} deleted by user {requester.id}")


def list_my_requests(user):
    return BloodRequest.query.filter_by(requester_id=user.id).order_by(
        BloodRequest.created_at.desc(), BloodRequest.id.desc()
    ).all()


def get_visible_request(viewer, request_id):
    """
    The blood request row if the viewer may see it. Owners can always reach
    their own rows so they can manage closed requests too.
    """
    blood_request = db.session.get(BloodRequest, request_id)
    if blood_request is None:
        raise NotFound('Blood request not found')
    if blood_request.requester_id == viewer.id:
        return blood_request
    viewer_profile = Profile.query.filter_by(user_id=viewer.id).first()
    if not visibility.request_access(viewer.id, viewer_profile, blood_request).can_read:
        raise NotFound('Blood request not found')
    return blood_request


def get_owned_request(owner, request_id):
    blood_request = db.session.get(BloodRequest, request_id)
    if blood_request is None:
        raise NotFound('Blood request not found')
    _require_owner(owner, blood_request)
    return blood_request


def claim_request(donor, blood_request):
    """
    Record a donor's interest in a request. Claims do not reveal the
    requester's phone; that needs an approved contact request.
    """
    if blood_request.requester_id == donor.id:
        raise Conflict('You cannot claim your own request')
    if blood_request.status != 'open' or blood_request.is_expired():
        raise Conflict('This request is no longer open')

    claim = Claim(request_id=blood_request.id, donor_id=donor.id)
    db.session.add(claim)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict('You have already claimed this request')
    return claim


def list_claims(requester, blood_request):
    _require_owner(requester, blood_request)
    return Claim.query.filter_by(request_id=blood_request.id).order_by(Claim.claimed_at.desc()).all()


def is_matched_donor(blood_request, profile):
    return (profile is not None
            and profile.user_id != blood_request.requester_id
            and profile.district == blood_request.district
            and profile.blood_group == blood_request.blood_group)


def matched_donors(requester, blood_request):
    """
    Profiles of donors who match the request, for the requester to invite.
    Phones stay hidden unless the pair already has an approved contact.
    """
    _require_owner(requester, blood_request)
    # Matching follows the request's locality, which may differ from the requester's own district
    profiles = Profile.query.filter(
        Profile.district == blood_request.district,
        Profile.blood_group == blood_request.blood_group,
        Profile.user_id != requester.id
    ).order_by(Profile.full_name).all()

    counterparts = visibility.approved_counterpart_ids(requester.id)
    return [
        visibility.redact_profile(profile, visibility.AccessDecision(True, profile.user_id in counterparts))
        for profile in profiles
    ]

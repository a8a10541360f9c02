"""
Visibility policy for profiles and blood requests.

Every read of another user's data goes through this module. Row access is
decided by district and blood-group matching; phone numbers are only
released to the owner of the row or to a counterpart holding an approved
contact request. The decision functions take plain objects, so they can be
checked without a database; the query helpers apply the same rules in SQL
and redact the results.
"""
from collections import namedtuple

from sqlalchemy import and_, or_

from lifeflow import db
from lifeflow.models.user import Profile
from lifeflow.models.request import BloodRequest, ContactRequest
from lifeflow.utils.timezone import utcnow

AccessDecision = namedtuple('AccessDecision', ['can_read', 'can_read_phone'])

DENIED = AccessDecision(False, False)


def _matches_locality(viewer_profile, row):
    if viewer_profile is None:
        return False
    return (viewer_profile.district == row.district
            and viewer_profile.blood_group == row.blood_group)


def request_access(viewer_id, viewer_profile, blood_request, approved_donor_ids=(), now=None):
    """
    Decide what a viewer may read of a blood request.

    Args:
        viewer_id: ID of the user reading
        viewer_profile: The viewer's profile, or None if they have none
        blood_request: Any object with the request's columns
        approved_donor_ids: Donor IDs holding an approved contact request
                            for this blood request
        now: Reference time for expiry checks

    Returns:
        AccessDecision(can_read, can_read_phone)
    """
    now = now or utcnow()
    if blood_request.status != 'open' or blood_request.expires_at <= now:
        return DENIED

    is_owner = blood_request.requester_id == viewer_id
    if not is_owner and not _matches_locality(viewer_profile, blood_request):
        return DENIED

    return AccessDecision(True, is_owner or viewer_id in approved_donor_ids)


def profile_access(viewer_id, viewer_profile, profile, approved_counterpart_ids=()):
    """
    Decide what a viewer may read of a profile.

    Profiles are readable by their owner and by users in the same district.
    The phone number additionally needs an approved contact request between
    the two users, in either direction. An approved counterpart reads the
    full profile wherever they live.
    """
    if profile.user_id == viewer_id or profile.user_id in approved_counterpart_ids:
        return AccessDecision(True, True)
    if viewer_profile is None or viewer_profile.district != profile.district:
        return DENIED
    return AccessDecision(True, False)


def request_feed_clause(viewer_id, viewer_profile, now=None):
    """SQL form of request_access(...).can_read, for use in queries."""
    now = now or utcnow()
    own = BloodRequest.requester_id == viewer_id
    if viewer_profile is None:
        audience = own
    else:
        audience = or_(
            and_(BloodRequest.district == viewer_profile.district,
                 BloodRequest.blood_group == viewer_profile.blood_group,
                 BloodRequest.requester_id != viewer_id),
            own,
        )
    return and_(BloodRequest.status == 'open', BloodRequest.expires_at > now, audience)


def approved_donor_ids(request_ids):
    """Map request ID -> set of donor IDs with an approved contact request."""
    approved = {}
    if not request_ids:
        return approved
    rows = db.session.query(ContactRequest.request_id, ContactRequest.donor_id).filter(
        ContactRequest.request_id.in_(list(request_ids)),
        ContactRequest.status == 'approved'
    ).all()
    for request_id, donor_id in rows:
        approved.setdefault(request_id, set()).add(donor_id)
    return approved


def approved_counterpart_ids(user_id):
    """IDs of users sharing an approved contact request with user_id."""
    rows = db.session.query(ContactRequest.donor_id, ContactRequest.requester_id).filter(
        ContactRequest.status == 'approved',
        or_(ContactRequest.donor_id == user_id, ContactRequest.requester_id == user_id)
    ).all()
    counterparts = set()
    for donor_id, requester_id in rows:
        counterparts.add(requester_id if donor_id == user_id else donor_id)
    return counterparts


def redact_request(blood_request, decision, now=None):
    return blood_request.to_dict(include_phone=decision.can_read_phone, now=now)


def redact_profile(profile, decision):
    return profile.to_dict(include_phone=decision.can_read_phone)


def _viewer_profile(viewer):
    return Profile.query.filter_by(user_id=viewer.id).first()


def get_safe_requests(viewer, now=None):
    """
    Requests the viewer may see, newest first, with the requester's phone
    redacted unless the viewer owns the request or has been approved.
    """
    now = now or utcnow()
    viewer_profile = _viewer_profile(viewer)
    rows = BloodRequest.query.filter(
        request_feed_clause(viewer.id, viewer_profile, now)
    ).order_by(BloodRequest.created_at.desc(), BloodRequest.id.desc()).all()

    approvals = approved_donor_ids([r.id for r in rows])
    results = []
    for row in rows:
        decision = request_access(viewer.id, viewer_profile, row, approvals.get(row.id, set()), now)
        if decision.can_read:
            results.append(redact_request(row, decision, now))
    return results


def get_safe_request(viewer, request_id, now=None):
    """A single redacted request, or None if the viewer may not see it."""
    now = now or utcnow()
    row = db.session.get(BloodRequest, request_id)
    if row is None:
        return None
    decision = request_access(viewer.id, _viewer_profile(viewer), row,
                              approved_donor_ids([row.id]).get(row.id, set()), now)
    if not decision.can_read:
        return None
    return redact_request(row, decision, now)


def get_safe_profile_info(viewer, profile_user_id):
    """A single redacted profile, or None if the viewer may not see it."""
    profile = Profile.query.filter_by(user_id=profile_user_id).first()
    if profile is None:
        return None
    decision = profile_access(viewer.id, _viewer_profile(viewer), profile,
                              approved_counterpart_ids(viewer.id))
    if not decision.can_read:
        return None
    return redact_profile(profile, decision)

from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user
from lifeflow.forms.request_forms import BloodRequestForm, RequestStatusForm, ContactRequestForm
from lifeflow.utils import form_errors
from lifeflow.utils.errors import NotFound
from lifeflow.utils import requests as lifecycle
from lifeflow.utils import contacts as negotiation
from lifeflow.utils.visibility import get_safe_requests, get_safe_request

requests_bp = Blueprint('requests', __name__)


@requests_bp.route('', methods=['GET'])
@login_required
def feed():
    """Open requests in the caller's district for their blood group, plus their own"""
    return jsonify(get_safe_requests(current_user))


@requests_bp.route('/mine', methods=['GET'])
@login_required
def my_requests():
    return jsonify([r.to_dict() for r in lifecycle.list_my_requests(current_user)])


@requests_bp.route('', methods=['POST'])
@login_required
def create():
    form = BloodRequestForm()
    if not form.validate_on_submit():
        return form_errors(form)

    blood_request = lifecycle.create_request(current_user, form.data)
    return jsonify({
        'success': True,
        'message': 'Your request has been posted and donors will be notified. '
                   f"The request will be active for {current_app.config['REQUEST_TTL_HOURS']} hours.",
        'request': blood_request.to_dict()
    }), 201


@requests_bp.route('/<int:request_id>', methods=['GET'])
@login_required
def detail(request_id):
    safe_request = get_safe_request(current_user, request_id)
    if safe_request is None:
        raise NotFound('Blood request not found')
    return jsonify(safe_request)


@requests_bp.route('/<int:request_id>/status', methods=['PATCH'])
@login_required
def update_status(request_id):
    blood_request = lifecycle.get_owned_request(current_user, request_id)
    form = RequestStatusForm()
    if not form.validate_on_submit():
        return form_errors(form)

    lifecycle.update_request_status(current_user, blood_request, form.status.data)
    return jsonify({'success': True, 'request': blood_request.to_dict()})


@requests_bp.route('/<int:request_id>', methods=['DELETE'])
@login_required
def delete(request_id):
    blood_request = lifecycle.get_owned_request(current_user, request_id)
    lifecycle.delete_request(current_user, blood_request)
    return jsonify({'success': True, 'message': 'Request deleted'})


@requests_bp.route('/<int:request_id>/claim', methods=['POST'])
@login_required
def claim(request_id):
    blood_request = lifecycle.get_visible_request(current_user, request_id)
    new_claim = lifecycle.claim_request(current_user, blood_request)
    return jsonify({
        'success': True,
        'message': "You've successfully claimed this blood request.",
        'claim': new_claim.to_dict()
    }), 201


@requests_bp.route('/<int:request_id>/claims', methods=['GET'])
@login_required
def claims(request_id):
    blood_request = lifecycle.get_owned_request(current_user, request_id)
    return jsonify([c.to_dict() for c in lifecycle.list_claims(current_user, blood_request)])


@requests_bp.route('/<int:request_id>/donors', methods=['GET'])
@login_required
def donors(request_id):
    blood_request = lifecycle.get_owned_request(current_user, request_id)
    return jsonify(lifecycle.matched_donors(current_user, blood_request))


@requests_bp.route('/<int:request_id>/contact', methods=['POST'])
@login_required
def offer_help(request_id):
    blood_request = lifecycle.get_visible_request(current_user, request_id)
    form = ContactRequestForm()
    if not form.validate_on_submit():
        return form_errors(form)

    contact_request = negotiation.offer_help(current_user, blood_request, form.message.data)
    return jsonify({
        'success': True,
        'message': f"Your request has been sent to {blood_request.requester_name}. "
                   "You'll be notified when they approve.",
        'contact_request': contact_request.to_dict()
    }), 201


@requests_bp.route('/<int:request_id>/contact/<int:donor_id>', methods=['POST'])
@login_required
def invite_donor(request_id, donor_id):
    blood_request = lifecycle.get_owned_request(current_user, request_id)
    form = ContactRequestForm()
    if not form.validate_on_submit():
        return form_errors(form)

    contact_request = negotiation.invite_donor(current_user, blood_request, donor_id, form.message.data)
    return jsonify({
        'success': True,
        'message': 'Your request has been sent. The donor can choose to share their contact information.',
        'contact_request': contact_request.to_dict()
    }), 201

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from lifeflow.utils.errors import LifeFlowError
from lifeflow.utils import contacts as negotiation

contacts = Blueprint('contacts', __name__)


@contacts.route('', methods=['GET'])
@login_required
def list_contact_requests():
    box = request.args.get('box', 'incoming')
    if box not in ('incoming', 'outgoing'):
        raise LifeFlowError('box must be incoming or outgoing')
    return jsonify([c.to_dict() for c in negotiation.list_contact_requests(current_user, box)])


@contacts.route('/<int:contact_request_id>', methods=['GET'])
@login_required
def detail(contact_request_id):
    return jsonify(negotiation.get_contact_request(current_user, contact_request_id).to_dict())


@contacts.route('/<int:contact_request_id>/approve', methods=['POST'])
@login_required
def approve(contact_request_id):
    contact_request = negotiation.get_contact_request(current_user, contact_request_id)
    negotiation.respond_to_contact_request(current_user, contact_request, approve=True)
    return jsonify({
        'success': True,
        'message': 'Request approved. Contact information will be shared.',
        'contact_request': contact_request.to_dict()
    })


@contacts.route('/<int:contact_request_id>/decline', methods=['POST'])
@login_required
def decline(contact_request_id):
    contact_request = negotiation.get_contact_request(current_user, contact_request_id)
    negotiation.respond_to_contact_request(current_user, contact_request, approve=False)
    return jsonify({
        'success': True,
        'message': 'The request has been declined.',
        'contact_request': contact_request.to_dict()
    })

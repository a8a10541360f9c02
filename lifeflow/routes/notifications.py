from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from lifeflow.forms.request_forms import DeviceTokenForm
from lifeflow.utils import form_errors
from lifeflow.utils.errors import LifeFlowError
from lifeflow.utils.notifications import (
    dispatch_request_notifications, register_device_token, unregister_device_token, is_token_registered
)
from lifeflow.utils.requests import get_owned_request

notifications = Blueprint('notifications', __name__)


@notifications.route('/tokens', methods=['GET'])
@login_required
def check_token():
    token = request.args.get('token')
    if not token:
        return jsonify([t.to_dict() for t in current_user.device_tokens])
    return jsonify({'registered': is_token_registered(current_user, token)})


@notifications.route('/tokens', methods=['POST'])
@login_required
def register_token():
    form = DeviceTokenForm()
    if not form.validate_on_submit():
        return form_errors(form)

    device_token = register_device_token(current_user, form.token.data, form.platform.data or 'android')
    return jsonify({
        'success': True,
        'message': "You'll receive notifications for new blood requests in your area.",
        'device_token': device_token.to_dict()
    }), 201


@notifications.route('/tokens', methods=['DELETE'])
@login_required
def unregister_token():
    form = DeviceTokenForm()
    if not form.validate_on_submit():
        return form_errors(form)

    removed = unregister_device_token(current_user, form.token.data)
    return jsonify({'success': removed, 'message': "You won't receive notifications anymore." if removed
                    else 'Device token not found'}), 200 if removed else 404


@notifications.route('/dispatch', methods=['POST'])
@login_required
def dispatch():
    data = request.get_json(silent=True) or {}
    request_id = data.get('requestId')
    if not request_id:
        raise LifeFlowError('Request ID is required')
    try:
        request_id = int(request_id)
    except (TypeError, ValueError):
        raise LifeFlowError('Request ID must be an integer')

    get_owned_request(current_user, request_id)
    summary = dispatch_request_notifications(request_id)
    return jsonify(summary), 200 if summary['success'] else 500

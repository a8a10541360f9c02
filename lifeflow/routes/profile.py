from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from lifeflow import db
from lifeflow.forms.auth_forms import ProfileUpdateForm
from lifeflow.utils import form_errors
from lifeflow.utils.errors import NotFound
from lifeflow.utils.visibility import get_safe_profile_info

profile = Blueprint('profile', __name__)


@profile.route('', methods=['GET', 'PUT'])
@login_required
def own_profile():
    donor_profile = current_user.profile
    if donor_profile is None:
        raise NotFound('Profile not found')

    if request.method == 'GET':
        return jsonify(donor_profile.to_dict())

    form = ProfileUpdateForm()
    if not form.validate_on_submit():
        return form_errors(form)

    donor_profile.full_name = form.full_name.data
    donor_profile.phone = form.phone.data
    donor_profile.district = form.district.data
    donor_profile.state = form.state.data
    donor_profile.blood_group = form.blood_group.data
    db.session.commit()

    return jsonify({'success': True, 'message': 'Your profile has been updated!', 'profile': donor_profile.to_dict()})


@profile.route('/<int:user_id>')
@login_required
def safe_profile(user_id):
    info = get_safe_profile_info(current_user, user_id)
    if info is None:
        raise NotFound('Profile not found')
    return jsonify(info)

from flask import Blueprint, jsonify, current_app
from flask_login import login_user, current_user, logout_user, login_required
from lifeflow import db, bcrypt
from lifeflow.models.user import User, Profile
from lifeflow.forms.auth_forms import SignUpForm, SignInForm, ForgotPasswordForm, ResetPasswordForm
from lifeflow.utils import form_errors
from lifeflow.utils.email import (
    send_reset_email, send_confirmation_email, verify_reset_token, verify_confirmation_token
)

auth = Blueprint('auth', __name__)


@auth.route('/register', methods=['POST'])
def register():
    if current_user.is_authenticated:
        return jsonify({'success': False, 'message': 'Already signed in'}), 400

    form = SignUpForm()
    if not form.validate_on_submit():
        return form_errors(form)

    hashed_password = bcrypt.generate_password_hash(form.password.data).decode('utf-8')
    user = User(email=form.email.data.lower(), password=hashed_password)
    db.session.add(user)
    db.session.flush()  # Flush to get the user ID

    profile = Profile(
        user_id=user.id,
        full_name=form.full_name.data,
        phone=form.phone.data,
        district=form.district.data,
        state=form.state.data,
        blood_group=form.blood_group.data
    )
    db.session.add(profile)
    db.session.commit()

    try:
        send_confirmation_email(user)
    except Exception as e:
        current_app.logger.error(f"Failed to send confirmation email to user {user.id}: {str(e)}")

    return jsonify({
        'success': True,
        'message': 'Registration successful! Please check your email to verify your account.',
        'user': {'id': user.id, 'email': user.email},
        'profile': profile.to_dict()
    }), 201


@auth.route('/login', methods=['POST'])
def login():
    form = SignInForm()
    if not form.validate_on_submit():
        return form_errors(form)

    user = User.query.filter_by(email=form.email.data.lower()).first()
    if user and bcrypt.check_password_hash(user.password, form.password.data):
        login_user(user, remember=form.remember.data)
        return jsonify({'success': True, 'message': "You've successfully signed in.", 'user_id': user.id})

    return jsonify({'success': False, 'message': 'Login unsuccessful. Please check email and password.'}), 401


@auth.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'success': True})


@auth.route('/me')
@login_required
def me():
    profile = current_user.profile
    return jsonify({
        'id': current_user.id,
        'email': current_user.email,
        'profile': profile.to_dict() if profile else None
    })


@auth.route('/confirm/<token>')
def confirm_email(token):
    email = verify_confirmation_token(token)
    user = User.query.filter_by(email=email).first() if email else None
    if user is None or user.profile is None:
        return jsonify({'success': False, 'message': 'That is an invalid or expired token'}), 400

    user.profile.is_confirmed = True
    db.session.commit()
    return jsonify({'success': True, 'message': 'Your email has been confirmed.'})


@auth.route('/reset_password', methods=['POST'])
def reset_request():
    form = ForgotPasswordForm()
    if not form.validate_on_submit():
        return form_errors(form)

    user = User.query.filter_by(email=form.email.data.lower()).first()
    if user:
        try:
            send_reset_email(user)
        except Exception as e:
            current_app.logger.error(f"Failed to send reset email to user {user.id}: {str(e)}")

    # Same answer whether or not the account exists
    return jsonify({'success': True, 'message': 'An email has been sent with instructions to reset your password.'})


@auth.route('/reset_password/<token>', methods=['POST'])
def reset_token(token):
    email = verify_reset_token(token)
    user = User.query.filter_by(email=email).first() if email else None
    if user is None:
        return jsonify({'success': False, 'message': 'That is an invalid or expired token'}), 400

    form = ResetPasswordForm()
    if not form.validate_on_submit():
        return form_errors(form)

    user.password = bcrypt.generate_password_hash(form.password.data).decode('utf-8')
    db.session.commit()
    return jsonify({'success': True, 'message': 'Your password has been updated! You can now log in.'})

from flask import current_app, url_for
from flask_mail import Message
from lifeflow import mail
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

RESET_SALT_SUFFIX = 'password-reset'
CONFIRM_SALT_SUFFIX = 'email-confirm'


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'])


def _salt(suffix):
    return f"{current_app.config['SECURITY_PASSWORD_SALT']}-{suffix}"


def generate_token(email, suffix):
    return _serializer().dumps(email, salt=_salt(suffix))


def verify_token(token, suffix, expires_sec):
    """
    Returns the email the token was issued for, or None if the token is
    invalid or expired
    """
    try:
        return _serializer().loads(token, salt=_salt(suffix), max_age=expires_sec)
    except (BadSignature, SignatureExpired):
        return None


def generate_reset_token(email):
    return generate_token(email, RESET_SALT_SUFFIX)


def verify_reset_token(token, expires_sec=1800):
    return verify_token(token, RESET_SALT_SUFFIX, expires_sec)


def generate_confirmation_token(email):
    return generate_token(email, CONFIRM_SALT_SUFFIX)


def verify_confirmation_token(token, expires_sec=86400 * 3):
    return verify_token(token, CONFIRM_SALT_SUFFIX, expires_sec)


def send_reset_email(user):
    """
    Send password reset email to user
    """
    token = generate_reset_token(user.email)
    msg = Message('Password Reset Request',
                  recipients=[user.email])
    msg.body = f'''To reset your password, visit the following link:
{url_for('auth.reset_token', token=token, _external=True)}

If you did not make this request, simply ignore this email and no changes will be made.
'''
    mail.send(msg)


def send_confirmation_email(user):
    token = generate_confirmation_token(user.email)
    msg = Message('Confirm your LifeFlow account',
                  recipients=[user.email])
    msg.body = f'''Welcome to LifeFlow! Confirm your email address by visiting:
{url_for('auth.confirm_email', token=token, _external=True)}
'''
    mail.send(msg)

from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SelectField
from wtforms.validators import DataRequired, Length, Email, EqualTo, ValidationError, Regexp
from lifeflow.models.user import User, BLOOD_GROUPS

NAME_PATTERN = r'^[a-zA-Z\s]+$'
PHONE_PATTERN = r'^\+?[\d\s\-()]{10,15}$'


def as_text(value):
    # JSON bodies can carry numbers or lists where text is expected
    if value is None or isinstance(value, str):
        return value
    return str(value)


def strip_whitespace(value):
    value = as_text(value)
    return value.strip() if value is not None else value


class ProfileFieldsMixin:
    full_name = StringField('Full Name', filters=[strip_whitespace], validators=[
        DataRequired(),
        Length(min=2, max=100),
        Regexp(NAME_PATTERN, message='Name can only contain letters and spaces')
    ])
    phone = StringField('Phone Number', filters=[strip_whitespace], validators=[
        DataRequired(),
        Length(max=20, message='Phone number too long'),
        Regexp(PHONE_PATTERN, message='Invalid phone number format')
    ])
    district = StringField('District', filters=[strip_whitespace], validators=[DataRequired(), Length(min=2, max=50)])
    state = StringField('State', filters=[strip_whitespace], validators=[DataRequired(), Length(min=2, max=50)])
    blood_group = SelectField('Blood Group', choices=[(bg, bg) for bg in BLOOD_GROUPS], validators=[DataRequired()])


class SignUpForm(ProfileFieldsMixin, FlaskForm):
    email = StringField('Email', filters=[strip_whitespace], validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField('Password', filters=[as_text], validators=[DataRequired(), Length(min=8, max=128)])

    def validate_email(self, email):
        user = User.query.filter_by(email=email.data.lower()).first()
        if user:
            raise ValidationError('That email is already registered. Please choose a different one or login.')


class SignInForm(FlaskForm):
    email = StringField('Email', filters=[strip_whitespace], validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField('Password', filters=[as_text], validators=[DataRequired(), Length(max=128)])
    remember = BooleanField('Remember Me')


class ForgotPasswordForm(FlaskForm):
    email = StringField('Email', filters=[strip_whitespace], validators=[DataRequired(), Email(), Length(max=255)])


class ResetPasswordForm(FlaskForm):
    password = PasswordField('New Password', filters=[as_text], validators=[DataRequired(), Length(min=8, max=128)])
    confirm_password = PasswordField('Confirm Password', filters=[as_text], validators=[DataRequired(), EqualTo('password')])


class ProfileUpdateForm(ProfileFieldsMixin, FlaskForm):
    pass

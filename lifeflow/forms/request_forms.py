from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional, Regexp, AnyOf
from lifeflow.forms.auth_forms import strip_whitespace, NAME_PATTERN, PHONE_PATTERN
from lifeflow.models.user import BLOOD_GROUPS


class BloodRequestForm(FlaskForm):
    blood_group = SelectField('Blood Group Needed', choices=[(bg, bg) for bg in BLOOD_GROUPS],
                              validators=[DataRequired()])
    location_description = TextAreaField('Location', filters=[strip_whitespace], validators=[
        DataRequired(),
        Length(min=10, max=500, message='Location description must be between 10 and 500 characters')
    ])
    message = TextAreaField('Additional Message for Donors', filters=[strip_whitespace],
                            validators=[Optional(), Length(max=1000)])

    # Default to the requester's profile when left blank
    requester_name = StringField('Contact Name', filters=[strip_whitespace],
                                 validators=[Optional(), Length(min=2, max=100), Regexp(NAME_PATTERN)])
    requester_phone = StringField('Contact Phone', filters=[strip_whitespace],
                                  validators=[Optional(), Regexp(PHONE_PATTERN, message='Invalid phone number format')])
    district = StringField('District', filters=[strip_whitespace], validators=[Optional(), Length(min=2, max=50)])
    state = StringField('State', filters=[strip_whitespace], validators=[Optional(), Length(min=2, max=50)])


class RequestStatusForm(FlaskForm):
    status = StringField('Status', validators=[DataRequired(), AnyOf(['claimed', 'fulfilled', 'cancelled'])])


class ContactRequestForm(FlaskForm):
    message = TextAreaField('Message', filters=[strip_whitespace], validators=[
        DataRequired(),
        Length(min=10, max=500, message='Message must be between 10 and 500 characters')
    ])


class DeviceTokenForm(FlaskForm):
    token = StringField('Device Token', filters=[strip_whitespace], validators=[DataRequired(), Length(max=4096)])
    platform = StringField('Platform', filters=[strip_whitespace], default='android',
                           validators=[Optional(), AnyOf(['android', 'ios', 'web'])])

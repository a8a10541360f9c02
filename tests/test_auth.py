"""
Sign-up, sign-in, email confirmation and password reset.
"""
from lifeflow import mail
from lifeflow.utils.email import generate_reset_token, generate_confirmation_token

SIGN_UP = {
    'email': 'maya@example.com',
    'password': 'correct horse battery',
    'full_name': 'Maya Nair',
    'phone': '+91 98470 12345',
    'district': 'Thrissur',
    'state': 'Kerala',
    'blood_group': 'B-',
}


def sign_up(client, **overrides):
    return client.post('/auth/register', json=dict(SIGN_UP, **overrides))


def test_register_creates_user_and_profile(app):
    client = app.test_client()

    with mail.record_messages() as outbox:
        response = sign_up(client)

    assert response.status_code == 201
    body = response.get_json()
    assert body['user']['email'] == 'maya@example.com'
    assert body['profile']['district'] == 'Thrissur'
    assert body['profile']['blood_group'] == 'B-'
    assert body['profile']['is_confirmed'] is False

    assert len(outbox) == 1
    assert outbox[0].recipients == ['maya@example.com']
    assert '/auth/confirm/' in outbox[0].body


def test_registered_user_can_sign_in(app):
    client = app.test_client()
    sign_up(client)

    response = client.post('/auth/login', json={'email': 'Maya@Example.com', 'password': SIGN_UP['password']})
    assert response.status_code == 200

    me = client.get('/auth/me').get_json()
    assert me['email'] == 'maya@example.com'
    assert me['profile']['phone'] == '+91 98470 12345'


def test_duplicate_email_is_rejected(app):
    client = app.test_client()
    sign_up(client)

    response = sign_up(app.test_client(), email='MAYA@example.com')
    assert response.status_code == 400
    assert 'email' in response.get_json()['errors']


def test_sign_up_validation(app):
    response = sign_up(app.test_client(), password='short', phone='12ab', full_name='R2D2', blood_group='C+')

    assert response.status_code == 400
    errors = response.get_json()['errors']
    assert set(errors) >= {'password', 'phone', 'full_name', 'blood_group'}


def test_numeric_json_values_are_validated_as_text(app):
    response = sign_up(app.test_client(), phone=12345, full_name=7, district=4, password=1234)

    assert response.status_code == 400
    errors = response.get_json()['errors']
    assert set(errors) >= {'phone', 'full_name', 'district', 'password'}


def test_numeric_phone_is_accepted_as_digits(app):
    response = sign_up(app.test_client(), phone=9876543210)

    assert response.status_code == 201
    assert response.get_json()['profile']['phone'] == '9876543210'


def test_signed_in_user_cannot_register_again(scenario):
    response = sign_up(scenario.clients.alice)
    assert response.status_code == 400


def test_wrong_password_is_unauthorized(scenario, app):
    response = app.test_client().post('/auth/login', json={'email': 'alice@example.com', 'password': 'wrong-pass'})

    assert response.status_code == 401
    assert response.get_json()['success'] is False


def test_me_requires_session(scenario, app):
    assert app.test_client().get('/auth/me').status_code == 401

    alice = scenario.clients.alice
    assert alice.get('/auth/me').status_code == 200
    assert alice.post('/auth/logout').status_code == 200
    assert alice.get('/auth/me').status_code == 401


def test_confirmation_token_confirms_profile(scenario, app):
    with app.app_context():
        token = generate_confirmation_token('bob@example.com')

    response = app.test_client().get(f'/auth/confirm/{token}')

    assert response.status_code == 200
    assert scenario.clients.bob.get('/profile').get_json()['is_confirmed'] is True
    assert scenario.clients.alice.get('/profile').get_json()['is_confirmed'] is False


def test_tampered_confirmation_token_is_rejected(scenario, app):
    assert app.test_client().get('/auth/confirm/not-a-token').status_code == 400


def test_reset_request_answers_the_same_for_unknown_email(scenario, app):
    client = app.test_client()

    with mail.record_messages() as outbox:
        known = client.post('/auth/reset_password', json={'email': 'alice@example.com'})
        unknown = client.post('/auth/reset_password', json={'email': 'nobody@example.com'})

    assert known.status_code == unknown.status_code == 200
    assert known.get_json() == unknown.get_json()
    assert [m.recipients for m in outbox] == [['alice@example.com']]


def test_password_reset_flow(scenario, app, login):
    with app.app_context():
        token = generate_reset_token('alice@example.com')

    client = app.test_client()
    mismatch = client.post(f'/auth/reset_password/{token}', json={
        'password': 'new-password-1', 'confirm_password': 'new-password-2'
    })
    assert mismatch.status_code == 400

    response = client.post(f'/auth/reset_password/{token}', json={
        'password': 'new-password-1', 'confirm_password': 'new-password-1'
    })
    assert response.status_code == 200

    login('alice@example.com', 'new-password-1')
    old = client.post('/auth/login', json={'email': 'alice@example.com', 'password': 'password123'})
    assert old.status_code == 401


def test_reset_token_is_not_a_confirmation_token(scenario, app):
    with app.app_context():
        token = generate_confirmation_token('alice@example.com')

    response = app.test_client().post(f'/auth/reset_password/{token}', json={
        'password': 'new-password-1', 'confirm_password': 'new-password-1'
    })
    assert response.status_code == 400

"""
Global test fixtures for pytest.

Provides:
- A LifeFlow app on in-memory SQLite (CSRF off, cheap bcrypt, no scheduler)
- A user factory creating a user with a profile
- Logged-in test clients, one cookie jar per user
- The standard matching scenario used across the request tests
"""
import pytest
from types import SimpleNamespace

from lifeflow import create_app, db, bcrypt
from lifeflow.models.user import User, Profile

PASSWORD = 'password123'


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'WTF_CSRF_ENABLED': False,
        'BCRYPT_LOG_ROUNDS': 4,
        'SCHEDULER_ENABLED': False,
        'FIREBASE_SERVICE_ACCOUNT_JSON': None,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


# ============================================================================
# Users and clients
# ============================================================================

@pytest.fixture
def make_user(app):
    """Create a user with a profile and return the user ID."""
    def _make_user(email, district='Ernakulam', blood_group='O+', state='Kerala',
                   full_name='Test User', phone='9876543210'):
        with app.app_context():
            user = User(email=email, password=bcrypt.generate_password_hash(PASSWORD).decode('utf-8'))
            db.session.add(user)
            db.session.flush()
            db.session.add(Profile(
                user_id=user.id,
                full_name=full_name,
                phone=phone,
                district=district,
                state=state,
                blood_group=blood_group
            ))
            db.session.commit()
            return user.id
    return _make_user


@pytest.fixture
def login(app):
    """Return a test client signed in as the given user."""
    def _login(email, password=PASSWORD):
        client = app.test_client()
        response = client.post('/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return client
    return _login


@pytest.fixture
def scenario(make_user, login):
    """
    alice and bob share district and blood group, eve matches them too,
    carol lives elsewhere and dave has a different blood group.
    """
    ids = SimpleNamespace(
        alice=make_user('alice@example.com', full_name='Alice Varghese', phone='9876500001'),
        bob=make_user('bob@example.com', full_name='Bob Thomas', phone='9876500002'),
        eve=make_user('eve@example.com', full_name='Eve Mathew', phone='9876500005'),
        carol=make_user('carol@example.com', district='Kottayam', full_name='Carol Joseph', phone='9876500003'),
        dave=make_user('dave@example.com', blood_group='A+', full_name='Dave Paul', phone='9876500004'),
    )
    clients = SimpleNamespace(
        alice=login('alice@example.com'),
        bob=login('bob@example.com'),
        eve=login('eve@example.com'),
        carol=login('carol@example.com'),
        dave=login('dave@example.com'),
    )
    return SimpleNamespace(ids=ids, clients=clients)


@pytest.fixture
def open_request(scenario):
    """An open O+ request posted by alice in Ernakulam. Returns its ID."""
    response = scenario.clients.alice.post('/requests', json={
        'blood_group': 'O+',
        'location_description': 'General Hospital, Ernakulam, Ward 4',
        'message': 'Surgery tomorrow morning',
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()['request']['id']


class FakeSender:
    """Stands in for Firebase; fails for the tokens it is told to."""

    def __init__(self, failing_tokens=()):
        self.sent = []
        self.failing_tokens = set(failing_tokens)

    def send(self, token, title, body, data):
        if token in self.failing_tokens:
            raise RuntimeError('Requested entity was not found.')
        self.sent.append({'token': token, 'title': title, 'body': body, 'data': data})
        return f'projects/lifeflow/messages/{len(self.sent)}'


@pytest.fixture
def fake_sender():
    return FakeSender()


@pytest.fixture
def flaky_sender():
    """Factory for a sender that fails on the given tokens."""
    return FakeSender

"""
Shared pytest fixtures

Every test gets a fresh application wired to an in-memory SQLite database,
a console SMS dispatcher that records messages, a controllable clock and a
predictable code generator.
"""

import json
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app import create_app
from config.settings import TestingConfig
from extensions import db as _db
from models import AuthIdentity, Customer
from services.sms import ConsoleSmsDispatcher, SmsDispatcher, SmsResult
from utils.clock import utcnow


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, now=None):
        self.now = now or utcnow().replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class SequenceCodes:
    """Code generator handing out the given codes in order"""

    def __init__(self, *codes):
        self.codes = list(codes)

    def __call__(self):
        return self.codes.pop(0)


class FailingSmsDispatcher(SmsDispatcher):
    def __init__(self):
        self.attempts = 0

    def send(self, to, body):
        self.attempts += 1
        return SmsResult(False, error='Twilio HTTP 400 code=21211: invalid To number ACxxxx')


class BrokenCommitSession:
    """Session proxy whose commit fails; everything else hits the real session"""

    def __init__(self, session):
        self._session = session

    def commit(self):
        raise SQLAlchemyError('deadlock detected')

    def __getattr__(self, name):
        return getattr(self._session, name)


@pytest.fixture
def sms():
    return ConsoleSmsDispatcher()


@pytest.fixture
def app(sms):
    """Create the Flask application with a fresh database"""
    app = create_app(TestingConfig, sms=sms)

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def service(app):
    return app.extensions['verification']


@pytest.fixture
def clock(service):
    frozen = FrozenClock()
    service.store.clock = frozen
    return frozen


@pytest.fixture
def codes(service):
    generator = SequenceCodes('111111', '222222', '333333', '444444', '555555')
    service.code_generator = generator
    return generator


def make_customer(
    email='mario.rossi@example.com',
    phone='+393331234567',
    password='password123',
    confirmed=False,
    first_name='Mario',
    last_name='Rossi',
):
    identity = AuthIdentity(email=email, password=password, phone=phone)
    if confirmed:
        identity.confirm(email=True, phone=bool(phone))
    _db.session.add(identity)
    _db.session.flush()

    customer = Customer(
        auth_id=identity.id,
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone_number=phone,
    )
    _db.session.add(customer)
    _db.session.commit()
    return customer


@pytest.fixture
def customer(app):
    """Unverified customer registered with +39 333 123 4567"""
    return make_customer()


@pytest.fixture
def verified_customer(app):
    return make_customer(
        email='giulia.bianchi@example.com',
        phone='+393407654321',
        confirmed=True,
        first_name='Giulia',
        last_name='Bianchi',
    )


def login(client, email, password):
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    return response, json.loads(response.data)


@pytest.fixture
def auth_headers(client, verified_customer):
    """Session headers for the verified customer"""
    response, data = login(client, 'giulia.bianchi@example.com', 'password123')
    assert response.status_code == 200, data
    return {'Authorization': f"Bearer {data['data']['access_token']}"}

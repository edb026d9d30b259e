from datetime import datetime, timedelta, timezone

import pytest

from portal_auth.auth import PortalAuthService
from portal_auth.config import TestingConfig
from portal_auth.cookies import CookieStore
from portal_auth.crypto import CryptoManager
from portal_auth.models import Gym, Member, make_session_factory


class MemoryCookieStore(CookieStore):
    def __init__(self):
        self.jar = {}
        self.attributes = {}
        self.deleted = []

    def get(self, name):
        return self.jar.get(name)

    def set(self, name, value, *, max_age, secure, httponly, samesite, path):
        self.jar[name] = value
        self.attributes[name] = {
            'max_age': max_age,
            'secure': secure,
            'httponly': httponly,
            'samesite': samesite,
            'path': path,
        }

    def delete(self, name, *, path='/'):
        self.jar.pop(name, None)
        self.deleted.append(name)


class RecordingEmailSender:
    def __init__(self):
        self.sent = []

    def __call__(self, message):
        self.sent.append(message)
        return True, None


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def config():
    return TestingConfig()


@pytest.fixture
def crypto(config):
    return CryptoManager.from_config(config)


@pytest.fixture
def session_factory(config):
    return make_session_factory(config.DATABASE_URL, create_tables=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cookies():
    return MemoryCookieStore()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def gym(db):
    gym = Gym(slug='downtown-fit', name='Downtown Fit', logo_url='https://cdn.example.com/dtf.png')
    db.add(gym)
    db.commit()
    return gym


@pytest.fixture
def other_gym(db):
    gym = Gym(slug='uptown-iron', name='Uptown Iron')
    db.add(gym)
    db.commit()
    return gym


@pytest.fixture
def member(db, gym):
    member = Member(gym_id=gym.id, email='jane@example.com', full_name='Jane Doe')
    db.add(member)
    db.commit()
    return member


@pytest.fixture
def service(db, cookies, config, email_sender, clock, crypto):
    return PortalAuthService(
        db, cookies,
        config=config,
        email_sender=email_sender,
        clock=clock,
        crypto=crypto
    )

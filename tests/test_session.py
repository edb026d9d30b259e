import json
from datetime import timedelta

import pytest

from portal_auth.results import MemberSession
from portal_auth.session import SessionManager, SessionTokenError


@pytest.fixture
def manager(crypto, cookies, config, clock):
    return SessionManager(crypto, cookies, config, clock=clock)


def test_token_round_trip(manager):
    token = manager.create_token('member-1', 'gym-1')
    assert manager.verify_token(token) == MemberSession(member_id='member-1', gym_id='gym-1')


def test_token_embeds_seven_day_expiry(manager, crypto, clock):
    payload = json.loads(crypto.decrypt(manager.create_token('member-1', 'gym-1')))

    expected = int((clock.now + timedelta(days=7)).timestamp() * 1000)
    assert payload == {'memberId': 'member-1', 'gymId': 'gym-1', 'expiresAt': expected}


def test_token_valid_until_expiry(manager, clock):
    token = manager.create_token('member-1', 'gym-1')

    clock.advance(days=7)
    assert manager.verify_token(token).member_id == 'member-1'

    clock.advance(milliseconds=1)
    with pytest.raises(SessionTokenError):
        manager.verify_token(token)


def test_token_expired_one_millisecond_ago(manager, crypto, clock):
    expired = int(clock.now.timestamp() * 1000) - 1
    token = crypto.encrypt(json.dumps({'memberId': 'm', 'gymId': 'g', 'expiresAt': expired}))

    with pytest.raises(SessionTokenError):
        manager.verify_token(token)


@pytest.mark.parametrize('payload', [
    'not json',
    '[]',
    '{"gymId": "g", "expiresAt": 9999999999999}',
    '{"memberId": "m", "expiresAt": 9999999999999}',
    '{"memberId": "m", "gymId": "g"}',
    '{"memberId": "m", "gymId": "g", "expiresAt": "tomorrow"}',
    '{"memberId": "m", "gymId": "g", "expiresAt": true}',
])
def test_malformed_payload_is_rejected(manager, crypto, payload):
    with pytest.raises(SessionTokenError):
        manager.verify_token(crypto.encrypt(payload))


def test_garbage_token_is_rejected(manager):
    with pytest.raises(SessionTokenError):
        manager.verify_token('definitely-not-a-token')


def test_start_session_sets_cookie_attributes(manager, cookies):
    token = manager.start_session('member-1', 'gym-1')

    assert cookies.jar['member_portal_session'] == token
    assert cookies.attributes['member_portal_session'] == {
        'max_age': 7 * 24 * 60 * 60,
        'secure': False,
        'httponly': True,
        'samesite': 'Strict',
        'path': '/',
    }


def test_end_session_deletes_cookie(manager, cookies):
    manager.start_session('member-1', 'gym-1')
    manager.end_session()

    assert manager.current_token() is None
    assert cookies.deleted == ['member_portal_session']

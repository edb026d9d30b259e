import pytest

from portal_auth.main import create_app
from portal_auth.models import Gym, Member

COOKIE = 'member_portal_session'


@pytest.fixture
def app(config, session_factory, email_sender):
    app = create_app(config=config, session_factory=session_factory, email_sender=email_sender)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded(session_factory):
    db = session_factory()
    gym = Gym(slug='downtown-fit', name='Downtown Fit')
    db.add(gym)
    db.flush()
    member = Member(gym_id=gym.id, email='jane@example.com', full_name='Jane Doe')
    db.add(member)
    db.commit()
    ids = {'gym_id': gym.id, 'member_id': member.id}
    db.close()
    return ids


def test_security_headers(client, seeded):
    response = client.get('/portal/downtown-fit/gym')

    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert response.headers['X-Frame-Options'] == 'DENY'


def test_gym_lookup(client, seeded):
    response = client.get('/portal/downtown-fit/gym')

    assert response.status_code == 200
    assert response.get_json()['data']['name'] == 'Downtown Fit'
    assert client.get('/portal/nowhere/gym').status_code == 404


def test_missing_fields_are_rejected(client, seeded):
    assert client.post('/portal/downtown-fit/request-access', json={}).status_code == 400
    assert client.post('/portal/downtown-fit/sign-in', json={'email': 'jane@example.com'}).status_code == 400


@pytest.mark.parametrize('route', ['pin-status', 'request-access', 'sign-in'])
@pytest.mark.parametrize('body', [["a"], "jane@example.com", 42])
def test_non_object_json_is_rejected(client, seeded, route, body):
    response = client.post(f'/portal/downtown-fit/{route}', json=body)

    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_wrong_pin_is_unauthorized(client, seeded, email_sender):
    client.post('/portal/downtown-fit/request-access', json={'email': 'jane@example.com'})
    pin = email_sender.sent[0].pin
    wrong = '1000' if pin != '1000' else '1001'

    response = client.post('/portal/downtown-fit/sign-in', json={'email': 'jane@example.com', 'pin': wrong})

    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'error': 'Invalid email or PIN.', 'code': 'invalid_credentials'}


def test_rate_limited_request_is_429(client, seeded):
    client.post('/portal/downtown-fit/request-access', json={'email': 'jane@example.com'})
    response = client.post('/portal/downtown-fit/request-access', json={'email': 'jane@example.com'})

    assert response.status_code == 429
    assert 'Please wait 2 minutes' in response.get_json()['error']


def test_portal_flow_over_http(client, seeded, email_sender):
    status = client.post('/portal/downtown-fit/pin-status', json={'email': 'jane@example.com'})
    assert status.get_json()['data'] == {'hasPin': False, 'memberId': seeded['member_id']}

    access = client.post('/portal/downtown-fit/request-access', json={'email': 'jane@example.com'})
    assert access.get_json() == {'success': True, 'message': 'Welcome! Your PIN has been sent to your email.'}

    pin = email_sender.sent[0].pin
    signed_in = client.post('/portal/downtown-fit/sign-in', json={'email': 'jane@example.com', 'pin': pin})
    assert signed_in.status_code == 200
    assert signed_in.get_json()['data'] == {'memberId': seeded['member_id'], 'gymId': seeded['gym_id']}

    set_cookie = signed_in.headers['Set-Cookie']
    assert set_cookie.startswith(COOKIE + '=')
    assert 'HttpOnly' in set_cookie
    assert 'SameSite=Strict' in set_cookie
    assert 'Max-Age=604800' in set_cookie
    assert 'Path=/' in set_cookie

    me = client.get('/portal/downtown-fit/me')
    assert me.status_code == 200
    assert me.get_json()['data'] == {'memberId': seeded['member_id'], 'gymId': seeded['gym_id']}

    info = client.get('/portal/downtown-fit/me/info')
    assert info.get_json()['data']['memberName'] == 'Jane Doe'
    assert info.get_json()['data']['gymName'] == 'Downtown Fit'

    assert client.post('/portal/sign-out').status_code == 200
    after = client.get('/portal/downtown-fit/me')
    assert after.status_code == 401
    assert after.get_json()['code'] == 'not_authenticated'


def test_garbage_cookie_is_cleared(client, seeded):
    client.set_cookie(COOKIE, 'garbage')

    response = client.get('/portal/downtown-fit/me')

    assert response.status_code == 401
    assert response.get_json()['code'] == 'session_expired'
    assert client.get_cookie(COOKIE) is None


def test_generate_key_command(app):
    result = app.test_cli_runner().invoke(args=['generate-key'])

    key = result.output.strip()
    assert len(key) == 64
    int(key, 16)


def test_init_db_command(app):
    result = app.test_cli_runner().invoke(args=['init-db'])
    assert 'Database initialized.' in result.output

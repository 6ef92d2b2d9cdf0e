import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from conftest import TEST_SECRET
from planner.config import DEFAULT_JWT_SECRET, Settings
from planner.main import create_app
from planner.utils.rate_limit import InMemoryRateLimiter


def _settings(tmp_path, **overrides):
    values = {'DATABASE_URL': f"sqlite:///{tmp_path / 'mw.db'}", 'JWT_SECRET': TEST_SECRET}
    values.update(overrides)
    return Settings(**values)


def test_default_secret_refused_outside_dev(tmp_path):
    with pytest.raises(RuntimeError):
        _settings(tmp_path, ENV='production', JWT_SECRET=DEFAULT_JWT_SECRET, ALLOW_INSECURE_JWT=False)
    # explicit opt-in is allowed
    s = _settings(tmp_path, ENV='production', JWT_SECRET=DEFAULT_JWT_SECRET, ALLOW_INSECURE_JWT=True)
    assert not s.is_dev


def test_invalid_settings_are_rejected(tmp_path):
    with pytest.raises(RuntimeError):
        _settings(tmp_path, JWT_EXPIRE_DAYS=0)
    with pytest.raises(RuntimeError):
        _settings(tmp_path, RATE_LIMIT_MAX_REQUESTS=0)
    with pytest.raises(TypeError):
        _settings(tmp_path, NOT_A_SETTING=1)


def test_settings_read_environment(tmp_path, monkeypatch):
    monkeypatch.setenv('JWT_EXPIRE_DAYS', '7')
    monkeypatch.setenv('CORS_ORIGINS', 'https://a.example, https://b.example,')
    monkeypatch.setenv('API_PREFIX', '/v1/')
    s = _settings(tmp_path)
    assert s.JWT_EXPIRE_DAYS == 7
    assert s.CORS_ORIGINS == ['https://a.example', 'https://b.example']
    assert s.API_PREFIX == '/v1'


def test_health_and_request_id(client):
    r = client.get('/api/health')
    assert r.status_code == 200
    body = r.json()
    assert body['success'] is True
    assert body['message'] == 'Server is running successfully'
    assert body['timestamp'].endswith('Z')
    assert r.headers['X-Request-ID']
    assert r.headers['X-Content-Type-Options'] == 'nosniff'

    r = client.get('/api/health', headers={'X-Request-ID': 'trace-123'})
    assert r.headers['X-Request-ID'] == 'trace-123'


def test_unknown_route_returns_envelope(client):
    r = client.get('/api/does-not-exist')
    assert r.status_code == 404
    assert r.json() == {'success': False, 'message': 'API endpoint not found'}


def test_malformed_json_body_is_a_validation_error(client):
    r = client.post('/api/auth/login', content=b'{not json', headers={'Content-Type': 'application/json'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Validation failed'


def test_rate_limit_returns_429(tmp_path):
    client = TestClient(create_app(_settings(tmp_path, RATE_LIMIT_MAX_REQUESTS=3)))
    for _ in range(3):
        assert client.get('/api/health').status_code == 200
    r = client.get('/api/health')
    assert r.status_code == 429
    assert r.json()['success'] is False
    assert int(r.headers['Retry-After']) >= 1
    # routes outside the API prefix are not counted
    assert client.get('/docs').status_code == 200


def test_custom_prefix(tmp_path):
    client = TestClient(create_app(_settings(tmp_path, API_PREFIX='/v2')))
    assert client.get('/v2/health').status_code == 200
    assert client.get('/api/health').status_code == 404


@pytest.mark.parametrize('env', ['dev', 'production'])
def test_unhandled_errors_never_expose_detail(tmp_path, env):
    app = create_app(_settings(tmp_path, ENV=env))

    @app.get('/api/boom')
    def boom():
        raise RuntimeError('secret internals')

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get('/api/boom')
    assert r.status_code == 500
    assert r.json() == {'success': False, 'message': 'Something went wrong!'}


def test_failed_read_hides_store_detail(app, headers):
    # default settings (ENV=dev); break the task table under a running app
    SQLModel.metadata.tables['task'].drop(app.state.context.engine)
    client = TestClient(app, raise_server_exceptions=False)
    r = client.get('/api/tasks', headers=headers)
    assert r.status_code == 500
    assert r.json() == {'success': False, 'message': 'Something went wrong!'}
    assert 'SELECT' not in r.text
    assert 'no such table' not in r.text


def test_rate_limiter_forgets_idle_clients():
    now = [0.0]
    limiter = InMemoryRateLimiter(2, 60, clock=lambda: now[0])
    for ip in ('10.0.0.1', '10.0.0.2', '10.0.0.3'):
        assert limiter.allow(ip) == (True, 0)
    assert len(limiter) == 3
    assert limiter.allow('10.0.0.1') == (True, 0)
    assert limiter.allow('10.0.0.1') == (False, 60)

    now[0] = 61.0
    assert limiter.allow('10.0.0.4') == (True, 0)
    assert len(limiter) == 1
    # the old window is gone for a returning client too
    assert limiter.allow('10.0.0.1') == (True, 0)

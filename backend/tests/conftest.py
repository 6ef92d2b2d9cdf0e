import pytest
from fastapi.testclient import TestClient

from planner.config import Settings
from planner.main import create_app

TEST_SECRET = 'test-secret-key-for-the-planner-suite-0123456789'


@pytest.fixture
def settings(tmp_path):
    """Fresh SQLite file per test; a generous limit so flows never hit 429."""
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        JWT_SECRET=TEST_SECRET,
        RATE_LIMIT_MAX_REQUESTS=1000,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register(client):
    """Register a user and return the response `data` ({user, token})."""
    def _register(email='ada@example.com', password='secret1', name='Ada Lovelace', class_label='12A', **extra):
        body = {'name': name, 'email': email, 'password': password, 'class': class_label, **extra}
        r = client.post('/api/auth/register', json=body)
        assert r.status_code == 201, r.text
        return r.json()['data']
    return _register


def bearer(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def headers(register):
    return bearer(register()['token'])


@pytest.fixture
def other_headers(register):
    return bearer(register(email='grace@example.com', name='Grace Hopper')['token'])

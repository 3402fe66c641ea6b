import os
import sys
import pytest

# Ensure the backend root (containing the `promptwars` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from promptwars import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PUBLIC_BASE_URL = 'http://testserver/'
    CORS_ORIGINS = ['http://testserver']
    DEFAULT_ROUNDS = 3
    DEFAULT_ROUND_LENGTH_SEC = 180
    MIN_TEAMS = 2
    TWIST_MIN_SEC = 45
    TIMER_RESTART_FLOOR_SEC = 30
    TIMER_TICK_SEC = 0
    STRICT_MODE_POOL = False
    CONTROLLER_DEBOUNCE_MS = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
    # Module-level registries outlive a single app
    from promptwars import socketio_events, store
    from promptwars.services.games import timer
    timer._countdowns.clear()
    socketio_events._sid_to_ctx.clear()
    socketio_events._facilitator_count.clear()
    store._subscribers.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


FAC = {'role': 'facilitator'}


@pytest.fixture()
def make_game(client):
    """Create a game with the given teams; returns (code, {name: team})."""
    def _make(teams=('Alpha', 'Beta'), **settings):
        code = client.post('/api/games/create', json=settings).get_json()['game_code']
        created = {}
        for name in teams:
            created[name] = client.post(f'/api/games/{code}/teams', json={'name': name}).get_json()
        return code, created
    return _make


@pytest.fixture()
def act(client):
    """POST a facilitator action, e.g. act(code, 'advance')."""
    def _act(code, action, **body):
        return client.post(f'/api/games/{code}/{action}', json=dict(FAC, **body))
    return _act

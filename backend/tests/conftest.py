import os
import sys
import pytest

# Ensure the backend root (containing the `truth_hunters` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from truth_hunters import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ROUND_DURATION_SEC = 10
    VISIBILITY_DEBOUNCE_MS = 100
    ANTI_CHEAT_ENABLED = True
    MAX_TAB_SWITCHES_PER_ROUND = 2
    TAB_SWITCH_PENALTY = 1
    FORFEIT_PENALTY = 5
    DEFAULT_ROUNDS = 3
    MAX_ROUNDS = 10
    SAVED_GAME_MAX_AGE_HOURS = 24
    LEADERBOARD_LIMIT = 10
    CLAIMS_PATH = None
    CONTROLLER_DEBOUNCE_MS = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import truth_hunters.models  # noqa: F401
        db.create_all()
        yield application
        application.extensions['round_runtimes'].dispose_all()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def scheduler(flask_app):
    return flask_app.extensions['scheduler']


@pytest.fixture()
def claims_by_id(flask_app):
    return flask_app.extensions['claims_catalog'].by_id()


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


def create_game(client, **overrides):
    body = {
        'team_name': 'Smart Dolphins',
        'players': [
            {'first_name': 'Maya', 'last_initial': 'T'},
            {'first_name': 'Leo', 'last_initial': 'R'},
        ],
        'rounds': 3,
        'difficulty': 'easy',
    }
    body.update(overrides)
    res = client.post('/api/games/create', json=body)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def new_game(client):
    def _make(**overrides):
        return create_game(client, **overrides)
    return _make

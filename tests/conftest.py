import os
import sys
import pytest

# Ensure the project root (containing the `scorekeeper` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from scorekeeper import create_app, db, socketio
from scorekeeper.errors import PersistenceError
from scorekeeper.services.controller import SessionController
from scorekeeper.services.engine import GameEngine
from scorekeeper.services.store import MemorySessionStore, SqlSessionStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_STORE = 'sql'
    STORE_LOCK_TIMEOUT_SEC = 2
    CORS_ORIGINS = ['http://localhost:5173']


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


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


@pytest.fixture(params=['memory', 'sql'])
def store(request):
    """Both backends must behave identically from the engine's side."""
    if request.param == 'memory':
        return MemorySessionStore()
    request.getfixturevalue('flask_app')
    return SqlSessionStore()


@pytest.fixture()
def engine(store):
    return GameEngine(store)


@pytest.fixture()
def controller():
    return SessionController(GameEngine(MemorySessionStore()))


def failing_store(store_cls, fail_on):
    """Build a store subclass whose player updates fail when ``fail_on``
    names one of the changed fields."""

    class FailingStore(store_cls):
        def _update_player(self, player_id, **changes):
            if fail_on in changes:
                raise RuntimeError('disk unplugged')
            return super()._update_player(player_id, **changes)

        def _upsert_player(self, player):
            if fail_on == 'insert':
                raise RuntimeError('disk unplugged')
            return super()._upsert_player(player)

        def _translate_error(self, exc):
            if isinstance(exc, RuntimeError):
                return PersistenceError(str(exc))
            return super()._translate_error(exc)

    return FailingStore

import os
import sys
import pytest

# Ensure the backend root (containing the `studyroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from studyroom import create_app, db, socketio
from studyroom.services.rooms import ManualScheduler, RoomRegistry
from studyroom.services.rooms.connection import Connection

T0 = 1_700_000_000_000


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    SOCKETIO_NAMESPACE = '/ws'
    WORK_DURATION_MS = 1500000
    BREAK_DURATION_MS = 300000
    RESYNC_INTERVAL_SEC = 5
    ROOM_PERSISTENCE = 'database'
    ROOM_SCHEDULER = 'manual'
    DEFAULT_ROOM_ID = 'default'
    DEFAULT_DISPLAY_NAME = 'Guest'


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


class FakeConnection(Connection):
    """Records what a room sends; optionally fails every send."""

    def __init__(self, fail_sends=False):
        super().__init__()
        self.sent = []
        self.fail_sends = fail_sends

    def send(self, message):
        if self.fail_sends:
            raise ConnectionError('socket is closing')
        self.sent.append(message)

    def close(self, code=1000, reason=''):
        self.closed = True
        self.close_code = code
        self.close_reason = reason

    def types(self):
        return [m['type'] for m in self.sent]

    def last(self, msg_type):
        matches = [m for m in self.sent if m['type'] == msg_type]
        return matches[-1] if matches else None

    def clear(self):
        self.sent = []


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def registry(scheduler, clock):
    return RoomRegistry(scheduler=scheduler, clock=clock)


@pytest.fixture()
def room(registry):
    return registry.get_or_create('study')


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        application.extensions['room_registry'].clock = FakeClock()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _make(query_string=None):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws',
            query_string=query_string,
        )
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass

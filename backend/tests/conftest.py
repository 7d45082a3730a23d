import os
import random
import sys
import pytest

# Ensure the backend root (containing the `pokerledger` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from pokerledger import create_app, db, socketio
from pokerledger.hub import EXTENSION_KEY
from pokerledger.services.rooms import RoomStore

NAMESPACE = '/ws'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    SOCKETIO_NAMESPACE = NAMESPACE
    SESSION_TTL_SEC = 3600
    IDENTITY_TOKEN_MAX_AGE_SEC = 3600
    CURRENCY_SYMBOL = '₪'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig, room_store=RoomStore(rng=random.Random(1234)))
    with application.app_context():
        # Ensure models are imported so tables are created
        import pokerledger.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def hub(flask_app):
    return flask_app.extensions[EXTENSION_KEY]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients; all are disconnected on teardown."""
    opened = []

    def _connect(auth=None):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
            auth=auth,
        )
        opened.append(test_client)
        return test_client

    yield _connect
    for test_client in opened:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


def received(test_client, name=None):
    """Drain a test client's inbox, optionally keeping one event name."""
    packets = test_client.get_received(NAMESPACE)
    if name is None:
        return packets
    return [p['args'][0] if p['args'] else None for p in packets if p['name'] == name]


def last(test_client, name):
    payloads = received(test_client, name)
    assert payloads, f'no {name!r} event received'
    return payloads[-1]

import os
import sys
import pytest

# Ensure the backend root (containing the `voteboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from voteboard import create_app, db
from voteboard.services.votes import VoteRelay, VoteService, create_stores
from voteboard.services.votes.errors import RelayError


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SERVER_NAME_TAG = 'TestCraft'
    VOTE_CATEGORIES = ('1', '2', '3', '4')
    STORE_BACKEND = 'yaml'
    ALLOW_DOTTED_NAMES = True


class FakeRelay(VoteRelay):
    """Records every vote; raises RelayError while ``fail_with`` is set."""

    def __init__(self):
        self.calls = []
        self.fail_with = None

    def send_vote(self, identity, service_name, timestamp):
        self.calls.append((identity, service_name, timestamp))
        if self.fail_with:
            raise RelayError(self.fail_with)


@pytest.fixture()
def relay():
    return FakeRelay()


@pytest.fixture()
def data_dir(tmp_path):
    return tmp_path / 'data'


@pytest.fixture()
def make_app(data_dir, relay):
    """Build an app on the per-test data dir with extra config overrides."""
    def factory(**overrides):
        overrides.setdefault('DATA_DIR', str(data_dir))
        config = type('PerTestConfig', (TestConfig,), overrides)
        return create_app(config, relay=relay)
    return factory


@pytest.fixture()
def flask_app(make_app):
    application = make_app()
    with application.app_context():
        yield application


@pytest.fixture()
def sql_app(relay):
    config = type('SqlTestConfig', (TestConfig,), {'STORE_BACKEND': 'sql'})
    application = create_app(config, relay=relay)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def service(data_dir, relay):
    ledgers, leaderboard = create_stores('yaml', data_dir)
    return VoteService(ledgers, leaderboard, relay, service_name='TestCraft')

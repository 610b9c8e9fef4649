import sys
import os
import pytest

# ensure repository root is on sys.path so `cider_app` can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Ensure tests have a DATABASE_URL so importing app.config doesn't raise
os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
from cider_app.app import create_app, db
from cider_app.app.config import Config
from cider_app.app.models import User


# Config declares its attributes Final, so the test config is a separate class
class TestConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    SECRET_KEY = getattr(Config, "SECRET_KEY", "test-secret")
    SECURITY_PASSWORD_SALT = "test-salt"
    INVITE_TOKEN_EXPIRATION = 3600
    PACKAGING_REMINDER_DAYS = 3
    LANGUAGES = ["en"]
    APP_NAME = "Cider Tracker"
    EMAIL_PROVIDER = "smtp"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    # each request pushes its own app context, so the session and flask-login's
    # per-context user cache never leak from one request (or user) to the next
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(app, email, password='Secret123', full_name=None):
    with app.app_context():
        u = User(email=email, full_name=full_name)
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        return u.id


def login(client, email, password='Secret123'):
    return client.post('/api/v1/auth/login', json={'email': email, 'password': password})


def logout(client):
    return client.post('/api/v1/auth/logout')


def create_org(client, name='Orchard Co', team_size='small'):
    rv = client.post('/api/v1/orgs', json={'name': name, 'team_size': team_size})
    assert rv.status_code == 201, rv.get_json()
    return rv.get_json()['organization']['id']


def create_batch(client, org_id, name='Dabinett 2026', variety='Dabinett', volume=120, start_date='2026-09-20'):
    rv = client.post(
        f'/api/v1/orgs/{org_id}/batches',
        json={'name': name, 'variety': variety, 'volume': volume, 'start_date': start_date},
    )
    assert rv.status_code == 201, rv.get_json()
    return rv.get_json()['id']

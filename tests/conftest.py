"""Shared fixtures for the EventHub test suite."""

import io
from datetime import date

import pytest
from werkzeug.datastructures import FileStorage

from eventhub import create_app
from eventhub.config import Config
from eventhub.extensions import db
from eventhub.models import Chapter, Event, User, UserRole
from eventhub.services.profiles import ensure_profile


@pytest.fixture
def app(tmp_path):
    """Create and configure a test application instance."""

    class TestConfig(Config):
        TESTING = True
        WTF_CSRF_ENABLED = False
        RATELIMIT_ENABLED = False
        SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
        SECRET_KEY = 'test-secret-key'
        SESSION_COOKIE_SECURE = False
        REMEMBER_COOKIE_SECURE = False
        STORAGE_ROOT = str(tmp_path / 'storage')

    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def ctx(app):
    """Request context for calling services directly."""
    with app.test_request_context():
        yield


def make_user(email, role=UserRole.CLIENT.value, password='TestPass123!', **profile):
    """Create a user with a profile in the active context; returns the user."""
    user = User(email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    ensure_profile(user, role=role, **profile)
    db.session.commit()
    return user


def make_event(owner_id, **fields):
    data = {
        'event_name': 'Spring Formal',
        'event_date': date(2030, 4, 1),
        'budget': 5000.0,
        'contact_phone': '+15551234567',
    }
    data.update(fields)
    event = Event(user_id=owner_id, **data)
    db.session.add(event)
    db.session.commit()
    return event


def make_chapter(name='Alpha Chapter'):
    chapter = Chapter(name=name)
    db.session.add(chapter)
    db.session.commit()
    return chapter


def upload_file(name='file.pdf', content=b'%PDF-1.4 test', mimetype='application/pdf'):
    return FileStorage(stream=io.BytesIO(content), filename=name, content_type=mimetype)


def login(client, email, password='TestPass123!'):
    return client.post('/login', data={'email': email, 'password': password}, follow_redirects=False)


@pytest.fixture
def accounts(app):
    """A client, a second client and an admin; returns their ids."""
    with app.app_context():
        owner = make_user('client@test.com', school='State University', fraternity='Alpha Beta')
        other = make_user('other@test.com', school='Tech Institute', fraternity='Gamma Delta')
        admin = make_user('admin@test.com', role=UserRole.ADMIN.value)
        return {'owner': owner.id, 'other': other.id, 'admin': admin.id}

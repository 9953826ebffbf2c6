"""Shared pytest fixtures for the moderation service test suite."""

import time
from datetime import datetime, timedelta

import pytest
from flask import g

from app import create_app, db
from app.services.ai.base import ClassifierProvider
from app.services.database_service import db_service
from app.services.error_tracker import error_tracker
from app.services.notifications.base import NotificationChannel
from app.utils.errors import ProviderError
from config.config import TestingConfig

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64
JPEG_BYTES = b'\xff\xd8\xff\xe0' + b'\x00' * 64

USER_HEADERS = {'X-User-Id': 'student-1'}
OTHER_USER_HEADERS = {'X-User-Id': 'student-2'}
ADMIN_HEADERS = {'X-User-Id': 'admin-1', 'X-User-Role': 'admin'}


# =============================================================================
# Test doubles
# =============================================================================


class StaticProvider(ClassifierProvider):
    """Deterministic classifier: fixed score, optional failure or delay."""

    def __init__(self, name='Mock Vision', score=0.0, confidence=0.9, error=None, delay=0.0):
        self.name = name
        self.score = score
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.calls = 0

    def analyze(self, image_bytes, mime_type=None):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise ProviderError(self.name, self.error)
        return {'service': self.name, 'nsfw_score': self.score, 'confidence': self.confidence}


class RecordingChannel(NotificationChannel):
    """Collects alerts in memory."""

    name = 'recording'

    def __init__(self):
        self.sent = []

    def send(self, subject, body, priority='medium'):
        self.sent.append({'subject': subject, 'body': body, 'priority': priority})
        return True

    def subjects(self):
        return [alert['subject'] for alert in self.sent]


class FakeClock:
    """Injectable now(); advance() moves time forward."""

    def __init__(self, start=datetime(2024, 5, 1, 12, 0, 0)):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_error_tracker():
    error_tracker.reset()
    yield
    error_tracker.reset()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / 'uploads'
    monkeypatch.setattr(TestingConfig, 'UPLOAD_FOLDER', str(path))
    return path


@pytest.fixture
def providers():
    """Providers wired into the app; override in a test module to change scores."""
    return [StaticProvider('Mock Vision', score=0.1)]


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(upload_dir, providers, channel):
    """Flask app on in-memory SQLite with an app context held for the test."""
    app = create_app('testing', providers=providers, channels=[channel])

    # The held app context makes `g` shared across client requests; drop
    # Flask-Login's cached user so each request resolves its own identity.
    @app.teardown_request
    def _reset_login_user(exc=None):
        g.pop('_login_user', None)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions['moderation']


@pytest.fixture
def make_case(app):
    """Factory persisting a ContentReview with sensible defaults."""

    def _make_case(**overrides):
        fields = {
            'original_file_name': 'campus.png',
            'file_path': '/nonexistent/campus.png',
            'file_type': 'image',
            'file_size': 128,
            'uploaded_by': 'student-1',
            'moderation_results': {},
            'overall_risk': 'low',
            'status': 'pending',
            'action': 'quarantine'
        }
        fields.update(overrides)
        return db_service.create_content_review(**fields)

    return _make_case

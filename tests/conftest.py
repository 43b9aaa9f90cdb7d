from datetime import datetime, timedelta, timezone

import pytest

from cure8 import create_app
from cure8.config import TestConfig
from cure8.extensions import db


class StepClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self):
        self.value = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.value += timedelta(seconds=1)
        return self.value


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.drop_all()
        db.create_all()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()

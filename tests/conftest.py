"""
Pytest configuration and fixtures for Sequence Engine API tests.

This module provides:
- Test database setup and teardown
- Flask test client
- In-memory storage and a frozen clock for engine unit tests
- Common test data
"""

import pytest
from datetime import datetime, timedelta

from src.main import create_app
from src.extensions import db
from src.models import Prospect
from src.services.sequence_engine import SequenceEngine
from tests.fakes import InMemoryStorage

T0 = datetime(2024, 3, 4, 9, 0, 0)


class FrozenClock:
    """Callable clock that only moves when told to."""
    
    def __init__(self, now=T0):
        self.now = now
    
    def __call__(self):
        return self.now
    
    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    app = create_app('testing')
    
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()

@pytest.fixture
def db_session(app):
    """Database session for tests."""
    with app.app_context():
        yield db.session

@pytest.fixture
def sample_prospects(db_session):
    """Three prospects in different pipeline stages."""
    prospects = [
        Prospect(company_name='Acme Corp', contact_name='Jane Doe', email='jane@acme.test', stage='NEW', score=40),
        Prospect(company_name='Globex', contact_name='Hank Scorpio', email='hank@globex.test', stage='QUALIFIED', score=75),
        Prospect(company_name='Initech', contact_name='Bill Lumbergh', email='bill@initech.test', stage='NEW',
                 is_converted=True),
    ]
    db_session.add_all(prospects)
    db_session.commit()
    return prospects

@pytest.fixture
def clock():
    """Frozen clock starting at T0."""
    return FrozenClock()

@pytest.fixture
def storage():
    """Empty in-memory storage."""
    return InMemoryStorage()

@pytest.fixture
def engine(storage, clock):
    """Sequence engine over in-memory storage and the frozen clock."""
    return SequenceEngine(storage, clock)

@pytest.fixture
def prospect_ids(storage):
    """Three prospects in the in-memory storage."""
    storage.add_prospect('p-1', company_name='Acme Corp', stage='NEW')
    storage.add_prospect('p-2', company_name='Globex', stage='QUALIFIED')
    storage.add_prospect('p-3', company_name='Initech', stage='NEW', is_converted=True)
    return ['p-1', 'p-2', 'p-3']

@pytest.fixture
def two_step_sequence(engine):
    """Email now, call three days after the previous step."""
    return engine.create_sequence('Two touches', [
        {'name': 'Intro email', 'action_type': 'EMAIL', 'delay_days': 0},
        {'name': 'Follow-up call', 'action_type': 'CALL', 'delay_days': 3},
    ])

@pytest.fixture
def json_headers():
    """Headers for JSON requests."""
    return {
        'Content-Type': 'application/json'
    }

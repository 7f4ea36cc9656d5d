"""
Shared fixtures: an in-memory SQLite database per test and a Flask test
client wired to it through the app factory.
"""

import pytest

from qrgen.accounts import provision_account
from qrgen.api import create_app
from qrgen.config import Settings
from qrgen.db import create_db_engine, create_session_factory, init_db, session_scope
from qrgen.models import Base


@pytest.fixture
def settings():
    return Settings(database_url="sqlite:///:memory:", log_level="WARNING")


@pytest.fixture
def db_engine(settings):
    engine = create_db_engine(settings)
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def sessions(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def app(settings, sessions):
    app = create_app(settings, session_factory=sessions)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def account(sessions):
    """A free-plan account; the dict carries its issued credentials."""
    with session_scope(sessions) as session:
        created = provision_account(session, "Alice@Example.com", name="Alice")
        return {
            "id": created.id,
            "email": created.email,
            "api_key": created.api_key,
            "bearer_token": created.bearer_token,
        }


@pytest.fixture
def auth_headers(account):
    return {"X-API-Key": account["api_key"], "X-Bearer-Token": account["bearer_token"]}

"""Shared fixtures: in-memory database, a registered business and an API client."""

import os

# Never touch a developer's database or imagery provider from the test run
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("EDGE_DETECTION_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from propertyquote import models  # noqa: F401
from propertyquote.auth import create_business_with_api_key
from propertyquote.database import Base, get_db
from propertyquote.domain.geometry.edge_detection import SimulatedEdgeDetector, get_edge_detector


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def registered_business(db):
    return create_business_with_api_key(db, "Green Acres Lawn Care")


@pytest.fixture
def business(registered_business):
    return registered_business[0]


@pytest.fixture
def api_key(registered_business):
    return registered_business[1]


@pytest.fixture
def app(session_factory):
    from propertyquote.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_edge_detector] = lambda: SimulatedEdgeDetector(seed=7)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app, api_key):
    return TestClient(app, headers={"Authorization": f"Bearer {api_key}"})


@pytest.fixture
def anonymous_client(app):
    return TestClient(app)

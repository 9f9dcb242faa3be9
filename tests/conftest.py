import os

os.environ["APP_ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.database import Base, get_db
from database import models  # noqa: F401  (enregistre les tables)
from main import app


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _register(client, email="alice@example.com", password="secret123", **extra):
    payload = {"name": "Alice", "email": email, "password": password}
    payload.update(extra)
    return client.post("/api/auth/register", json=payload)


@pytest.fixture
def register_user(client):
    def register(**kwargs):
        return _register(client, **kwargs)
    return register


@pytest.fixture
def auth_headers(register_user):
    response = register_user()
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}

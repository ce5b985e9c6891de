import mongomock
import pytest
from fastapi.testclient import TestClient

import config
import users
from database import get_optional_db
from main import app
from tests.helpers import signup


@pytest.fixture
def db():
    return mongomock.MongoClient()["gambo_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_optional_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reject_conflicts(monkeypatch):
    monkeypatch.setattr(config, "BOOKING_CONFLICT_POLICY", "reject")


@pytest.fixture
def member(client):
    return signup(client)


@pytest.fixture
def admin(db):
    token, user = users.signup(db, "Admin", "admin@example.com", "adminpass", role="admin")
    return {"token": token, "user": user.model_dump(by_alias=True)}

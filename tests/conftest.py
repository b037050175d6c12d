import os
import tempfile

os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="receipts-")
os.environ["TOKEN_SECRET_KEY"] = "test-secret"
os.environ["COOKIE_SECURE"] = "false"
os.environ["DATABASE_NAME"] = "construction_test"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ.pop("EMAIL_USER", None)
os.environ.pop("EMAIL_PASSWORD", None)

from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app
from schemas import User
from security import create_access_token, hash_password

PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def db():
    mongo = database.connect(mongomock.MongoClient())
    yield mongo
    database.disconnect()


@pytest.fixture
def client():
    # no context manager: the lifespan would dial a real server
    return TestClient(app)


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make(role="GENERAL", email=None, password=PASSWORD, **fields):
        counter["n"] += 1
        user = User(
            f_name=fields.get("f_name", "Test"),
            l_name=fields.get("l_name", f"User{counter['n']}"),
            address="1 Site Road",
            dob=datetime(1990, 1, 1),
            gender="Female",
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(password),
            role=role,
        )
        return database.create_document("user", user)

    return _make


def headers_for(user):
    return {"Authorization": f"Bearer {create_access_token(user['_id'], user['email'])}"}


@pytest.fixture
def auth_headers():
    return headers_for


@pytest.fixture
def admin(make_user):
    return make_user(role="ADMIN", email="admin@example.com")


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture
def general(make_user):
    return make_user(email="worker@example.com")


@pytest.fixture
def user_headers(general):
    return headers_for(general)


@pytest.fixture
def project():
    return database.create_document("project", {
        "name": "Riverside Tower",
        "type": "Residential",
        "location": "Colombo",
        "startDate": datetime(2024, 1, 1),
        "endDate": datetime(2024, 12, 31),
        "status": "In Progress",
        "budget": 250000.0,
        "manager": "R. Silva",
        "description": "12 storey apartment block",
        "completion": 40.0,
    })


@pytest.fixture
def task():
    return database.create_document("task", {
        "projectCode": "P1",
        "taskCode": "T1",
        "taskType": "Excavation",
        "floor": "Ground Floor",
        "startDate": datetime(2024, 1, 1),
        "endDate": datetime(2024, 1, 10),
        "siteName": "Site A",
        "createdAt": datetime.now(timezone.utc),
    })

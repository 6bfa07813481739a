import itertools
import os
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict

# Settings are read at import time
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite://"

import fakeredis
import pytest
from fastapi.testclient import TestClient

from medibook import models  # noqa: F401
from medibook.core.database import Base, SessionLocal, engine, get_redis
from medibook.main import app
from medibook.schemas.auth import UserRegister
from medibook.services.auth_service import AuthService

PASSWORD = "Secret123"

_emails = itertools.count(1)


@dataclass
class Account:
    id: int
    email: str
    headers: Dict[str, str]


@pytest.fixture(autouse=True)
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    return client


@pytest.fixture
def client(redis_client):
    app.dependency_overrides[get_redis] = lambda: redis_client
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def tomorrow():
    return date.today() + timedelta(days=1)


def login(client, email, password=PASSWORD) -> Dict[str, str]:
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def make_account(client):
    """Create a user through the service layer and log it in."""
    def _make(role="patient", full_name=None, **extra) -> Account:
        email = f"{role}{next(_emails)}@example.com"
        data = {
            "email": email,
            "password": PASSWORD,
            "full_name": full_name or f"Test {role.title()}",
            "role": role,
        }
        if role == "doctor":
            data.setdefault("specialty", "Cardiology")
        data.update(extra)

        session = SessionLocal()
        try:
            user = AuthService(session).register_user(UserRegister(**data), require_admin_key=False)
            user_id = user.id
        finally:
            session.close()

        return Account(id=user_id, email=email, headers=login(client, email))

    return _make


@pytest.fixture
def patient(make_account):
    return make_account("patient", full_name="Jane Patient")


@pytest.fixture
def doctor(make_account):
    return make_account("doctor", full_name="Gregory House", specialty="Cardiology")


@pytest.fixture
def admin(make_account):
    return make_account("admin", full_name="Ada Admin")


@pytest.fixture
def book(client):
    """Book an appointment as a patient and return the response body."""
    def _book(patient, doctor, day, at="10:00", reason=None):
        body = {
            "doctor_id": doctor.id,
            "appointment_date": day.isoformat(),
            "appointment_time": at,
        }
        if reason:
            body["reason"] = reason
        response = client.post("/api/v1/appointments", json=body, headers=patient.headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _book

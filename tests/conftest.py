import os

# Set testing environment before the application is imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_EMAIL", "admin@clinic.test")
os.environ.setdefault("ADMIN_PASSWORD", "admin-password")

import itertools
from types import SimpleNamespace

import pytest
import redis
from fastapi.testclient import TestClient

from clinic.main import app
from clinic.api.deps import get_media_uploader, get_notifier, get_session_store
from clinic.core.config import settings
from clinic.core.database import Base, init_db
from clinic.models.appointment import Appointment
from clinic.models.doctor import Doctor, DoctorStatus
from clinic.services.auth_service import AuthService
from clinic.services.media import UploadError, UploadResult
from clinic.services.notifications import NotificationResult


class InMemorySessionStore:
    """Stand-in for the Redis session store."""

    def __init__(self):
        self.records = {}
        self.fail = False
        self._ids = itertools.count(1)

    def create(self, data):
        session_id = f"sid-{next(self._ids)}"
        self.records[session_id] = dict(data)
        return session_id

    def get(self, session_id):
        return self.records.get(session_id)

    def destroy(self, session_id):
        if self.fail:
            raise redis.ConnectionError("session store unreachable")
        return self.records.pop(session_id, None) is not None

    def close(self):
        pass


class FakeUploader:
    def __init__(self):
        self.uploads = []
        self.fail = False

    async def upload(self, data, filename, folder, public_id=None):
        if self.fail:
            raise UploadError("media host unavailable")
        self.uploads.append({"data": data, "filename": filename, "folder": folder})
        n = len(self.uploads)
        return UploadResult(
            url=f"https://media.test/{folder}/{n}.png",
            public_id=f"{folder}/{n}",
        )


class FakeNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False
        self.crash = False

    async def send_appointment_confirmation(self, appointment, doctor):
        if self.crash:
            raise RuntimeError("notifier exploded")
        self.sent.append((appointment, doctor))
        if self.fail:
            return NotificationResult(success=False, error="smtp down")
        return NotificationResult(success=True)


@pytest.fixture
def fakes():
    return SimpleNamespace(
        store=InMemorySessionStore(),
        uploader=FakeUploader(),
        notifier=FakeNotifier(),
    )

@pytest.fixture
def client(fakes):
    app.dependency_overrides[get_session_store] = lambda: fakes.store
    app.dependency_overrides[get_media_uploader] = lambda: fakes.uploader
    app.dependency_overrides[get_notifier] = lambda: fakes.notifier

    with TestClient(app, base_url="http://testserver") as test_client:
        engine = app.state.engine
        Base.metadata.drop_all(bind=engine)
        init_db(engine)
        db = app.state.session_factory()
        try:
            AuthService(db).seed_admin(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
        finally:
            db.close()

        yield test_client

        Base.metadata.drop_all(bind=engine)

    app.dependency_overrides.clear()

@pytest.fixture
def db(client):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def doctor_payload(**overrides):
    data = {
        "name": "A",
        "email": "a@x.com",
        "password": "p",
        "phone": "1",
        "gender": "f",
        "specialization": "Cardio",
        "location": "NY",
    }
    data.update(overrides)
    return data

@pytest.fixture
def register_doctor(client, db):
    """Register a doctor through the API, optionally approving it."""
    def _register(approve=True, **overrides):
        payload = doctor_payload(**overrides)
        response = client.post("/doctor/register", json=payload)
        assert response.status_code == 201
        doctor_id = response.json()["doctorId"]
        if approve:
            doctor = db.query(Doctor).filter(Doctor.doctor_id == doctor_id).one()
            doctor.status = DoctorStatus.APPROVED
            db.commit()
        return SimpleNamespace(
            doctor_id=doctor_id, email=payload["email"], password=payload["password"]
        )

    return _register

@pytest.fixture
def login_doctor(client):
    def _login(doctor):
        client.cookies.clear()
        response = client.post(
            "/doctor/login", json={"email": doctor.email, "password": doctor.password}
        )
        assert response.status_code == 200
        return response

    return _login

@pytest.fixture
def make_appointment(db):
    def _make(doctor_id, **overrides):
        fields = {
            "doctor_id": doctor_id,
            "patient_name": "Pat",
            "patient_email": "pat@example.com",
            "patient_phone": "555",
        }
        fields.update(overrides)
        appointment = Appointment(**fields)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make

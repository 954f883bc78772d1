import pytest

from clinic.core.config import settings
from clinic.models.doctor import Doctor, DoctorStatus
from clinic.services import identifiers
from clinic.services.doctor_service import DoctorService
from clinic.schemas.doctor import DoctorRegister

from .conftest import doctor_payload


class TestRegistration:

    def test_register_doctor(self, client, db):
        response = client.post("/doctor/register", json=doctor_payload())
        assert response.status_code == 201

        data = response.json()
        assert data["success"] is True
        assert data["doctorId"].startswith("DR")

        doctor = db.query(Doctor).filter(Doctor.email == "a@x.com").one()
        assert doctor.doctor_id == data["doctorId"]
        assert doctor.status == DoctorStatus.PENDING
        assert doctor.specialization == "cardio"
        assert doctor.location == "ny"
        assert doctor.password_hash != "p"

    def test_register_does_not_log_in(self, client, fakes):
        client.post("/doctor/register", json=doctor_payload())
        assert fakes.store.records == {}

    def test_register_duplicate_email(self, client, db):
        client.post("/doctor/register", json=doctor_payload())

        response = client.post("/doctor/register", json=doctor_payload())
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Doctor with this email already exists",
        }
        assert db.query(Doctor).count() == 1

    def test_register_missing_fields(self, client):
        response = client.post("/doctor/register", json={"email": "a@x.com"})
        assert response.status_code == 422

        body = response.json()
        assert body["success"] is False
        assert "password" in body["message"]

    def test_register_duplicate_email_differing_by_case(self, client, db):
        client.post("/doctor/register", json=doctor_payload(email="A@x.com"))

        response = client.post("/doctor/register", json=doctor_payload(email="a@x.com"))
        assert response.status_code == 400
        assert response.json()["message"] == "Doctor with this email already exists"
        assert db.query(Doctor).count() == 1
        assert db.query(Doctor).one().email == "a@x.com"

    def test_register_retries_colliding_identifier(self, client, db, monkeypatch):
        codes = iter(["DRAAAAAA", "DRAAAAAA", "DRBBBBBB"])
        monkeypatch.setattr(identifiers, "generate_code", lambda: next(codes))

        first = client.post("/doctor/register", json=doctor_payload())
        second = client.post("/doctor/register", json=doctor_payload(email="b@x.com"))

        assert first.json()["doctorId"] == "DRAAAAAA"
        assert second.json()["doctorId"] == "DRBBBBBB"

    def test_register_retries_when_insert_races(self, client, db, monkeypatch):
        client_codes = iter(["DRAAAAAA"])
        monkeypatch.setattr(identifiers, "generate_code", lambda: next(client_codes))
        client.post("/doctor/register", json=doctor_payload())

        # The pre-insert check misses the collision, the unique constraint catches it
        service_codes = iter(["DRAAAAAA", "DRCCCCCC"])
        monkeypatch.setattr(identifiers, "generate_code", lambda: next(service_codes))
        monkeypatch.setattr(DoctorService, "_doctor_id_taken", lambda self, code: False)

        doctor = DoctorService(db).register(
            DoctorRegister(**doctor_payload(email="c@x.com"))
        )
        assert doctor.doctor_id == "DRCCCCCC"
        assert db.query(Doctor).count() == 2

    def test_register_fails_when_identifiers_exhausted(self, client, db, monkeypatch):
        monkeypatch.setattr(DoctorService, "_doctor_id_taken", lambda self, code: True)

        response = client.post("/doctor/register", json=doctor_payload())
        assert response.status_code == 500
        assert response.json()["success"] is False
        assert db.query(Doctor).count() == 0


class TestLogin:

    def test_login_success(self, client, fakes, register_doctor):
        doctor = register_doctor()

        response = client.post(
            "/doctor/login", json={"email": doctor.email, "password": doctor.password}
        )
        assert response.status_code == 200

        data = response.json()
        assert data["doctorId"] == doctor.doctor_id
        assert data["redirectUrl"] == "/doctor/dashboard"
        assert settings.SESSION_COOKIE_NAME in response.cookies

        (record,) = fakes.store.records.values()
        assert record["doctor_id"] == doctor.doctor_id
        assert record["email"] == doctor.email

    def test_login_ignores_email_case(self, client, register_doctor):
        doctor = register_doctor(email="Ann@X.COM")

        for email in ["Ann@X.COM", "ann@x.com", " ANN@x.com "]:
            client.cookies.clear()
            response = client.post(
                "/doctor/login", json={"email": email, "password": doctor.password}
            )
            assert response.status_code == 200
            assert response.json()["doctorId"] == doctor.doctor_id

    def test_login_unknown_email(self, client):
        response = client.post(
            "/doctor/login", json={"email": "nobody@x.com", "password": "p"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_login_wrong_password(self, client, register_doctor):
        doctor = register_doctor()

        response = client.post(
            "/doctor/login", json={"email": doctor.email, "password": "wrong"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.parametrize("status", [DoctorStatus.PENDING, DoctorStatus.REJECTED])
    def test_unapproved_doctor_cannot_login(self, client, db, fakes, register_doctor, status):
        doctor = register_doctor(approve=False)
        record = db.query(Doctor).filter(Doctor.doctor_id == doctor.doctor_id).one()
        record.status = status
        db.commit()

        response = client.post(
            "/doctor/login", json={"email": doctor.email, "password": doctor.password}
        )
        assert response.status_code == 403
        assert fakes.store.records == {}
        assert settings.SESSION_COOKIE_NAME not in response.cookies


class TestSessionGate:

    def test_api_routes_require_session(self, client):
        for path in ["/doctor/profile", "/doctor/appointments"]:
            response = client.get(path)
            assert response.status_code == 401
            assert response.json()["success"] is False

    def test_dashboard_redirects_to_login(self, client):
        response = client.get("/doctor/dashboard", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/doctorLogin"

    def test_tampered_cookie_is_ignored(self, client, register_doctor, login_doctor):
        login_doctor(register_doctor())
        client.cookies.clear()
        client.cookies.set(settings.SESSION_COOKIE_NAME, "not-a-signed-token")

        response = client.get("/doctor/profile")
        assert response.status_code == 401

    def test_patient_session_cannot_use_doctor_routes(self, client):
        client.get("/patientVerify", params={"phone": "555"}, follow_redirects=False)

        response = client.get("/doctor/appointments")
        assert response.status_code == 401


class TestLogout:

    def test_logout_destroys_session(self, client, fakes, register_doctor, login_doctor):
        login_doctor(register_doctor())
        assert len(fakes.store.records) == 1

        response = client.post("/doctor/logout")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert fakes.store.records == {}

        assert client.get("/doctor/profile").status_code == 401

    def test_logout_without_session(self, client):
        response = client.post("/doctor/logout")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}

    def test_logout_store_failure(self, client, fakes, register_doctor, login_doctor):
        login_doctor(register_doctor())
        fakes.store.fail = True

        response = client.post("/doctor/logout")
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Error logging out"}

from datetime import date, datetime, time, timedelta

from medibook.models.appointment import Appointment, AppointmentStatus
from medibook.models.user import User
from medibook.models.waitlist import WaitlistEntry
from medibook.services.analytics_service import AnalyticsService, month_keys, specialty_shares

from .conftest import PASSWORD

API = "/api/v1/admin"


class TestUserManagement:

    def test_requires_admin(self, client, patient, doctor):
        assert client.get(f"{API}/users", headers=patient.headers).status_code == 403
        assert client.get(f"{API}/stats", headers=doctor.headers).status_code == 403

    def test_list_users_with_filters(self, client, admin, patient, doctor):
        everyone = client.get(f"{API}/users", headers=admin.headers).json()
        assert len(everyone) == 3

        doctors = client.get(f"{API}/users", params={"role": "doctor"}, headers=admin.headers).json()
        assert [u["id"] for u in doctors] == [doctor.id]
        assert doctors[0]["doctor_profile"]["specialty"] == "Cardiology"

        found = client.get(f"{API}/users", params={"search": "jane"}, headers=admin.headers).json()
        assert [u["id"] for u in found] == [patient.id]

    def test_create_doctor(self, client, admin):
        response = client.post(f"{API}/users", json={
            "email": "new.doc@example.com",
            "password": "Welcome123",
            "full_name": "Nina Neuro",
            "role": "doctor",
            "specialty": "Neurology",
        }, headers=admin.headers)
        assert response.status_code == 201
        assert response.json()["doctor_profile"]["specialty"] == "Neurology"

        activities = client.get(f"{API}/activities", headers=admin.headers).json()
        assert activities[0]["message"] == "New doctor joined: Dr. Nina Neuro (Neurology)"

    def test_create_duplicate_email(self, client, admin, patient):
        response = client.post(f"{API}/users", json={
            "email": patient.email,
            "password": "Welcome123",
            "full_name": "Copy Cat",
            "role": "patient",
        }, headers=admin.headers)
        assert response.status_code == 400

    def test_update_user(self, client, admin, patient):
        response = client.patch(
            f"{API}/users/{patient.id}",
            json={"full_name": "Jane Renamed", "phone_number": "555-0100"},
            headers=admin.headers
        )
        assert response.status_code == 200
        assert response.json()["full_name"] == "Jane Renamed"
        assert response.json()["phone_number"] == "555-0100"

    def test_admin_edits_doctor_profile(self, client, admin, doctor):
        response = client.patch(f"{API}/users/{doctor.id}", json={
            "specialty": "Neurology",
            "clinic_name": "Mercy West",
            "is_available": False,
        }, headers=admin.headers)
        assert response.status_code == 200

        profile = response.json()["doctor_profile"]
        assert profile["specialty"] == "Neurology"
        assert profile["clinic_name"] == "Mercy West"
        assert profile["is_available"] is False

    def test_doctor_fields_rejected_for_patients(self, client, admin, patient):
        response = client.patch(
            f"{API}/users/{patient.id}",
            json={"clinic_name": "Mercy West"},
            headers=admin.headers
        )
        assert response.status_code == 400

    def test_blank_specialty_ignored(self, client, admin, doctor):
        response = client.patch(f"{API}/users/{doctor.id}", json={"specialty": "    "}, headers=admin.headers)
        assert response.status_code == 200
        assert response.json()["doctor_profile"]["specialty"] == "Cardiology"

    def test_status_edit_revokes_refresh_tokens(self, client, admin, patient):
        tokens = client.post("/api/v1/auth/login", json={"email": patient.email, "password": PASSWORD}).json()

        client.patch(f"{API}/users/{patient.id}", json={"status": "inactive"}, headers=admin.headers)
        client.patch(f"{API}/users/{patient.id}", json={"status": "active"}, headers=admin.headers)

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401

    def test_deactivation_locks_out_existing_tokens(self, client, admin, patient):
        response = client.patch(
            f"{API}/users/{patient.id}/status",
            json={"status": "inactive"},
            headers=admin.headers
        )
        assert response.json()["status"] == "inactive"
        assert client.get("/api/v1/auth/me", headers=patient.headers).status_code == 401

    def test_delete_user_removes_owned_records(self, client, admin, patient, doctor, make_account, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        client.put(
            f"/api/v1/appointments/{appointment['id']}/notes",
            json={"notes": "Seen"},
            headers=doctor.headers
        )
        client.post("/api/v1/waitlists", json={"doctor_id": doctor.id}, headers=patient.headers)
        behind = make_account("patient")
        client.post("/api/v1/waitlists", json={"doctor_id": doctor.id}, headers=behind.headers)

        response = client.delete(f"{API}/users/{patient.id}", headers=admin.headers)
        assert response.status_code == 204

        assert client.get(f"{API}/users", params={"search": "jane"}, headers=admin.headers).json() == []
        assert client.get("/api/v1/appointments", headers=doctor.headers).json() == []
        assert client.get("/api/v1/medical-notes", headers=doctor.headers).json() == []

        queue = client.get("/api/v1/waitlists", headers=doctor.headers).json()
        assert [(e["patient_id"], e["position"]) for e in queue] == [(behind.id, 1)]

    def test_admin_cannot_delete_self(self, client, admin):
        response = client.delete(f"{API}/users/{admin.id}", headers=admin.headers)
        assert response.status_code == 400

    def test_delete_missing_user(self, client, admin):
        assert client.delete(f"{API}/users/9999", headers=admin.headers).status_code == 404


class TestStats:

    def test_stats(self, client, admin, patient, doctor, tomorrow, book):
        book(patient, doctor, tomorrow)
        client.post("/api/v1/emergencies", json={"doctor_id": doctor.id, "reason": "Pain"}, headers=patient.headers)
        client.post("/api/v1/waitlists", json={"doctor_id": doctor.id}, headers=patient.headers)

        stats = client.get(f"{API}/stats", headers=admin.headers).json()
        assert stats == {
            "total_users": 3,
            "total_doctors": 1,
            "total_patients": 1,
            "total_admins": 1,
            "total_appointments": 1,
            "pending_emergencies": 1,
            "waitlist_entries": 1,
        }

    def test_activity_feed(self, client, admin, make_account):
        make_account("patient", full_name="Paul First")
        make_account("patient", full_name="Pia Second")

        feed = client.get(f"{API}/activities", params={"limit": 1}, headers=admin.headers).json()
        assert len(feed) == 1
        assert feed[0]["message"] == "New patient registered: Pia Second"
        assert feed[0]["time"] == "Just now"

    def test_analytics(self, client, db, admin, patient, doctor):
        today = date.today()
        for at, appointment_status in (
            (time(9, 0), AppointmentStatus.COMPLETED),
            (time(9, 30), AppointmentStatus.CANCELLED),
            (time(10, 0), AppointmentStatus.SCHEDULED),
        ):
            db.add(Appointment(
                patient_id=patient.id,
                doctor_id=doctor.id,
                appointment_date=today,
                appointment_time=at,
                status=appointment_status,
                specialty="Cardiology",
            ))
        db.commit()
        client.post("/api/v1/waitlists", json={"doctor_id": doctor.id}, headers=patient.headers)

        data = client.get(f"{API}/analytics", headers=admin.headers).json()

        assert len(data["monthly"]) == 12
        assert data["monthly"][-1] == {
            "month": today.strftime("%b"),
            "appointments": 3,
            "completed": 1,
            "cancelled": 1,
            "booked": 1,
        }

        assert data["summary"]["total_appointments"] == 3
        assert data["summary"]["completion_rate"] == 33
        assert data["summary"]["current_waitlist"] == 1
        assert data["summary"]["active_doctors"] == 1
        assert data["specialties"] == [{"name": "Cardiology", "value": 100}]
        assert [d["day"] for d in data["waitlist_week"]] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
        assert sum(d["count"] for d in data["waitlist_week"]) == 1

    def test_active_doctors_skip_inactive_accounts(self, client, admin, doctor, make_account):
        retired = make_account("doctor")
        client.patch(f"{API}/users/{retired.id}/status", json={"status": "inactive"}, headers=admin.headers)

        data = client.get(f"{API}/analytics", headers=admin.headers).json()
        assert data["summary"]["active_doctors"] == 1

    def test_user_growth_is_cumulative(self, client, db, admin, patient, doctor):
        db.query(User).filter(User.id == patient.id).update({"created_at": datetime(2000, 1, 1)})
        db.commit()

        growth = client.get(f"{API}/analytics", headers=admin.headers).json()["user_growth"]
        assert len(growth) == 12
        assert growth[0]["users"] == 1
        assert growth[-1]["users"] == 3
        assert growth[-1]["month"] == date.today().strftime("%b")
        counts = [month["users"] for month in growth]
        assert counts == sorted(counts)

    def test_waitlist_week_covers_seven_calendar_days(self, db, doctor, make_account):
        now = datetime(2024, 5, 18, 12, 0)
        created = [
            now - timedelta(days=7) + timedelta(hours=1),
            datetime(2024, 5, 12, 0, 0),
            now,
        ]
        for position, created_at in enumerate(created, start=1):
            db.add(WaitlistEntry(
                patient_id=make_account("patient").id,
                doctor_id=doctor.id,
                position=position,
                created_at=created_at,
            ))
        db.commit()

        week = {d.day: d.count for d in AnalyticsService(db).waitlist_week(now)}
        assert week["Sat"] == 1
        assert week["Sun"] == 1
        assert sum(week.values()) == 2

    def test_specialties_fall_back_to_doctor_profiles(self, client, admin, make_account):
        make_account("doctor", specialty="Cardiology")
        make_account("doctor", specialty="Cardiology")
        make_account("doctor", specialty="Oncology")

        data = client.get(f"{API}/analytics", headers=admin.headers).json()
        assert data["specialties"] == [
            {"name": "Cardiology", "value": 67},
            {"name": "Oncology", "value": 33},
        ]


class TestAnalyticsHelpers:

    def test_month_keys_wrap_the_year(self):
        keys = month_keys(date(2024, 2, 10))
        assert keys[0] == (2023, 3)
        assert keys[-1] == (2024, 2)
        assert len(keys) == 12

    def test_top_five_and_others(self):
        counts = {name: 1 for name in ("a", "b", "c", "d", "e", "f", "g")}
        counts["a"] = 4

        shares = specialty_shares(counts)
        assert [s.name for s in shares] == ["A", "B", "C", "D", "E", "Others"]
        assert shares[0].value == 40
        assert shares[-1].value == 20

    def test_no_counts(self):
        assert specialty_shares({}) == []

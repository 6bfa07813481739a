from datetime import datetime, timedelta

from medibook.models.activity import ActivityType, SystemActivity
from medibook.services.activity_service import describe_activity, format_relative_time


class TestPatientDashboard:

    def test_summary(self, client, patient, doctor, make_account, tomorrow, book):
        first = book(patient, doctor, tomorrow, "09:00")
        cancelled = book(patient, doctor, tomorrow, "09:30")
        done = book(patient, doctor, tomorrow, "10:00")
        client.post(f"/api/v1/appointments/{cancelled['id']}/cancel", headers=patient.headers)
        client.put(f"/api/v1/appointments/{done['id']}/notes", json={"notes": "Fine"}, headers=doctor.headers)
        client.post(f"/api/v1/appointments/{done['id']}/complete", headers=doctor.headers)
        client.post("/api/v1/waitlists", json={"doctor_id": make_account("doctor").id}, headers=patient.headers)

        response = client.get("/api/v1/dashboard/patient", headers=patient.headers)
        assert response.status_code == 200

        data = response.json()
        assert [a["id"] for a in data["upcoming_appointments"]] == [first["id"]]
        assert data["upcoming_count"] == 1
        assert data["completed_count"] == 1
        assert data["waitlist_count"] == 1
        assert [n["content"] for n in data["recent_notes"]] == ["Fine"]

    def test_doctors_use_their_own_dashboard(self, client, doctor):
        assert client.get("/api/v1/dashboard/patient", headers=doctor.headers).status_code == 403


class TestDoctorDashboard:

    def test_summary_with_emergency(self, client, patient, doctor, make_account, tomorrow, book):
        emergency = client.post(
            "/api/v1/emergencies",
            json={"doctor_id": doctor.id, "reason": "Shortness of breath"},
            headers=patient.headers
        ).json()
        client.post(f"/api/v1/emergencies/{emergency['id']}/approve", headers=doctor.headers)

        other = make_account("patient")
        client.post(
            "/api/v1/emergencies",
            json={"doctor_id": doctor.id, "reason": "Fever"},
            headers=other.headers
        )
        client.post("/api/v1/waitlists", json={"doctor_id": doctor.id}, headers=other.headers)
        book(other, doctor, tomorrow, "09:00")

        data = client.get("/api/v1/dashboard/doctor", headers=doctor.headers).json()
        assert data["today_total"] == 1
        assert data["today_appointments"][0]["status"] == "emergency"
        assert data["today_completed"] == 0
        assert data["completion_rate"] == 0
        assert data["upcoming_count"] == 2
        assert [e["reason"] for e in data["pending_emergencies"]] == ["Fever"]
        assert data["waitlist_count"] == 1

    def test_admins_are_not_doctors(self, client, admin):
        assert client.get("/api/v1/dashboard/doctor", headers=admin.headers).status_code == 403

    def test_completion_rate(self, client, patient, doctor):
        emergency = client.post(
            "/api/v1/emergencies",
            json={"doctor_id": doctor.id, "reason": "Burn"},
            headers=patient.headers
        ).json()
        appointment_id = client.post(
            f"/api/v1/emergencies/{emergency['id']}/approve", headers=doctor.headers
        ).json()["appointment_id"]
        client.post(f"/api/v1/appointments/{appointment_id}/complete", headers=doctor.headers)

        data = client.get("/api/v1/dashboard/doctor", headers=doctor.headers).json()
        assert data["today_completed"] == 1
        assert data["completion_rate"] == 100


class TestActivityFormatting:
    now = datetime(2024, 5, 20, 12, 0, 0)

    def test_relative_times(self):
        cases = [
            (timedelta(seconds=30), "Just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=1), "1 hour ago"),
            (timedelta(hours=23), "23 hours ago"),
            (timedelta(days=1), "1 day ago"),
            (timedelta(days=29), "29 days ago"),
        ]
        for delta, expected in cases:
            assert format_relative_time(self.now - delta, self.now) == expected

    def test_old_activity_shows_date(self):
        assert format_relative_time(datetime(2024, 3, 1, 9, 0), self.now) == "03/01/2024"

    def test_messages(self):
        waitlist = SystemActivity(type=ActivityType.WAITLIST_UPDATE, specialty="Cardiology", count=3)
        assert describe_activity(waitlist) == "3 new patients added to Cardiology waitlist"

        single = SystemActivity(type=ActivityType.WAITLIST_UPDATE, specialty="Cardiology", count=1)
        assert describe_activity(single) == "1 new patient added to Cardiology waitlist"

        completed = SystemActivity(
            type=ActivityType.APPOINTMENT_COMPLETED,
            doctor_name="Dr. Who",
            patient_name="Amy Pond",
        )
        assert describe_activity(completed) == "Appointment completed: Amy Pond with Dr. Who"

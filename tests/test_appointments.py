from datetime import date, timedelta

import pytest

from medibook.services import appointment_service

API = "/api/v1/appointments"


class TestBooking:

    def test_patient_books_appointment(self, client, patient, doctor, tomorrow):
        response = client.post(API, json={
            "doctor_id": doctor.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:00",
        }, headers=patient.headers)
        assert response.status_code == 201

        data = response.json()
        assert data["status"] == "scheduled"
        assert data["specialty"] == "Cardiology"
        assert data["reason"] == "Regular checkup"
        assert data["doctor_name"] == "Dr. Gregory House"
        assert data["patient_name"] == "Jane Patient"
        assert data["appointment_time"] == "10:00:00"

    def test_doctor_books_for_patient(self, client, patient, doctor, tomorrow):
        response = client.post(API, json={
            "patient_id": patient.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "14:00",
            "reason": "Follow-up",
        }, headers=doctor.headers)
        assert response.status_code == 201
        assert response.json()["patient_id"] == patient.id
        assert response.json()["doctor_id"] == doctor.id

    def test_admin_must_supply_both_parties(self, client, admin, doctor, tomorrow):
        response = client.post(API, json={
            "doctor_id": doctor.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "09:00",
        }, headers=admin.headers)
        assert response.status_code == 400

    def test_past_date_rejected(self, client, patient, doctor):
        yesterday = date.today() - timedelta(days=1)
        response = client.post(API, json={
            "doctor_id": doctor.id,
            "appointment_date": yesterday.isoformat(),
            "appointment_time": "10:00",
        }, headers=patient.headers)
        assert response.status_code == 400
        assert "past" in response.json()["detail"]

    @pytest.mark.parametrize("at", ["12:00", "10:15", "08:30"])
    def test_time_outside_grid_rejected(self, client, patient, doctor, tomorrow, at):
        response = client.post(API, json={
            "doctor_id": doctor.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": at,
        }, headers=patient.headers)
        assert response.status_code == 400

    def test_unknown_doctor(self, client, patient, tomorrow):
        response = client.post(API, json={
            "doctor_id": 9999,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:00",
        }, headers=patient.headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Doctor not found"

    def test_patient_cannot_be_booked_as_doctor(self, client, patient, make_account, tomorrow):
        other = make_account("patient")
        response = client.post(API, json={
            "doctor_id": other.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:00",
        }, headers=patient.headers)
        assert response.status_code == 404

    def test_double_booking_doctor_slot(self, client, patient, doctor, make_account, tomorrow, book):
        book(patient, doctor, tomorrow, "10:00")
        other = make_account("patient")

        response = client.post(API, json={
            "doctor_id": doctor.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:00",
        }, headers=other.headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "This time slot is no longer available"

    def test_patient_cannot_hold_two_appointments_at_once(self, client, patient, doctor, make_account, tomorrow, book):
        book(patient, doctor, tomorrow, "10:00")
        second_doctor = make_account("doctor", specialty="Neurology")

        response = client.post(API, json={
            "doctor_id": second_doctor.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:00",
        }, headers=patient.headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "You already have an appointment scheduled at this time"

    def test_blocked_slot_cannot_be_booked(self, client, patient, doctor, tomorrow):
        client.post("/api/v1/schedule/blocks", json={
            "day": tomorrow.isoformat(),
            "times": ["11:00"],
            "reason": "Staff meeting",
        }, headers=doctor.headers)

        response = client.post(API, json={
            "doctor_id": doctor.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "11:00",
        }, headers=patient.headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "This time slot is blocked"

    def test_lost_race_on_slot_is_a_conflict(self, client, patient, doctor, make_account, tomorrow, book, monkeypatch):
        book(patient, doctor, tomorrow, "10:00")
        other = make_account("patient")

        # Skip the friendly pre-checks so the unique index has to catch the clash
        monkeypatch.setattr(appointment_service, "check_slot_free", lambda *args, **kwargs: None)
        response = client.post(API, json={
            "doctor_id": doctor.id,
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:00",
        }, headers=other.headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "This time slot is no longer available"

        assert client.get(API, headers=other.headers).json() == []
        assert len(client.get(API, headers=doctor.headers).json()) == 1

    def test_cancelled_slot_can_be_rebooked(self, client, patient, doctor, make_account, tomorrow, book):
        appointment = book(patient, doctor, tomorrow, "10:00")
        client.post(f"{API}/{appointment['id']}/cancel", json={"reason": "Travel"}, headers=patient.headers)

        other = make_account("patient")
        again = book(other, doctor, tomorrow, "10:00")
        assert again["status"] == "scheduled"


class TestListing:

    def test_each_user_sees_own_appointments(self, client, patient, doctor, make_account, tomorrow, book):
        book(patient, doctor, tomorrow, "10:00")
        other = make_account("patient")
        book(other, doctor, tomorrow, "11:00")

        mine = client.get(API, headers=patient.headers).json()
        assert len(mine) == 1

        doctors_view = client.get(API, headers=doctor.headers).json()
        assert [a["appointment_time"] for a in doctors_view] == ["10:00:00", "11:00:00"]

    def test_descending_order_and_status_filter(self, client, patient, doctor, tomorrow, book):
        first = book(patient, doctor, tomorrow, "09:00")
        book(patient, doctor, tomorrow, "15:00")
        client.post(f"{API}/{first['id']}/cancel", headers=patient.headers)

        listing = client.get(API, params={"order": "desc"}, headers=patient.headers).json()
        assert [a["appointment_time"] for a in listing] == ["15:00:00", "09:00:00"]

        cancelled = client.get(API, params={"status": "cancelled"}, headers=patient.headers).json()
        assert [a["id"] for a in cancelled] == [first["id"]]

        upcoming = client.get(API, params={"upcoming": True}, headers=patient.headers).json()
        assert len(upcoming) == 1

    def test_outsider_cannot_view_appointment(self, client, patient, doctor, make_account, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        other = make_account("patient")

        response = client.get(f"{API}/{appointment['id']}", headers=other.headers)
        assert response.status_code == 403

        response = client.get(f"{API}/{appointment['id']}", headers=patient.headers)
        assert response.status_code == 200

    def test_missing_appointment(self, client, patient):
        response = client.get(f"{API}/4242", headers=patient.headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Appointment not found"


class TestLifecycle:

    def test_confirm_then_complete(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)

        confirmed = client.post(f"{API}/{appointment['id']}/confirm", headers=doctor.headers)
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"

        completed = client.post(f"{API}/{appointment['id']}/complete", headers=doctor.headers)
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

    def test_patient_cannot_confirm(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        response = client.post(f"{API}/{appointment['id']}/confirm", headers=patient.headers)
        assert response.status_code == 403

    def test_other_doctor_cannot_complete(self, client, patient, doctor, make_account, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        other_doctor = make_account("doctor")
        response = client.post(f"{API}/{appointment['id']}/complete", headers=other_doctor.headers)
        assert response.status_code == 403

    def test_invalid_transitions(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        client.post(f"{API}/{appointment['id']}/cancel", headers=patient.headers)

        for action in ("confirm", "complete"):
            response = client.post(f"{API}/{appointment['id']}/{action}", headers=doctor.headers)
            assert response.status_code == 400

        response = client.post(f"{API}/{appointment['id']}/cancel", headers=doctor.headers)
        assert response.status_code == 400

    def test_cancel_records_reason(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        response = client.post(
            f"{API}/{appointment['id']}/cancel",
            json={"reason": "Feeling better"},
            headers=patient.headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancelled_reason"] == "Feeling better"

    def test_reschedule(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow, "10:00")
        client.post(f"{API}/{appointment['id']}/confirm", headers=doctor.headers)

        response = client.post(f"{API}/{appointment['id']}/reschedule", json={
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:30",
        }, headers=patient.headers)
        assert response.status_code == 200
        assert response.json()["appointment_time"] == "10:30:00"
        assert response.json()["status"] == "scheduled"

    def test_reschedule_into_own_slot_is_allowed(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow, "10:00")
        response = client.post(f"{API}/{appointment['id']}/reschedule", json={
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:00",
        }, headers=patient.headers)
        assert response.status_code == 200

    def test_reschedule_into_taken_slot(self, client, patient, doctor, make_account, tomorrow, book):
        appointment = book(patient, doctor, tomorrow, "10:00")
        other = make_account("patient")
        book(other, doctor, tomorrow, "13:00")

        response = client.post(f"{API}/{appointment['id']}/reschedule", json={
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "13:00",
        }, headers=patient.headers)
        assert response.status_code == 409

    def test_notes_create_medical_note(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)

        response = client.put(
            f"{API}/{appointment['id']}/notes",
            json={"notes": "Blood pressure normal."},
            headers=doctor.headers
        )
        assert response.status_code == 200
        assert response.json()["notes"] == "Blood pressure normal."

        notes = client.get("/api/v1/medical-notes", headers=patient.headers).json()
        assert len(notes) == 1
        assert notes[0]["content"] == "Blood pressure normal."
        assert notes[0]["title"] == f"Visit Notes - {tomorrow.strftime('%m/%d/%Y')}"

    def test_saving_notes_twice_updates_single_note(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        for text in ("First draft", "Final version"):
            client.put(f"{API}/{appointment['id']}/notes", json={"notes": text}, headers=doctor.headers)

        notes = client.get("/api/v1/medical-notes", headers=doctor.headers).json()
        assert [n["content"] for n in notes] == ["Final version"]

    def test_delete_removes_note(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        client.put(f"{API}/{appointment['id']}/notes", json={"notes": "Checked"}, headers=doctor.headers)

        response = client.delete(f"{API}/{appointment['id']}", headers=doctor.headers)
        assert response.status_code == 204

        assert client.get(f"{API}/{appointment['id']}", headers=patient.headers).status_code == 404
        assert client.get("/api/v1/medical-notes", headers=patient.headers).json() == []

    def test_patient_cannot_delete(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow)
        response = client.delete(f"{API}/{appointment['id']}", headers=patient.headers)
        assert response.status_code == 403

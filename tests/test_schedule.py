from datetime import date, timedelta

API = "/api/v1/schedule"


def block(client, doctor, day, times, reason="Conference"):
    return client.post(f"{API}/blocks", json={
        "day": day.isoformat(),
        "times": times,
        "reason": reason,
    }, headers=doctor.headers)


class TestBlocking:

    def test_block_slots(self, client, doctor, tomorrow):
        response = block(client, doctor, tomorrow, ["09:00", "09:30"])
        assert response.status_code == 201

        data = response.json()
        assert [slot["time"] for slot in data["blocked"]] == ["09:00:00", "09:30:00"]
        assert data["conflicts"] == []
        assert data["already_blocked"] == []

    def test_booked_and_already_blocked_times_are_reported(self, client, patient, doctor, tomorrow, book):
        book(patient, doctor, tomorrow, "10:00")
        block(client, doctor, tomorrow, ["10:30"])

        response = block(client, doctor, tomorrow, ["10:00", "10:30", "11:00"])
        assert response.status_code == 201

        data = response.json()
        assert [slot["time"] for slot in data["blocked"]] == ["11:00:00"]
        assert data["conflicts"] == ["10:00"]
        assert data["already_blocked"] == ["10:30"]

    def test_cancelled_appointment_does_not_conflict(self, client, patient, doctor, tomorrow, book):
        appointment = book(patient, doctor, tomorrow, "10:00")
        client.post(f"/api/v1/appointments/{appointment['id']}/cancel", headers=patient.headers)

        data = block(client, doctor, tomorrow, ["10:00"]).json()
        assert len(data["blocked"]) == 1
        assert data["conflicts"] == []

    def test_past_day_rejected(self, client, doctor):
        response = block(client, doctor, date.today() - timedelta(days=1), ["09:00"])
        assert response.status_code == 400

    def test_empty_reason_rejected(self, client, doctor, tomorrow):
        response = block(client, doctor, tomorrow, ["09:00"], reason="")
        assert response.status_code == 422

    def test_off_grid_time_rejected(self, client, doctor, tomorrow):
        response = block(client, doctor, tomorrow, ["12:15"])
        assert response.status_code == 400

    def test_patients_cannot_block(self, client, patient, tomorrow):
        response = block(client, patient, tomorrow, ["09:00"])
        assert response.status_code == 403


class TestManagingBlocks:

    def test_list_and_unblock(self, client, doctor, tomorrow):
        block(client, doctor, tomorrow, ["09:00", "13:00"])

        slots = client.get(f"{API}/blocks", params={"date": tomorrow.isoformat()}, headers=doctor.headers).json()
        assert len(slots) == 2

        response = client.delete(f"{API}/blocks/{slots[0]['id']}", headers=doctor.headers)
        assert response.status_code == 204

        remaining = client.get(f"{API}/blocks", headers=doctor.headers).json()
        assert [slot["time"] for slot in remaining] == ["13:00:00"]

    def test_cannot_unblock_another_doctors_slot(self, client, doctor, make_account, tomorrow):
        slot = block(client, doctor, tomorrow, ["09:00"]).json()["blocked"][0]
        other = make_account("doctor")

        response = client.delete(f"{API}/blocks/{slot['id']}", headers=other.headers)
        assert response.status_code == 403

    def test_unblock_missing_slot(self, client, doctor):
        response = client.delete(f"{API}/blocks/999", headers=doctor.headers)
        assert response.status_code == 404

    def test_day_view(self, client, patient, doctor, tomorrow, book):
        book(patient, doctor, tomorrow, "15:00")
        book(patient, doctor, tomorrow, "09:30")
        block(client, doctor, tomorrow, ["16:00"])

        response = client.get(API, params={"date": tomorrow.isoformat()}, headers=doctor.headers)
        assert response.status_code == 200

        data = response.json()
        assert [a["appointment_time"] for a in data["appointments"]] == ["09:30:00", "15:00:00"]
        assert [s["time"] for s in data["blocked_slots"]] == ["16:00:00"]

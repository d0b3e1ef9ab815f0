"""API tests for staff management, availability templates and exclusions."""

import pytest
from conftest import at, auth_headers, create_service, create_staff, create_user, upcoming_monday

DAY = upcoming_monday()


@pytest.fixture
def headers(doctor):
    return auth_headers(doctor)


def staff_payload(**overrides) -> dict:
    payload = {
        "firstName": "Meredith",
        "lastName": "Grey",
        "email": "Meredith.Grey@Clinic.test",
        "phone": "+1 (555) 123-4567",
        "role": "surgeon",
        "availability": {"Mon": {"start": "9:00", "end": "17:00"}, "friday": [{"start": "08:00", "end": "12:00"}]},
    }
    payload.update(overrides)
    return payload


class TestCreateStaff:
    """Tests for POST /staff"""

    def test_create_staff_success(self, client, headers, doctor):
        response = client.post("/staff", json=staff_payload(), headers=headers)

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "meredith.grey@clinic.test"
        assert data["phone"] == "+15551234567"
        assert data["userId"] == doctor.id
        assert data["isActive"] is True
        assert data["availability"] == {
            "monday": [{"start": "09:00", "end": "17:00"}],
            "friday": [{"start": "08:00", "end": "12:00"}],
        }

    def test_duplicate_email(self, client, headers):
        client.post("/staff", json=staff_payload(), headers=headers)
        response = client.post("/staff", json=staff_payload(firstName="Other"), headers=headers)
        assert response.status_code == 409

    def test_invalid_template(self, client, headers):
        response = client.post(
            "/staff", json=staff_payload(availability={"monday": [{"start": "17:00", "end": "09:00"}]}), headers=headers
        )
        assert response.status_code == 422

    def test_invalid_email(self, client, headers):
        response = client.post("/staff", json=staff_payload(email="not-an-email"), headers=headers)
        assert response.status_code == 422

    def test_admin_assigns_owner(self, client, admin, doctor):
        response = client.post("/staff", json=staff_payload(userId=doctor.id), headers=auth_headers(admin))
        assert response.status_code == 201
        assert response.json()["userId"] == doctor.id

    def test_doctor_cannot_assign_other_owner(self, client, headers, doctor, admin):
        response = client.post("/staff", json=staff_payload(userId=admin.id), headers=headers)
        assert response.json()["userId"] == doctor.id


class TestStaffAccess:
    """Doctors manage their own staff; admins manage everyone's"""

    def test_list_is_scoped_to_owner(self, client, db_session, doctor, admin):
        mine = create_staff(db_session, owner=doctor)
        other_doctor = create_user(db_session, role="doctor", email="other@example.com")
        create_staff(db_session, owner=other_doctor)

        doctor_view = client.get("/staff", headers=auth_headers(doctor)).json()
        admin_view = client.get("/staff", headers=auth_headers(admin)).json()

        assert [s["id"] for s in doctor_view] == [mine.id]
        assert len(admin_view) == 2

    def test_other_doctors_staff_is_forbidden(self, client, db_session, headers):
        other_doctor = create_user(db_session, role="doctor", email="other@example.com")
        theirs = create_staff(db_session, owner=other_doctor)

        assert client.get(f"/staff/{theirs.id}", headers=headers).status_code == 403
        assert client.patch(f"/staff/{theirs.id}", json={"role": "x"}, headers=headers).status_code == 403

    def test_missing_staff(self, client, headers):
        assert client.get("/staff/9999", headers=headers).status_code == 404

    def test_list_filtered_by_service(self, client, db_session, doctor, headers):
        service = create_service(db_session)
        offering = create_staff(db_session, owner=doctor)
        create_staff(db_session, owner=doctor)
        client.post(f"/staff/{offering.id}/services", json={"serviceId": service.id}, headers=headers)

        response = client.get("/staff", params={"serviceId": service.id}, headers=headers)
        assert [s["id"] for s in response.json()] == [offering.id]


class TestUpdateStaff:
    def test_update_and_deactivate(self, client, db_session, doctor, headers):
        staff = create_staff(db_session, owner=doctor)

        response = client.patch(f"/staff/{staff.id}", json={"role": "nurse", "phone": "555-1234"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["role"] == "nurse"
        assert response.json()["phone"] == "5551234"

        assert client.delete(f"/staff/{staff.id}", headers=headers).status_code == 204
        assert client.get("/staff", headers=headers).json() == []
        inactive = client.get("/staff", params={"includeInactive": True}, headers=headers).json()
        assert inactive[0]["isActive"] is False

    def test_replace_availability(self, client, db_session, doctor, headers):
        staff = create_staff(db_session, owner=doctor)

        response = client.put(
            f"/staff/{staff.id}/availability",
            json={"availability": {"tuesday": [{"start": "13:00", "end": "18:00"}]}},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["availability"] == {"tuesday": [{"start": "13:00", "end": "18:00"}]}


class TestExclusions:
    """Tests for /staff/{id}/exclusions"""

    def test_create_list_delete(self, client, db_session, doctor, headers):
        staff = create_staff(db_session, owner=doctor)

        response = client.post(
            f"/staff/{staff.id}/exclusions",
            json={"startTime": at(DAY, "13:00").isoformat(), "endTime": at(DAY, "14:00").isoformat(), "reason": "Dentist"},
            headers=headers,
        )
        assert response.status_code == 201
        exclusion = response.json()
        assert exclusion["staffId"] == staff.id
        assert exclusion["reason"] == "Dentist"

        listed = client.get(f"/staff/{staff.id}/exclusions", headers=headers).json()
        assert [e["id"] for e in listed] == [exclusion["id"]]

        response = client.delete(f"/staff/{staff.id}/exclusions/{exclusion['id']}", headers=headers)
        assert response.status_code == 204
        assert client.get(f"/staff/{staff.id}/exclusions", headers=headers).json() == []

    def test_inverted_range(self, client, db_session, doctor, headers):
        staff = create_staff(db_session, owner=doctor)
        response = client.post(
            f"/staff/{staff.id}/exclusions",
            json={"startTime": at(DAY, "14:00").isoformat(), "endTime": at(DAY, "13:00").isoformat()},
            headers=headers,
        )
        assert response.status_code == 422

    def test_delete_missing_exclusion(self, client, db_session, doctor, headers):
        staff = create_staff(db_session, owner=doctor)
        assert client.delete(f"/staff/{staff.id}/exclusions/9999", headers=headers).status_code == 404


class TestServiceAssignments:
    def test_assign_is_idempotent_and_unassign(self, client, db_session, doctor, headers):
        staff = create_staff(db_session, owner=doctor)
        service = create_service(db_session, name="Physio")

        client.post(f"/staff/{staff.id}/services", json={"serviceId": service.id}, headers=headers)
        response = client.post(f"/staff/{staff.id}/services", json={"serviceId": service.id}, headers=headers)

        assert response.status_code == 200
        assert [s["name"] for s in response.json()] == ["Physio"]

        assert client.delete(f"/staff/{staff.id}/services/{service.id}", headers=headers).status_code == 204
        assert client.get(f"/staff/{staff.id}/services", headers=headers).json() == []
        assert client.delete(f"/staff/{staff.id}/services/{service.id}", headers=headers).status_code == 404

    def test_assign_unknown_service(self, client, db_session, doctor, headers):
        staff = create_staff(db_session, owner=doctor)
        response = client.post(f"/staff/{staff.id}/services", json={"serviceId": 9999}, headers=headers)
        assert response.status_code == 404

"""
Workflow service tests: users, SOS, medical, lost & found, registrations, dashboards.
"""
import time
from datetime import timedelta

import pytest

from kumbh_alert.core.errors import (
    Forbidden,
    InvalidMatch,
    InvalidTransition,
    NotFound,
    StoreTimeout,
    Unauthorized,
    ValidationFailed,
)
from kumbh_alert.core.settings import settings
from kumbh_alert.models.lost_found import LostFoundCreate, PersonPhotoUpload
from kumbh_alert.models.medical import MedicalCaseCreate
from kumbh_alert.models.registration import RegistrationCreate
from kumbh_alert.models.sos import SOSCreate
from kumbh_alert.models.user import Role
from kumbh_alert.services.dashboard_service import DashboardService
from kumbh_alert.services.lost_found_service import LostFoundService
from kumbh_alert.services.medical_service import MedicalService
from kumbh_alert.services.registration_service import RegistrationService, is_valid_qr_code_id
from kumbh_alert.services.sos_service import SOSService
from kumbh_alert.store import get_medical_store, get_registration_store, get_session_store
from kumbh_alert.utils.firestore_helpers import utc_now


class CapturingDispatcher:
    def __init__(self):
        self.events = []

    def publish(self, event_name, payload):
        self.events.append((event_name, payload))


@pytest.fixture
def dispatcher():
    return CapturingDispatcher()


def sos_request(**overrides):
    return SOSCreate(**{"latitude": 19.99, "longitude": 73.78, "message": "Help", **overrides})


def medical_request(**overrides):
    return MedicalCaseCreate(**{
        "latitude": 19.99,
        "longitude": 73.78,
        "case_type": "consultation",
        "description": "Dizziness",
        **overrides,
    })


# ============================================================================
# Users and sessions
# ============================================================================

class TestUserService:
    def test_signup_creates_pilgrim_with_session(self, users):
        result = users.signup(name="Ravi", email="Ravi@Example.com", phone="9876543210", password="secret1")

        assert result["user"]["role"] == "pilgrim"
        assert result["user"]["email"] == "ravi@example.com"
        assert "password_hash" not in result["user"]
        assert users.resolve_token(result["token"]).id == result["user"]["id"]

    def test_duplicate_email_rejected(self, users, pilgrim_user):
        with pytest.raises(ValidationFailed):
            users.create_user(name="Other", email="PILGRIM@test.com", phone="1", password="secret1")

    def test_login_by_email_id_and_staff_alias(self, users, pilgrim_user):
        staff = users.create_user(
            name="Admin", email="admin@kumbh.com", phone="1", password="admin", role=Role.ADMIN,
        )

        assert users.login("pilgrim@test.com", "testpass123")["user"]["id"] == pilgrim_user["id"]
        assert users.login(pilgrim_user["id"], "testpass123")["user"]["id"] == pilgrim_user["id"]
        assert users.login("admin", "admin")["user"]["id"] == staff["id"]

    def test_wrong_password(self, users, pilgrim_user):
        with pytest.raises(Unauthorized):
            users.login("pilgrim@test.com", "wrong")

    def test_unknown_identifier(self, users):
        with pytest.raises(Unauthorized):
            users.login("nobody@test.com", "whatever")

    def test_missing_identifier(self, users):
        with pytest.raises(ValidationFailed):
            users.login("  ", "whatever")

    def test_deactivated_account_cannot_log_in(self, users, admin, pilgrim_user):
        users.set_active(admin, pilgrim_user["id"], False)

        with pytest.raises(Unauthorized):
            users.login("pilgrim@test.com", "testpass123")

    def test_expired_session_rejected(self, users, pilgrim_user):
        get_session_store().create({
            "token": "stale",
            "user_id": pilgrim_user["id"],
            "expires_at": utc_now() - timedelta(minutes=1),
        })

        with pytest.raises(Unauthorized):
            users.resolve_token("stale")

    def test_unknown_token_rejected(self, users):
        with pytest.raises(Unauthorized):
            users.resolve_token("no-such-token")

    def test_resolve_token_returns_inactive_actor(self, users, admin, pilgrim_user):
        token = users.issue_session(pilgrim_user)
        users.set_active(admin, pilgrim_user["id"], False)

        assert users.resolve_token(token).is_active is False

    def test_only_admin_manages_users(self, users, volunteer, pilgrim_user):
        with pytest.raises(Forbidden):
            users.set_active(volunteer, pilgrim_user["id"], False)
        with pytest.raises(Forbidden):
            users.list_users(volunteer)

    def test_view_user(self, users, pilgrim, volunteer_user, admin):
        assert users.view_user(pilgrim, pilgrim.id)["id"] == pilgrim.id
        assert users.view_user(admin, volunteer_user["id"])["id"] == volunteer_user["id"]
        with pytest.raises(Forbidden):
            users.view_user(pilgrim, volunteer_user["id"])
        with pytest.raises(NotFound):
            users.view_user(admin, "missing")

    def test_update_location(self, users, pilgrim):
        user = users.update_location(pilgrim, 19.5, 73.5)

        assert user["location"]["latitude"] == 19.5
        assert user["location"]["longitude"] == 73.5


# ============================================================================
# SOS
# ============================================================================

class TestSOSService:
    def test_create_publishes_sos_alert(self, pilgrim, dispatcher):
        service = SOSService(dispatcher=dispatcher)

        sos = service.create_sos(pilgrim, sos_request(priority="critical"))

        assert sos["status"] == "pending"
        assert sos["user_id"] == pilgrim.id
        event, payload = dispatcher.events[0]
        assert event == "sos-alert"
        assert payload["id"] == sos["id"]
        assert payload["priority"] == "critical"
        assert payload["userId"] == pilgrim.id

    def test_anonymous_sos(self, dispatcher):
        sos = SOSService(dispatcher=dispatcher).create_sos(None, sos_request())

        assert sos["user_id"] is None
        assert len(dispatcher.events) == 1

    def test_deactivated_user_cannot_raise_sos(self, users, admin, pilgrim_user, dispatcher):
        users.set_active(admin, pilgrim_user["id"], False)
        inactive = users.resolve_token(users.issue_session(pilgrim_user))
        service = SOSService(dispatcher=dispatcher)

        with pytest.raises(Unauthorized):
            service.create_sos(inactive, sos_request())

        assert service.alerts.count() == 0
        assert dispatcher.events == []

    def test_lifecycle(self, pilgrim, volunteer, dispatcher):
        service = SOSService(dispatcher=dispatcher)
        sos = service.create_sos(pilgrim, sos_request())

        acknowledged = service.acknowledge(volunteer, sos["id"])
        assert acknowledged["status"] == "acknowledged"
        assert acknowledged["assigned_to"] == volunteer.id

        with pytest.raises(InvalidTransition):
            service.acknowledge(volunteer, sos["id"])

        resolved = service.resolve(volunteer, sos["id"])
        assert resolved["status"] == "resolved"
        assert resolved["resolved_at"] is not None

        with pytest.raises(InvalidTransition):
            service.resolve(volunteer, sos["id"])

    def test_pilgrim_cannot_manage(self, pilgrim, dispatcher):
        service = SOSService(dispatcher=dispatcher)
        sos = service.create_sos(pilgrim, sos_request())

        with pytest.raises(Forbidden):
            service.acknowledge(pilgrim, sos["id"])
        with pytest.raises(Forbidden):
            service.list_sos(pilgrim)

    def test_unknown_sos(self, volunteer, dispatcher):
        with pytest.raises(NotFound):
            SOSService(dispatcher=dispatcher).resolve(volunteer, "missing")

    def test_list_and_my_sos(self, pilgrim, volunteer, dispatcher):
        service = SOSService(dispatcher=dispatcher)
        mine = service.create_sos(pilgrim, sos_request(priority="low"))
        service.create_sos(None, sos_request(priority="high"))

        assert [s["id"] for s in service.my_sos(pilgrim)] == [mine["id"]]
        assert len(service.list_sos(volunteer)) == 2
        assert len(service.list_sos(volunteer, priority="low")) == 1


# ============================================================================
# Medical
# ============================================================================

class SnapshotStore:
    """Serves reads from a record captured earlier; writes go to the real store."""

    def __init__(self, store, snapshot):
        self._store = store
        self._snapshot = snapshot

    def get_by_id(self, record_id):
        return dict(self._snapshot)

    def append(self, record_id, field, values):
        return self._store.append(record_id, field, values)


class TestMedicalService:
    def test_routine_case_is_not_broadcast(self, pilgrim, dispatcher):
        case = MedicalService(dispatcher=dispatcher).create_case(pilgrim, medical_request())

        assert case["status"] == "pending"
        assert case["patient_id"] == pilgrim.id
        assert case["medical_issue"] == "Dizziness"
        assert dispatcher.events == []

    @pytest.mark.parametrize("overrides", [
        {"case_type": "emergency"},
        {"severity": "critical"},
    ])
    def test_emergency_case_is_broadcast(self, pilgrim, dispatcher, overrides):
        case = MedicalService(dispatcher=dispatcher).create_case(pilgrim, medical_request(**overrides))

        event, payload = dispatcher.events[0]
        assert event == "emergency-notification"
        assert payload["id"] == case["id"]

    def test_assign_note_resolve(self, pilgrim, medic, dispatcher):
        service = MedicalService(dispatcher=dispatcher)
        case = service.create_case(pilgrim, medical_request())

        assigned = service.assign(medic, case["id"], medic.id)
        assert assigned["status"] == "in-progress"
        assert assigned["assigned_to"] == medic.id

        noted = service.add_note(medic, case["id"], "BP normal")
        noted = service.add_note(medic, case["id"], "Discharged")
        assert [n["note"] for n in noted["medical_notes"]] == ["BP normal", "Discharged"]
        assert noted["medical_notes"][0]["added_by"] == medic.id

        resolved = service.resolve(medic, case["id"])
        assert resolved["status"] == "resolved"

        with pytest.raises(InvalidTransition):
            service.add_note(medic, case["id"], "Too late")
        with pytest.raises(InvalidTransition):
            service.assign(medic, case["id"], medic.id)

    def test_notes_added_from_stale_reads_both_survive(self, pilgrim, medic, dispatcher):
        case = MedicalService(dispatcher=dispatcher).create_case(pilgrim, medical_request())
        first = MedicalService(medical_store=SnapshotStore(get_medical_store(), case), dispatcher=dispatcher)
        second = MedicalService(medical_store=SnapshotStore(get_medical_store(), case), dispatcher=dispatcher)

        first.add_note(medic, case["id"], "BP normal")
        second.add_note(medic, case["id"], "Given fluids")

        notes = get_medical_store().get_by_id(case["id"])["medical_notes"]
        assert sorted(n["note"] for n in notes) == ["BP normal", "Given fluids"]

    def test_volunteer_cannot_manage_cases(self, pilgrim, volunteer, dispatcher):
        service = MedicalService(dispatcher=dispatcher)
        case = service.create_case(pilgrim, medical_request())

        with pytest.raises(Forbidden):
            service.assign(volunteer, case["id"], volunteer.id)

    def test_my_cases_includes_reported_and_patient_cases(self, pilgrim, volunteer, dispatcher):
        service = MedicalService(dispatcher=dispatcher)
        reported = service.create_case(pilgrim, medical_request(patient_id="someone-else"))
        as_patient = service.create_case(volunteer, medical_request(patient_id=pilgrim.id))
        service.create_case(volunteer, medical_request())

        assert {c["id"] for c in service.my_cases(pilgrim)} == {reported["id"], as_patient["id"]}


# ============================================================================
# Lost & found
# ============================================================================

class TestLostFoundService:
    def test_pairing_scenario(self, pilgrim, volunteer):
        service = LostFoundService()
        lost = service.create_report(pilgrim, LostFoundCreate(
            type="lost", item_name="Phone", latitude=19.9, longitude=73.7, phone="9876543210",
        ))
        found = service.create_report(volunteer, LostFoundCreate(
            type="found", item_name="Phone", latitude=19.9, longitude=73.7, phone="9876543211",
        ))

        result = service.match(pilgrim, lost["id"], found["id"])

        assert result["item"]["matched_with"] == found["id"]
        assert result["matched_item"]["matched_with"] == lost["id"]

        mine = service.my_reports(pilgrim)
        assert mine[0]["status"] == "matched"
        assert mine[0]["reporter"]["id"] == pilgrim.id

        resolved = service.resolve(pilgrim, lost["id"])
        assert resolved["status"] == "resolved"

    def test_same_type_match_rejected(self, pilgrim):
        service = LostFoundService()
        first = service.create_report(pilgrim, LostFoundCreate(
            type="lost", item_name="Bag", latitude=19.9, longitude=73.7, phone="1",
        ))
        second = service.create_report(pilgrim, LostFoundCreate(
            type="lost", item_name="Bag", latitude=19.9, longitude=73.7, phone="1",
        ))

        with pytest.raises(InvalidMatch):
            service.match(pilgrim, first["id"], second["id"])

    def test_person_photo_creates_found_person_report_with_leads(self, volunteer):
        for size in (2, 3):
            get_registration_store().create({"group_size": size, "intended_destination": "Tapovan"})

        result = LostFoundService().upload_person_photo(volunteer, PersonPhotoUpload(
            image="data:image/png;base64,AAAA", latitude=19.9, longitude=73.7,
        ))

        report = result["lost_found"]
        assert report["type"] == "found"
        assert report["is_person"] is True
        assert report["reported_by"] == volunteer.id
        assert len(result["potential_matches"]) == 2

    def test_pilgrim_cannot_correlate(self, pilgrim):
        with pytest.raises(Forbidden):
            LostFoundService().upload_person_photo(pilgrim, PersonPhotoUpload(
                image="x", latitude=19.9, longitude=73.7,
            ))

    def test_match_with_registration(self, volunteer):
        service = LostFoundService()
        photo = service.upload_person_photo(volunteer, PersonPhotoUpload(
            image="x", latitude=19.9, longitude=73.7,
        ))
        registration = get_registration_store().create({
            "group_size": 5,
            "intended_destination": "Ramkund",
            "contact_info": {"phone": "9876543210", "name": "Asha"},
        })

        result = service.match_with_registration(volunteer, photo["lost_found"]["id"], registration["id"])

        assert result["report"]["matched_with_registration"] == registration["id"]
        assert result["registration"]["destination"] == "Ramkund"


# ============================================================================
# Registrations
# ============================================================================

def registration_request(**overrides):
    return RegistrationCreate(**{
        "qr_code_id": "Kumbhbharat Registration",
        "entry_point": "bus_stand",
        "group_size": 5,
        "luggage_count": 3,
        "intended_destination": "Tapovan",
        "latitude": 19.99,
        "longitude": 73.78,
        "contact_info": {"phone": "9876543210", "name": "Asha"},
        **overrides,
    })


class SlowStore:
    def __init__(self, delay):
        self.delay = delay

    def create(self, fields):
        time.sleep(self.delay)
        return {"id": "late", **fields}


class TestQRCodeValidation:
    @pytest.mark.parametrize("value", [
        "Kumbhbharat Registration",
        "  Kumbhbharat Registration  ",
        '{"id": "Kumbhbharat Registration"}',
        '{"qrCodeId": "Kumbhbharat Registration", "v": 2}',
    ])
    def test_accepted(self, value):
        assert is_valid_qr_code_id(value)

    @pytest.mark.parametrize("value", [
        "",
        "Some Other Event",
        '{"id": "Other"}',
        '["Kumbhbharat Registration"]',
        "{not json",
    ])
    def test_rejected(self, value):
        assert not is_valid_qr_code_id(value)


class TestRegistrationService:
    def test_anonymous_registration_publishes_crowd_update(self, run, dispatcher):
        service = RegistrationService(dispatcher=dispatcher)

        registration = run(service.register(None, registration_request()))

        assert registration["entry_point_name"] == "Bus Stand"
        assert registration["group_selfie"] == "captured"
        assert registration["custom_destination"] is None
        assert registration["registered_by"] is None
        assert registration["registered_at"] is not None
        event, payload = dispatcher.events[0]
        assert event == "crowd-update"
        assert payload["destination"] == "Tapovan"
        assert payload["groupSize"] == 5

    def test_custom_destination_kept_only_for_other(self, run, dispatcher):
        service = RegistrationService(dispatcher=dispatcher)

        dropped = run(service.register(None, registration_request(custom_destination="Godavari bank")))
        kept = run(service.register(None, registration_request(
            intended_destination="Other", custom_destination="Godavari bank",
        )))

        assert dropped["custom_destination"] is None
        assert kept["custom_destination"] == "Godavari bank"

    def test_unknown_qr_code_rejected(self, run, dispatcher):
        service = RegistrationService(dispatcher=dispatcher)

        with pytest.raises(ValidationFailed):
            run(service.register(None, registration_request(qr_code_id="Fake Event")))

        assert get_registration_store().count() == 0
        assert dispatcher.events == []

    def test_slow_write_times_out(self, run, dispatcher, monkeypatch):
        monkeypatch.setattr(settings, "REGISTRATION_TIMEOUT_SECONDS", 0.05)
        service = RegistrationService(registration_store=SlowStore(delay=0.3), dispatcher=dispatcher)

        with pytest.raises(StoreTimeout):
            run(service.register(None, registration_request()))

        assert dispatcher.events == []

    def test_pagination(self, run, dispatcher):
        service = RegistrationService(dispatcher=dispatcher)
        for _ in range(5):
            run(service.register(None, registration_request()))

        page = service.list_registrations(None, page=2, limit=2)

        assert len(page["registrations"]) == 2
        assert page["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}

    def test_crowd_status_is_public(self, run, dispatcher):
        service = RegistrationService(dispatcher=dispatcher)
        run(service.register(None, registration_request(group_size=50)))

        status = service.crowd_status(None, "Tapovan")

        assert status["estimated_people"] == 50
        assert status["crowd_level"] == "low"

    def test_analytics_needs_a_session(self, pilgrim):
        service = RegistrationService()

        with pytest.raises(Unauthorized):
            service.analytics(None)
        assert service.analytics(pilgrim)["analytics"] == []


# ============================================================================
# Dashboards
# ============================================================================

class TestDashboardService:
    def test_admin_counts(self, admin, pilgrim, volunteer, medic, dispatcher):
        sos = SOSService(dispatcher=dispatcher)
        first = sos.create_sos(pilgrim, sos_request())
        sos.create_sos(pilgrim, sos_request())
        sos.resolve(volunteer, first["id"])
        MedicalService(dispatcher=dispatcher).create_case(pilgrim, medical_request())

        dashboard = DashboardService().admin_dashboard(admin)

        assert dashboard["users"] == {"total": 4, "volunteers": 1, "medicalStaff": 1}
        assert dashboard["sos"] == {"pending": 1, "resolved": 1}
        assert dashboard["lostFound"] == {"open": 0, "resolved": 0}
        assert dashboard["medical"] == {"pending": 1, "resolved": 0}

    def test_admin_dashboard_is_admin_only(self, medic):
        with pytest.raises(Forbidden):
            DashboardService().admin_dashboard(medic)

    def test_staff_dashboard_and_assigned_tasks(self, pilgrim, volunteer, dispatcher):
        sos = SOSService(dispatcher=dispatcher)
        mine = sos.create_sos(pilgrim, sos_request())
        sos.create_sos(pilgrim, sos_request())
        done = sos.create_sos(pilgrim, sos_request())
        sos.acknowledge(volunteer, mine["id"])
        sos.acknowledge(volunteer, done["id"])
        sos.resolve(volunteer, done["id"])
        service = DashboardService()

        dashboard = service.staff_dashboard(volunteer)

        assert dashboard == {"pendingSOS": 1, "myAssignedSOS": 1, "openLostFound": 0}
        assert [task["id"] for task in service.assigned_tasks(volunteer)] == [mine["id"]]

    def test_pilgrim_has_no_staff_dashboard(self, pilgrim):
        with pytest.raises(Forbidden):
            DashboardService().staff_dashboard(pilgrim)

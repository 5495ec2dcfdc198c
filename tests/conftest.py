"""
Global test fixtures for pytest.

Provides:
- A fresh in-memory Firestore per test (patched into the firebase module)
- Fresh service singletons so no dispatcher or store state leaks between tests
- Users of every role, as Actors and as bearer-token headers
- A FastAPI TestClient
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from kumbh_alert.config import firebase
from kumbh_alert.config.mock_firestore import MockFirestore
from kumbh_alert.core.settings import settings
from kumbh_alert.models.user import Role
from kumbh_alert.services import (
    crowd_analytics,
    dashboard_service,
    lost_found_service,
    matching_engine,
    medical_service,
    notification_dispatcher,
    registration_service,
    sos_service,
    user_service,
)
from kumbh_alert.services.user_service import UserService, to_actor


SINGLETONS = [
    (notification_dispatcher, "_dispatcher"),
    (matching_engine, "_matching_engine"),
    (crowd_analytics, "_crowd_analytics_engine"),
    (user_service, "_user_service"),
    (sos_service, "_sos_service"),
    (medical_service, "_medical_service"),
    (lost_found_service, "_lost_found_service"),
    (registration_service, "_registration_service"),
    (dashboard_service, "_dashboard_service"),
]


# ============================================================================
# Database and singletons
# ============================================================================

@pytest.fixture(autouse=True)
def mock_db(monkeypatch):
    """Every test gets its own empty in-memory Firestore."""
    db = MockFirestore()
    monkeypatch.setattr(firebase, "db", db)
    monkeypatch.setattr(settings, "PASSWORD_HASH_ITERATIONS", 1000)
    for module, attribute in SINGLETONS:
        monkeypatch.setattr(module, attribute, None)
    return db


@pytest.fixture
def run():
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def users():
    return UserService()


def _make_user(users, role: Role, name: str):
    return users.create_user(
        name=name,
        email=f"{role.value}@test.com",
        phone="9876543210",
        password="testpass123",
        role=role,
    )


@pytest.fixture
def pilgrim_user(users):
    return _make_user(users, Role.PILGRIM, "Pilgrim User")


@pytest.fixture
def volunteer_user(users):
    return _make_user(users, Role.VOLUNTEER, "Volunteer User")


@pytest.fixture
def medical_user(users):
    return _make_user(users, Role.MEDICAL, "Medical User")


@pytest.fixture
def admin_user(users):
    return _make_user(users, Role.ADMIN, "Admin User")


@pytest.fixture
def pilgrim(pilgrim_user):
    return to_actor(pilgrim_user)


@pytest.fixture
def volunteer(volunteer_user):
    return to_actor(volunteer_user)


@pytest.fixture
def medic(medical_user):
    return to_actor(medical_user)


@pytest.fixture
def admin(admin_user):
    return to_actor(admin_user)


def _auth_headers(users, user):
    return {"Authorization": f"Bearer {users.issue_session(user)}"}


@pytest.fixture
def pilgrim_headers(users, pilgrim_user):
    return _auth_headers(users, pilgrim_user)


@pytest.fixture
def volunteer_headers(users, volunteer_user):
    return _auth_headers(users, volunteer_user)


@pytest.fixture
def medical_headers(users, medical_user):
    return _auth_headers(users, medical_user)


@pytest.fixture
def admin_headers(users, admin_user):
    return _auth_headers(users, admin_user)


# ============================================================================
# API client
# ============================================================================

@pytest.fixture
def client():
    from kumbh_alert.main import app
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Record payloads
# ============================================================================

def registration_payload(**overrides):
    payload = {
        "qr_code_id": "Kumbhbharat Registration",
        "entry_point": "railway_station",
        "group_size": 4,
        "luggage_count": 2,
        "intended_destination": "Tapovan",
        "latitude": 19.9975,
        "longitude": 73.7898,
        "contact_info": {"phone": "9876543210", "name": "Asha"},
    }
    payload.update(overrides)
    return payload


def lost_found_payload(**overrides):
    payload = {
        "type": "lost",
        "item_name": "Black backpack",
        "description": "Left near the ghat steps",
        "latitude": 19.9975,
        "longitude": 73.7898,
        "phone": "9876543210",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_registration():
    return registration_payload


@pytest.fixture
def make_lost_found():
    return lost_found_payload

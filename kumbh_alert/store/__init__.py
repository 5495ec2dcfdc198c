"""
Entity Store instances, one per record kind.
"""

from kumbh_alert.store.repository import AppendOnlyStore, RecordStore

USERS = "users"
SESSIONS = "sessions"
SOS_ALERTS = "sos_alerts"
LOST_FOUND = "lost_found"
MEDICAL_CASES = "medical_cases"
REGISTRATIONS = "registrations"

_user_store = RecordStore(USERS)
_session_store = RecordStore(SESSIONS)
_sos_store = RecordStore(SOS_ALERTS)
_lost_found_store = RecordStore(LOST_FOUND)
_medical_store = RecordStore(MEDICAL_CASES)
_registration_store = AppendOnlyStore(RecordStore(REGISTRATIONS, sort_field="registered_at"))


def get_user_store() -> RecordStore:
    return _user_store


def get_session_store() -> RecordStore:
    return _session_store


def get_sos_store() -> RecordStore:
    return _sos_store


def get_lost_found_store() -> RecordStore:
    return _lost_found_store


def get_medical_store() -> RecordStore:
    return _medical_store


def get_registration_store() -> AppendOnlyStore:
    return _registration_store

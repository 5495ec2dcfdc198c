"""
Access Control Gate - declarative role → action capability matrix.

DESIGN PRINCIPLES:
- One static table decides who may do what; no role checks elsewhere
- Deactivated accounts are rejected before the table is consulted
- Anonymous callers are only accepted for actions that say so
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional
import logging

from kumbh_alert.core.errors import Forbidden, Unauthorized
from kumbh_alert.models.user import Actor, Role

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE_SOS = "create_sos"
    VIEW_OWN_SOS = "view_own_sos"
    MANAGE_SOS = "manage_sos"                      # view all / acknowledge / resolve
    CREATE_LOST_FOUND = "create_lost_found"
    VIEW_LOST_FOUND = "view_lost_found"
    MATCH_LOST_FOUND = "match_lost_found"
    RESOLVE_LOST_FOUND = "resolve_lost_found"
    CORRELATE_PERSON = "correlate_person"          # upload person-photo / match-with-registration
    CREATE_MEDICAL_CASE = "create_medical_case"
    VIEW_OWN_MEDICAL_CASES = "view_own_medical_cases"
    MANAGE_MEDICAL_CASE = "manage_medical_case"    # view all / assign / note / resolve
    REGISTER_ENTRY = "register_entry"
    VIEW_REGISTRATIONS = "view_registrations"
    VIEW_CROWD_ANALYTICS = "view_crowd_analytics"
    VIEW_CROWD_STATUS = "view_crowd_status"
    VIEW_OWN_PROFILE = "view_own_profile"
    UPDATE_OWN_LOCATION = "update_own_location"
    STAFF_DASHBOARD = "staff_dashboard"
    ADMIN_DASHBOARD = "admin_dashboard"            # dashboard / admin aggregates
    MANAGE_USERS = "manage_users"


ALL_ROLES: FrozenSet[Role] = frozenset(Role)
STAFF: FrozenSet[Role] = frozenset({Role.VOLUNTEER, Role.MEDICAL, Role.ADMIN})

CAPABILITY_MATRIX: Dict[Action, FrozenSet[Role]] = {
    Action.CREATE_SOS: ALL_ROLES,
    Action.VIEW_OWN_SOS: ALL_ROLES,
    Action.MANAGE_SOS: STAFF,
    Action.CREATE_LOST_FOUND: ALL_ROLES,
    Action.VIEW_LOST_FOUND: ALL_ROLES,
    Action.MATCH_LOST_FOUND: ALL_ROLES,
    Action.RESOLVE_LOST_FOUND: ALL_ROLES,
    Action.CORRELATE_PERSON: frozenset({Role.VOLUNTEER, Role.ADMIN}),
    Action.CREATE_MEDICAL_CASE: ALL_ROLES,
    Action.VIEW_OWN_MEDICAL_CASES: ALL_ROLES,
    Action.MANAGE_MEDICAL_CASE: frozenset({Role.MEDICAL, Role.ADMIN}),
    Action.REGISTER_ENTRY: ALL_ROLES,
    Action.VIEW_REGISTRATIONS: ALL_ROLES,
    Action.VIEW_CROWD_ANALYTICS: ALL_ROLES,
    Action.VIEW_CROWD_STATUS: ALL_ROLES,
    Action.VIEW_OWN_PROFILE: ALL_ROLES,
    Action.UPDATE_OWN_LOCATION: ALL_ROLES,
    Action.STAFF_DASHBOARD: STAFF,
    Action.ADMIN_DASHBOARD: frozenset({Role.ADMIN}),
    Action.MANAGE_USERS: frozenset({Role.ADMIN}),
}

# Actions that may be performed without any session at all
ANONYMOUS_ACTIONS: FrozenSet[Action] = frozenset({
    Action.CREATE_SOS,
    Action.REGISTER_ENTRY,
    Action.VIEW_REGISTRATIONS,
    Action.VIEW_CROWD_STATUS,
})


def is_allowed(role: Role, action: Action) -> bool:
    return role in CAPABILITY_MATRIX.get(action, frozenset())


def authorize(actor: Optional[Actor], action: Action) -> Optional[Actor]:
    """
    Gate a request.

    Args:
        actor: Authenticated actor, or None for anonymous callers
        action: Action being attempted

    Returns:
        The actor (None only for permitted anonymous actions)

    Raises:
        Unauthorized: No actor for a non-anonymous action, or actor deactivated
        Forbidden: Actor's role is not in the allowed set for the action
    """
    if actor is None:
        if action in ANONYMOUS_ACTIONS:
            return None
        raise Unauthorized("Not authorized to access this route - No token provided")

    if not actor.is_active:
        logger.warning(f"Deactivated user {actor.id} attempted {action.value}")
        raise Unauthorized("User account is deactivated")

    if not is_allowed(actor.role, action):
        raise Forbidden(f"User role '{actor.role.value}' is not authorized to perform {action.value}")

    return actor

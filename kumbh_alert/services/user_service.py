"""
User Service - user directory, credentials and sessions.
"""

from datetime import timedelta
from typing import Dict, List, Optional
import logging

from kumbh_alert.core.errors import NotFound, Unauthorized, ValidationFailed
from kumbh_alert.core.settings import settings
from kumbh_alert.models.user import Actor, Role
from kumbh_alert.services.access_control import Action, authorize
from kumbh_alert.store import get_session_store, get_user_store
from kumbh_alert.utils.firestore_helpers import ensure_aware, utc_now
from kumbh_alert.utils.security import hash_password, new_session_token, verify_password

logger = logging.getLogger(__name__)

# Login shortcuts for the seeded staff accounts
STAFF_LOGIN_ALIASES = {
    "admin": "admin@kumbh.com",
    "volunteer": "volunteer@kumbh.com",
    "medical": "medical@kumbh.com",
}


def public_user(user: Dict) -> Dict:
    """User record without the password hash."""
    return {key: value for key, value in user.items() if key != "password_hash"}


def to_actor(user: Dict) -> Actor:
    return Actor(
        id=user["id"],
        role=Role(user.get("role", Role.PILGRIM.value)),
        is_active=user.get("is_active", True),
        name=user.get("name"),
        email=user.get("email"),
        phone=user.get("phone"),
    )


class UserService:
    """
    Service for user management and session-token authentication.
    """

    def __init__(self, user_store=None, session_store=None):
        self.users = user_store or get_user_store()
        self.sessions = session_store or get_session_store()

    def get_user(self, user_id: str) -> Optional[Dict]:
        return self.users.get_by_id(user_id)

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        matches = self.users.query({"email": self._normalize_email(email)}, limit=1)
        return matches[0] if matches else None

    def create_user(
        self,
        name: str,
        email: str,
        phone: str,
        password: str,
        role: Role = Role.PILGRIM,
    ) -> Dict:
        """
        Create a new user.

        Raises:
            ValidationFailed: A user with this email already exists
        """
        normalized_email = self._normalize_email(email)
        if self.get_user_by_email(normalized_email):
            raise ValidationFailed("User already exists with this email")

        now = utc_now()
        user = self.users.create({
            "name": name,
            "email": normalized_email,
            "phone": phone,
            "password_hash": hash_password(password),
            "role": role.value,
            "is_active": True,
            "location": None,
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"User created: {user['id']} ({role.value})")
        return user

    def list_users(self, actor: Actor, role: Optional[str] = None) -> List[Dict]:
        authorize(actor, Action.MANAGE_USERS)
        return [public_user(user) for user in self.users.query({"role": role})]

    def view_user(self, actor: Actor, user_id: str) -> Dict:
        """Own profile for anyone; other profiles need MANAGE_USERS."""
        if actor is None or actor.id != user_id:
            authorize(actor, Action.MANAGE_USERS)
        else:
            authorize(actor, Action.VIEW_OWN_PROFILE)
        user = self.get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        return public_user(user)

    def update_location(self, actor: Actor, latitude: float, longitude: float) -> Dict:
        authorize(actor, Action.UPDATE_OWN_LOCATION)
        now = utc_now()
        user = self.users.update(actor.id, {
            "location": {"latitude": latitude, "longitude": longitude, "last_updated": now},
            "updated_at": now,
        })
        return public_user(user)

    def set_active(self, actor: Actor, user_id: str, is_active: bool) -> Dict:
        """Activate or deactivate an account. Users are never deleted."""
        authorize(actor, Action.MANAGE_USERS)
        if self.get_user(user_id) is None:
            raise NotFound("User not found")
        user = self.users.update(user_id, {"is_active": is_active, "updated_at": utc_now()})
        logger.info(f"User {user_id} {'activated' if is_active else 'deactivated'} by {actor.id}")
        return public_user(user)

    # Sessions

    def issue_session(self, user: Dict) -> str:
        token = new_session_token()
        self.sessions.create({
            "token": token,
            "user_id": user["id"],
            "expires_at": utc_now() + timedelta(days=settings.SESSION_TTL_DAYS),
        })
        return token

    def signup(self, name: str, email: str, phone: str, password: str) -> Dict:
        """Self-service signup; always a pilgrim account."""
        user = self.create_user(name=name, email=email, phone=phone, password=password, role=Role.PILGRIM)
        return {"token": self.issue_session(user), "user": public_user(user)}

    def login(self, identifier: str, password: str) -> Dict:
        """
        Authenticate by email, staff alias, or user id.

        Raises:
            Unauthorized: Unknown identifier, wrong password, or deactivated account
        """
        identifier = (identifier or "").strip()
        if not identifier:
            raise ValidationFailed("Email or user ID is required")

        if "@" in identifier:
            user = self.get_user_by_email(identifier)
        elif identifier in STAFF_LOGIN_ALIASES:
            user = self.get_user_by_email(STAFF_LOGIN_ALIASES[identifier])
        else:
            user = self.get_user(identifier)

        if not user or not verify_password(password, user.get("password_hash")):
            raise Unauthorized("Invalid credentials")
        if not user.get("is_active", True):
            raise Unauthorized("Account is deactivated")

        logger.info(f"User authenticated: {user['id']} ({user.get('role')})")
        return {"token": self.issue_session(user), "user": public_user(user)}

    def resolve_token(self, token: str) -> Actor:
        """
        Turn a session token into the Actor it belongs to.

        The actor is returned even when the account is deactivated; the
        access gate rejects it with Unauthorized for every action.
        """
        sessions = self.sessions.query({"token": token}, limit=1)
        if not sessions:
            raise Unauthorized("Not authorized - Token invalid or expired")

        session = sessions[0]
        expires_at = ensure_aware(session.get("expires_at"))
        if expires_at is not None and expires_at < utc_now():
            raise Unauthorized("Not authorized - Token invalid or expired")

        user = self.get_user(session.get("user_id"))
        if user is None:
            raise Unauthorized("User not found")
        return to_actor(user)

    def _normalize_email(self, email: str) -> str:
        return (email or "").strip().lower()


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service

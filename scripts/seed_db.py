"""
Seed script for the Kumbh Alert Hub staff accounts.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if FIREBASE configured: python scripts/seed_db.py --apply --force-mock

Behavior:
  - Creates one admin, one volunteer and one medical account.
  - Accounts whose email already exists are skipped.
  - Staff can then log in with the shortcut ids `admin`, `volunteer`, `medical`.

NOTE: With --force-mock the accounts only outlive this process when
MOCK_DB_PATH is set, since the mock database is otherwise in-memory.
"""

import argparse

from kumbh_alert.config.firebase import get_db
from kumbh_alert.core.errors import AlertHubError
from kumbh_alert.core.settings import settings
from kumbh_alert.models.user import Role
from kumbh_alert.services.user_service import UserService


STAFF_ACCOUNTS = [
    {"email": "admin@kumbh.com", "password": "admin", "role": Role.ADMIN, "name": "Admin User", "phone": "0000000001"},
    {"email": "volunteer@kumbh.com", "password": "volunteer", "role": Role.VOLUNTEER, "name": "Volunteer User", "phone": "0000000002"},
    {"email": "medical@kumbh.com", "password": "medical", "role": Role.MEDICAL, "name": "Medical Team User", "phone": "0000000003"},
]


def seed_staff(user_service: UserService, apply: bool = False) -> int:
    created = 0
    for account in STAFF_ACCOUNTS:
        if user_service.get_user_by_email(account["email"]):
            print(f"Skipping: {account['email']} already exists")
            continue
        print(f"Preparing: {account['role'].value} {account['email']}")
        if not apply:
            continue
        try:
            user = user_service.create_user(**account)
            created += 1
            print(f"Wrote: users/{user['id']}")
        except AlertHubError as e:
            print(f"Failed to create {account['email']}: {e.message}")
    return created


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if FIREBASE configured")
    args = parser.parse_args()

    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        settings.USE_MOCK_DB = True

    get_db()
    created = seed_staff(UserService(), apply=args.apply)

    if args.apply:
        print(f"Seeding completed ({created} account(s) created).")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()

"""
Create (or reset) an administrator account for ClinicaFlow.
Run after migrations: python scripts/create_admin.py admin@allooral.com

The password is read from the terminal unless --password is given.
Resetting an existing account also revokes its sessions.
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from clinicaflow.config import settings
from clinicaflow.core.database import SessionLocal
from clinicaflow.core.security import get_password_hash
from clinicaflow.schemas.user import UserRole
from clinicaflow.services.session_service import normalize_email
from clinicaflow.services.user_repository import UserRepository


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("email")
    parser.add_argument("--name", default=settings.ADMIN_NAME)
    parser.add_argument("--clinic", default=settings.ADMIN_CLINIC_NAME)
    parser.add_argument("--password")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters.")
        sys.exit(1)

    email = normalize_email(args.email)
    db = SessionLocal()
    try:
        users = UserRepository(db)
        existing = users.get_by_email(email)
        if existing:
            users.complete_password_reset(existing.id, get_password_hash(password))
            print(f"Password reset for existing user {email}.")
            return
        users.create(
            name=args.name,
            email=email,
            password_hash=get_password_hash(password),
            clinic_name=args.clinic,
            role=UserRole.ADMIN.value,
        )
        print(f"Admin user {email} created.")
    finally:
        db.close()


if __name__ == "__main__":
    main()

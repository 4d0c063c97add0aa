"""Seed an administrator user."""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app  # noqa: E402
from models import db  # noqa: E402
from models.user import ADMIN_ROLE, User  # noqa: E402

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "AdminPass123")
ADMIN_PHONE = os.getenv("ADMIN_PHONE", "5550000000")
ADMIN_COUNTRY_CODE = os.getenv("ADMIN_COUNTRY_CODE", "+1")


def main() -> None:
    app = create_app()
    with app.app_context():
        admin = User.query.filter_by(email=ADMIN_EMAIL.strip().lower()).first()
        if admin is None:
            admin = User(
                email=ADMIN_EMAIL.strip().lower(),
                name="Administrator",
                phone_number=ADMIN_PHONE,
                country_code=ADMIN_COUNTRY_CODE,
                role=ADMIN_ROLE,
            )
            db.session.add(admin)
            action = "created"
        else:
            admin.role = ADMIN_ROLE
            action = "updated"
        admin.set_password(ADMIN_PASSWORD)
        db.session.commit()
        print(f"Admin user {action}: {admin.email}")


if __name__ == "__main__":
    main()

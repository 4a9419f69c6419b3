"""
Idempotent seeding of an ADMIN account. Registration is invitation-only, so the
very first administrator has to come from here. Run:
  $ python -m shiftboard.scripts.seed_admin --line-user-id U1234... --display-name "School Admin"
"""
from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from shiftboard.db import SessionLocal
from shiftboard.models.user import User, UserRole

log = logging.getLogger(__name__)


def seed_admin(db: Session, line_user_id: str, display_name: str) -> User:
    """Creates the user or promotes/reactivates the existing one."""
    line_user_id = (line_user_id or "").strip()
    display_name = (display_name or "").strip()
    if not line_user_id or not display_name:
        raise ValueError("line_user_id and display_name are required")

    user = db.query(User).filter(User.line_user_id == line_user_id).first()
    if user is None:
        user = User(
            line_user_id=line_user_id,
            display_name=display_name,
            role=UserRole.ADMIN,
            is_active=True,
        )
        db.add(user)
    else:
        user.role = UserRole.ADMIN
        user.is_active = True
        user.display_name = display_name
    db.commit()
    db.refresh(user)
    return user


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create or promote an ADMIN account")
    parser.add_argument("--line-user-id", required=True, help="LINE userId (U + 32 hex chars)")
    parser.add_argument("--display-name", required=True)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    with SessionLocal() as db:
        user = seed_admin(db, args.line_user_id, args.display_name)
    log.info("admin seeded: id=%s display_name=%s", user.id, user.display_name)
    print(f"Seeded admin {user.display_name} (id={user.id}) ✔")


if __name__ == "__main__":
    main()

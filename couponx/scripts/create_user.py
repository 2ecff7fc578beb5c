"""
Create a user (e.g. the first admin). Run from project root:
  python -m couponx.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m couponx.scripts.create_user admin admin@example.com 'S3cure-password' admin
"""
import argparse
import sys

from pydantic import ValidationError
from sqlalchemy import or_

from couponx.core.config import get_settings
from couponx.core.database import SessionLocal
from couponx.core.security import hash_password
from couponx.models.user import ROLES, User
from couponx.schemas.auth import RegisterRequest
from couponx.services.gamification import level_for_points


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a CouponX user without going through the API.")
    parser.add_argument("username", help="Username (3-30 chars: letters, numbers, _ or -)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (6-128 chars, upper, lower and digit)")
    parser.add_argument("role", nargs="?", default="user", choices=ROLES)
    args = parser.parse_args()

    try:
        body = RegisterRequest(username=args.username, email=args.email, password=args.password)
    except ValidationError as e:
        for err in e.errors():
            print(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}", file=sys.stderr)
        return 1

    settings = get_settings()
    db = SessionLocal()
    try:
        existing = (
            db.query(User)
            .filter(or_(User.username == body.username, User.email == body.email))
            .first()
        )
        if existing:
            print(f"User '{body.username}' or email '{body.email}' already exists.", file=sys.stderr)
            return 1
        user = User(
            username=body.username,
            email=body.email,
            password_hash=hash_password(body.password),
            role=args.role,
            is_active=True,
            is_email_verified=True,
            points=settings.STARTING_POINTS,
            level=level_for_points(settings.STARTING_POINTS),
        )
        db.add(user)
        db.commit()
        print(f"Created user '{body.username}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())

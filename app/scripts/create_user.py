"""
Create an account (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user admin admin@example.com your-secure-password admin
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.security import PASSWORD_MAX_LEN, USERNAME_MAX_LEN, hash_password, is_valid_email
from app.models.account import ROLES
from app.services import account_store

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an account without going through registration.")
    parser.add_argument("username", help=f"Username (1-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password")
    parser.add_argument("role", nargs="?", default="user", choices=list(ROLES))
    args = parser.parse_args(argv)

    min_len = get_settings().PASSWORD_MIN_LEN
    username = args.username.strip()
    email = args.email.strip()
    if not username or len(username) > USERNAME_MAX_LEN:
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not is_valid_email(email):
        print("Invalid email address.", file=sys.stderr)
        return 1
    if len(args.password) < min_len or len(args.password) > PASSWORD_MAX_LEN:
        print(f"Password must be {min_len}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if account_store.find_conflict(db, username, email) is not None:
            print(f"Username '{username}' or email '{email}' already exists.", file=sys.stderr)
            return 1
        account_store.create_account(
            db,
            username=username,
            email=email,
            password_hash=hash_password(args.password),
            role=args.role,
            full_name=username,
        )
        db.commit()
        print(f"Created account '{username}' with role '{args.role}'.")
        return 0
    except Exception:
        db.rollback()
        logger.exception("Account creation failed")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())

"""
Create the first super admin on an empty database. Run from project root:
  python -m backend.scripts.create_admin EMAIL PASSWORD [--name NAME]
Example:
  python -m backend.scripts.create_admin admin@example.com your-secure-password --name "Site Owner"

Does nothing (exit code 1) once any user exists; further accounts are
created through the users API by an authorized admin.
"""
import argparse
import sys

from email_validator import EmailNotValidError, validate_email

from backend.config import settings
from backend.core.security import PasswordHasher
from backend.core.store import UserStore
from backend.core.user_management import UserManager
from backend.database import SessionLocal
from backend.schemas.auth import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create the initial super admin account.")
    parser.add_argument("email", help="Email address of the super admin")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} chars)")
    parser.add_argument("--name", default=None, help="Optional display name")
    args = parser.parse_args(argv)

    try:
        email = validate_email(args.email.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        print(f"Invalid email: {e}", file=sys.stderr)
        return 1
    if len(args.password) < PASSWORD_MIN_LENGTH or len(args.password) > PASSWORD_MAX_LENGTH:
        print(f"Password must be {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} characters.", file=sys.stderr)
        return 1
    name = args.name.strip() if args.name and args.name.strip() else None

    db = SessionLocal()
    try:
        manager = UserManager(UserStore(db), PasswordHasher(rounds=settings.bcrypt_rounds))
        user = manager.seed_initial_super_admin(email, args.password, name)
        if user is None:
            print("Users already exist; refusing to seed a super admin.", file=sys.stderr)
            return 1
        print(f"Created super admin '{user.email}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())

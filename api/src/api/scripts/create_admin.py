"""Create an admin account, or reset its password."""

from __future__ import annotations

import argparse
import asyncio
import getpass

from sqlalchemy import func, select
from verlux.database import close_engine, get_session_factory
from verlux.models import AdminUser

from api.middleware.auth import hash_password

MIN_PASSWORD_LENGTH = 12


async def upsert_admin(*, email: str, password: str, reset: bool) -> str:
    """Return "created", "updated" or "exists"."""
    normalized_email = email.strip().lower()
    factory = get_session_factory()
    try:
        async with factory() as db:
            result = await db.execute(
                select(AdminUser).where(func.lower(AdminUser.email) == normalized_email)
            )
            user = result.scalars().first()
            if user is None:
                db.add(
                    AdminUser(
                        email=normalized_email,
                        password_hash=hash_password(password),
                        is_active=True,
                    )
                )
                outcome = "created"
            elif reset:
                user.password_hash = hash_password(password)
                user.is_active = True
                outcome = "updated"
            else:
                return "exists"
            await db.commit()
            return outcome
    finally:
        await close_engine()


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create or reset a Verlux admin account.")
    parser.add_argument("email", help="Admin email address.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Reset the password (and reactivate) when the account already exists.",
    )
    parser.add_argument(
        "--password",
        default=None,
        help="Password to set. Prompted for when omitted.",
    )
    return parser


def main() -> None:
    args = _parser().parse_args()
    if "@" not in args.email:
        raise SystemExit("create-admin: email must contain '@'")
    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SystemExit(f"create-admin: password must be at least {MIN_PASSWORD_LENGTH} characters")
    outcome = asyncio.run(upsert_admin(email=args.email, password=password, reset=bool(args.reset)))
    print("create-admin:", f"email={args.email.strip().lower()}", f"result={outcome}")


if __name__ == "__main__":
    main()

"""Management CLI for local development.

Accounts are provisioned by the external identity service; these commands
only read the ``users`` table.

Usage:
    python -m freightboard.cli list-users              # Show every account and role
    python -m freightboard.cli issue-token <email>     # Print a bearer token for a user
"""

import sys

from sqlalchemy import Engine, create_engine, select
from sqlalchemy.orm import Session

from freightboard.auth.jwt import create_access_token
from freightboard.config import settings
from freightboard.models.user import User


def get_engine() -> Engine:
    return create_engine(settings.database_url_sync)


def list_users(engine: Engine) -> list[tuple[str, str, str]]:
    with Session(engine) as session:
        result = session.execute(
            select(User.email, User.role, User.company_name).order_by(User.email)
        )
        return [(email, role.value, company or "") for email, role, company in result]


def issue_token(engine: Engine, email: str) -> str:
    """Mint an access token for an active user, as the login service would."""
    with Session(engine) as session:
        user = session.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()
        if user is None or not user.is_active:
            raise LookupError(f"No active user with email {email}")
        return create_access_token(user_id=user.id, role=user.role.value)


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "list-users":
        users = list_users(get_engine())
        for email, role, company in users:
            print(f"  {role:<8} {email}  {company}")
        print(f"\n{len(users)} user(s)")
    elif cmd == "issue-token" and len(sys.argv) > 2:
        try:
            print(issue_token(get_engine(), sys.argv[2]))
        except LookupError as e:
            print(f"  FAILED: {e}")
            sys.exit(1)
    else:
        print("Usage: python -m freightboard.cli [list-users|issue-token <email>]")

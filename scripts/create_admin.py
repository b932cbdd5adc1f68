"""Bootstrap an admin account from the command line.

Usage:
    python -m scripts.create_admin --email admin@example.com --first-name Ada --last-name Admin
"""

import argparse
import asyncio
import getpass

from pydantic import ValidationError

from src.config import settings
from src.db.database import async_session_factory, engine, init_db
from src.domains.users.models import AdminCreateRequest
from src.domains.users.service import UserService
from src.shared.audit import RequestContext
from src.shared.errors import ConflictError
from src.shared.logging import setup_logging


async def create_admin(request: AdminCreateRequest) -> None:
    await init_db()
    try:
        async with async_session_factory() as session:
            user = await UserService().create_admin(
                session, request, RequestContext(user_agent="create_admin-cli")
            )
        print(f"  Created admin {user.email} (id={user.id})")
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a PaySecure admin user")
    parser.add_argument("--email", type=str, required=True, help="Admin email address")
    parser.add_argument("--first-name", type=str, required=True)
    parser.add_argument("--last-name", type=str, required=True)
    parser.add_argument(
        "--password", type=str, default=None, help="Password (prompted for when omitted)"
    )
    args = parser.parse_args()

    setup_logging(settings.log_level, json_logs=False)
    password = args.password or getpass.getpass("Password: ")

    try:
        request = AdminCreateRequest(
            email=args.email,
            password=password,
            first_name=args.first_name,
            last_name=args.last_name,
        )
    except ValidationError as exc:
        for error in exc.errors():
            print(f"  [FAIL] {error['loc'][-1]}: {error['msg']}")
        raise SystemExit(1) from exc

    try:
        asyncio.run(create_admin(request))
    except ConflictError as exc:
        print(f"  [FAIL] {exc.message}")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()

"""Credential table management.

Usage::

    MONGODB_URL=... python -m auth_service create-user USERNAME PASSWORD [--role admin|user]
"""

import argparse
import asyncio
import logging
import sys

from auth_service.repositories.user_repository import UserRepository
from auth_service.services.auth_service import AuthService


async def create_user(username: str, password: str, role: str) -> int:
    service = AuthService(user_repository=UserRepository())
    if await service.user_repository.get_by_username(username):
        print(f"User {username} already exists", file=sys.stderr)
        return 1
    await service.create_user(username, password, role)
    print(f"Created {role} user {username}")
    return 0


def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    parser = argparse.ArgumentParser(prog="python -m auth_service", description="Relay hub credential table")
    subparsers = parser.add_subparsers(dest="command", required=True)
    create = subparsers.add_parser("create-user", help="Add an operator account to MongoDB")
    create.add_argument("username")
    create.add_argument("password")
    create.add_argument("--role", choices=["admin", "user"], default="user")
    args = parser.parse_args()

    if args.command == "create-user":
        sys.exit(asyncio.run(create_user(args.username, args.password, args.role)))


if __name__ == "__main__":
    main()

"""Main entry point for the estate listings service."""

import argparse
import asyncio
import getpass
import logging
import sys

from estate_listings.auth import hash_password
from estate_listings.config import Settings
from estate_listings.db import Database, UserRepository
from estate_listings.errors import PersistenceError
from estate_listings.logging import configure_logging, get_logger
from estate_listings.models import Role

logger = get_logger(__name__)


async def create_user(
    settings: Settings,
    email: str,
    password: str,
    *,
    name: str | None = None,
    role: Role = Role.ADMIN,
) -> str:
    """Create a user in the configured database and return its id."""
    db = Database(settings.database_path)
    try:
        await db.initialize()
        users = UserRepository(db)
        return await users.create_user(email, hash_password(password), name=name, role=role)
    finally:
        await db.close()


def _prompt_password() -> str:
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        print("Error: Passwords do not match.")
        sys.exit(1)
    if not password:
        print("Error: Password may not be empty.")
        sys.exit(1)
    return password


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Estate Listings - Property listings site with an admin panel"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start the web server",
    )
    parser.add_argument(
        "--create-admin",
        metavar="EMAIL",
        default=None,
        help="Create an admin user (password is prompted for)",
    )
    parser.add_argument(
        "--name",
        default=None,
        help="With --create-admin: display name of the new user",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging for troubleshooting",
    )
    args = parser.parse_args()

    configure_logging(json_output=False, level=logging.DEBUG if args.debug else logging.INFO)

    try:
        settings = Settings()
    except Exception as e:
        logger.error("failed_to_load_settings", error=str(e))
        print(f"Error: Failed to load settings. {e}")
        print("Settings are read from ESTATE_LISTINGS_* environment variables or .env")
        sys.exit(1)

    if args.create_admin:
        password = _prompt_password()
        try:
            user_id = asyncio.run(
                create_user(settings, args.create_admin, password, name=args.name)
            )
        except (PersistenceError, ValueError) as e:
            logger.error("create_admin_failed", error=str(e))
            print(f"Error: Could not create user. {e}")
            sys.exit(1)
        print(f"Created admin {args.create_admin} ({user_id})")
    elif args.serve:
        import uvicorn

        from estate_listings.web.app import create_app

        logger.info(
            "starting_estate_listings",
            db_path=settings.database_path,
            cloudinary_configured=settings.cloudinary_configured,
        )
        app = create_app(settings)
        uvicorn.run(app, host=settings.web_host, port=settings.web_port, log_level="info")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()

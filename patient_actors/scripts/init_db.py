"""
Create the database tables, optionally seeding users

Usage:
    python -m patient_actors.scripts.init_db
    python -m patient_actors.scripts.init_db --user "Dr. Lee" lee@example.edu instructor
"""
import argparse
import logging

from ..core.constants import VALID_ROLES
from ..database.config import get_db_session, init_database
from ..database.repositories import UserRepository

logger = logging.getLogger(__name__)


def init_db(database_url=None, users=()):
    """Create all tables and add the given (name, email, role) users if missing"""
    print("Creating database tables...")
    init_database(database_url, create_tables=True)
    print("Tables created successfully")

    with get_db_session() as db:
        repo = UserRepository(db)
        for name, email, role in users:
            if repo.get_by_email(email):
                print(f"User {email} already exists, skipping")
                continue
            user = repo.create(name=name, email=email, role=role)
            print(f"Created {role} {email} ({user.id})")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Create patient actor tables")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument(
        "--user",
        nargs=3,
        action="append",
        default=[],
        metavar=("NAME", "EMAIL", "ROLE"),
        help=f"Seed a user; ROLE is one of {', '.join(VALID_ROLES)}",
    )
    args = parser.parse_args()

    for _, _, role in args.user:
        if role not in VALID_ROLES:
            parser.error(f"invalid role '{role}'")

    init_db(args.database_url, args.user)

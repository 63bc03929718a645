"""
Assign slugs to patient actors created before slugs existed

Targets personas whose slug is empty or still a "temp-" placeholder.

Usage:
    python -m patient_actors.scripts.migrate_slugs [--dry-run]
"""
import argparse
import logging

from ..database.config import get_db_session, init_database
from ..database.repositories import PatientActorRepository
from ..services.patient_actor_registry import PatientActorRegistry, slugify

logger = logging.getLogger(__name__)


def migrate_slugs(db, dry_run: bool = False) -> int:
    """Returns how many personas got (or would get) a slug"""
    repo = PatientActorRepository(db)
    registry = PatientActorRegistry(db)
    actors = repo.get_without_slug()
    print(f"Found {len(actors)} patient actors without a slug")

    for actor in actors:
        slug = registry.unique_slug(slugify(actor.name))
        print(f"  {actor.name} -> {slug}")
        if not dry_run:
            repo.set_slug(actor.id, slug)
            logger.info("Slug assigned", extra={"patient_actor_id": actor.id, "slug": slug})
    return len(actors)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Assign slugs to patient actors missing one")
    parser.add_argument("--dry-run", action="store_true", help="Only print what would change")
    args = parser.parse_args()

    init_database(create_tables=False)
    with get_db_session() as db:
        count = migrate_slugs(db, dry_run=args.dry_run)
    print(f"Done: {count} patient actors {'would be ' if args.dry_run else ''}updated")

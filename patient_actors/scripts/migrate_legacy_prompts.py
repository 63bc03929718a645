"""
Fill structured profiles from legacy raw prompts

Every persona with a raw prompt and no structured content is parsed with the
prompt compiler's extractor. The raw prompt keeps taking precedence unless
--clear-legacy is given.

Usage:
    python -m patient_actors.scripts.migrate_legacy_prompts [--clear-legacy] [--dry-run]
"""
import argparse
import logging

from ..core.prompt_compiler import has_structured_content
from ..core.response_generator import structured_profile_of
from ..database.config import get_db_session, init_database
from ..database.repositories import PatientActorRepository
from ..services.patient_actor_registry import PatientActorRegistry

logger = logging.getLogger(__name__)


def needs_migration(actor) -> bool:
    return bool(actor.prompt and actor.prompt.strip()) and not has_structured_content(
        structured_profile_of(actor)
    )


def migrate_legacy_prompts(db, clear_legacy: bool = False, dry_run: bool = False) -> int:
    """Returns how many personas were (or would be) migrated"""
    registry = PatientActorRegistry(db)
    candidates = [actor for actor in PatientActorRepository(db).get_all() if needs_migration(actor)]
    print(f"Found {len(candidates)} patient actors with a legacy prompt only")

    for actor in candidates:
        print(f"  {actor.name} ({actor.id})")
        if not dry_run:
            registry.migrate_legacy_prompt(actor, clear_legacy=clear_legacy)
    return len(candidates)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Parse legacy prompts into structured profiles")
    parser.add_argument(
        "--clear-legacy",
        action="store_true",
        help="Empty the raw prompt afterwards so the compiled prompt is used",
    )
    parser.add_argument("--dry-run", action="store_true", help="Only list the candidates")
    args = parser.parse_args()

    init_database(create_tables=False)
    with get_db_session() as db:
        count = migrate_legacy_prompts(db, clear_legacy=args.clear_legacy, dry_run=args.dry_run)
    print(f"Done: {count} patient actors {'would be ' if args.dry_run else ''}migrated")

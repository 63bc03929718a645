"""
Patient Actor Registry

Owns persona records: creation with unique slug assignment, owner-gated
reads and patches, public lookup by slug, deletion (rubric included) and
the starter persona bootstrap for new accounts.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_SLUG, MAX_AGE, MAX_NAME_LENGTH, MIN_AGE
from ..core.errors import NotFoundError, ValidationFailedError
from ..core.prompt_compiler import (
    STRUCTURED_FIELDS,
    RevelationLevel,
    has_structured_content,
    parse_prompt,
)
from ..core.response_generator import build_system_prompt, structured_profile_of
from ..data.loader import STARTER_PATIENT_AGE, STARTER_PATIENT_NAME, load_starter_prompt
from ..database.models import PatientActorDB, UserDB
from ..database.repositories import PatientActorRepository, UserRepository
from .access import ensure_owner, require_user

logger = logging.getLogger(__name__)

NOT_OWNER_MESSAGE = "Unauthorized: You don't own this patient actor"
SLUG_CREATE_ATTEMPTS = 5
VALID_REVELATION_LEVELS = tuple(level.value for level in RevelationLevel)


def slugify(name: str) -> str:
    """
    URL-safe slug from a display name.

    Lowercase, drop everything outside ASCII word characters, whitespace and
    hyphens, turn whitespace runs into single hyphens, collapse repeated
    hyphens and trim hyphens at both ends.

        >>> slugify("Dr. Smith!!")
        'dr-smith'
    """
    slug = (name or "").lower()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip().strip("-")


def validate_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationFailedError("Name is required")
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationFailedError(f"Name must be at most {MAX_NAME_LENGTH} characters")
    return name


def validate_age(age: Any) -> int:
    if isinstance(age, bool) or not isinstance(age, int):
        raise ValidationFailedError("Age must be a whole number")
    if not MIN_AGE <= age <= MAX_AGE:
        raise ValidationFailedError(f"Age must be between {MIN_AGE} and {MAX_AGE}")
    return age


def validate_profile(profile: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Check structured profile field names, value types and the revelation level"""
    profile = dict(profile or {})
    unknown = set(profile) - set(STRUCTURED_FIELDS)
    if unknown:
        raise ValidationFailedError(
            f"Unknown profile fields: {', '.join(sorted(unknown))}",
            extra={"fields": sorted(unknown)},
        )
    for field, value in profile.items():
        expected_type = PatientActorRepository.UPDATEABLE_FIELDS[field]
        if not isinstance(value, expected_type):
            raise ValidationFailedError(
                f"Invalid type for field '{field}': "
                f"expected {expected_type.__name__}, got {type(value).__name__}",
                extra={"field": field},
            )
    level = profile.get("revelation_level")
    if level is not None and level not in VALID_REVELATION_LEVELS:
        raise ValidationFailedError(
            f"revelation_level must be one of {list(VALID_REVELATION_LEVELS)}",
            extra={"revelation_level": level},
        )
    return profile


class PatientActorRegistry:
    """Persona CRUD with ownership checks"""

    def __init__(self, db: Session):
        self.db = db
        self.actors = PatientActorRepository(db)
        self.users = UserRepository(db)

    # ------------------------------------------------------------------
    # Slugs
    # ------------------------------------------------------------------

    def unique_slug(self, base: str) -> str:
        """First free slug among base, base-1, base-2, ..."""
        base = base or DEFAULT_SLUG
        candidate = base
        counter = 1
        while self.actors.slug_exists(candidate):
            candidate = f"{base}-{counter}"
            counter += 1
        return candidate

    def _create_with_unique_slug(self, base_slug: str, **fields) -> PatientActorDB:
        # The unique index is the final arbiter; a concurrent insert that took
        # the slug between check and write is retried with the next free one
        for attempt in range(1, SLUG_CREATE_ATTEMPTS + 1):
            slug = self.unique_slug(base_slug)
            try:
                return self.actors.create(slug=slug, **fields)
            except IntegrityError:
                if not self.actors.slug_exists(slug):
                    raise
                logger.warning(
                    "Slug collision on insert, retrying",
                    extra={"slug": slug, "attempt": attempt},
                )
        raise ValidationFailedError("Could not assign a unique slug, please retry")

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(
        self,
        user: Optional[UserDB],
        name: str,
        age: int,
        prompt: str = "",
        is_public: bool = False,
        profile: Optional[Dict[str, Any]] = None,
    ) -> PatientActorDB:
        """
        Create a persona owned by the caller.

        Raises:
            UnauthenticatedError: No caller
            ValidationFailedError: Invalid name, age or profile fields
        """
        user = require_user(user)
        name = validate_name(name)
        age = validate_age(age)
        profile = validate_profile(profile)

        actor = self._create_with_unique_slug(
            slugify(name),
            owner_id=user.id,
            name=name,
            age=age,
            is_public=bool(is_public),
            prompt=prompt or "",
            profile=profile,
        )
        logger.info(
            "Patient actor created",
            extra={"patient_actor_id": actor.id, "owner_id": user.id, "slug": actor.slug},
        )
        return actor

    def get(self, actor_id: str, user: Optional[UserDB]) -> PatientActorDB:
        """
        Owner-gated read.

        Raises:
            NotFoundError: Persona absent
            ForbiddenError: Persona exists but belongs to someone else
        """
        user = require_user(user)
        actor = self.actors.get_by_id(actor_id)
        if not actor:
            raise NotFoundError("Patient actor not found", extra={"patient_actor_id": actor_id})
        ensure_owner(actor.owner_id, user, NOT_OWNER_MESSAGE)
        return actor

    def get_public_by_slug(self, slug: str) -> PatientActorDB:
        """
        Unauthenticated lookup by slug.

        Private and absent personas are indistinguishable to the caller.
        """
        actor = self.actors.get_by_slug(slug)
        if not actor or not actor.is_public:
            raise NotFoundError("Patient actor not found", extra={"slug": slug})
        return actor

    def list_mine(self, user: Optional[UserDB]) -> List[PatientActorDB]:
        user = require_user(user)
        return self.actors.get_by_owner(user.id)

    def update(self, actor_id: str, user: Optional[UserDB], **changes) -> PatientActorDB:
        """
        Partial patch of an owned persona. The slug is never recomputed,
        even when the name changes.
        """
        actor = self.get(actor_id, user)
        if not changes:
            return actor

        if "slug" in changes or "owner_id" in changes:
            raise ValidationFailedError("slug and owner cannot be changed")
        if "name" in changes:
            changes["name"] = validate_name(changes["name"])
        if "age" in changes:
            changes["age"] = validate_age(changes["age"])

        profile_changes = {k: v for k, v in changes.items() if k in STRUCTURED_FIELDS}
        validate_profile(profile_changes)

        try:
            updated = self.actors.update(actor.id, **changes)
        except (ValueError, TypeError) as e:
            raise ValidationFailedError(str(e)) from e

        logger.info(
            "Patient actor updated",
            extra={"patient_actor_id": actor.id, "fields": sorted(changes)},
        )
        return updated

    def delete(self, actor_id: str, user: Optional[UserDB]) -> None:
        """Delete an owned persona together with its rubric"""
        actor = self.get(actor_id, user)
        self.actors.delete(actor.id)
        logger.info("Patient actor deleted", extra={"patient_actor_id": actor_id})

    # ------------------------------------------------------------------
    # Prompt helpers
    # ------------------------------------------------------------------

    def effective_prompt(self, actor_id: str, user: Optional[UserDB]) -> str:
        """System prompt the model would receive for this persona"""
        return build_system_prompt(self.get(actor_id, user))

    def migrate_legacy_prompt(self, actor: PatientActorDB, clear_legacy: bool = False) -> PatientActorDB:
        """
        Fill the structured profile from the legacy raw prompt.

        Best effort: parse_prompt() is heuristic and lossy. Personas that
        already carry structured content are left untouched. With
        clear_legacy the raw prompt is emptied so the compiled prompt
        takes over.
        """
        if not actor.prompt or has_structured_content(structured_profile_of(actor)):
            return actor

        changes = parse_prompt(actor.prompt).model_dump()
        if clear_legacy:
            changes["prompt"] = ""
        updated = self.actors.update(actor.id, **changes)
        logger.info(
            "Legacy prompt migrated",
            extra={"patient_actor_id": actor.id, "cleared_legacy": clear_legacy},
        )
        return updated

    # ------------------------------------------------------------------
    # Starter persona
    # ------------------------------------------------------------------

    def create_starter(self, user_id: str) -> PatientActorDB:
        """
        Bootstrap the public "Philip Walters" persona for a new account.

        Raises:
            NotFoundError: Unknown user
        """
        user = self.users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", extra={"user_id": user_id})

        actor = self._create_with_unique_slug(
            f"{slugify(STARTER_PATIENT_NAME)}-{user_id[-6:]}",
            owner_id=user.id,
            name=STARTER_PATIENT_NAME,
            age=STARTER_PATIENT_AGE,
            is_public=True,
            prompt=load_starter_prompt(),
        )
        logger.info(
            "Starter patient actor created",
            extra={"patient_actor_id": actor.id, "owner_id": user.id},
        )
        return actor
